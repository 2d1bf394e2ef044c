"""Actionable error catalog for nexusnode."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "no_privilege": {
        "what": "Root privileges are required.",
        "next": "Run as root or configure passwordless `sudo` for this user.",
    },
    "no_network": {
        "what": "No network connectivity: none of {hosts} could be reached.",
        "next": "Check your internet connection, DNS and proxy settings.",
    },
    "low_disk_declined": {
        "what": "Insufficient disk space: {free_gb:.1f} GB free, {required_gb:.1f} GB recommended.",
        "next": "Free some space on the root filesystem and run the installer again.",
    },
    "engine_install_failed": {
        "what": "Docker could not be installed from the distribution or the Docker repository.",
        "next": "Inspect {log_file} and install Docker manually before retrying.",
    },
    "engine_not_running": {
        "what": "Docker is installed but the service could not be started.",
        "next": "Run `systemctl status docker` and fix the service before retrying.",
    },
    "binary_fetch_failed": {
        "what": "Failed to download or install the Nexus CLI after {attempts} attempts.",
        "next": "Check access to {url} and run the installer again.",
    },
    "binary_missing": {
        "what": "Nexus CLI installation reported success but {path} does not exist.",
        "next": "Remove {cli_dir} and run the installer again.",
    },
    "build_failed": {
        "what": "Docker image '{image}' failed to build.",
        "next": "Inspect {log_file} for the build transcript, then retry.",
    },
    "no_tty": {
        "what": "No interactive terminal detected and no saved node ID was found.",
        "next": "Run the container with `docker run -it` to complete registration.",
    },
    "user_registration_failed": {
        "what": "User registration failed for wallet {wallet}.",
        "next": "Verify the wallet address and try again.",
    },
    "node_registration_failed": {
        "what": "Node registration did not return a node ID.",
        "next": "Retry registration or start with an existing Node ID.",
    },
    "node_start_failed": {
        "what": "Could not start the node with `{binary}`: {error}.",
        "next": "Rebuild the image with `nexusnode install` so the Nexus CLI is on PATH.",
    },
    "retry_budget_exceeded": {
        "what": "Gave up on {what} after {attempts} attempts.",
        "next": "Run the command again once the underlying problem is resolved.",
    },
}


def actionable_error(code: str, **kwargs) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
