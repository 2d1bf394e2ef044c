"""apt package and Docker engine installation for nexusnode."""

import getpass
import os
import shutil
import tempfile
import time
from typing import Callable, Dict, List, Optional, Sequence

import requests

from nexusnode.constants import (
    BASE_PACKAGES,
    CONFLICTING_PACKAGES,
    ENGINE_GROUP,
    NATIVE_ENGINE_PACKAGE,
    PACKAGE_LOCK_FILES,
    VENDOR_ENGINE_PACKAGES,
    VENDOR_KEYRING_PATH,
    VENDOR_REPO_BASE_URL,
    VENDOR_SOURCES_PATH,
)
from nexusnode.errors import InstallerError, RetryBudgetExceeded
from nexusnode.errors_catalog import actionable_error
from nexusnode.models import InstallerConfig


class PackageInstallerService:
    """Installs base packages and makes sure a Docker engine is running."""

    def __init__(
        self,
        config: InstallerConfig,
        logger,
        console,
        sudo_prefix: Optional[List[str]] = None,
        requests_module=requests,
        which: Callable[[str], Optional[str]] = shutil.which,
        os_release_path: str = "/etc/os-release",
    ):
        self.config = config
        self.logger = logger
        self.console = console
        self.sudo_prefix = list(sudo_prefix or [])
        self.requests = requests_module
        self.which = which
        self.os_release_path = os_release_path

    def _privileged(self, cmd: Sequence[str]) -> List[str]:
        return self.sudo_prefix + list(cmd)

    def _apt(self, *args: str) -> List[str]:
        env_prefix = ["env", "DEBIAN_FRONTEND=noninteractive"]
        return self._privileged(env_prefix + ["apt-get"] + list(args))

    def wait_for_package_lock(self, run_cmd: Callable):
        if not self.which("fuser"):
            self.logger.debug("fuser is not available; skipping package lock check.")
            return

        cmd = self._privileged(["fuser"] + list(PACKAGE_LOCK_FILES))
        for poll in range(self.config.lock_max_polls):
            result = run_cmd(cmd, check=False, capture_output=True)
            if result.returncode != 0:
                return
            if poll == 0:
                self.console.print(
                    "[yellow]Waiting for another package manager process to finish...[/yellow]"
                )
            time.sleep(self.config.lock_poll_interval)

        raise RetryBudgetExceeded(
            actionable_error(
                "retry_budget_exceeded",
                what="waiting for the package manager lock",
                attempts=self.config.lock_max_polls,
            )
        )

    def _update_package_lists(self, run_cmd: Callable, check: bool = True):
        run_cmd(
            self._apt("update", "-y"),
            check=check,
            capture_output=True,
            retry_count=self.config.apt_update_retries,
            retry_backoff_seconds=self.config.fetch_backoff_seconds,
        )

    def install_base_packages(self, run_cmd: Callable):
        self.wait_for_package_lock(run_cmd)
        with self.console.status("Updating package lists..."):
            self._update_package_lists(run_cmd)
            run_cmd(self._apt("upgrade", "-y"), capture_output=True)
        with self.console.status(f"Installing {', '.join(BASE_PACKAGES)}..."):
            run_cmd(self._apt("install", "-y", *BASE_PACKAGES), capture_output=True)
        self.console.print("[green]Base packages installed.[/green]")

    def engine_installed(self) -> bool:
        return self.which("docker") is not None

    def _install_native_engine(self, run_cmd: Callable) -> bool:
        self.wait_for_package_lock(run_cmd)
        result = run_cmd(
            self._apt("install", "-y", NATIVE_ENGINE_PACKAGE),
            check=False,
            capture_output=True,
        )
        return result.returncode == 0

    def remove_conflicting_packages(self, run_cmd: Callable):
        self.logger.info("Removing packages that conflict with Docker...")
        for package in CONFLICTING_PACKAGES:
            result = run_cmd(
                self._apt("remove", "-y", package),
                check=False,
                capture_output=True,
            )
            if result.returncode != 0:
                self.logger.debug("Package %s was not removed (probably absent).", package)

    def read_os_release(self) -> Dict[str, str]:
        values: Dict[str, str] = {}
        try:
            with open(self.os_release_path, "r", encoding="utf-8") as file_obj:
                for line in file_obj:
                    key, sep, value = line.strip().partition("=")
                    if sep:
                        values[key] = value.strip().strip('"')
        except OSError as exc:
            raise InstallerError(f"Could not read {self.os_release_path}: {exc}") from exc
        return values

    def build_vendor_source_line(self, architecture: str, os_release: Dict[str, str]) -> str:
        distro = os_release.get("ID", "ubuntu").lower()
        codename = os_release.get("VERSION_CODENAME") or os_release.get("UBUNTU_CODENAME")
        if not codename:
            raise InstallerError("Could not detect the distribution codename from os-release.")
        return (
            f"deb [arch={architecture} signed-by={VENDOR_KEYRING_PATH}] "
            f"{VENDOR_REPO_BASE_URL}/{distro} {codename} stable\n"
        )

    def _install_file(self, run_cmd: Callable, content: bytes, destination: str, mode: str = "0644"):
        fd, temp_path = tempfile.mkstemp(prefix="nexusnode-")
        try:
            with os.fdopen(fd, "wb") as file_obj:
                file_obj.write(content)
            run_cmd(
                self._privileged(
                    ["install", "-D", "-m", mode, temp_path, destination]
                ),
                capture_output=True,
            )
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)

    def install_vendor_engine(self, run_cmd: Callable) -> bool:
        self.logger.info("Falling back to the official Docker repository...")
        try:
            os_release = self.read_os_release()
            distro = os_release.get("ID", "ubuntu").lower()
            response = self.requests.get(
                f"{VENDOR_REPO_BASE_URL}/{distro}/gpg",
                timeout=(self.config.download_connect_timeout, self.config.download_total_timeout),
            )
            response.raise_for_status()
        except self.requests.RequestException as exc:
            self.logger.error("Could not download the Docker signing key: %s", exc)
            return False
        except InstallerError as exc:
            self.logger.error("Could not detect the distribution: %s", exc)
            return False

        try:
            architecture = run_cmd(["dpkg", "--print-architecture"], capture_output=True).stdout.strip()
            source_line = self.build_vendor_source_line(architecture, os_release)
            self._install_file(run_cmd, response.content, VENDOR_KEYRING_PATH)
            self._install_file(run_cmd, source_line.encode("utf-8"), VENDOR_SOURCES_PATH)
        except (InstallerError, OSError) as exc:
            self.logger.error("Could not configure the Docker repository: %s", exc)
            return False

        self.wait_for_package_lock(run_cmd)
        self._update_package_lists(run_cmd, check=False)
        result = run_cmd(
            self._apt("install", "-y", *VENDOR_ENGINE_PACKAGES),
            check=False,
            capture_output=True,
        )
        return result.returncode == 0

    def ensure_engine(self, run_cmd: Callable) -> bool:
        """Install Docker when missing. Returns False when it was already present."""
        if self.engine_installed():
            self.console.print("[green]Docker is already installed. Skipping installation.[/green]")
            return False

        with self.console.status("Installing Docker..."):
            if self._install_native_engine(run_cmd):
                self.console.print(f"[green]Installed {NATIVE_ENGINE_PACKAGE}.[/green]")
                return True

            self.logger.warning("%s failed to install; resolving conflicts.", NATIVE_ENGINE_PACKAGE)
            self.remove_conflicting_packages(run_cmd)
            if self._install_native_engine(run_cmd):
                self.console.print(f"[green]Installed {NATIVE_ENGINE_PACKAGE}.[/green]")
                return True

            if self.install_vendor_engine(run_cmd):
                self.console.print("[green]Installed Docker from the official repository.[/green]")
                return True

        raise InstallerError(actionable_error("engine_install_failed", log_file=self.config.log_file))

    def start_engine(self, run_cmd: Callable):
        start = run_cmd(
            self._privileged(["systemctl", "start", "docker"]),
            check=False,
            capture_output=True,
        )
        if start.returncode == 0:
            run_cmd(
                self._privileged(["systemctl", "enable", "docker"]),
                check=False,
                capture_output=True,
            )
            self.console.print("[green]Docker service is running.[/green]")
            return

        if self.which("snap"):
            snap = run_cmd(["snap", "list", "docker"], check=False, capture_output=True)
            if snap.returncode == 0:
                self.console.print("[green]Using the snap-based Docker installation.[/green]")
                return

        raise InstallerError(actionable_error("engine_not_running"))

    def grant_engine_access(self, run_cmd: Callable, user: Optional[str] = None):
        if not self.sudo_prefix:
            return

        user = user or os.environ.get("SUDO_USER") or getpass.getuser()
        run_cmd(self._privileged(["usermod", "-aG", ENGINE_GROUP, user]), capture_output=True)
        self.console.print(
            f"[yellow]Warning:[/yellow] added '{user}' to the '{ENGINE_GROUP}' group. "
            "Log out and back in for the change to take effect."
        )
