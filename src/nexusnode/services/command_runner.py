"""Subprocess execution service for nexusnode."""

import subprocess
import time
from typing import List, Optional

from nexusnode.errors import InstallerError


class CommandRunner:
    """Runs external commands, turning every failure into an InstallerError."""

    def __init__(self, logger):
        self.logger = logger

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[float] = None,
        retry_count: int = 0,
        retry_backoff_seconds: float = 0.0,
        input_text: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        max_attempts = max(1, retry_count + 1)

        for attempt in range(1, max_attempts + 1):
            self.logger.debug("Executing (attempt %s/%s): %s", attempt, max_attempts, cmd_str)
            try:
                result = subprocess.run(
                    cmd,
                    text=True,
                    capture_output=capture_output,
                    timeout=timeout,
                    input=input_text,
                )
            except FileNotFoundError as exc:
                raise InstallerError(
                    f"Required command not found: {cmd[0]}. Please install it and try again."
                ) from exc
            except subprocess.TimeoutExpired as exc:
                raise InstallerError(f"Command timed out after {timeout}s: {cmd_str}") from exc
            except OSError as exc:
                raise InstallerError(f"Failed to execute command: {cmd_str}. {exc}") from exc

            if capture_output and result.stdout:
                self.logger.debug("Command output: %s", result.stdout.strip())

            if result.returncode == 0:
                return result

            stderr = (result.stderr or "").strip() if capture_output else ""
            message = f"Command failed ({result.returncode}): {cmd_str}"
            if stderr:
                message = f"{message}\n{stderr}"

            if attempt < max_attempts:
                self.logger.warning(
                    "Command failed on attempt %s/%s and will be retried in %.1fs.\n%s",
                    attempt,
                    max_attempts,
                    retry_backoff_seconds,
                    message,
                )
                time.sleep(retry_backoff_seconds)
                continue

            if check:
                raise InstallerError(message)

            self.logger.debug(message)
            return result
