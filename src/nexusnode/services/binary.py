"""Nexus CLI download and installation."""

import os
import time
from typing import Callable

import requests

from nexusnode.constants import SCRIPT_MODE
from nexusnode.errors import InstallerError
from nexusnode.errors_catalog import actionable_error
from nexusnode.models import InstallerConfig


class BinaryFetcherService:
    """Runs the vendor install script until the CLI binary is in place."""

    def __init__(self, config: InstallerConfig, logger, console, requests_module=requests):
        self.config = config
        self.logger = logger
        self.console = console
        self.requests = requests_module

    def download_install_script(self) -> str:
        with self.requests.get(
            self.config.install_script_url,
            timeout=(self.config.download_connect_timeout, self.config.download_total_timeout),
        ) as response:
            response.raise_for_status()
            return response.text

    def _attempt(self, run_cmd: Callable) -> bool:
        try:
            script = self.download_install_script()
        except self.requests.RequestException as exc:
            self.logger.warning("Download of %s failed: %s", self.config.install_script_url, exc)
            return False

        try:
            run_cmd(
                ["sh"],
                capture_output=True,
                timeout=self.config.download_total_timeout,
                input_text=script,
            )
        except InstallerError as exc:
            self.logger.warning("Install script failed: %s", exc)
            return False
        return True

    def fetch(self, run_cmd: Callable) -> bool:
        """Install the CLI if needed. Returns False when it was already present."""
        binary_path = self.config.binary_path
        if os.path.isfile(binary_path):
            self.console.print(
                f"[yellow]Nexus CLI is already installed at {binary_path}. Skipping download.[/yellow]"
            )
            self.logger.info("Nexus CLI already present at %s", binary_path)
            self._make_executable(binary_path)
            return False

        attempts = self.config.fetch_attempts
        for attempt in range(1, attempts + 1):
            self.logger.info("Installing Nexus CLI (attempt %s/%s)...", attempt, attempts)
            with self.console.status(f"Downloading Nexus CLI (attempt {attempt}/{attempts})..."):
                succeeded = self._attempt(run_cmd)
            if succeeded:
                break
            if attempt < attempts:
                time.sleep(self.config.fetch_backoff_seconds)
        else:
            raise InstallerError(
                actionable_error(
                    "binary_fetch_failed",
                    attempts=attempts,
                    url=self.config.install_script_url,
                )
            )

        if not os.path.isfile(binary_path):
            raise InstallerError(
                actionable_error("binary_missing", path=binary_path, cli_dir=self.config.cli_dir)
            )

        self._make_executable(binary_path)
        self.console.print("[green]Nexus CLI installed successfully.[/green]")
        return True

    def _make_executable(self, path: str):
        try:
            os.chmod(path, SCRIPT_MODE)
        except OSError as exc:
            raise InstallerError(f"Could not mark {path} as executable: {exc}") from exc
