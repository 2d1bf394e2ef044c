"""Privilege, network and disk checks run before any system change."""

import os
import shutil
from typing import Callable, Optional, Sequence

import click
import requests

from nexusnode.constants import GIGABYTE
from nexusnode.errors import InstallerError
from nexusnode.errors_catalog import actionable_error
from nexusnode.models import InstallerConfig, ProbeResult


class EnvironmentProber:
    """Verifies the host can run the installer without mutating it."""

    def __init__(
        self,
        config: InstallerConfig,
        logger,
        console,
        requests_module=requests,
        confirm: Callable[..., bool] = click.confirm,
        geteuid: Callable[[], int] = os.geteuid,
        disk_usage=shutil.disk_usage,
    ):
        self.config = config
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.confirm = confirm
        self.geteuid = geteuid
        self.disk_usage = disk_usage

    def check_privilege(self, run_cmd: Callable) -> bool:
        """Return True when commands must be elevated with sudo."""
        if self.geteuid() == 0:
            self.logger.debug("Running as root.")
            return False

        try:
            result = run_cmd(["sudo", "-n", "true"], check=False, capture_output=True)
        except InstallerError as exc:
            self.logger.debug("sudo is unavailable: %s", exc)
            raise InstallerError(actionable_error("no_privilege")) from exc

        if result.returncode == 0:
            self.logger.info("Using passwordless sudo for privileged commands.")
            return True

        raise InstallerError(actionable_error("no_privilege"))

    def check_network(self, hosts: Optional[Sequence[str]] = None) -> str:
        hosts = tuple(hosts or self.config.probe_hosts)
        for host in hosts:
            for method in ("HEAD", "GET"):
                try:
                    response = self.requests.request(
                        method,
                        host,
                        allow_redirects=True,
                        timeout=self.config.download_connect_timeout,
                        stream=(method == "GET"),
                    )
                    response.close()
                    self.logger.debug("Network check passed via %s %s", method, host)
                    return host
                except self.requests.RequestException as exc:
                    self.logger.debug("Network check %s %s failed: %s", method, host, exc)

        raise InstallerError(actionable_error("no_network", hosts=", ".join(hosts)))

    def check_disk_space(self, path: str = "/") -> int:
        free_bytes = self.disk_usage(path).free
        if free_bytes >= self.config.min_free_bytes:
            return free_bytes

        free_gb = free_bytes / GIGABYTE
        required_gb = self.config.min_free_bytes / GIGABYTE
        self.console.print(
            f"[yellow]Warning:[/yellow] only {free_gb:.1f} GB free on {path} "
            f"({required_gb:.1f} GB recommended)."
        )
        if self.confirm("Continue anyway?", default=False):
            self.logger.warning("Continuing with %.1f GB of free disk space.", free_gb)
            return free_bytes

        raise InstallerError(
            actionable_error("low_disk_declined", free_gb=free_gb, required_gb=required_gb)
        )

    def probe(self, run_cmd: Callable) -> ProbeResult:
        self.console.print("[blue]Checking environment...[/blue]")
        needs_sudo = self.check_privilege(run_cmd)
        host = self.check_network()
        free_bytes = self.check_disk_space()
        self.console.print("[green]Environment checks passed.[/green]")
        return ProbeResult(
            is_root=not needs_sudo,
            needs_sudo=needs_sudo,
            reachable_host=host,
            free_bytes=free_bytes,
        )

