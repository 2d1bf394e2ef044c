"""Shared domain models for nexusnode."""

import os
import posixpath
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .constants import GIGABYTE


@dataclass(frozen=True)
class InstallerConfig:
    """Names, paths and limits used by every installer component."""

    image_name: str = "nexus-node"
    container_name: str = "nexus-node"
    volume_name: str = "nexus-data"
    mount_path: str = "/root/.nexus"
    node_id_filename: str = "node-id"
    cli_dir: str = field(default_factory=lambda: os.path.join(os.path.expanduser("~"), ".nexus"))
    binary_name: str = "nexus-network"
    install_script_url: str = "https://cli.nexus.xyz/"
    base_image: str = "ubuntu:24.04"
    persist: bool = True
    min_free_bytes: int = 2 * GIGABYTE
    probe_hosts: Tuple[str, ...] = ("https://cli.nexus.xyz", "https://www.google.com")
    download_connect_timeout: float = 30.0
    download_total_timeout: float = 300.0
    fetch_attempts: int = 3
    fetch_backoff_seconds: float = 5.0
    lock_poll_interval: float = 2.0
    lock_max_polls: int = 900
    apt_update_retries: int = 2
    max_prompt_attempts: int = 20
    log_file: str = "/tmp/nexus-node-install.log"

    @property
    def binary_path(self) -> str:
        return os.path.join(self.cli_dir, "bin", self.binary_name)

    @property
    def node_id_file(self) -> str:
        """Saved node ID path, always inside the mounted data volume."""
        return posixpath.join(self.mount_path, self.node_id_filename)

    @property
    def build_dir(self) -> str:
        return os.path.dirname(self.binary_path)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of the environment checks, consumed once and discarded."""

    is_root: bool
    needs_sudo: bool
    reachable_host: Optional[str]
    free_bytes: int

    @property
    def sudo_prefix(self):
        return ["sudo"] if self.needs_sudo else []
