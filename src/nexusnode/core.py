import logging
import subprocess
from typing import List, Optional

import requests
from rich.console import Console
from rich.panel import Panel

from .errors import InstallerError
from .models import InstallerConfig, ProbeResult
from .services.binary import BinaryFetcherService
from .services.command_runner import CommandRunner
from .services.container import ContainerLauncherService
from .services.environment import EnvironmentProber
from .services.image_builder import ImageBuilderService
from .services.packages import PackageInstallerService

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger("nexusnode")


class NodeInstaller:
    """Installs Docker and the Nexus CLI, builds the node image and launches it."""

    def __init__(self, config: Optional[InstallerConfig] = None, launch: bool = True):
        self.config = config or InstallerConfig()
        self.launch = launch
        self.probe_result: Optional[ProbeResult] = None
        self.current_step_name: Optional[str] = None

        self.command_runner = CommandRunner(logger=logger)
        self.environment_prober = EnvironmentProber(
            config=self.config,
            logger=logger,
            console=console,
            requests_module=requests,
        )
        self.binary_fetcher = BinaryFetcherService(
            config=self.config,
            logger=logger,
            console=console,
            requests_module=requests,
        )
        self._configure_privileged_services([])

    def _configure_privileged_services(self, sudo_prefix: List[str]):
        docker_cmd = sudo_prefix + ["docker"]
        self.package_installer = PackageInstallerService(
            config=self.config,
            logger=logger,
            console=console,
            sudo_prefix=sudo_prefix,
            requests_module=requests,
        )
        self.image_builder = ImageBuilderService(
            config=self.config,
            logger=logger,
            console=console,
            docker_cmd=docker_cmd,
        )
        self.container_launcher = ContainerLauncherService(
            config=self.config,
            logger=logger,
            console=console,
            docker_cmd=docker_cmd,
        )

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        **kwargs,
    ) -> subprocess.CompletedProcess:
        return self.command_runner.run(cmd, check=check, capture_output=capture_output, **kwargs)

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.current_step_name = name
        logger.debug("Step started: %s", name)
        result = callback(*args, **kwargs)
        logger.debug("Step finished: %s", name)
        self.current_step_name = None
        return result

    def print_banner(self):
        console.print(
            Panel.fit(
                "[bold yellow]Nexus Node Automatic Installer[/bold yellow]",
                border_style="blue",
            )
        )

    def probe_environment(self) -> ProbeResult:
        self.probe_result = self.environment_prober.probe(self._run_cmd)
        self._configure_privileged_services(self.probe_result.sudo_prefix)
        return self.probe_result

    def install_packages(self):
        console.rule("[yellow]Step 1: System dependencies[/yellow]")
        self.package_installer.install_base_packages(self._run_cmd)
        self.package_installer.ensure_engine(self._run_cmd)
        self.package_installer.start_engine(self._run_cmd)
        self.package_installer.grant_engine_access(self._run_cmd)

    def fetch_binary(self):
        console.rule("[yellow]Step 2: Nexus CLI[/yellow]")
        return self.binary_fetcher.fetch(self._run_cmd)

    def build_image(self):
        console.rule("[yellow]Step 3: Docker image[/yellow]")
        self.image_builder.write_build_context()
        self.image_builder.build_image(self._run_cmd)

    def launch_container(self) -> int:
        console.rule("[yellow]Step 4: Node container[/yellow]")
        exit_code = self.container_launcher.launch(self._run_cmd)
        self.container_launcher.print_guidance()
        return exit_code

    def print_summary(self):
        console.print(
            f"[green]Image '{self.config.image_name}' is ready.[/green] "
            f"Run `nexusnode install` again or `docker run -it -v "
            f"{self.config.volume_name}:{self.config.mount_path} "
            f"--name {self.config.container_name} {self.config.image_name}` to start the node."
        )

    def run(self) -> int:
        try:
            logger.info("Starting Nexus node installer...")
            self.print_banner()

            self._run_step("probe_environment", self.probe_environment)
            self._run_step("install_packages", self.install_packages)
            self._run_step("fetch_binary", self.fetch_binary)
            self._run_step("build_image", self.build_image)

            if not self.launch:
                self.print_summary()
                return 0

            exit_code = self._run_step("launch_container", self.launch_container)
            if exit_code != 0:
                err_console.print(
                    f"[bold red]Error:[/bold red] node container exited with code {exit_code}."
                )
                logger.error("Container session exited with code %s", exit_code)
                return 1
            console.print("[bold green]All steps completed.[/bold green]")
            return 0

        except KeyboardInterrupt:
            err_console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except InstallerError as exc:
            err_console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error("Step %s failed: %s", self.current_step_name or "run", exc)
            return 1
        except Exception as exc:
            err_console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1
