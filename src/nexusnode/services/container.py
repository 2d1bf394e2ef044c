"""Volume and container lifecycle for the node container."""

from typing import Callable, List

from nexusnode.constants import ENV_PERSIST
from nexusnode.models import InstallerConfig


class ContainerLauncherService:
    """Keeps a single named node container and starts it attached."""

    def __init__(self, config: InstallerConfig, logger, console, docker_cmd=None):
        self.config = config
        self.logger = logger
        self.console = console
        self.docker_cmd = list(docker_cmd or ["docker"])

    def _listed_names(self, run_cmd: Callable, args: List[str]) -> List[str]:
        result = run_cmd(self.docker_cmd + args, capture_output=True)
        return [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]

    def ensure_volume(self, run_cmd: Callable) -> bool:
        """Create the data volume if missing. Returns True when it was created."""
        name = self.config.volume_name
        if name in self._listed_names(run_cmd, ["volume", "ls", "--format", "{{.Name}}"]):
            self.logger.info("Docker volume '%s' already exists.", name)
            return False

        run_cmd(self.docker_cmd + ["volume", "create", name], capture_output=True)
        self.console.print(f"[green]Created Docker volume '{name}'.[/green]")
        return True

    def remove_stale_container(self, run_cmd: Callable) -> bool:
        name = self.config.container_name
        if name not in self._listed_names(run_cmd, ["ps", "-a", "--format", "{{.Names}}"]):
            return False

        self.console.print(f"[yellow]Removing existing container '{name}'...[/yellow]")
        run_cmd(self.docker_cmd + ["stop", name], check=False, capture_output=True)
        run_cmd(self.docker_cmd + ["rm", name], check=False, capture_output=True)
        return True

    def build_run_command(self) -> List[str]:
        cmd = self.docker_cmd + ["run", "-it", "--name", self.config.container_name]
        if self.config.persist:
            cmd += ["-v", f"{self.config.volume_name}:{self.config.mount_path}"]
        else:
            cmd += ["--rm", "-e", f"{ENV_PERSIST}=0"]
        cmd.append(self.config.image_name)
        return cmd

    def launch(self, run_cmd: Callable) -> int:
        if self.config.persist:
            self.ensure_volume(run_cmd)
        self.remove_stale_container(run_cmd)

        self.console.print(f"[blue]Starting container '{self.config.container_name}'...[/blue]")
        result = run_cmd(self.build_run_command(), check=False)
        self.logger.info("Container session exited with code %s", result.returncode)
        return result.returncode

    def print_guidance(self):
        name = self.config.container_name
        docker = " ".join(self.docker_cmd)
        self.console.print()
        self.console.print("[bold]Container session ended.[/bold]")
        if not self.config.persist:
            self.console.print(
                "The container ran in ephemeral mode and was removed. "
                f"Run `{docker} run -it --rm {self.config.image_name}` to start again."
            )
            return

        self.console.print(f"  Resume the node:        [yellow]{docker} start -ai {name}[/yellow]")
        self.console.print(f"  Follow the node logs:   [yellow]{docker} logs -f {name}[/yellow]")
        self.console.print(f"  Stop the node:          [yellow]{docker} stop {name}[/yellow]")
        self.console.print(
            f"  Delete node and data:   [yellow]{docker} rm -f {name} && "
            f"{docker} volume rm {self.config.volume_name}[/yellow]"
        )
