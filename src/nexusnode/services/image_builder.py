"""Build context generation and image build for the node container."""

import os
import shutil
from pathlib import Path
from typing import Callable, Optional

from nexusnode.constants import (
    CONTAINER_PACKAGE_ROOT,
    ENV_BINARY,
    ENV_NODE_ID_FILE,
    ENV_PERSIST,
    FILE_MODE,
    IMAGE_RUNTIME_PACKAGES,
    SCRIPT_MODE,
)
from nexusnode.errors import InstallerError
from nexusnode.errors_catalog import actionable_error
from nexusnode.models import InstallerConfig

PACKAGE_SOURCE_DIR = Path(__file__).resolve().parent.parent


class ImageBuilderService:
    """Writes the Dockerfile and entrypoint next to the CLI binary and builds the image."""

    DOCKERFILE_NAME = "Dockerfile"
    ENTRYPOINT_NAME = "entrypoint.sh"

    def __init__(
        self,
        config: InstallerConfig,
        logger,
        console,
        package_source_dir: Optional[Path] = None,
        docker_cmd=None,
    ):
        self.config = config
        self.logger = logger
        self.console = console
        self.package_source_dir = Path(package_source_dir or PACKAGE_SOURCE_DIR)
        self.docker_cmd = list(docker_cmd or ["docker"])

    def build_dockerfile(self) -> str:
        package_name = self.package_source_dir.name
        packages = " ".join(IMAGE_RUNTIME_PACKAGES)
        binary = self.config.binary_name
        return f"""
FROM {self.config.base_image}

ENV DEBIAN_FRONTEND=noninteractive

RUN apt-get update && \\
    apt-get install -y --no-install-recommends {packages} && \\
    apt-get clean && \\
    rm -rf /var/lib/apt/lists/*

COPY {binary} /usr/local/bin/{binary}
COPY {package_name}/ {CONTAINER_PACKAGE_ROOT}/{package_name}/
COPY {self.ENTRYPOINT_NAME} /{self.ENTRYPOINT_NAME}

RUN chmod +x /usr/local/bin/{binary} /{self.ENTRYPOINT_NAME}

ENV PYTHONPATH={CONTAINER_PACKAGE_ROOT}
ENV {ENV_NODE_ID_FILE}={self.config.node_id_file}
ENV {ENV_BINARY}={binary}

WORKDIR /root

VOLUME ["{self.config.mount_path}"]

ENTRYPOINT ["/{self.ENTRYPOINT_NAME}"]
""".strip() + "\n"

    def build_entrypoint_script(self) -> str:
        package_name = self.package_source_dir.name
        return f"""#!/bin/sh
# Runs the node registration menu or resumes a saved node.
: "${{{ENV_PERSIST}:=1}}"
export {ENV_PERSIST}
exec python3 -m {package_name} entrypoint "$@"
"""

    def write_build_context(self) -> str:
        build_dir = self.config.build_dir
        os.makedirs(build_dir, exist_ok=True)

        dockerfile_path = os.path.join(build_dir, self.DOCKERFILE_NAME)
        with open(dockerfile_path, "w", encoding="utf-8", newline="\n") as file_obj:
            file_obj.write(self.build_dockerfile())
        os.chmod(dockerfile_path, FILE_MODE)
        self.console.print("[green]Dockerfile created.[/green]")

        entrypoint_path = os.path.join(build_dir, self.ENTRYPOINT_NAME)
        with open(entrypoint_path, "w", encoding="utf-8", newline="\n") as file_obj:
            file_obj.write(self.build_entrypoint_script())
        os.chmod(entrypoint_path, SCRIPT_MODE)
        self.console.print("[green]entrypoint.sh created.[/green]")

        package_target = os.path.join(build_dir, self.package_source_dir.name)
        if os.path.exists(package_target):
            shutil.rmtree(package_target)
        shutil.copytree(
            self.package_source_dir,
            package_target,
            ignore=shutil.ignore_patterns("__pycache__", "*.pyc"),
        )
        self.logger.debug("Copied %s into build context %s", self.package_source_dir, build_dir)
        return build_dir

    def build_image(self, run_cmd: Callable):
        cmd = self.docker_cmd + ["build", "-t", self.config.image_name, self.config.build_dir]
        with self.console.status(f"Building '{self.config.image_name}' image..."):
            try:
                run_cmd(cmd, capture_output=True)
            except InstallerError as exc:
                self.logger.error(str(exc))
                raise InstallerError(
                    actionable_error(
                        "build_failed",
                        image=self.config.image_name,
                        log_file=self.config.log_file,
                    )
                ) from exc
        self.console.print(f"[green]Image '{self.config.image_name}' built.[/green]")
