import logging
import os

import click
from rich.logging import RichHandler

from .constants import ENV_BINARY, ENV_NODE_ID_FILE, ENV_PERSIST
from .core import NodeInstaller
from .entrypoint import EntrypointController, NodeIdentityStore
from .errors import InstallerError
from .models import InstallerConfig
from .services.command_runner import CommandRunner
from .services.config_loader import ConfigLoader


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def _configure_logging(logger, verbose, log_file=None):
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if not log_file:
        return

    try:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not open log file %s: %s", log_file, exc)
        return
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    logger.addHandler(file_handler)

    # Command transcripts always reach the file; the console stays at INFO.
    logger.setLevel(logging.DEBUG)
    if not verbose:
        for handler in logging.getLogger().handlers:
            handler.setLevel(logging.INFO)


@click.group(invoke_without_command=True)
@click.pass_context
def main(ctx):
    """Install Docker and the Nexus CLI, then build and run a Nexus node container."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(install)


@main.command()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help="Path to a YAML configuration file. Defaults to .nexusnode.yml if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to the append-only log file")
@click.option(
    "--ephemeral",
    is_flag=True,
    default=None,
    help="Run the container with --rm and without a data volume (node ID is not kept).",
)
@click.option(
    "--no-launch",
    is_flag=True,
    default=False,
    help="Stop after building the image instead of starting the container.",
)
def install(config, verbose, log_file, ephemeral, no_launch):
    """Run the full installation and launch the node container."""
    logger = logging.getLogger("nexusnode")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), ".nexusnode.yml")
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
        verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
        persist = None if ephemeral is None else not ephemeral
        installer_config = config_loader.build_config(
            config_values,
            log_file=log_file,
            persist=persist,
        )
    except InstallerError as exc:
        raise click.ClickException(str(exc)) from exc

    _configure_logging(logger, verbose, installer_config.log_file)

    installer = NodeInstaller(config=installer_config, launch=not no_launch)
    raise SystemExit(installer.run())


@main.command()
@click.option(
    "--id-file",
    envvar=ENV_NODE_ID_FILE,
    default=InstallerConfig().node_id_file,
    show_default=True,
    type=click.Path(dir_okay=False),
    help="File holding the saved node ID.",
)
@click.option(
    "--binary",
    envvar=ENV_BINARY,
    default=InstallerConfig.binary_name,
    show_default=True,
    help="Nexus CLI executable to invoke.",
)
@click.option(
    "--persist/--no-persist",
    envvar=ENV_PERSIST,
    default=True,
    show_default=True,
    help="Save the node ID so restarts resume automatically.",
)
@click.option(
    "--max-attempts",
    type=int,
    default=InstallerConfig.max_prompt_attempts,
    show_default=True,
    help="Maximum number of menu or prompt retries.",
)
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
def entrypoint(id_file, binary, persist, max_attempts, verbose):
    """Container entrypoint: resume a saved node or register a new one."""
    logger = logging.getLogger("nexusnode")
    _configure_logging(logger, verbose)

    runner = CommandRunner(logger=logger)
    controller = EntrypointController(
        store=NodeIdentityStore(id_file),
        run_cmd=runner.run,
        binary=binary,
        persist=persist,
        max_attempts=max_attempts,
    )
    raise SystemExit(controller.run())


if __name__ == "__main__":
    main()
