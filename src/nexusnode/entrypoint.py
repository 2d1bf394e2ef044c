"""Container entrypoint: resume a saved node or walk the operator through registration."""

import enum
import fcntl
import logging
import os
import re
import signal
import sys
from typing import Callable, Optional

import click
from rich.console import Console
from rich.panel import Panel

from .errors import InstallerError, RetryBudgetExceeded
from .errors_catalog import actionable_error

logger = logging.getLogger("nexusnode")

MIN_WALLET_LENGTH = 10
MIN_NODE_ID_LENGTH = 5
_NODE_ID_PATTERN = re.compile(r"\bid\b\s*[:=]\s*([A-Za-z0-9][\w-]*)", re.IGNORECASE)


class ControllerState(enum.Enum):
    AUTO_RESUME = "auto_resume"
    INTERACTIVE_SETUP = "interactive_setup"


def validate_wallet_address(value: Optional[str]) -> bool:
    candidate = (value or "").strip()
    return len(candidate) >= MIN_WALLET_LENGTH and candidate[0].isascii() and candidate[0].isalnum()


def validate_node_id(value: Optional[str]) -> bool:
    return len((value or "").strip()) >= MIN_NODE_ID_LENGTH


def parse_node_id(output: Optional[str]) -> Optional[str]:
    """Extract the node identifier printed by `register-node`."""
    text = (output or "").strip()
    if not text:
        return None

    match = _NODE_ID_PATTERN.search(text)
    if match:
        return match.group(1)

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[-1] if lines else None


class NodeIdentityStore:
    """Reads and writes the saved node ID under an advisory file lock."""

    def __init__(self, path: str):
        self.path = path

    def read(self) -> Optional[str]:
        try:
            with open(self.path, "r", encoding="utf-8") as file_obj:
                fcntl.flock(file_obj, fcntl.LOCK_SH)
                try:
                    value = file_obj.read().strip()
                finally:
                    fcntl.flock(file_obj, fcntl.LOCK_UN)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise InstallerError(f"Could not read node ID file '{self.path}': {exc}") from exc

        return value or None

    def write(self, identifier: str):
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        try:
            with open(self.path, "a+", encoding="utf-8") as file_obj:
                fcntl.flock(file_obj, fcntl.LOCK_EX)
                try:
                    file_obj.seek(0)
                    file_obj.truncate()
                    file_obj.write(identifier)
                    file_obj.flush()
                    os.fsync(file_obj.fileno())
                finally:
                    fcntl.flock(file_obj, fcntl.LOCK_UN)
        except OSError as exc:
            raise InstallerError(f"Could not write node ID file '{self.path}': {exc}") from exc


class EntrypointController:
    """Two-state machine ending in a `start` exec of the Nexus CLI."""

    def __init__(
        self,
        store: NodeIdentityStore,
        run_cmd: Callable,
        binary: str = "nexus-network",
        persist: bool = True,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
        prompt: Callable = click.prompt,
        confirm: Callable = click.confirm,
        exec_fn: Callable = os.execvp,
        stdin_isatty: Optional[Callable[[], bool]] = None,
        max_attempts: int = 20,
    ):
        self.store = store
        self.run_cmd = run_cmd
        self.binary = binary
        self.persist = persist
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)
        self.prompt = prompt
        self.confirm = confirm
        self.exec_fn = exec_fn
        self.stdin_isatty = stdin_isatty or sys.stdin.isatty
        self.max_attempts = max(1, max_attempts)

    def install_signal_handlers(self):
        for signum in (signal.SIGINT, signal.SIGTERM, signal.SIGQUIT):
            signal.signal(signum, self._handle_signal)

    def _handle_signal(self, signum, _frame):
        self.console.print(
            f"\n[yellow]Received {signal.Signals(signum).name}. Shutting down gracefully...[/yellow]"
        )
        raise SystemExit(0)

    def initial_state(self, saved_id: Optional[str]) -> ControllerState:
        if saved_id:
            return ControllerState.AUTO_RESUME
        return ControllerState.INTERACTIVE_SETUP

    def run(self) -> int:
        self.install_signal_handlers()
        try:
            node_id = self.store.read()
            if self.initial_state(node_id) is ControllerState.AUTO_RESUME:
                self.console.print(f"[blue]Found saved Node ID:[/blue] [green]{node_id}[/green]")
                return self.start_node(node_id)
            return self.interactive_setup()
        except InstallerError as exc:
            self.err_console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            return 1

    def start_node(self, node_id: str) -> int:
        self.console.print(
            f"[blue]Starting node with ID[/blue] [green]{node_id}[/green]. Logs will be displayed below."
        )
        logger.info("Starting node %s", node_id)
        sys.stdout.flush()
        try:
            self.exec_fn(self.binary, [self.binary, "start", "--node-id", node_id])
        except OSError as exc:
            logger.error("Could not exec %s: %s", self.binary, exc)
            raise InstallerError(
                actionable_error("node_start_failed", binary=self.binary, error=exc)
            ) from exc
        return 0

    def show_menu(self):
        self.console.print(
            Panel.fit(
                "Select mode to run the node:\n"
                "  1) Run with Wallet Address (for new registration)\n"
                "  2) Run with Node ID (if node is already registered)\n"
                "  3) Exit",
                title="Nexus Node Runner",
                border_style="blue",
            )
        )

    def interactive_setup(self) -> int:
        if not self.stdin_isatty():
            raise InstallerError(actionable_error("no_tty"))

        for _ in range(self.max_attempts):
            self.show_menu()
            choice = str(self.prompt("Select an option (1-3)", default="", show_default=False)).strip()
            if choice == "1":
                return self.run_with_wallet()
            if choice == "2":
                return self.run_with_node_id()
            if choice == "3":
                self.console.print("Exiting.")
                return 0
            self.console.print("[red]Invalid option. Please choose 1, 2 or 3.[/red]")

        raise RetryBudgetExceeded(
            actionable_error(
                "retry_budget_exceeded", what="selecting a menu option", attempts=self.max_attempts
            )
        )

    def _prompt_until_valid(self, label: str, validator: Callable[[str], bool], hint: str) -> str:
        for _ in range(self.max_attempts):
            value = str(self.prompt(f"Enter your {label}", default="", show_default=False)).strip()
            if not value:
                self.console.print(f"[red]{label} cannot be empty. Please try again.[/red]")
                continue
            if not validator(value):
                self.console.print(f"[red]Invalid {label}: {hint}[/red]")
                continue
            if self.confirm(f"Use {label} '{value}'?", default=True):
                return value

        raise RetryBudgetExceeded(
            actionable_error(
                "retry_budget_exceeded", what=f"reading a valid {label}", attempts=self.max_attempts
            )
        )

    def register_user(self, wallet: str):
        self.console.print(f"[blue]Registering user with wallet:[/blue] [green]{wallet}[/green]")
        try:
            self.run_cmd([self.binary, "register-user", "--wallet-address", wallet])
        except InstallerError as exc:
            logger.error(str(exc))
            raise InstallerError(actionable_error("user_registration_failed", wallet=wallet)) from exc

    def register_node(self) -> str:
        self.console.print("[blue]Registering new node...[/blue]")
        try:
            result = self.run_cmd([self.binary, "register-node"], capture_output=True)
        except InstallerError as exc:
            logger.error(str(exc))
            raise InstallerError(actionable_error("node_registration_failed")) from exc

        if result.stdout:
            self.console.print(result.stdout.rstrip(), markup=False, highlight=False)
        node_id = parse_node_id(result.stdout)
        if not node_id:
            raise InstallerError(actionable_error("node_registration_failed"))
        return node_id

    def save_node_id(self, node_id: str):
        if not self.persist:
            logger.info("Ephemeral mode: node ID %s is not saved.", node_id)
            return
        self.store.write(node_id)
        self.console.print(f"[green]Node ID saved to {self.store.path}.[/green]")

    def run_with_wallet(self) -> int:
        wallet = self._prompt_until_valid(
            "Wallet Address",
            validate_wallet_address,
            f"it must be at least {MIN_WALLET_LENGTH} characters and start with a letter or digit.",
        )
        self.register_user(wallet)
        node_id = self.register_node()
        self.save_node_id(node_id)
        return self.start_node(node_id)

    def run_with_node_id(self) -> int:
        node_id = self._prompt_until_valid(
            "Node ID",
            validate_node_id,
            f"it must be at least {MIN_NODE_ID_LENGTH} characters.",
        )
        self.save_node_id(node_id)
        return self.start_node(node_id)
