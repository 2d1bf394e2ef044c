"""Domain errors for nexusnode."""


class InstallerError(RuntimeError):
    """Raised when the installation or node startup cannot continue safely."""


class RetryBudgetExceeded(InstallerError):
    """Raised when a bounded retry, poll, or prompt loop runs out of attempts."""
