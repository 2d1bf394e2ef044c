"""
nexusnode - Nexus node installer and container entrypoint
"""

__version__ = "0.1.0"

from .core import NodeInstaller
from .errors import InstallerError

__all__ = ["NodeInstaller", "InstallerError"]
