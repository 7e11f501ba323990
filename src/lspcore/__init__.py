"""lspcore package root."""

from lspcore.core import ServerCore
from lspcore.dispatch import DomainError, Fault, Ok
from lspcore.exceptions import NeverThrown
from lspcore.feature import BaseFeatureHandler, FeatureHandler
from lspcore.invariants import never

__all__ = [
    "__version__",
    "BaseFeatureHandler",
    "DomainError",
    "Fault",
    "FeatureHandler",
    "NeverThrown",
    "Ok",
    "ServerCore",
    "never",
]

__version__ = "0.1.0"
