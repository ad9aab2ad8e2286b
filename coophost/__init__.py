"""
coophost - automatic host discovery and session coordination for co-op mods

Finds friends who host a joinable session through platform presence, picks
the best host to join, and drives the hosting/joining lifecycle over a
native platform API whose exact shape is only known at runtime.

Example:
    >>> from coophost import Coordinator
    >>> coordinator = Coordinator(native)
    >>> coordinator.tick()
    >>> coordinator.request_auto_join()
"""

__version__ = "1.0.0"

from .config import Config, get_config
from .coordinator import Coordinator
from .errors import (
    BindingUnresolved,
    CoopHostError,
    NotReady,
    OperationFailed,
    UnrecognizedIdentifierShape,
)

__all__ = [
    "__version__",
    "Config",
    "get_config",
    "Coordinator",
    # Errors
    "CoopHostError",
    "BindingUnresolved",
    "UnrecognizedIdentifierShape",
    "OperationFailed",
    "NotReady",
]
