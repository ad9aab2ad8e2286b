"""
Capability binding for the native platform API.

Provides:
- Candidate call-shape descriptors and return decoders
- The default operation catalog
- The CapabilityBinder that probes, memoizes and re-binds shapes
- Identifier normalization
"""

from .binder import CapabilityBinder, BoundOperation
from .shapes import CallShape, CapabilityBinding, ReceivedPacket
from .catalog import default_catalog
from .identifiers import ZERO_ID, normalize_identifier

__all__ = [
    # Binder
    "CapabilityBinder",
    "BoundOperation",
    # Shapes
    "CallShape",
    "CapabilityBinding",
    "ReceivedPacket",
    "default_catalog",
    # Identifiers
    "ZERO_ID",
    "normalize_identifier",
]
