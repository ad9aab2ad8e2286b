"""Native platform backends."""
from .simulated import (
    CSteamID,
    SimulatedPlatform,
    SimulatedWorld,
)

__all__ = [
    "CSteamID",
    "SimulatedPlatform",
    "SimulatedWorld",
]
