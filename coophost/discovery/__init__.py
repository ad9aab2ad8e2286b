"""
Host discovery for coophost.

Provides:
- The self-expiring host registry with best-host selection
- Friends list access
- The rate-limited presence scanner
"""

from .registry import HostRegistry, HostInfo, InviteRecord
from .friends import FriendInfo, PlatformFriends, parse_friends
from .scanner import PresenceScanner, ScanReport, is_hosting

__all__ = [
    # Registry
    "HostRegistry",
    "HostInfo",
    "InviteRecord",
    # Friends
    "FriendInfo",
    "PlatformFriends",
    "parse_friends",
    # Scanner
    "PresenceScanner",
    "ScanReport",
    "is_hosting",
]
