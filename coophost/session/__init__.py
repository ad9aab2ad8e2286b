"""
Session management for coophost.

Provides:
- The hosting/joining lifecycle state machine
- Polling-based membership tracking for hosted groups
"""

from .lifecycle import SessionLifecycle, SessionSnapshot, SessionState
from .membership import JoinEvent, MembershipTracker

__all__ = [
    # Lifecycle
    "SessionLifecycle",
    "SessionSnapshot",
    "SessionState",
    # Membership
    "JoinEvent",
    "MembershipTracker",
]
