"""
Host Registry - self-expiring set of candidate hosts.

Entries come from three places:
- presence scans of the friends list
- platform invites
- our own hosting session (the self entry)

Entries not refreshed for longer than the TTL are purged before any read
returns. The local identity is filtered out at read time, never at write
time, so a late identity resolution needs no eviction.
"""

import logging
import math
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, FrozenSet, Optional

from ..binding.identifiers import ZERO_ID
from ..identity import IdentityCache

logger = logging.getLogger(__name__)

DEFAULT_HOST_TTL = 30.0

INVITE_SESSION_NAME = "Friend's Session"
SELF_SESSION_NAME = "My Session"


@dataclass(frozen=True)
class HostInfo:
    """A candidate host."""
    peer_id: int
    session_name: str
    player_count: int
    last_seen: float  # monotonic seconds
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "peer_id": self.peer_id,
            "session_name": self.session_name,
            "player_count": self.player_count,
            "last_seen": self.last_seen,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class InviteRecord:
    """The most recent platform invite."""
    inviter_id: int
    lobby_token: str = ""


class HostRegistry:
    """
    In-memory registry of joinable hosts keyed by peer identifier.

    Every operation is total: absence shows up as empty results or ZERO_ID,
    never as an exception.

    Usage:
        registry = HostRegistry(identity)
        registry.upsert(peer_id, "Alice's session", 1)
        host_id = registry.best_available_host()
    """

    def __init__(
        self,
        identity: IdentityCache,
        ttl: float = DEFAULT_HOST_TTL,
        clock: Callable[[], float] = time.monotonic
    ):
        self.identity = identity
        self.ttl = ttl
        self._clock = clock
        self._hosts: Dict[int, HostInfo] = {}
        self._invite: Optional[InviteRecord] = None
        self._self_host_id: int = ZERO_ID

    # -- writes ------------------------------------------------------------

    def _stamp(self, peer_id: int) -> float:
        now = self._clock()
        previous = self._hosts.get(peer_id)
        if previous is not None and now <= previous.last_seen:
            # Keep last_seen strictly increasing per key
            now = math.nextafter(previous.last_seen, math.inf)
        return now

    def upsert(self, peer_id: int, session_name: str, player_count: int = 1) -> HostInfo:
        """Insert or refresh a host entry."""
        stamp = self._stamp(peer_id)
        existing = self._hosts.get(peer_id)

        if existing is None:
            entry = HostInfo(
                peer_id=peer_id,
                session_name=session_name,
                player_count=player_count,
                last_seen=stamp,
                is_active=True,
            )
            logger.info(f"New host: {session_name} ({peer_id})")
        else:
            entry = replace(
                existing,
                session_name=session_name,
                player_count=player_count,
                last_seen=stamp,
                is_active=True,
            )
            logger.debug(f"Host refreshed: {session_name} ({peer_id})")

        self._hosts[peer_id] = entry
        return entry

    def set_invite(self, inviter_id: int, lobby_token: str = "") -> None:
        """Record an invite, seeding a host entry for the inviter if absent."""
        self._invite = InviteRecord(inviter_id=inviter_id, lobby_token=lobby_token)
        if inviter_id != ZERO_ID and inviter_id not in self._hosts:
            self.upsert(inviter_id, INVITE_SESSION_NAME, 1)
        logger.info(f"Invite received from {inviter_id}")

    def clear_invite(self) -> None:
        """Discard the invite record."""
        self._invite = None

    @property
    def invite(self) -> Optional[InviteRecord]:
        return self._invite

    # -- self entry --------------------------------------------------------

    @property
    def self_host_id(self) -> int:
        return self._self_host_id

    def register_self_as_host(self) -> bool:
        """
        Add the self entry keyed by the local identifier.

        Returns:
            False if the local identity is not known yet
        """
        local_id = self.identity.get_local_identifier()
        if local_id == ZERO_ID:
            return False
        self._self_host_id = local_id
        self.upsert(local_id, SELF_SESSION_NAME, 1)
        return True

    def unregister_self_as_host(self) -> None:
        """Remove the self entry."""
        if self._self_host_id != ZERO_ID:
            self._hosts.pop(self._self_host_id, None)
            logger.debug(f"Unregistered self host {self._self_host_id}")
        self._self_host_id = ZERO_ID

    def heartbeat_self(self) -> bool:
        """Refresh the self entry, re-creating it if it expired."""
        if self._self_host_id == ZERO_ID:
            return False
        existing = self._hosts.get(self._self_host_id)
        if existing is None:
            self.upsert(self._self_host_id, SELF_SESSION_NAME, 1)
        else:
            self.upsert(self._self_host_id, existing.session_name, existing.player_count)
        return True

    def self_entry(self) -> Optional[HostInfo]:
        self.purge_expired()
        if self._self_host_id == ZERO_ID:
            return None
        return self._hosts.get(self._self_host_id)

    # -- reads -------------------------------------------------------------

    def purge_expired(self) -> int:
        """Drop entries older than the TTL. Returns the number removed."""
        now = self._clock()
        stale = [pid for pid, h in self._hosts.items() if now - h.last_seen > self.ttl]
        for peer_id in stale:
            del self._hosts[peer_id]
        if stale:
            logger.debug(f"Expired {len(stale)} hosts")
        return len(stale)

    def get(self, peer_id: int) -> Optional[HostInfo]:
        self.purge_expired()
        return self._hosts.get(peer_id)

    def snapshot(self) -> Dict[int, HostInfo]:
        """Copy of every live entry, the self entry included."""
        self.purge_expired()
        return dict(self._hosts)

    def active_hosts(self) -> FrozenSet[HostInfo]:
        """All live, active hosts except the local identity."""
        self.purge_expired()
        local_id = self.identity.get_local_identifier()
        return frozenset(
            h for h in self._hosts.values()
            if h.is_active and h.peer_id != local_id
        )

    def best_available_host(self) -> int:
        """
        Pick the host to join.

        Order:
            1. the inviter of a pending invite, unless it is us
            2. the most recently seen active host, lowest id on ties
            3. ZERO_ID when nothing qualifies
        """
        self.purge_expired()
        local_id = self.identity.get_local_identifier()
        excluded = {ZERO_ID, local_id, self._self_host_id}

        if self._invite is not None and self._invite.inviter_id not in excluded:
            return self._invite.inviter_id

        candidates = [
            h for h in self._hosts.values()
            if h.is_active and h.peer_id not in excluded
        ]
        if not candidates:
            return ZERO_ID

        best = max(candidates, key=lambda h: (h.last_seen, -h.peer_id))
        return best.peer_id

    def __len__(self) -> int:
        return len(self._hosts)
