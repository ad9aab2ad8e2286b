"""
Coordinator - the single entry point the game side talks to.

Owns the binder, identity cache, host registry, presence scanner, session
lifecycle and membership tracker, and wires them together. UI events call
on_invite_received / request_auto_join / request_host / request_stop; an
external periodic timer calls tick(). Game traffic goes through send / receive
over the platform P2P channel.
"""

import logging
import time
from typing import Any, Callable, FrozenSet, List, Optional

from .binding.binder import CapabilityBinder, IdFactory
from .binding.catalog import (
    ACCEPT_SESSION,
    CLOSE_SESSION,
    INVITE_TO_GROUP,
    PACKET_AVAILABLE,
    READ_PACKET,
    SEND_DATA,
)
from .binding.identifiers import ZERO_ID
from .binding.shapes import ReceivedPacket
from .config import Config, get_config
from .discovery.friends import FriendsSource
from .discovery.registry import HostInfo, HostRegistry
from .discovery.scanner import PresenceScanner, ScanReport
from .errors import CoopHostError
from .identity import IdentityCache
from .session.lifecycle import SessionLifecycle, SessionState
from .session.membership import JoinCallback, MembershipTracker

logger = logging.getLogger(__name__)

# Upper bound on packets drained by one receive() call
MAX_PACKETS_PER_RECEIVE = 64

# Lowest value treated as an account identifier inside a lobby hint
MIN_ACCOUNT_ID = 76000000000000000


def parse_lobby_hint(hint: str) -> int:
    """
    Pull a host identifier out of a lobby hint like "76561198000000001_2".

    Returns the first '_'-separated part that is an integer above
    MIN_ACCOUNT_ID, or ZERO_ID.
    """
    for part in (hint or "").split("_"):
        part = part.strip()
        if not part.isdigit():
            continue
        value = int(part)
        if value > MIN_ACCOUNT_ID:
            return value
    return ZERO_ID


class Coordinator:
    """
    Auto-discovery and session coordination over a native platform object.

    Usage:
        coordinator = Coordinator(native, config)
        coordinator.on_member_joined(lambda peer_id, token: ...)
        coordinator.request_host()

        # from the game's timer
        coordinator.tick()
    """

    def __init__(
        self,
        native: Any,
        config: Optional[Config] = None,
        id_factory: Optional[IdFactory] = None,
        friends_source: Optional[FriendsSource] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.config = config or get_config()
        self.binder = CapabilityBinder(native, id_factory=id_factory)
        self.identity = IdentityCache(self.binder)
        self.registry = HostRegistry(self.identity, ttl=self.config.discovery.host_ttl, clock=clock)
        self.scanner = PresenceScanner(
            self.binder,
            self.identity,
            self.registry,
            self.config,
            friends_source=friends_source,
            clock=clock,
        )
        self.lifecycle = SessionLifecycle(self.binder, self.registry, self.config, clock=clock)
        self.tracker = MembershipTracker(self.binder, self.lifecycle)
        self.last_report: Optional[ScanReport] = None

    # -- UI events ---------------------------------------------------------

    def on_invite_received(self, inviter_id: int, lobby_token: str = "") -> None:
        """Record a platform invite; it takes priority on the next auto join."""
        self.registry.set_invite(inviter_id, lobby_token)

    def request_auto_join(self, lobby_hint: str = "") -> bool:
        """
        Join the best available host.

        Falls back to a host identifier embedded in `lobby_hint` when the
        registry has no candidate.
        """
        target = self.registry.best_available_host()
        self.registry.clear_invite()

        if target == ZERO_ID and lobby_hint:
            target = parse_lobby_hint(lobby_hint)
            if target != ZERO_ID:
                logger.info(f"Using host {target} from lobby hint")

        if target == ZERO_ID:
            logger.info("No available host to join")
            return False

        try:
            self.lifecycle.start_joining(target)
        except CoopHostError as e:
            logger.warning(f"Auto join of {target} failed: {e}")
            return False
        return True

    def request_host(self) -> bool:
        try:
            self.lifecycle.start_hosting()
        except CoopHostError as e:
            logger.warning(f"Could not start hosting: {e}")
            return False
        return True

    def request_stop(self) -> bool:
        stopped = self.lifecycle.stop_session()
        if stopped:
            self.tracker.reset()
        return stopped

    def on_member_joined(self, callback: JoinCallback) -> None:
        """Subscribe to (peer_id, group_token) join notifications."""
        self.tracker.subscribe(callback)

    # -- periodic ----------------------------------------------------------

    def tick(self) -> Optional[ScanReport]:
        """
        Run one round of background work.

        Returns:
            The scan report when a scan ran, otherwise None
        """
        report = self.scanner.scan()
        if report is not None:
            self.last_report = report
        self.tracker.poll()
        if self.lifecycle.state is SessionState.HOSTING:
            self.lifecycle.broadcast_availability()
        return report

    # -- transport and queries ---------------------------------------------

    def send(self, peer_id: int, payload: bytes) -> bool:
        """Send a packet to a peer over the platform's P2P channel."""
        transport = self.config.transport
        return self.binder.try_invoke(
            SEND_DATA, peer_id, bytes(payload), transport.channel, transport.send_type, default=False
        )

    def receive(self, max_packets: int = MAX_PACKETS_PER_RECEIVE) -> List[ReceivedPacket]:
        """
        Drain pending packets on the configured channel.

        Stops at the first empty or failed read, or after `max_packets`.
        """
        channel = self.config.transport.channel
        packets: List[ReceivedPacket] = []
        while len(packets) < max_packets:
            size = self.binder.try_invoke(PACKET_AVAILABLE, channel, default=0)
            if not size:
                break
            packet = self.binder.try_invoke(READ_PACKET, size, channel)
            if packet is None:
                break
            packets.append(packet)
        return packets

    def accept_session(self, peer_id: int) -> bool:
        """Accept a peer's P2P session so its packets can be read."""
        return self.binder.try_invoke(ACCEPT_SESSION, peer_id, default=False)

    def close_session(self, peer_id: int) -> bool:
        return self.binder.try_invoke(CLOSE_SESSION, peer_id, default=False)

    def invite(self, peer_id: int) -> bool:
        """Invite a friend into the session group we are in."""
        group_id = self.lifecycle.group_id
        if group_id == ZERO_ID:
            logger.info(f"Not in a session group, cannot invite {peer_id}")
            return False
        return self.binder.try_invoke(INVITE_TO_GROUP, group_id, peer_id, default=False)

    def active_hosts(self) -> FrozenSet[HostInfo]:
        return self.registry.active_hosts()

    def status(self) -> dict:
        """Get a summary of the session, discovery and binding state."""
        hosts = sorted(self.registry.active_hosts(), key=lambda h: (-h.last_seen, h.peer_id))
        status = self.lifecycle.snapshot().to_dict()
        status.update({
            "local_id": self.identity.get_local_identifier(),
            "active_hosts": len(hosts),
            "hosts": [host.to_dict() for host in hosts],
            "last_scan": self.last_report.to_dict() if self.last_report else None,
            "members": sorted(self.tracker.members),
            "bindings": self.binder.resolution_table(),
        })
        return status
