"""
Presence scanner for discovering friends who host a joinable session.

Walks the friends list at most once per scan interval. Friends who are online
and playing the target game have their presence attributes read; the ones
advertising a hosted session are promoted into the HostRegistry.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..binding.binder import CapabilityBinder
from ..binding.catalog import GET_FRIEND_PRESENCE
from ..config import Config
from ..errors import CoopHostError
from ..identity import IdentityCache
from .friends import FriendInfo, FriendsSource, PlatformFriends
from .registry import HostRegistry

logger = logging.getLogger(__name__)

DEFAULT_SCAN_INTERVAL = 3.0


def is_hosting(status: str, version: str, connect: str, marker: str = "hosting") -> bool:
    """
    Classify a friend's presence as hosting.

    Two independent paths: the explicit status marker, or a version marker
    together with a connect token (hosts that publish connect metadata
    without the status marker).
    """
    if status == marker:
        return True
    return bool(version) and bool(connect)


@dataclass
class ScanReport:
    """Outcome of one eligible scan."""
    friends_checked: int = 0
    players_in_game: int = 0
    hosts_found: int = 0
    hosts_added: int = 0

    def to_dict(self) -> dict:
        return {
            "friends_checked": self.friends_checked,
            "players_in_game": self.players_in_game,
            "hosts_found": self.hosts_found,
            "hosts_added": self.hosts_added,
        }


class PresenceScanner:
    """
    Rate-limited sweep over the local friends list.

    Usage:
        scanner = PresenceScanner(binder, identity, registry, config)
        report = scanner.scan()  # None when called again too soon
    """

    def __init__(
        self,
        binder: CapabilityBinder,
        identity: IdentityCache,
        registry: HostRegistry,
        config: Optional[Config] = None,
        friends_source: Optional[FriendsSource] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.binder = binder
        self.identity = identity
        self.registry = registry
        self.config = config or Config()
        self.interval = self.config.discovery.scan_interval
        self.friends_source = friends_source or PlatformFriends(binder, self.config.target_app_id)
        self._clock = clock
        self._last_scan: Optional[float] = None

    @property
    def last_scan(self) -> Optional[float]:
        return self._last_scan

    def due(self) -> bool:
        """Check whether the next scan() call would run."""
        if self._last_scan is None:
            return True
        return self._clock() - self._last_scan >= self.interval

    def _read(self, friend: FriendInfo, key: str) -> str:
        return self.binder.invoke(GET_FRIEND_PRESENCE, friend.peer_id, key)

    def _check_friend(self, friend: FriendInfo) -> bool:
        keys = self.config.presence
        status = self._read(friend, keys.status_key)
        version = self._read(friend, keys.version_key)
        connect = self._read(friend, keys.connect_key)

        if is_hosting(status, version, connect, keys.hosting_marker):
            logger.info(f"{friend.display_name} is hosting (status: {status!r}, version: {version!r})")
            return True

        if status:
            logger.debug(f"{friend.display_name} is playing but not hosting (status: {status!r})")
        else:
            logger.debug(f"{friend.display_name} is in game without session presence")
        return False

    def scan(self) -> Optional[ScanReport]:
        """
        Promote hosting friends into the registry.

        Returns:
            A ScanReport, or None when rate-limited
        """
        if not self.due():
            return None
        self._last_scan = self._clock()

        report = ScanReport()
        try:
            friends = self.friends_source()
        except CoopHostError as e:
            logger.error(f"Could not enumerate friends: {e}")
            return report

        local_id = self.identity.get_local_identifier()

        for friend in friends:
            report.friends_checked += 1
            if friend.peer_id == local_id:
                continue
            if not (friend.is_online and friend.is_playing_target_game):
                continue
            report.players_in_game += 1

            try:
                hosting = self._check_friend(friend)
            except CoopHostError as e:
                logger.warning(f"Could not read presence for {friend.display_name}: {e}")
                continue

            if not hosting:
                continue

            report.hosts_found += 1
            if self.registry.get(friend.peer_id) is None:
                report.hosts_added += 1
            self.registry.upsert(
                friend.peer_id,
                self.config.session_name_for(friend.display_name),
                1
            )

        logger.info(
            f"Friend scan complete: {report.players_in_game} in game, "
            f"{report.hosts_found} hosting, {report.hosts_added} new hosts"
        )
        return report
