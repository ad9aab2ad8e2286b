"""
Membership tracking for the hosted session group.

The platform offers no push event for members joining, so the host polls the
member list and diffs it against the previous poll.
"""

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, List

from ..binding.binder import CapabilityBinder
from ..binding.catalog import GET_GROUP_MEMBER_AT, GET_GROUP_MEMBER_COUNT
from ..binding.identifiers import ZERO_ID, normalize_identifier
from ..errors import CoopHostError
from .lifecycle import SessionLifecycle, SessionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinEvent:
    """A member newly present in the session group."""
    peer_id: int
    group_token: str


JoinCallback = Callable[[int, str], None]


class MembershipTracker:
    """
    Polls the active session group and emits join events.

    Usage:
        tracker = MembershipTracker(binder, lifecycle)
        tracker.subscribe(lambda peer_id, token: print(f"{peer_id} joined"))
        tracker.poll()
    """

    def __init__(self, binder: CapabilityBinder, lifecycle: SessionLifecycle):
        self.binder = binder
        self.lifecycle = lifecycle
        self._previous: FrozenSet[int] = frozenset()
        self._tracked_group = ZERO_ID
        self._observers: List[JoinCallback] = []

    def subscribe(self, callback: JoinCallback) -> None:
        """Register a callback receiving (peer_id, group_token)."""
        self._observers.append(callback)

    def unsubscribe(self, callback: JoinCallback) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    @property
    def members(self) -> FrozenSet[int]:
        """Members seen by the last poll."""
        return self._previous

    def reset(self) -> None:
        self._previous = frozenset()
        self._tracked_group = ZERO_ID

    def _eligible(self) -> bool:
        return (
            self.lifecycle.state is SessionState.HOSTING
            and self.lifecycle.is_group_owner
            and self.lifecycle.group_id != ZERO_ID
        )

    def _current_members(self, group_id: int, count: int) -> FrozenSet[int]:
        current = set()
        for index in range(count):
            try:
                raw = self.binder.invoke(GET_GROUP_MEMBER_AT, group_id, index)
                member_id = normalize_identifier(raw)
            except CoopHostError as e:
                logger.debug(f"Skipping group member at index {index}: {e}")
                continue
            if member_id != ZERO_ID:
                current.add(member_id)
        return frozenset(current)

    def poll(self) -> List[JoinEvent]:
        """
        Diff the group's members against the previous poll.

        Returns:
            One JoinEvent per newly present member, in ascending id order
        """
        if not self._eligible():
            return []

        group_id = self.lifecycle.group_id
        if group_id != self._tracked_group:
            # A new group starts from an empty member set
            self._previous = frozenset()
            self._tracked_group = group_id

        try:
            count = self.binder.invoke(GET_GROUP_MEMBER_COUNT, group_id)
        except CoopHostError as e:
            logger.error(f"Could not read member count for group {group_id}: {e}")
            return []

        current = self._current_members(group_id, count)
        token = str(group_id)
        events = [JoinEvent(peer_id, token) for peer_id in sorted(current - self._previous)]
        self._previous = current

        for event in events:
            logger.info(f"Player joined group {token}: {event.peer_id}")
            self._emit(event)

        return events

    def _emit(self, event: JoinEvent) -> None:
        for callback in list(self._observers):
            try:
                callback(event.peer_id, event.group_token)
            except Exception as e:
                logger.error(f"Join observer failed for {event.peer_id}: {e}")
