"""
Session lifecycle state machine.

    IDLE --start_hosting--> HOSTING
    IDLE --start_joining--> JOINING --> ACTIVE   (back to IDLE on failure)
    any  --stop_session---> IDLE

Every transition either completes or leaves the state where it was. A host
whose session group could not be created stays HOSTING ("hosting, ungrouped")
and keeps being discoverable through presence; broadcast_availability()
retries the group.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..binding.binder import CapabilityBinder
from ..binding.catalog import (
    CLEAR_PRESENCE,
    CREATE_GROUP,
    GET_GROUP_METADATA,
    GET_GROUP_OWNER,
    JOIN_GROUP,
    LEAVE_GROUP,
    SET_GROUP_JOINABLE,
    SET_GROUP_METADATA,
    SET_PRESENCE,
)
from ..binding.identifiers import ZERO_ID
from ..config import Config
from ..discovery.registry import HostRegistry
from ..errors import CoopHostError, NotReady, OperationFailed

logger = logging.getLogger(__name__)

STATUS_IN_GAME = "In Game"
STATUS_JOINING = "Joining Game"
DISPLAY_IN_GAME = "#Status_InGame"
DISPLAY_JOINING = "#Status_JoiningGame"


class SessionState(Enum):
    IDLE = "idle"
    HOSTING = "hosting"
    JOINING = "joining"
    ACTIVE = "active"


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session."""
    state: SessionState
    self_host_id: int = ZERO_ID
    group_id: int = ZERO_ID
    is_group_owner: bool = False

    @property
    def lobby_token(self) -> str:
        return str(self.group_id) if self.group_id != ZERO_ID else ""

    @property
    def grouped(self) -> bool:
        return self.group_id != ZERO_ID

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "self_host_id": self.self_host_id,
            "group_id": self.group_id,
            "lobby_token": self.lobby_token,
            "is_group_owner": self.is_group_owner,
        }


class SessionLifecycle:
    """
    Drives hosting, joining and stopping a session.

    Usage:
        lifecycle = SessionLifecycle(binder, registry, config)
        lifecycle.start_hosting()
        ...
        lifecycle.stop_session()
    """

    def __init__(
        self,
        binder: CapabilityBinder,
        registry: HostRegistry,
        config: Optional[Config] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.binder = binder
        self.registry = registry
        self.config = config or Config()
        self._clock = clock

        self._state = SessionState.IDLE
        self._self_host_id = ZERO_ID
        self._group_id = ZERO_ID
        self._is_group_owner = False
        self._last_group_attempt: Optional[float] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def group_id(self) -> int:
        return self._group_id

    @property
    def is_group_owner(self) -> bool:
        return self._is_group_owner

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            self_host_id=self._self_host_id,
            group_id=self._group_id,
            is_group_owner=self._is_group_owner,
        )

    # -- presence ----------------------------------------------------------

    def _presence(self, key: str, value: str) -> bool:
        ok = self.binder.try_invoke(SET_PRESENCE, key, value, default=False)
        if not ok:
            logger.debug(f"Presence '{key}' not set")
        return ok

    def _clear_presence(self) -> None:
        try:
            self.binder.invoke(CLEAR_PRESENCE)
        except CoopHostError as e:
            logger.warning(f"Could not clear presence: {e}")

    # -- group -------------------------------------------------------------

    def _create_group(self) -> bool:
        group = self.config.group
        keys = self.config.presence
        self._last_group_attempt = self._clock()

        try:
            group_id = self.binder.invoke(CREATE_GROUP, int(group.visibility), group.max_members)
        except CoopHostError as e:
            logger.error(f"Could not create session group: {e}")
            return False

        if group_id == ZERO_ID:
            logger.error("Session group creation returned no identifier")
            return False

        self._group_id = group_id
        self._is_group_owner = True

        if not self.binder.try_invoke(SET_GROUP_JOINABLE, group_id, True, default=False):
            logger.warning(f"Could not mark group {group_id} joinable")

        self.set_group_metadata("host_id", str(self._self_host_id))
        self.set_group_metadata(keys.version_key, self.config.mod_version)
        self._presence(keys.connect_key, str(group_id))

        logger.info(f"Hosting joinable group {group_id}")
        return True

    def set_group_metadata(self, key: str, value: str) -> bool:
        """Write group metadata; False when no group is held or the write fails."""
        if self._group_id == ZERO_ID:
            return False
        return self.binder.try_invoke(SET_GROUP_METADATA, self._group_id, key, value, default=False)

    def get_group_metadata(self, key: str) -> str:
        if self._group_id == ZERO_ID:
            return ""
        return self.binder.try_invoke(GET_GROUP_METADATA, self._group_id, key, default="")

    def group_owner(self) -> int:
        if self._group_id == ZERO_ID:
            return ZERO_ID
        return self.binder.try_invoke(GET_GROUP_OWNER, self._group_id, default=ZERO_ID)

    # -- transitions -------------------------------------------------------

    def start_hosting(self) -> SessionSnapshot:
        """
        IDLE -> HOSTING.

        Raises:
            NotReady: when not idle, or the local identity is unknown
        """
        if self._state is not SessionState.IDLE:
            raise NotReady(f"Cannot start hosting while {self._state.value}")

        keys = self.config.presence
        self._presence(keys.text_key, STATUS_IN_GAME)
        self._presence(keys.display_key, DISPLAY_IN_GAME)

        if not self.registry.register_self_as_host():
            self._clear_presence()
            raise NotReady("Local identity not available, cannot host")

        self._self_host_id = self.registry.self_host_id
        self._state = SessionState.HOSTING
        self._presence(keys.status_key, keys.hosting_marker)
        self._presence(keys.version_key, self.config.mod_version)
        logger.info(f"Hosting as {self._self_host_id}")

        if not self._create_group():
            logger.warning("Hosting without a session group, discovery continues via presence")

        return self.snapshot()

    def start_joining(self, target_id: int) -> SessionSnapshot:
        """
        IDLE -> JOINING -> ACTIVE.

        Raises:
            NotReady: when not idle or no target was given
            OperationFailed: when the group join fails (state is back to IDLE)
        """
        if self._state is not SessionState.IDLE:
            raise NotReady(f"Cannot join while {self._state.value}")
        if target_id == ZERO_ID:
            raise NotReady("No host to join")

        keys = self.config.presence
        self._state = SessionState.JOINING
        self._presence(keys.text_key, STATUS_JOINING)
        self._presence(keys.display_key, DISPLAY_JOINING)
        logger.info(f"Joining session with host/group {target_id}")

        try:
            joined = self.binder.invoke(JOIN_GROUP, target_id)
        except CoopHostError as e:
            logger.error(f"Join of {target_id} failed: {e}")
            joined = False

        if not joined:
            self._state = SessionState.IDLE
            self._clear_presence()
            raise OperationFailed(f"Could not join {target_id}", operation=JOIN_GROUP)

        # The join target may be the host's account id rather than the lobby
        # id; it is kept as given and serves as the joiner's group token
        self._group_id = target_id
        self._is_group_owner = False
        self._state = SessionState.ACTIVE
        self._presence(keys.text_key, STATUS_IN_GAME)
        self._presence(keys.display_key, DISPLAY_IN_GAME)
        logger.info(f"Joined group {target_id}")
        return self.snapshot()

    def stop_session(self) -> bool:
        """
        Any state -> IDLE.

        Returns:
            False when there was nothing to stop
        """
        if (self._state is SessionState.IDLE
                and self._group_id == ZERO_ID
                and self.registry.self_host_id == ZERO_ID):
            return False

        self._clear_presence()

        if self._group_id != ZERO_ID:
            try:
                self.binder.invoke(LEAVE_GROUP, self._group_id)
                logger.info(f"Left group {self._group_id}")
            except CoopHostError as e:
                logger.warning(f"Could not leave group {self._group_id}: {e}")

        self.registry.unregister_self_as_host()

        self._state = SessionState.IDLE
        self._self_host_id = ZERO_ID
        self._group_id = ZERO_ID
        self._is_group_owner = False
        self._last_group_attempt = None
        logger.info("Stopped session")
        return True

    def broadcast_availability(self) -> bool:
        """
        Heartbeat while hosting.

        Refreshes (or re-creates) the self entry and retries the session
        group when hosting ungrouped. Returns False when not hosting.
        """
        if self._state is not SessionState.HOSTING:
            return False

        if not self.registry.heartbeat_self():
            self.registry.register_self_as_host()

        if self._group_id == ZERO_ID:
            elapsed = (
                None if self._last_group_attempt is None
                else self._clock() - self._last_group_attempt
            )
            if elapsed is None or elapsed >= self.config.group.retry_interval:
                self._create_group()

        return True
