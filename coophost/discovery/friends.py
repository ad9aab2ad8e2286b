"""
Friends list access.

Friend records are validated into FriendInfo models whatever shape the native
side hands back (mappings or objects, raw or wrapped identifiers).
"""

import logging
from typing import Any, Callable, Iterable, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..binding.binder import CapabilityBinder
from ..binding.catalog import (
    ENUMERATE_FRIENDS,
    GET_FRIEND_BY_INDEX,
    GET_FRIEND_COUNT,
    GET_FRIEND_GAME,
    GET_FRIEND_NAME,
    GET_FRIEND_STATE,
)
from ..binding.identifiers import normalize_identifier
from ..errors import BindingUnresolved, CoopHostError, UnrecognizedIdentifierShape

logger = logging.getLogger(__name__)

# EPersonaState.k_EPersonaStateOffline
PERSONA_OFFLINE = 0


class FriendInfo(BaseModel):
    """A friend as seen through the platform's friends list."""
    model_config = ConfigDict(frozen=True, from_attributes=True, populate_by_name=True)

    peer_id: int = Field(validation_alias=AliasChoices("peer_id", "id", "steam_id"))
    display_name: str = Field(default="", validation_alias=AliasChoices("display_name", "name"))
    is_online: bool = Field(default=False, validation_alias=AliasChoices("is_online", "online"))
    is_playing_target_game: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_playing_target_game", "playing")
    )

    @field_validator("peer_id", mode="before")
    @classmethod
    def _normalize_peer_id(cls, value: Any) -> int:
        try:
            return normalize_identifier(value)
        except UnrecognizedIdentifierShape as e:
            raise ValueError(str(e)) from e


FriendsSource = Callable[[], List[FriendInfo]]


def parse_friends(records: Iterable[Any]) -> List[FriendInfo]:
    """Validate raw friend records, skipping the ones that do not fit."""
    friends = []
    for record in records:
        try:
            friends.append(FriendInfo.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping malformed friend record {record!r}: {e.error_count()} errors")
    return friends


class PlatformFriends:
    """
    Friends source backed by the binder.

    Uses the whole-list enumeration when the native side has one, otherwise
    walks the friends list index by index.
    """

    def __init__(self, binder: CapabilityBinder, target_app_id: int = 0):
        self.binder = binder
        self.target_app_id = target_app_id

    def __call__(self) -> List[FriendInfo]:
        try:
            records = self.binder.invoke(ENUMERATE_FRIENDS)
        except BindingUnresolved:
            records = self._walk()
        return parse_friends(records)

    def _walk(self) -> List[dict]:
        count = self.binder.invoke(GET_FRIEND_COUNT)
        records = []

        for index in range(count):
            try:
                friend_id = normalize_identifier(self.binder.invoke(GET_FRIEND_BY_INDEX, index))
            except CoopHostError as e:
                logger.debug(f"Skipping friend at index {index}: {e}")
                continue

            state = self.binder.try_invoke(GET_FRIEND_STATE, friend_id, default=PERSONA_OFFLINE)
            app_id = self.binder.try_invoke(GET_FRIEND_GAME, friend_id, default=0)
            records.append({
                "peer_id": friend_id,
                "display_name": self.binder.try_invoke(GET_FRIEND_NAME, friend_id, default=""),
                "is_online": state != PERSONA_OFFLINE,
                "is_playing_target_game": app_id != 0 and app_id == self.target_app_id,
            })

        return records
