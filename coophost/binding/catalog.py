"""
Default catalog of platform operations and their candidate call shapes.

Shapes are listed in preference order. Each operation is tried against:
    - a plain snake_case adapter object (get_local_identifier, ...)
    - Steamworks.NET-style static classes (SteamUser.GetSteamID, ...)
    - SteamworksPy-style interfaces (Users.GetSteamID, ...)

Calls taking identifiers come in a raw-integer shape and a wrapped shape; the
wrapped one is used when the native side rejects plain integers.
"""

from typing import Any, List, Tuple

from .shapes import (
    CallShape,
    ShapeCatalog,
    decode_app_id,
    decode_available,
    decode_bool,
    decode_count,
    decode_issued,
    decode_list,
    decode_packet,
    decode_text,
    id_variants,
    variants,
)
from .identifiers import normalize_identifier

# Operation names
GET_LOCAL_ID = "get_local_id"
SEND_DATA = "send_data"
PACKET_AVAILABLE = "packet_available"
READ_PACKET = "read_packet"
ACCEPT_SESSION = "accept_session"
CLOSE_SESSION = "close_session"
SET_PRESENCE = "set_presence"
CLEAR_PRESENCE = "clear_presence"
CREATE_GROUP = "create_group"
JOIN_GROUP = "join_group"
LEAVE_GROUP = "leave_group"
SET_GROUP_JOINABLE = "set_group_joinable"
SET_GROUP_METADATA = "set_group_metadata"
GET_GROUP_METADATA = "get_group_metadata"
GET_GROUP_OWNER = "get_group_owner"
GET_GROUP_MEMBER_COUNT = "get_group_member_count"
GET_GROUP_MEMBER_AT = "get_group_member_at"
INVITE_TO_GROUP = "invite_to_group"
ENUMERATE_FRIENDS = "enumerate_friends"
GET_FRIEND_PRESENCE = "get_friend_presence"
GET_FRIEND_COUNT = "get_friend_count"
GET_FRIEND_BY_INDEX = "get_friend_by_index"
GET_FRIEND_NAME = "get_friend_name"
GET_FRIEND_STATE = "get_friend_state"
GET_FRIEND_GAME = "get_friend_game"

# EFriendFlags.k_EFriendFlagImmediate
FRIEND_FLAG_IMMEDIATE = 4

USER = ("SteamUser", "Users")
FRIENDS = ("SteamFriends", "Friends")
MATCHMAKING = ("SteamMatchmaking", "Matchmaking")
NETWORKING = ("SteamNetworking", "Networking")


def _native(namespaces: Tuple[str, str], method: str) -> List[str]:
    return [f"{ns}.{method}" for ns in namespaces]


def _native_id_shapes(
    namespaces: Tuple[str, str],
    method: str,
    arity: int,
    id_positions: Tuple[int, ...] = (0,),
    **kwargs: Any
) -> List[CallShape]:
    shapes: List[CallShape] = []
    for path in _native(namespaces, method):
        shapes.extend(id_variants(path, arity, id_positions, **kwargs))
    return shapes


def _send_shapes() -> List[CallShape]:
    # Logical args: (peer_id, payload, channel, send_type)
    def five(peer, data, channel, send_type):
        return (peer, data, len(data), send_type, channel)

    def four(peer, data, channel, send_type):
        return (peer, data, len(data), send_type)

    def three(peer, data, channel, send_type):
        return (peer, data, len(data))

    def two(peer, data, channel, send_type):
        return (peer, data)

    shapes = id_variants("send_data", 2, (0,), arrange=two, decode=decode_bool)
    for arity, arrange in ((5, five), (4, four), (3, three)):
        shapes.extend(_native_id_shapes(
            NETWORKING, "SendP2PPacket", arity, arrange=arrange, decode=decode_bool
        ))
    return shapes


def _receive_shapes() -> Tuple[List[CallShape], List[CallShape]]:
    # Availability logical args: (channel,). Builds without a channel argument
    # only ever report channel 0.
    available = (
        variants(["packet_available"], 1, decode=decode_available)
        + variants(_native(NETWORKING, "IsP2PPacketAvailable"), 1, decode=decode_available)
        + variants(_native(NETWORKING, "IsP2PPacketAvailable"), 0,
                   arrange=lambda channel: (), decode=decode_available)
    )
    # Read logical args: (size, channel)
    read = (
        variants(["read_packet"], 2, decode=decode_packet)
        + variants(_native(NETWORKING, "ReadP2PPacket"), 2, decode=decode_packet)
        + variants(_native(NETWORKING, "ReadP2PPacket"), 1,
                   arrange=lambda size, channel: (size,), decode=decode_packet)
    )
    return available, read


def default_catalog() -> ShapeCatalog:
    """Build a fresh copy of the default operation catalog."""
    catalog: ShapeCatalog = {}

    catalog[GET_LOCAL_ID] = (
        variants(["get_local_identifier"], 0, decode=normalize_identifier)
        + variants(_native(USER, "GetSteamID"), 0, decode=normalize_identifier)
        + variants(_native(USER, "get_SteamID"), 0, decode=normalize_identifier)
    )

    catalog[SEND_DATA] = _send_shapes()
    catalog[PACKET_AVAILABLE], catalog[READ_PACKET] = _receive_shapes()
    catalog[ACCEPT_SESSION] = (
        id_variants("accept_session", 1, (0,), decode=decode_bool)
        + _native_id_shapes(NETWORKING, "AcceptP2PSessionWithUser", 1, decode=decode_bool)
    )
    catalog[CLOSE_SESSION] = (
        id_variants("close_session", 1, (0,), decode=decode_bool)
        + _native_id_shapes(NETWORKING, "CloseP2PSessionWithUser", 1, decode=decode_bool)
    )

    catalog[SET_PRESENCE] = (
        variants(["set_presence_attribute"], 2, decode=decode_bool)
        + variants(_native(FRIENDS, "SetRichPresence"), 2, decode=decode_bool)
    )
    catalog[CLEAR_PRESENCE] = (
        variants(["clear_presence"], 0)
        + variants(_native(FRIENDS, "ClearRichPresence"), 0)
    )

    catalog[CREATE_GROUP] = (
        variants(["create_session_group"], 2, decode=normalize_identifier)
        + variants(_native(MATCHMAKING, "CreateLobby"), 2, decode=normalize_identifier)
    )
    catalog[JOIN_GROUP] = (
        id_variants("join_session_group", 1, (0,), decode=decode_issued)
        + _native_id_shapes(MATCHMAKING, "JoinLobby", 1, decode=decode_issued)
    )
    catalog[LEAVE_GROUP] = (
        id_variants("leave_session_group", 1, (0,))
        + _native_id_shapes(MATCHMAKING, "LeaveLobby", 1)
    )
    catalog[SET_GROUP_JOINABLE] = (
        id_variants("set_group_joinable", 2, (0,), decode=decode_bool)
        + _native_id_shapes(MATCHMAKING, "SetLobbyJoinable", 2, decode=decode_bool)
    )
    catalog[SET_GROUP_METADATA] = (
        id_variants("set_group_metadata", 3, (0,), decode=decode_bool)
        + _native_id_shapes(MATCHMAKING, "SetLobbyData", 3, decode=decode_bool)
    )
    catalog[GET_GROUP_METADATA] = (
        id_variants("get_group_metadata", 2, (0,), decode=decode_text)
        + _native_id_shapes(MATCHMAKING, "GetLobbyData", 2, decode=decode_text)
    )
    catalog[GET_GROUP_OWNER] = (
        id_variants("get_group_owner", 1, (0,), decode=normalize_identifier)
        + _native_id_shapes(MATCHMAKING, "GetLobbyOwner", 1, decode=normalize_identifier)
    )
    catalog[GET_GROUP_MEMBER_COUNT] = (
        id_variants("get_group_member_count", 1, (0,), decode=decode_count)
        + _native_id_shapes(MATCHMAKING, "GetNumLobbyMembers", 1, decode=decode_count)
    )
    # Members come back raw; the tracker normalizes them one by one
    catalog[GET_GROUP_MEMBER_AT] = (
        id_variants("get_group_member_at", 2, (0,))
        + _native_id_shapes(MATCHMAKING, "GetLobbyMemberByIndex", 2)
    )
    # Logical args: (group_id, peer_id)
    catalog[INVITE_TO_GROUP] = (
        id_variants("invite_to_group", 2, (0, 1), decode=decode_bool)
        + _native_id_shapes(MATCHMAKING, "InviteUserToLobby", 2, id_positions=(0, 1), decode=decode_bool)
    )

    catalog[ENUMERATE_FRIENDS] = variants(["enumerate_friends"], 0, decode=decode_list)
    catalog[GET_FRIEND_PRESENCE] = (
        id_variants("get_friend_presence_attribute", 2, (0,), decode=decode_text)
        + _native_id_shapes(FRIENDS, "GetFriendRichPresence", 2, decode=decode_text)
    )
    catalog[GET_FRIEND_COUNT] = (
        variants(_native(FRIENDS, "GetFriendCount"), 1,
                 arrange=lambda: (FRIEND_FLAG_IMMEDIATE,), decode=decode_count)
        + variants(_native(FRIENDS, "GetFriendCount"), 0, decode=decode_count)
    )
    catalog[GET_FRIEND_BY_INDEX] = (
        variants(_native(FRIENDS, "GetFriendByIndex"), 2,
                 arrange=lambda index: (index, FRIEND_FLAG_IMMEDIATE))
        + variants(_native(FRIENDS, "GetFriendByIndex"), 1)
    )
    catalog[GET_FRIEND_NAME] = _native_id_shapes(
        FRIENDS, "GetFriendPersonaName", 1, decode=decode_text
    )
    catalog[GET_FRIEND_STATE] = _native_id_shapes(
        FRIENDS, "GetFriendPersonaState", 1, decode=decode_count
    )
    catalog[GET_FRIEND_GAME] = _native_id_shapes(
        FRIENDS, "GetFriendGamePlayed", 1, decode=decode_app_id
    )

    return catalog
