"""
Simulated social-gaming platform.

An in-memory world of accounts, friendships, presence, lobbies and P2P
sessions, exposed per account through Steamworks.NET-style static interfaces
(SteamUser, SteamFriends, SteamMatchmaking, SteamNetworking). Used by the CLI to
rehearse discovery against a described world, and by the test suite.

World files are YAML:

    app_id: 311690
    wrapped_ids: true
    users:
      - id: 76561198000000001
        name: Alice
        app_id: 311690
        presence: {coop_status: hosting}
        lobby: true
      - id: 76561198000000002
        name: Bob
    friends:
      - [76561198000000001, 76561198000000002]
    local: 76561198000000002

A user with `lobby: true` starts out owning a joinable lobby.
"""

import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

import yaml

logger = logging.getLogger(__name__)

FIRST_LOBBY_ID = 109775240000000000
PERSONA_OFFLINE = 0
PERSONA_ONLINE = 1


@dataclass(frozen=True)
class CSteamID:
    """Wrapped account or lobby identifier."""
    m_SteamID: int

    def __str__(self) -> str:
        return str(self.m_SteamID)


@dataclass(frozen=True)
class FriendGameInfo:
    m_gameID: int


@dataclass
class SimUser:
    user_id: int
    name: str
    online: bool = True
    app_id: int = 0
    presence: Dict[str, str] = field(default_factory=dict)


@dataclass
class SimLobby:
    lobby_id: int
    owner: int
    visibility: int
    max_members: int
    members: List[int] = field(default_factory=list)
    joinable: bool = False
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class SimPacket:
    sender: int
    recipient: int
    data: bytes
    send_type: int
    channel: int


class SimulatedWorld:
    """
    Shared state for every simulated account.

    Usage:
        world = SimulatedWorld(app_id=311690)
        world.add_user(1, "Alice", app_id=311690)
        world.add_user(2, "Bob", app_id=311690)
        world.befriend(1, 2)
        native = world.platform_for(1)
    """

    def __init__(self, app_id: int = 0, wrapped_ids: bool = False):
        self.app_id = app_id
        self.local_user: Optional[int] = None
        self.wrapped_ids = wrapped_ids
        self.users: Dict[int, SimUser] = {}
        self.friendships: Dict[int, Set[int]] = {}
        self.lobbies: Dict[int, SimLobby] = {}
        self.packets: List[SimPacket] = []
        self.inboxes: Dict[int, List[SimPacket]] = {}
        self.sessions: Dict[int, Set[int]] = {}
        self.lobby_invites: List[Tuple[int, int, int]] = []
        self._lobby_ids = itertools.count(FIRST_LOBBY_ID)

    def add_user(
        self,
        user_id: int,
        name: str,
        online: bool = True,
        app_id: int = 0,
        presence: Optional[Dict[str, str]] = None
    ) -> SimUser:
        user = SimUser(user_id, name, online, app_id, dict(presence or {}))
        self.users[user_id] = user
        self.friendships.setdefault(user_id, set())
        return user

    def befriend(self, a: int, b: int) -> None:
        self.friendships.setdefault(a, set()).add(b)
        self.friendships.setdefault(b, set()).add(a)

    def friends_of(self, user_id: int) -> List[int]:
        return sorted(self.friendships.get(user_id, set()))

    def lobby_owned_by(self, user_id: int) -> Optional[SimLobby]:
        for lobby in self.lobbies.values():
            if lobby.owner == user_id:
                return lobby
        return None

    def create_lobby(self, owner: int, visibility: int, max_members: int) -> SimLobby:
        lobby = SimLobby(next(self._lobby_ids), owner, visibility, max_members, [owner])
        self.lobbies[lobby.lobby_id] = lobby
        logger.debug(f"Lobby {lobby.lobby_id} created by {owner}")
        return lobby

    def platform_for(self, user_id: int, wrapped_ids: Optional[bool] = None) -> "SimulatedPlatform":
        if user_id not in self.users:
            raise KeyError(f"Unknown user {user_id}")
        wrapped = self.wrapped_ids if wrapped_ids is None else wrapped_ids
        return SimulatedPlatform(self, user_id, wrapped)

    @classmethod
    def from_dict(cls, data: dict) -> "SimulatedWorld":
        world = cls(app_id=int(data.get("app_id", 0)), wrapped_ids=bool(data.get("wrapped_ids", False)))
        for entry in data.get("users", []):
            world.add_user(
                int(entry["id"]),
                entry.get("name", str(entry["id"])),
                online=entry.get("online", True),
                app_id=int(entry.get("app_id", 0)),
                presence={k: str(v) for k, v in (entry.get("presence") or {}).items()},
            )
            if entry.get("lobby"):
                lobby = world.create_lobby(int(entry["id"]), 1, 50)
                lobby.joinable = True
        for a, b in data.get("friends", []):
            world.befriend(int(a), int(b))
        if data.get("local") is not None:
            world.local_user = int(data["local"])
        return world

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SimulatedWorld":
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)


class _Interface:
    def __init__(self, platform: "SimulatedPlatform"):
        self._platform = platform

    @property
    def _world(self) -> SimulatedWorld:
        return self._platform.world

    @property
    def _me(self) -> SimUser:
        return self._world.users[self._platform.user_id]

    def _id(self, value: Any) -> int:
        if isinstance(value, CSteamID):
            return value.m_SteamID
        if self._platform.wrapped_ids:
            raise TypeError(f"expected CSteamID, got {type(value).__name__}")
        return int(value)

    def _out(self, value: int) -> Any:
        return CSteamID(value) if self._platform.wrapped_ids else value


class SteamUser(_Interface):
    def GetSteamID(self) -> CSteamID:
        return CSteamID(self._platform.user_id)


class SteamFriends(_Interface):
    def GetFriendCount(self, flags: int) -> int:
        return len(self._world.friends_of(self._platform.user_id))

    def GetFriendByIndex(self, index: int, flags: int) -> Any:
        friends = self._world.friends_of(self._platform.user_id)
        if not 0 <= index < len(friends):
            return self._out(0)
        return self._out(friends[index])

    def GetFriendPersonaName(self, friend_id: Any) -> str:
        user = self._world.users.get(self._id(friend_id))
        return user.name if user else ""

    def GetFriendPersonaState(self, friend_id: Any) -> int:
        user = self._world.users.get(self._id(friend_id))
        return PERSONA_ONLINE if user and user.online else PERSONA_OFFLINE

    def GetFriendGamePlayed(self, friend_id: Any) -> Tuple[bool, Optional[FriendGameInfo]]:
        user = self._world.users.get(self._id(friend_id))
        if not user or not user.online or not user.app_id:
            return False, None
        return True, FriendGameInfo(user.app_id)

    def GetFriendRichPresence(self, friend_id: Any, key: str) -> str:
        user = self._world.users.get(self._id(friend_id))
        return user.presence.get(key, "") if user else ""

    def SetRichPresence(self, key: str, value: str) -> bool:
        self._me.presence[key] = value
        return True

    def ClearRichPresence(self) -> None:
        self._me.presence.clear()


class SteamMatchmaking(_Interface):
    def CreateLobby(self, lobby_type: int, max_members: int) -> Any:
        lobby = self._world.create_lobby(self._platform.user_id, lobby_type, max_members)
        return self._out(lobby.lobby_id)

    def _lobby(self, lobby_id: Any) -> Optional[SimLobby]:
        return self._world.lobbies.get(self._id(lobby_id))

    def JoinLobby(self, lobby_id: Any) -> int:
        target = self._id(lobby_id)
        lobby = self._world.lobbies.get(target) or self._world.lobby_owned_by(target)
        if lobby is None or not lobby.joinable or len(lobby.members) >= lobby.max_members:
            logger.debug(f"{self._platform.user_id} could not join {target}")
            return 0
        if self._platform.user_id not in lobby.members:
            lobby.members.append(self._platform.user_id)
        return lobby.lobby_id

    def LeaveLobby(self, lobby_id: Any) -> None:
        target = self._id(lobby_id)
        lobby = self._world.lobbies.get(target) or self._world.lobby_owned_by(target)
        if lobby is None:
            return
        if self._platform.user_id in lobby.members:
            lobby.members.remove(self._platform.user_id)
        if not lobby.members:
            del self._world.lobbies[lobby.lobby_id]
        elif lobby.owner == self._platform.user_id:
            lobby.owner = lobby.members[0]

    def SetLobbyJoinable(self, lobby_id: Any, joinable: bool) -> bool:
        lobby = self._lobby(lobby_id)
        if lobby is None or lobby.owner != self._platform.user_id:
            return False
        lobby.joinable = joinable
        return True

    def SetLobbyData(self, lobby_id: Any, key: str, value: str) -> bool:
        lobby = self._lobby(lobby_id)
        if lobby is None or lobby.owner != self._platform.user_id:
            return False
        lobby.metadata[key] = value
        return True

    def GetLobbyData(self, lobby_id: Any, key: str) -> str:
        lobby = self._lobby(lobby_id)
        return lobby.metadata.get(key, "") if lobby else ""

    def GetLobbyOwner(self, lobby_id: Any) -> Any:
        lobby = self._lobby(lobby_id)
        return self._out(lobby.owner if lobby else 0)

    def GetNumLobbyMembers(self, lobby_id: Any) -> int:
        lobby = self._lobby(lobby_id)
        return len(lobby.members) if lobby else 0

    def InviteUserToLobby(self, lobby_id: Any, invitee_id: Any) -> bool:
        lobby = self._lobby(lobby_id)
        invitee = self._id(invitee_id)
        if lobby is None or self._platform.user_id not in lobby.members or invitee not in self._world.users:
            return False
        self._world.lobby_invites.append((lobby.lobby_id, self._platform.user_id, invitee))
        return True

    def GetLobbyMemberByIndex(self, lobby_id: Any, index: int) -> Any:
        lobby = self._lobby(lobby_id)
        if lobby is None or not 0 <= index < len(lobby.members):
            return self._out(0)
        return self._out(lobby.members[index])


class SteamNetworking(_Interface):
    """
    P2P packets between simulated accounts.

    Sending to a peer opens our side of the session with them. Packets from a
    peer are only readable once our side is open, by sending to them or by
    accepting their session.
    """

    @property
    def _accepted(self) -> Set[int]:
        return self._world.sessions.setdefault(self._platform.user_id, set())

    def _next_packet(self, channel: int) -> Optional[SimPacket]:
        for packet in self._world.inboxes.get(self._platform.user_id, []):
            if packet.channel == channel and packet.sender in self._accepted:
                return packet
        return None

    def SendP2PPacket(self, remote_id: Any, data: bytes, length: int, send_type: int, channel: int = 0) -> bool:
        recipient = self._id(remote_id)
        if recipient not in self._world.users:
            return False
        packet = SimPacket(self._platform.user_id, recipient, bytes(data[:length]), send_type, channel)
        self._world.packets.append(packet)
        self._world.inboxes.setdefault(recipient, []).append(packet)
        self._accepted.add(recipient)
        return True

    def IsP2PPacketAvailable(self, channel: int = 0) -> Tuple[bool, int]:
        packet = self._next_packet(channel)
        if packet is None:
            return False, 0
        return True, len(packet.data)

    def ReadP2PPacket(self, size: int, channel: int = 0) -> Tuple[bool, bytes, int, Any]:
        packet = self._next_packet(channel)
        if packet is None:
            return False, b"", 0, self._out(0)
        self._world.inboxes[self._platform.user_id].remove(packet)
        data = packet.data[:size]
        return True, data, len(data), self._out(packet.sender)

    def AcceptP2PSessionWithUser(self, remote_id: Any) -> bool:
        remote = self._id(remote_id)
        if remote not in self._world.users:
            return False
        self._accepted.add(remote)
        return True

    def CloseP2PSessionWithUser(self, remote_id: Any) -> bool:
        remote = self._id(remote_id)
        if remote not in self._accepted:
            return False
        self._accepted.discard(remote)
        inbox = self._world.inboxes.get(self._platform.user_id, [])
        inbox[:] = [p for p in inbox if p.sender != remote]
        return True


class SimulatedPlatform:
    """The native platform object for one simulated account."""

    def __init__(self, world: SimulatedWorld, user_id: int, wrapped_ids: bool = False):
        self.world = world
        self.user_id = user_id
        self.wrapped_ids = wrapped_ids
        self.SteamUser = SteamUser(self)
        self.SteamFriends = SteamFriends(self)
        self.SteamMatchmaking = SteamMatchmaking(self)
        self.SteamNetworking = SteamNetworking(self)

    @property
    def id_factory(self):
        """Constructor for the identifiers this account's calls expect."""
        return CSteamID
