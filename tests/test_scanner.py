"""
Tests for the presence scanner and friends access.
"""

import pytest

from coophost.binding.binder import CapabilityBinder
from coophost.coordinator import Coordinator
from coophost.discovery.friends import FriendInfo, PlatformFriends, parse_friends
from coophost.discovery.scanner import PresenceScanner, is_hosting
from coophost.platform.simulated import CSteamID

from fakes import APP_ID, HOST_ID, LOCAL_ID, PEER_ID

ALICE = 76561198000000201
BOB = 76561198000000202
CAROL = 76561198000000203


def friend(peer_id, name, online=True, playing=True):
    return {"peer_id": peer_id, "display_name": name, "is_online": online, "is_playing_target_game": playing}


@pytest.fixture
def scanner(binder, identity, registry, config, clock):
    return PresenceScanner(binder, identity, registry, config, clock=clock)


class TestIsHosting:
    """Tests for hosting classification."""

    def test_status_marker(self):
        assert is_hosting("hosting", "", "")

    def test_compatibility_path(self):
        """Test version plus connect token without the status marker."""
        assert is_hosting("", "1.2", "tok")
        assert is_hosting("playing", "1.2", "tok")

    def test_not_hosting(self):
        assert not is_hosting("", "", "")
        assert not is_hosting("playing", "1.2", "")
        assert not is_hosting("", "", "tok")

    def test_custom_marker(self):
        assert is_hosting("open", "", "", marker="open")
        assert not is_hosting("hosting", "", "", marker="open")


class TestFriendInfo:
    """Tests for friend record validation."""

    def test_aliases_and_wrapped_id(self):
        """Test alternate field names and wrapped identifiers."""
        info = FriendInfo.model_validate({"id": CSteamID(ALICE), "name": "Alice", "online": True, "playing": True})
        assert info.peer_id == ALICE
        assert info.display_name == "Alice"
        assert info.is_online and info.is_playing_target_game

    def test_from_attributes(self):
        """Test objects are accepted as well as mappings."""
        class Record:
            peer_id = str(BOB)
            display_name = "Bob"
            is_online = True
            is_playing_target_game = False

        info = FriendInfo.model_validate(Record())
        assert info.peer_id == BOB
        assert not info.is_playing_target_game

    def test_malformed_records_skipped(self):
        """Test records that fail validation are dropped."""
        friends = parse_friends([friend(ALICE, "Alice"), {"peer_id": "not-an-id"}, {"name": "no id"}])
        assert [f.peer_id for f in friends] == [ALICE]


class TestPresenceScanner:
    """Tests for friend scanning."""

    def test_status_marker_host(self, native, scanner, registry):
        """Test a friend with the hosting marker becomes a host."""
        native.friends = [friend(ALICE, "Alice")]
        native.friend_presence[ALICE] = {"coop_status": "hosting"}

        report = scanner.scan()

        entry = registry.get(ALICE)
        assert entry is not None
        assert entry.is_active
        assert entry.player_count == 1
        assert entry.session_name == "Alice's Co-op"
        assert report.hosts_found == 1
        assert report.hosts_added == 1

    def test_compatibility_host(self, native, scanner, registry):
        """Test version plus connect token also counts as hosting."""
        native.friends = [friend(ALICE, "Alice")]
        native.friend_presence[ALICE] = {"coop_status": "", "coop_version": "1.2", "connect": "tok"}

        scanner.scan()
        assert registry.get(ALICE) is not None

    def test_not_hosting(self, native, scanner, registry):
        """Test a friend without markers leaves the registry unchanged."""
        native.friends = [friend(ALICE, "Alice")]
        native.friend_presence[ALICE] = {"coop_status": "playing"}

        report = scanner.scan()
        assert len(registry) == 0
        assert report.players_in_game == 1
        assert report.hosts_found == 0

    def test_offline_or_other_game_not_read(self, native, scanner, registry):
        """Test presence is read only for online friends in the target game."""
        native.friends = [
            friend(ALICE, "Alice", online=False),
            friend(BOB, "Bob", playing=False),
        ]
        native.friend_presence[ALICE] = {"coop_status": "hosting"}
        native.friend_presence[BOB] = {"coop_status": "hosting"}

        report = scanner.scan()
        assert len(registry) == 0
        assert native.calls_to("get_friend_presence_attribute") == []
        assert report.friends_checked == 2
        assert report.players_in_game == 0

    def test_rate_limited(self, native, scanner, registry, clock):
        """Test a second scan within the interval does nothing."""
        native.friends = [friend(ALICE, "Alice")]
        native.friend_presence[ALICE] = {"coop_status": "hosting"}
        assert scanner.scan() is not None

        native.friends.append(friend(BOB, "Bob"))
        native.friend_presence[BOB] = {"coop_status": "hosting"}
        clock.advance(0.9)

        assert scanner.due() is False
        assert scanner.scan() is None
        assert len(native.calls_to("enumerate_friends")) == 1
        assert registry.get(BOB) is None

        clock.advance(3)
        assert scanner.scan() is not None
        assert registry.get(BOB) is not None

    def test_rescan_refreshes_without_adding(self, native, scanner, clock):
        """Test a known host is refreshed, not counted as new."""
        native.friends = [friend(ALICE, "Alice")]
        native.friend_presence[ALICE] = {"coop_status": "hosting"}
        scanner.scan()
        clock.advance(3)

        report = scanner.scan()
        assert report.hosts_found == 1
        assert report.hosts_added == 0

    def test_skips_local_identity(self, native, scanner, registry):
        """Test the local user in the friends list is ignored."""
        native.friends = [friend(LOCAL_ID, "Me")]
        native.friend_presence[LOCAL_ID] = {"coop_status": "hosting"}

        scanner.scan()
        assert len(registry) == 0

    def test_non_hosting_never_deactivates(self, native, scanner, registry, clock):
        """Test a host that stops advertising is left to the TTL."""
        native.friends = [friend(ALICE, "Alice")]
        native.friend_presence[ALICE] = {"coop_status": "hosting"}
        scanner.scan()

        native.friend_presence[ALICE] = {}
        clock.advance(3)
        scanner.scan()
        assert registry.get(ALICE).is_active

    def test_enumeration_failure(self, native, scanner, registry):
        """Test a friends list failure yields an empty report."""
        native.fail.add("enumerate_friends")

        report = scanner.scan()
        assert report.friends_checked == 0
        assert len(registry) == 0

    def test_unreadable_friends_list(self, native, scanner, registry):
        """Test a friends list that is not a sequence yields an empty report."""
        native.enumerate_friends = lambda: 7

        report = scanner.scan()
        assert report.friends_checked == 0
        assert len(registry) == 0

    def test_tick_survives_unreadable_friends_list(self, native, config, clock):
        """Test the coordinator's tick returns normally on a bad friends list."""
        native.enumerate_friends = lambda: 7
        coordinator = Coordinator(native, config, clock=clock)

        report = coordinator.tick()
        assert report is not None
        assert report.hosts_found == 0
        assert coordinator.status()["last_scan"]["friends_checked"] == 0

    def test_presence_failure_skips_friend(self, native, scanner, registry):
        """Test a presence read failure skips only that friend."""
        native.friends = [friend(ALICE, "Alice")]
        native.fail.add("get_friend_presence_attribute")

        report = scanner.scan()
        assert report.players_in_game == 1
        assert len(registry) == 0

    def test_custom_friends_source(self, binder, identity, registry, config, clock):
        """Test an injected friends source replaces the platform list."""
        scanner = PresenceScanner(
            binder, identity, registry, config,
            friends_source=lambda: [FriendInfo(peer_id=CAROL, display_name="Carol",
                                               is_online=True, is_playing_target_game=True)],
            clock=clock,
        )
        binder.native.friend_presence[CAROL] = {"coop_status": "hosting"}
        scanner.scan()
        assert registry.get(CAROL).session_name == "Carol's Co-op"


class TestPlatformFriends:
    """Tests for the index-by-index friends walk."""

    def test_walk(self, world):
        """Test friends are composed from count, index, name, state and game."""
        world.add_user(CAROL, "Carol", online=False, app_id=APP_ID)
        world.add_user(ALICE, "Alice", app_id=999)
        world.befriend(PEER_ID, CAROL)
        world.befriend(PEER_ID, ALICE)

        source = PlatformFriends(CapabilityBinder(world.platform_for(PEER_ID)), APP_ID)
        friends = {f.peer_id: f for f in source()}

        assert set(friends) == {HOST_ID, CAROL, ALICE}
        assert friends[HOST_ID].display_name == "Alice"
        assert friends[HOST_ID].is_online and friends[HOST_ID].is_playing_target_game
        assert not friends[CAROL].is_online
        assert friends[ALICE].is_online and not friends[ALICE].is_playing_target_game

    def test_walk_with_wrapped_ids(self, world):
        """Test the walk when native calls require wrapped identifiers."""
        native = world.platform_for(PEER_ID, wrapped_ids=True)
        source = PlatformFriends(CapabilityBinder(native, id_factory=CSteamID), APP_ID)

        friends = source()
        assert [f.peer_id for f in friends] == [HOST_ID]
        assert friends[0].is_playing_target_game
