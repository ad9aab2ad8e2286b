"""
End-to-end tests for the coordinator over the simulated platform.
"""

import pytest

from coophost.binding.catalog import JOIN_GROUP, PACKET_AVAILABLE, SEND_DATA
from coophost.binding.shapes import ReceivedPacket
from coophost.config import Config
from coophost.coordinator import Coordinator, parse_lobby_hint
from coophost.platform.simulated import CSteamID, SimulatedWorld
from coophost.session.lifecycle import SessionState

from fakes import APP_ID, HOST_ID, PEER_ID, FakeClock


def make(world, user_id, clock, wrapped=False):
    native = world.platform_for(user_id, wrapped_ids=wrapped)
    return Coordinator(
        native,
        Config(target_app_id=APP_ID),
        id_factory=CSteamID if wrapped else None,
        clock=clock,
    )


@pytest.fixture
def host(world, clock):
    return make(world, HOST_ID, clock)


@pytest.fixture
def peer(world, clock):
    return make(world, PEER_ID, clock)


class TestParseLobbyHint:
    """Tests for lobby hint parsing."""

    def test_host_first(self):
        assert parse_lobby_hint(f"{HOST_ID}_session") == HOST_ID

    def test_host_later(self):
        assert parse_lobby_hint(f"lobby_12_{HOST_ID}") == HOST_ID

    def test_no_account_id(self):
        assert parse_lobby_hint("lobby_12_34") == 0
        assert parse_lobby_hint("") == 0


class TestCoordinator:
    """Tests for the public coordinator surface."""

    def test_host_then_invite_join(self, world, host, peer):
        """Test hosting, then a peer joining through an invite."""
        assert host.request_host()
        assert host.lifecycle.state is SessionState.HOSTING
        assert host.registry.self_entry() is not None

        peer.on_invite_received(HOST_ID, "tok")
        assert peer.registry.best_available_host() == HOST_ID
        assert peer.request_auto_join()
        assert peer.lifecycle.state is SessionState.ACTIVE
        assert peer.registry.invite is None

        lobby = world.lobby_owned_by(HOST_ID)
        assert PEER_ID in lobby.members

    def test_discovery_then_join(self, world, host, peer):
        """Test a peer finds the host through presence alone."""
        host.request_host()
        assert world.users[HOST_ID].presence["coop_status"] == "hosting"

        report = peer.tick()
        assert report.hosts_found == 1
        assert {h.peer_id for h in peer.active_hosts()} == {HOST_ID}
        assert peer.request_auto_join()
        assert peer.lifecycle.group_id == HOST_ID

    def test_host_sees_member_join(self, world, host, peer, clock):
        """Test the host is notified when the peer enters the group."""
        joined = []
        host.on_member_joined(lambda peer_id, token: joined.append((peer_id, token)))
        host.request_host()
        host.tick()
        joined.clear()

        peer.on_invite_received(HOST_ID)
        peer.request_auto_join()
        clock.advance(1)
        host.tick()

        token = str(world.lobby_owned_by(HOST_ID).lobby_id)
        assert joined == [(PEER_ID, token)]

    def test_auto_join_without_hosts(self, peer):
        """Test auto join fails cleanly when nobody hosts."""
        assert peer.request_auto_join() is False
        assert peer.lifecycle.state is SessionState.IDLE

    def test_auto_join_unreachable_host(self, peer):
        """Test a failed join is reported as False, back to IDLE."""
        peer.on_invite_received(HOST_ID)
        assert peer.request_auto_join() is False
        assert peer.lifecycle.state is SessionState.IDLE

    def test_auto_join_lobby_hint(self, host, peer):
        """Test the lobby hint is used when the registry is empty."""
        host.request_host()
        assert peer.request_auto_join(f"{HOST_ID}_coop")
        assert peer.lifecycle.state is SessionState.ACTIVE

    def test_request_host_twice(self, host):
        assert host.request_host()
        assert host.request_host() is False

    def test_request_stop(self, world, host):
        """Test stopping releases the group and presence."""
        assert host.request_stop() is False
        host.request_host()
        assert host.request_stop()
        assert host.lifecycle.state is SessionState.IDLE
        assert world.lobby_owned_by(HOST_ID) is None
        assert world.users[HOST_ID].presence == {}

    def test_tick_heartbeats_host(self, host, clock):
        """Test ticking keeps the self entry alive past the TTL."""
        host.request_host()
        for _ in range(4):
            clock.advance(10)
            host.tick()
        assert host.registry.self_entry() is not None

    def test_expired_host_not_joined(self, host, peer, clock):
        """Test a host that stopped refreshing is forgotten."""
        host.request_host()
        peer.tick()
        host.request_stop()

        clock.advance(31)
        assert peer.active_hosts() == frozenset()
        assert peer.request_auto_join() is False

    def test_send(self, world, peer):
        """Test packets go out through the probed send shape."""
        assert peer.send(HOST_ID, b"hello")
        packet = world.packets[-1]
        assert (packet.sender, packet.recipient, packet.data) == (PEER_ID, HOST_ID, b"hello")
        assert (packet.channel, packet.send_type) == (0, 2)
        assert peer.binder.binding(SEND_DATA).working_shape.arity == 5

    def test_send_unknown_peer(self, peer):
        assert peer.send(12345, b"x") is False

    def test_receive_after_accept(self, host, peer):
        """Test packets from a new peer are readable once its session is accepted."""
        assert peer.send(HOST_ID, b"hello")
        assert peer.send(HOST_ID, b"again")
        assert host.receive() == []

        assert host.accept_session(PEER_ID)
        assert host.receive() == [
            ReceivedPacket(PEER_ID, b"hello"),
            ReceivedPacket(PEER_ID, b"again"),
        ]
        assert host.receive() == []
        assert host.binder.binding(PACKET_AVAILABLE).working_shape.arity == 1

    def test_reply_needs_no_accept(self, host, peer):
        """Test a peer we sent to can answer without an explicit accept."""
        peer.send(HOST_ID, b"ping")
        host.accept_session(PEER_ID)
        host.send(PEER_ID, b"pong")

        assert peer.receive() == [ReceivedPacket(HOST_ID, b"pong")]

    def test_receive_limit(self, host, peer):
        """Test one receive call drains at most max_packets."""
        host.accept_session(PEER_ID)
        for index in range(3):
            peer.send(HOST_ID, bytes([index]))

        assert len(host.receive(max_packets=2)) == 2
        assert host.receive() == [ReceivedPacket(PEER_ID, bytes([2]))]

    def test_close_session_drops_pending(self, host, peer):
        """Test closing a session discards its unread packets."""
        host.accept_session(PEER_ID)
        peer.send(HOST_ID, b"stale")

        assert host.close_session(PEER_ID)
        assert host.receive() == []
        assert host.close_session(PEER_ID) is False

    def test_accept_unknown_peer(self, host):
        assert host.accept_session(12345) is False

    def test_invite(self, world, host):
        """Test inviting a friend into the hosted group."""
        assert host.invite(PEER_ID) is False

        host.request_host()
        assert host.invite(PEER_ID)
        lobby_id = world.lobby_owned_by(HOST_ID).lobby_id
        assert world.lobby_invites == [(lobby_id, HOST_ID, PEER_ID)]

    def test_status(self, host, peer):
        """Test the status summary."""
        host.request_host()
        status = host.status()
        assert status["state"] == "hosting"
        assert status["local_id"] == HOST_ID
        assert status["self_host_id"] == HOST_ID
        assert status["is_group_owner"] is True
        assert status["lobby_token"] == str(status["group_id"])
        assert status["active_hosts"] == 0
        assert status["hosts"] == []
        assert status["last_scan"] is None
        assert status["bindings"][JOIN_GROUP] is None

        peer.tick()
        status = peer.status()
        assert status["state"] == "idle"
        assert [h["peer_id"] for h in status["hosts"]] == [HOST_ID]
        assert status["hosts"][0]["session_name"] == "Alice's Co-op"
        assert status["last_scan"]["hosts_found"] == 1


class TestWrappedIdentifiers:
    """Tests against a platform that only accepts wrapped identifiers."""

    def test_full_flow(self):
        """Test host, discovery, join and send with wrapped ids."""
        clock = FakeClock()
        world = SimulatedWorld(app_id=APP_ID, wrapped_ids=True)
        world.add_user(HOST_ID, "Alice", app_id=APP_ID)
        world.add_user(PEER_ID, "Bob", app_id=APP_ID)
        world.befriend(HOST_ID, PEER_ID)
        host = make(world, HOST_ID, clock, wrapped=True)
        peer = make(world, PEER_ID, clock, wrapped=True)

        assert host.request_host()
        assert host.lifecycle.group_id == world.lobby_owned_by(HOST_ID).lobby_id

        peer.tick()
        assert peer.request_auto_join()
        assert peer.binder.binding(JOIN_GROUP).working_shape.wrap_ids == (0,)
        assert peer.send(HOST_ID, b"ping")
        assert world.packets[-1].data == b"ping"
        assert host.accept_session(PEER_ID)
        assert host.receive() == [ReceivedPacket(PEER_ID, b"ping")]
        assert host.invite(PEER_ID)
