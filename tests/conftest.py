"""
Shared fixtures for coophost tests.
"""

import pytest

from coophost.binding.binder import CapabilityBinder
from coophost.config import Config
from coophost.discovery.registry import HostRegistry
from coophost.identity import IdentityCache
from coophost.platform.simulated import SimulatedWorld

from fakes import APP_ID, HOST_ID, PEER_ID, FakeClock, FakeNative


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def native():
    return FakeNative()


@pytest.fixture
def config(tmp_path):
    return Config(data_dir=tmp_path, game_title="Co-op", target_app_id=APP_ID)


@pytest.fixture
def binder(native):
    return CapabilityBinder(native)


@pytest.fixture
def identity(binder):
    return IdentityCache(binder)


@pytest.fixture
def registry(identity, clock):
    return HostRegistry(identity, clock=clock)


@pytest.fixture
def world():
    """A host and a peer who are friends, both in the target game."""
    world = SimulatedWorld(app_id=APP_ID)
    world.add_user(HOST_ID, "Alice", app_id=APP_ID)
    world.add_user(PEER_ID, "Bob", app_id=APP_ID)
    world.befriend(HOST_ID, PEER_ID)
    return world
