"""
Test doubles shared by the coophost test suite.
"""

LOCAL_ID = 76561198000000010
APP_ID = 311690

HOST_ID = 76561198000000001
PEER_ID = 76561198000000002


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeNative:
    """
    Native platform object exposing the snake_case adapter surface.

    Every call is recorded; names listed in `fail` raise at call time.
    """

    def __init__(self, local_id: int = LOCAL_ID):
        self.local_id = local_id
        self.presence = {}
        self.friends = []
        self.friend_presence = {}
        self.groups = {}
        self.joinable = {}
        self.metadata = {}
        self.sent = []
        self.join_result = True
        self.next_group = 109775240000000000
        self.calls = []
        self.fail = set()

    def _record(self, name, *args):
        self.calls.append((name, args))
        if name in self.fail:
            raise RuntimeError(f"{name} unavailable")

    def calls_to(self, name):
        return [args for called, args in self.calls if called == name]

    def get_local_identifier(self):
        self._record("get_local_identifier")
        return self.local_id

    def set_presence_attribute(self, key, value):
        self._record("set_presence_attribute", key, value)
        self.presence[key] = value
        return True

    def clear_presence(self):
        self._record("clear_presence")
        self.presence.clear()

    def create_session_group(self, visibility, max_members):
        self._record("create_session_group", visibility, max_members)
        group_id = self.next_group
        self.next_group += 1
        self.groups[group_id] = [self.local_id]
        return group_id

    def join_session_group(self, group_id):
        self._record("join_session_group", group_id)
        return self.join_result

    def leave_session_group(self, group_id):
        self._record("leave_session_group", group_id)
        self.groups.pop(group_id, None)

    def set_group_joinable(self, group_id, joinable):
        self._record("set_group_joinable", group_id, joinable)
        self.joinable[group_id] = joinable
        return True

    def set_group_metadata(self, group_id, key, value):
        self._record("set_group_metadata", group_id, key, value)
        self.metadata.setdefault(group_id, {})[key] = value
        return True

    def get_group_metadata(self, group_id, key):
        self._record("get_group_metadata", group_id, key)
        return self.metadata.get(group_id, {}).get(key, "")

    def get_group_owner(self, group_id):
        self._record("get_group_owner", group_id)
        return self.local_id if group_id in self.groups else 0

    def get_group_member_count(self, group_id):
        self._record("get_group_member_count", group_id)
        return len(self.groups.get(group_id, []))

    def get_group_member_at(self, group_id, index):
        self._record("get_group_member_at", group_id, index)
        return self.groups[group_id][index]

    def enumerate_friends(self):
        self._record("enumerate_friends")
        return list(self.friends)

    def get_friend_presence_attribute(self, friend_id, key):
        self._record("get_friend_presence_attribute", friend_id, key)
        return self.friend_presence.get(friend_id, {}).get(key, "")

    def send_data(self, peer_id, data):
        self._record("send_data", peer_id, data)
        self.sent.append((peer_id, data))
        return True

