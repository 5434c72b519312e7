"""
Relay state store: friends (name + message log) and pending friend requests.

One instance per process, owned by the relay and only touched from the
event loop thread. Every operation completes without suspending, so no two
mutations interleave.
"""

from typing import Optional

from steam_relay.models.protocol import FriendRequestsEvent, FriendsEvent
from steam_relay.models.state import FriendRecord, FriendRequest, MessageRecord


class RelayState:
    def __init__(self) -> None:
        self._friends: dict[str, FriendRecord] = {}
        self._requests: list[FriendRequest] = []

    @property
    def friends(self) -> dict[str, FriendRecord]:
        return self._friends

    @property
    def requests(self) -> list[FriendRequest]:
        return self._requests

    def get_friend(self, steam_id: str) -> Optional[FriendRecord]:
        return self._friends.get(steam_id)

    def friend_ids(self) -> list[str]:
        return list(self._friends)

    def has_request(self, steam_id: str) -> bool:
        return any(req.steamId == steam_id for req in self._requests)

    def upsert_friend(self, steam_id: str, name: str) -> FriendRecord:
        """Create or rename a friend. The message log is kept."""
        record = self._friends.get(steam_id)
        if record is None:
            record = FriendRecord(name=name)
            self._friends[steam_id] = record
        else:
            record.name = name
        return record

    def append_message(self, steam_id: str, message: MessageRecord) -> bool:
        """Append to a friend's log, creating the friend (named by id) if unseen.

        Returns True when the record had to be created.
        """
        created = False
        record = self._friends.get(steam_id)
        if record is None:
            record = FriendRecord(name=steam_id)
            self._friends[steam_id] = record
            created = True
        record.messages.append(message)
        return created

    def remove_friend(self, steam_id: str) -> bool:
        return self._friends.pop(steam_id, None) is not None

    def add_or_update_request(self, steam_id: str, name: str) -> bool:
        """Track a pending request. No-op (returns False) if the id is already pending."""
        if self.has_request(steam_id):
            return False
        self._requests.append(FriendRequest(steamId=steam_id, name=name))
        return True

    def rename_request(self, steam_id: str, name: str) -> bool:
        """Fill in a pending request's name once persona data arrives."""
        for i, req in enumerate(self._requests):
            if req.steamId == steam_id:
                if req.name == name:
                    return False
                self._requests[i] = FriendRequest(steamId=steam_id, name=name)
                return True
        return False

    def remove_request(self, steam_id: str) -> bool:
        for i, req in enumerate(self._requests):
            if req.steamId == steam_id:
                del self._requests[i]
                return True
        return False

    def friends_event(self) -> FriendsEvent:
        return FriendsEvent(friends=dict(self._friends))

    def requests_event(self) -> FriendRequestsEvent:
        return FriendRequestsEvent(requests=list(self._requests))
