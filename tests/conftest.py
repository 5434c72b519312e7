"""Shared fakes: an in-process upstream adapter and a recording WebSocket."""

import json
from typing import Any, Iterable, Optional

import pytest

from steam_relay.broadcast import ConnectionRegistry
from steam_relay.commands import CommandHandler
from steam_relay.credentials import Credentials
from steam_relay.errors import AuthError, DeliveryError
from steam_relay.models.events import Relationship
from steam_relay.relay import Relay
from steam_relay.state import RelayState
from steam_relay.upstream import UpstreamAdapter

MY_ID = "76561198000000001"


class FakeUpstream(UpstreamAdapter):
    def __init__(self) -> None:
        super().__init__()
        self.table: dict[str, Relationship] = {}
        self.names: dict[str, str] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.fail: set[str] = set()  # capability names that raise DeliveryError
        self.password = "hunter2"
        self._steam_id: Optional[str] = None

    @property
    def steam_id(self) -> Optional[str]:
        return self._steam_id

    @property
    def connected(self) -> bool:
        return self._steam_id is not None

    async def log_on(self, credentials: Credentials) -> None:
        if credentials.password != self.password:
            raise AuthError("InvalidPassword")
        self._steam_id = MY_ID

    async def log_off(self) -> None:
        self.calls.append(("log_off",))
        self._steam_id = None

    async def send_message(self, steam_id: str, text: str) -> None:
        self.calls.append(("send_message", steam_id, text))
        if "send_message" in self.fail:
            raise DeliveryError("upstream rejected")

    def request_personas(self, steam_ids: Iterable[str]) -> None:
        self.calls.append(("request_personas", list(steam_ids)))

    async def add_friend(self, steam_id: str) -> None:
        self.calls.append(("add_friend", steam_id))
        if "add_friend" in self.fail:
            raise DeliveryError("upstream rejected")

    async def remove_friend(self, steam_id: str) -> None:
        self.calls.append(("remove_friend", steam_id))
        if "remove_friend" in self.fail:
            raise DeliveryError("upstream rejected")

    def relationships(self) -> dict[str, Relationship]:
        return dict(self.table)

    def persona_name(self, steam_id: str) -> Optional[str]:
        return self.names.get(steam_id)

    def calls_named(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]


class FakeWebSocket:
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[str] = []
        self.fail = fail

    async def send_str(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(data)

    @property
    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(s) for s in self.sent]

    def types(self) -> list[str]:
        return [f["type"] for f in self.frames]


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def relay(upstream: FakeUpstream) -> Relay:
    return Relay(upstream, RelayState(), ConnectionRegistry())


@pytest.fixture
def commands(relay: Relay) -> CommandHandler:
    return CommandHandler(relay)
