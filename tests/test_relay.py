"""Upstream events flowing through the relay into state and broadcasts."""

import logging

import pytest

from conftest import MY_ID, FakeWebSocket
from steam_relay.credentials import Credentials
from steam_relay.models.events import (
    Disconnected,
    FriendListSynced,
    MessageReceived,
    PersonaUpdated,
    Relationship,
    RelationshipChanged,
    SessionEstablished,
)
from steam_relay.models.state import MessageRecord
from steam_relay.relay import Broadcast, RequestPersonas


async def connected(relay):
    ws = FakeWebSocket()
    relay.connect(ws)
    await relay.registry.drain()
    ws.sent.clear()
    return ws


def relay_msg(text):
    return MessageRecord(sender="them", text=text)


@pytest.mark.asyncio
async def test_session_established_warms_up_personas(relay, upstream):
    upstream.table = {"1": Relationship.FRIEND, "2": Relationship.PENDING_INCOMING}
    upstream.emit(SessionEstablished(steam_id=MY_ID))
    assert upstream.calls_named("request_personas") == [("request_personas", ["1", "2"])]


def test_session_established_with_no_friends_requests_nothing(relay, upstream):
    effects = relay.transition(SessionEstablished(steam_id=MY_ID))
    assert effects == []


@pytest.mark.asyncio
async def test_friend_list_sync_upserts_friends_with_resolved_names(relay, upstream):
    ws = await connected(relay)
    upstream.table = {"1": Relationship.FRIEND, "2": Relationship.FRIEND, "3": Relationship.PENDING_INCOMING}
    upstream.names = {"1": "Gabe"}
    upstream.emit(FriendListSynced())
    await relay.registry.drain()

    assert {k: v.name for k, v in relay.state.friends.items()} == {"1": "Gabe", "2": "2"}
    assert ws.types() == ["friends"]
    assert set(ws.frames[0]["friends"]) == {"1", "2"}


def test_friend_list_sync_is_idempotent_and_prunes_non_friends(relay, upstream):
    upstream.table = {"1": Relationship.FRIEND, "2": Relationship.FRIEND}
    relay.transition(FriendListSynced())
    relay.state.append_message("1", relay_msg("keep me"))
    relay.state.append_message("9", relay_msg("stranger"))

    upstream.table = {"1": Relationship.FRIEND, "2": Relationship.PENDING_INCOMING}
    relay.transition(FriendListSynced())
    relay.transition(FriendListSynced())

    assert sorted(relay.state.friends) == ["1", "9"]
    assert [m.text for m in relay.state.get_friend("1").messages] == ["keep me"]


@pytest.mark.asyncio
async def test_persona_update_renames_friend(relay, upstream):
    upstream.table = {"1": Relationship.FRIEND}
    relay.transition(FriendListSynced())
    ws = await connected(relay)

    upstream.emit(PersonaUpdated(steam_id="1", name="Gabe"))
    await relay.registry.drain()

    assert relay.state.get_friend("1").name == "Gabe"
    assert ws.frames[-1]["friends"]["1"]["name"] == "Gabe"


def test_persona_update_for_stranger_is_ignored(relay, upstream):
    assert relay.transition(PersonaUpdated(steam_id="5", name="Nobody")) == []
    assert relay.state.friends == {}


@pytest.mark.asyncio
async def test_persona_update_names_pending_request(relay, upstream):
    ws = await connected(relay)
    upstream.emit(RelationshipChanged(steam_id="X", relationship=Relationship.PENDING_INCOMING))
    upstream.emit(PersonaUpdated(steam_id="X", name="Xavier"))
    await relay.registry.drain()

    assert [(r.steamId, r.name) for r in relay.state.requests] == [("X", "Xavier")]
    assert ws.types() == ["friendRequests", "friendRequests"]
    assert ws.frames[-1]["requests"] == [{"steamId": "X", "name": "Xavier"}]
    assert relay.state.friends == {}

    # same name again is not rebroadcast
    assert relay.transition(PersonaUpdated(steam_id="X", name="Xavier")) == []


@pytest.mark.asyncio
async def test_pending_request_appears_and_is_broadcast_once(relay, upstream):
    ws = await connected(relay)
    upstream.names = {"X": "Xavier"}
    upstream.emit(RelationshipChanged(steam_id="X", relationship=Relationship.PENDING_INCOMING))
    upstream.emit(RelationshipChanged(steam_id="X", relationship=Relationship.PENDING_INCOMING))
    await relay.registry.drain()

    assert [(r.steamId, r.name) for r in relay.state.requests] == [("X", "Xavier")]
    assert ws.types() == ["friendRequests"]
    assert ws.frames[0]["requests"] == [{"steamId": "X", "name": "Xavier"}]
    assert upstream.calls_named("request_personas") == []


def test_pending_request_from_unknown_persona_asks_for_it(relay, upstream):
    effects = relay.transition(RelationshipChanged(steam_id="X", relationship=Relationship.PENDING_INCOMING))
    assert isinstance(effects[0], RequestPersonas)
    assert effects[0].steam_ids == ["X"]
    assert isinstance(effects[1], Broadcast)
    assert relay.state.requests[0].name == "X"


@pytest.mark.asyncio
async def test_becoming_friend_resolves_request_and_adds_friend(relay, upstream):
    relay.transition(RelationshipChanged(steam_id="X", relationship=Relationship.PENDING_INCOMING))
    ws = await connected(relay)

    upstream.table = {"X": Relationship.FRIEND}
    upstream.names = {"X": "Xavier"}
    upstream.emit(RelationshipChanged(steam_id="X", relationship=Relationship.FRIEND))
    await relay.registry.drain()

    assert relay.state.requests == []
    assert relay.state.get_friend("X").name == "Xavier"
    assert ws.types() == ["friendRequests", "friends"]


@pytest.mark.asyncio
async def test_relationship_none_removes_friend_and_request(relay, upstream):
    upstream.table = {"1": Relationship.FRIEND}
    relay.transition(FriendListSynced())
    relay.state.add_or_update_request("1", "1")
    ws = await connected(relay)

    upstream.table = {}
    upstream.emit(RelationshipChanged(steam_id="1", relationship=Relationship.NONE))
    await relay.registry.drain()

    assert relay.state.friends == {}
    assert relay.state.requests == []
    assert ws.types() == ["friendRequests", "friends"]


@pytest.mark.asyncio
async def test_message_from_unknown_id_creates_friend_and_looks_up_persona(relay, upstream):
    ws = await connected(relay)
    upstream.emit(MessageReceived(steam_id="Y", text="hello"))
    await relay.registry.drain()

    record = relay.state.get_friend("Y")
    assert record.name == "Y"
    assert [(m.sender, m.text) for m in record.messages] == [("them", "hello")]
    assert upstream.calls_named("request_personas") == [("request_personas", ["Y"])]
    assert ws.types() == ["message", "friends"]
    assert ws.frames[0]["friendId"] == "Y"
    assert ws.frames[0]["message"]["from"] == "them"


@pytest.mark.asyncio
async def test_message_from_known_friend_only_broadcasts_message(relay, upstream):
    relay.state.upsert_friend("1", "Gabe")
    ws = await connected(relay)
    upstream.emit(MessageReceived(steam_id="1", text="yo"))
    await relay.registry.drain()

    assert ws.types() == ["message"]
    assert upstream.calls_named("request_personas") == []


@pytest.mark.asyncio
async def test_own_message_echo_is_skipped(relay, upstream):
    await upstream.log_on(Credentials(account_name="me", password="hunter2"))
    assert relay.transition(MessageReceived(steam_id=MY_ID, text="echo")) == []
    assert relay.state.friends == {}


def test_disconnected_is_only_logged(relay, caplog):
    with caplog.at_level(logging.WARNING, logger="steam_relay.relay"):
        assert relay.transition(Disconnected(reason="NoConnection")) == []
    assert "NoConnection" in caplog.text


def test_dispatch_swallows_handler_errors(relay, upstream, caplog):
    def broken():
        raise RuntimeError("table unavailable")
    upstream.relationships = broken

    with caplog.at_level(logging.ERROR, logger="steam_relay.relay"):
        upstream.emit(FriendListSynced())
    assert "Failed to handle Steam event" in caplog.text


def test_detach_stops_dispatch(relay, upstream):
    relay.detach()
    upstream.emit(MessageReceived(steam_id="Y", text="hello"))
    assert relay.state.friends == {}
