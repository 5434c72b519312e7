"""
Relay core: turns upstream events into state changes and broadcasts.

Each upstream variant has a transition method that mutates RelayState and
returns the side effects to run afterwards (broadcasts, persona lookups).
dispatch() logs every event before handling it and never lets an error
escape into the adapter.
"""

import logging
from typing import Iterable, Union

from steam_relay.broadcast import ConnectionRegistry, PushConnection, WebSocketLike
from steam_relay.models.events import (
    Disconnected,
    FriendListSynced,
    MessageReceived,
    PersonaUpdated,
    Relationship,
    RelationshipChanged,
    SessionEstablished,
    UpstreamEventModel,
)
from steam_relay.models.protocol import MessageEvent, ServerEvent
from steam_relay.models.state import MessageRecord
from steam_relay.state import RelayState
from steam_relay.upstream import UpstreamAdapter

logger = logging.getLogger("steam_relay.relay")


class Broadcast:
    __slots__ = ("event",)

    def __init__(self, event: ServerEvent):
        self.event = event

    def __repr__(self) -> str:
        return f"Broadcast(type={self.event.type!r})"


class RequestPersonas:
    __slots__ = ("steam_ids",)

    def __init__(self, steam_ids: Iterable[str]):
        self.steam_ids = list(steam_ids)

    def __repr__(self) -> str:
        return f"RequestPersonas({self.steam_ids!r})"


Effect = Union[Broadcast, RequestPersonas]


class Relay:
    def __init__(self, adapter: UpstreamAdapter, state: RelayState, registry: ConnectionRegistry):
        self.adapter = adapter
        self.state = state
        self.registry = registry
        self._remove_handler = adapter.add_event_handler(self.dispatch)

    def detach(self) -> None:
        self._remove_handler()

    # --- push channel ---

    def connect(self, ws: WebSocketLike) -> PushConnection:
        return self.registry.register(ws, [self.state.friends_event(), self.state.requests_event()])

    async def disconnect(self, conn: PushConnection) -> None:
        await self.registry.unregister(conn)

    # --- upstream ---

    def dispatch(self, event: UpstreamEventModel) -> None:
        logger.debug(f"Steam event: {event.type} {event.model_dump(exclude={'type'})}")
        try:
            effects = self.transition(event)
            self.run_effects(effects)
        except Exception:
            logger.exception(f"Failed to handle Steam event {event.type}")

    def transition(self, event: UpstreamEventModel) -> list[Effect]:
        if isinstance(event, SessionEstablished):
            return self._on_session_established(event)
        if isinstance(event, FriendListSynced):
            return self._on_friend_list_synced()
        if isinstance(event, PersonaUpdated):
            return self._on_persona_updated(event)
        if isinstance(event, RelationshipChanged):
            return self._on_relationship_changed(event)
        if isinstance(event, MessageReceived):
            return self._on_message_received(event)
        if isinstance(event, Disconnected):
            logger.warning(f"Disconnected from Steam: {event.reason}")
            return []
        logger.warning(f"Unhandled Steam event: {event!r}")
        return []

    def run_effects(self, effects: Iterable[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, Broadcast):
                self.registry.broadcast(effect.event)
            elif isinstance(effect, RequestPersonas):
                if effect.steam_ids:
                    self.adapter.request_personas(effect.steam_ids)

    def _on_session_established(self, event: SessionEstablished) -> list[Effect]:
        logger.info(f"Logged into Steam as {event.steam_id}")
        ids = list(self.adapter.relationships())
        logger.info(f"Found {len(ids)} relationships, requesting personas")
        if not ids:
            return []
        return [RequestPersonas(ids)]

    def _on_friend_list_synced(self) -> list[Effect]:
        self.reconcile()
        return [Broadcast(self.state.friends_event())]

    def reconcile(self) -> None:
        """Bring the friend map in line with the adapter's relationship table.

        Ids missing from the table (known only from a message) are kept.
        """
        table = self.adapter.relationships()
        for steam_id, relationship in table.items():
            if relationship == Relationship.FRIEND:
                self.state.upsert_friend(steam_id, self.adapter.persona_name(steam_id) or steam_id)
        for steam_id in self.state.friend_ids():
            relationship = table.get(steam_id)
            if relationship is not None and relationship != Relationship.FRIEND:
                self.state.remove_friend(steam_id)
        logger.info(f"Friends cache updated, {len(self.state.friends)} friends")

    def _on_persona_updated(self, event: PersonaUpdated) -> list[Effect]:
        name = event.name or event.steam_id
        effects: list[Effect] = []
        if self.state.rename_request(event.steam_id, name):
            logger.info(f"Friend request from {event.steam_id} is {name}")
            effects.append(Broadcast(self.state.requests_event()))

        is_friend = self.adapter.relationship(event.steam_id) == Relationship.FRIEND
        if is_friend or self.state.get_friend(event.steam_id) is not None:
            logger.info(f"Persona update: {name} ({event.steam_id})")
            self.state.upsert_friend(event.steam_id, name)
            effects.append(Broadcast(self.state.friends_event()))
        return effects

    def _on_relationship_changed(self, event: RelationshipChanged) -> list[Effect]:
        steam_id = event.steam_id
        effects: list[Effect] = []

        if event.relationship == Relationship.PENDING_INCOMING:
            known = self.adapter.persona_name(steam_id)
            if known is None:
                effects.append(RequestPersonas([steam_id]))
            if self.state.add_or_update_request(steam_id, known or steam_id):
                logger.info(f"Incoming friend request from {known or steam_id} ({steam_id})")
                effects.append(Broadcast(self.state.requests_event()))
            return effects

        if self.state.remove_request(steam_id):
            effects.append(Broadcast(self.state.requests_event()))

        if event.relationship == Relationship.FRIEND:
            logger.info(f"Friend relationship established with {steam_id}")
            self.reconcile()
        else:
            logger.info(f"Friend relationship ended with {steam_id}")
            self.state.remove_friend(steam_id)
        effects.append(Broadcast(self.state.friends_event()))
        return effects

    def _on_message_received(self, event: MessageReceived) -> list[Effect]:
        steam_id = event.steam_id
        if steam_id == self.adapter.steam_id:
            logger.debug("Skipping own message echo")
            return []
        record = MessageRecord(sender="them", text=event.text)
        created = self.state.append_message(steam_id, record)
        friend = self.state.get_friend(steam_id)
        logger.info(f"Incoming message from {friend.name if friend else steam_id} ({steam_id})")

        effects: list[Effect] = [Broadcast(MessageEvent(friendId=steam_id, message=record))]
        if created:
            logger.info(f"Received message from unknown friend {steam_id}, adding to friends list")
            effects.append(RequestPersonas([steam_id]))
            effects.append(Broadcast(self.state.friends_event()))
        return effects
