"""
Steam adapter on the ValvePython `steam` library.

SteamClient is gevent based, so it lives on its own worker thread with its
own hub. Callbacks from that thread are handed to the asyncio loop with
call_soon_threadsafe; the relationship table and persona cache are updated
on the loop thread right before the matching event is emitted. Capability
calls go the other way through the hub's run_callback_threadsafe and are
awaited as concurrent futures.
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Callable, Iterable, Optional

import gevent
from steam.client import SteamClient
from steam.enums import EFriendRelationship, EPersonaState, EResult
from steam.enums.emsg import EMsg

from steam_relay.credentials import Credentials
from steam_relay.errors import AuthError, DeliveryError
from steam_relay.models.events import (
    Disconnected,
    FriendListSynced,
    MessageReceived,
    PersonaUpdated,
    Relationship,
    RelationshipChanged,
    SessionEstablished,
)
from steam_relay.upstream import UpstreamAdapter

logger = logging.getLogger("steam_relay.steam_client")

LOGIN_TIMEOUT_S = 60.0


def _relationship(value: Any) -> Relationship:
    if value == EFriendRelationship.Friend:
        return Relationship.FRIEND
    if value == EFriendRelationship.RequestRecipient:
        return Relationship.PENDING_INCOMING
    return Relationship.NONE


def _sid(user: Any) -> str:
    return str(user.steam_id.as_64)


class SteamUpstream(UpstreamAdapter):
    def __init__(self) -> None:
        super().__init__()
        self._client: Optional[SteamClient] = None
        self._hub: Any = None
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._steam_id: Optional[str] = None
        self._connected = False
        self._relationships: dict[str, Relationship] = {}
        self._names: dict[str, str] = {}

    @property
    def steam_id(self) -> Optional[str]:
        return self._steam_id

    @property
    def connected(self) -> bool:
        return self._connected

    def relationships(self) -> dict[str, Relationship]:
        return dict(self._relationships)

    def persona_name(self, steam_id: str) -> Optional[str]:
        return self._names.get(steam_id)

    # --- loop-thread side ---

    def _post(self, fn: Callable[..., None], *args: Any) -> None:
        """Schedule fn on the asyncio loop from the gevent thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(fn, *args)
        except RuntimeError:
            # loop closed between the check and the call
            return

    def _apply_sync(self, table: dict[str, Relationship], names: dict[str, str]) -> None:
        self._relationships = table
        self._names.update(names)
        self.emit(FriendListSynced())

    def _apply_relationship(self, steam_id: str, relationship: Relationship, name: Optional[str]) -> None:
        if relationship == Relationship.NONE:
            self._relationships.pop(steam_id, None)
        else:
            self._relationships[steam_id] = relationship
        if name:
            self._names[steam_id] = name
        self.emit(RelationshipChanged(steam_id=steam_id, relationship=relationship))

    def _apply_persona(self, steam_id: str, name: str) -> None:
        self._names[steam_id] = name
        self.emit(PersonaUpdated(steam_id=steam_id, name=name))

    def _apply_logged_on(self, steam_id: str) -> None:
        self._steam_id = steam_id
        self._connected = True
        self.emit(SessionEstablished(steam_id=steam_id))

    def _apply_disconnected(self, reason: str) -> None:
        self._connected = False
        self.emit(Disconnected(reason=reason))

    # --- gevent-thread side ---

    def _wire(self, client: SteamClient) -> None:
        @client.on("logged_on")
        def on_logged_on() -> None:
            client.change_status(persona_state=EPersonaState.Online)
            self._post(self._apply_logged_on, str(client.steam_id.as_64))

        @client.on("disconnected")
        def on_disconnected() -> None:
            self._post(self._apply_disconnected, "connection lost")

        @client.on("error")
        def on_error(result: Any) -> None:
            logger.error(f"Steam client error: {result!r}")

        @client.friends.on("ready")
        def on_friends_ready() -> None:
            table: dict[str, Relationship] = {}
            names: dict[str, str] = {}
            for user in client.friends:
                rel = _relationship(user.relationship)
                if rel != Relationship.NONE:
                    table[_sid(user)] = rel
                if user.name:
                    names[_sid(user)] = user.name
            self._post(self._apply_sync, table, names)

        @client.friends.on("friend_invite")
        def on_friend_invite(user: Any) -> None:
            self._post(self._apply_relationship, _sid(user), Relationship.PENDING_INCOMING, user.name)

        @client.friends.on("friend_new")
        def on_friend_new(user: Any) -> None:
            self._post(self._apply_relationship, _sid(user), Relationship.FRIEND, user.name)

        @client.friends.on("friend_removed")
        def on_friend_removed(user: Any) -> None:
            self._post(self._apply_relationship, _sid(user), Relationship.NONE, None)

        @client.on(EMsg.ClientPersonaState)
        def on_persona_state(msg: Any) -> None:
            for friend in msg.body.friends:
                if friend.player_name:
                    self._post(self._apply_persona, str(friend.friendid), friend.player_name)

        @client.on("chat_message")
        def on_chat_message(user: Any, text: str) -> None:
            self._post(lambda: self.emit(MessageReceived(steam_id=_sid(user), text=text)))

    def _worker(self, creds: Credentials, login: "concurrent.futures.Future[Any]") -> None:
        self._hub = gevent.get_hub()
        client = SteamClient()
        self._client = client
        self._wire(client)
        try:
            result = client.login(creds.account_name, creds.password)
        except Exception as e:
            login.set_exception(e)
            return
        login.set_result(result)
        if result == EResult.OK:
            client.run_forever()

    def _call(self, fn: Callable[[], Any]) -> "asyncio.Future[Any]":
        """Run fn in a greenlet on the Steam thread; await the result on the loop."""
        if self._hub is None or self._client is None:
            raise DeliveryError("Not logged on to Steam")
        fut: concurrent.futures.Future[Any] = concurrent.futures.Future()

        def run() -> None:
            try:
                fut.set_result(fn())
            except Exception as e:
                fut.set_exception(e)

        self._hub.loop.run_callback_threadsafe(gevent.spawn, run)
        return asyncio.wrap_future(fut)

    # --- adapter surface ---

    async def log_on(self, credentials: Credentials) -> None:
        self._loop = asyncio.get_running_loop()
        login: concurrent.futures.Future[Any] = concurrent.futures.Future()
        self._thread = threading.Thread(
            target=self._worker, args=(credentials, login), name="steam-client", daemon=True,
        )
        self._thread.start()
        try:
            result = await asyncio.wait_for(asyncio.wrap_future(login), timeout=LOGIN_TIMEOUT_S)
        except asyncio.TimeoutError:
            raise AuthError(f"Timed out logging on to Steam after {LOGIN_TIMEOUT_S}s")
        except Exception as e:
            raise AuthError(f"Failed to log on to Steam: {e}")
        if result != EResult.OK:
            raise AuthError(f"Steam rejected log-on: {result!r}", code="auth_rejected")

    async def log_off(self) -> None:
        if self._client is None:
            return
        client = self._client
        await self._call(client.logout)
        self._connected = False
        if self._thread is not None:
            await asyncio.get_running_loop().run_in_executor(None, self._thread.join, 5.0)

    async def send_message(self, steam_id: str, text: str) -> None:
        if self._relationships.get(steam_id) != Relationship.FRIEND:
            raise DeliveryError(f"{steam_id} is not a friend", {"steam_id": steam_id})
        client = self._client
        try:
            await self._call(lambda: client.get_user(int(steam_id)).send_message(text))
        except DeliveryError:
            raise
        except Exception as e:
            raise DeliveryError(str(e), {"steam_id": steam_id})

    def request_personas(self, steam_ids: Iterable[str]) -> None:
        ids = [int(i) for i in steam_ids]
        if not ids or self._client is None:
            return
        client = self._client
        fut = self._call(lambda: client.request_persona_state(ids))
        fut.add_done_callback(self._log_failure)

    async def add_friend(self, steam_id: str) -> None:
        client = self._client
        try:
            await self._call(lambda: client.friends.add(int(steam_id)))
        except DeliveryError:
            raise
        except Exception as e:
            raise DeliveryError(str(e), {"steam_id": steam_id})

    async def remove_friend(self, steam_id: str) -> None:
        client = self._client
        try:
            await self._call(lambda: client.friends.remove(int(steam_id)))
        except DeliveryError:
            raise
        except Exception as e:
            raise DeliveryError(str(e), {"steam_id": steam_id})

    @staticmethod
    def _log_failure(fut: "asyncio.Future[Any]") -> None:
        if not fut.cancelled() and fut.exception() is not None:
            logger.error(f"Persona request failed: {fut.exception()}")
