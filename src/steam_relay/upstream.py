"""
Upstream session adapter: the single logged-in Steam session.

The adapter reports events (persona, relationship, message) to registered
handlers in arrival order and exposes the capability calls the relay
needs. Relationship transitions are driven upstream; the adapter only
reports them.
"""

from typing import Callable, Iterable, Optional

from steam_relay.credentials import Credentials
from steam_relay.models.events import Relationship, UpstreamEventModel

EventHandler = Callable[[UpstreamEventModel], None]


class UpstreamAdapter:
    """Base adapter: handler bookkeeping plus the capability surface.

    Subclasses implement log_on/log_off, the capability calls and the
    authoritative lookups, and call emit() for every upstream event.
    """

    def __init__(self) -> None:
        self._event_handlers: list[EventHandler] = []

    # --- events ---

    def add_event_handler(self, handler: EventHandler) -> Callable[[], None]:
        """Add an event handler. Returns a cleanup function."""
        self._event_handlers.append(handler)

        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def on_event(self, handler: Optional[EventHandler]) -> None:
        """Set a single event handler (replaces all)."""
        self._event_handlers.clear()
        if handler is not None:
            self._event_handlers.append(handler)

    def emit(self, event: UpstreamEventModel) -> None:
        for handler in list(self._event_handlers):
            handler(event)

    # --- session ---

    @property
    def steam_id(self) -> Optional[str]:
        """SteamID64 of the logged-in account, None before log-on."""
        raise NotImplementedError

    @property
    def connected(self) -> bool:
        raise NotImplementedError

    async def log_on(self, credentials: Credentials) -> None:
        """Raises AuthError on bad credentials or network failure."""
        raise NotImplementedError

    async def log_off(self) -> None:
        raise NotImplementedError

    # --- capabilities ---

    async def send_message(self, steam_id: str, text: str) -> None:
        """Raises DeliveryError if the id is not a friend or upstream rejects."""
        raise NotImplementedError

    def request_personas(self, steam_ids: Iterable[str]) -> None:
        """Fire-and-forget; answers arrive later as PersonaUpdated events."""
        raise NotImplementedError

    async def add_friend(self, steam_id: str) -> None:
        raise NotImplementedError

    async def remove_friend(self, steam_id: str) -> None:
        raise NotImplementedError

    # --- lookups ---

    def relationships(self) -> dict[str, Relationship]:
        """Authoritative relationship table, id -> state."""
        raise NotImplementedError

    def relationship(self, steam_id: str) -> Relationship:
        return self.relationships().get(steam_id, Relationship.NONE)

    def persona_name(self, steam_id: str) -> Optional[str]:
        """Cached display name, None if no persona data has arrived yet."""
        raise NotImplementedError
