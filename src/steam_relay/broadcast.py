"""
Broadcast fan-out: the set of live push-channel connections.

Every connection gets its own FIFO queue and writer task. broadcast() and
register() only enqueue, never suspend, so frames reach each connection in
the order they were issued and a fresh connection always sees its snapshot
before anything broadcast after it joined. A failed write is logged on that
connection alone; removal happens only through unregister().
"""

import asyncio
import itertools
import logging
from typing import Any, Iterable, Optional, Protocol

from steam_relay.errors import ChannelSendFailure
from steam_relay.models.protocol import ServerEvent, encode_event

logger = logging.getLogger("steam_relay.broadcast")

_ids = itertools.count(1)


class WebSocketLike(Protocol):
    async def send_str(self, data: str) -> Any: ...


class PushConnection:
    """One browser session. Frames are written by a dedicated writer task."""

    def __init__(self, ws: WebSocketLike, connection_id: Optional[str] = None):
        self.ws = ws
        self.id = connection_id or f"conn-{next(_ids)}"
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._writer: Optional[asyncio.Task[None]] = None
        self.closed = False

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.get_running_loop().create_task(self._pump())

    def enqueue(self, frame: str) -> None:
        if self.closed:
            return
        self._queue.put_nowait(frame)

    async def send(self, frame: str) -> None:
        try:
            await self.ws.send_str(frame)
        except Exception as e:
            raise ChannelSendFailure(self.id, f"send failed: {e}") from e

    async def _pump(self) -> None:
        while True:
            frame = await self._queue.get()
            try:
                if frame is None:
                    return
                await self.send(frame)
            except ChannelSendFailure as e:
                logger.error(f"Failed to send to WebSocket client {e.connection_id}: {e}")
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        await self._queue.join()

    async def stop(self) -> None:
        """Flush what is queued, then end the writer."""
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(None)
        if self._writer is not None:
            await self._writer
            self._writer = None

    def __repr__(self) -> str:
        return f"PushConnection(id={self.id!r})"


class ConnectionRegistry:
    def __init__(self) -> None:
        self._connections: dict[str, PushConnection] = {}

    @property
    def count(self) -> int:
        return len(self._connections)

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, conn: object) -> bool:
        return isinstance(conn, PushConnection) and conn.id in self._connections

    def register(self, ws: WebSocketLike, snapshot: Iterable[ServerEvent]) -> PushConnection:
        """Add a connection and queue its initial snapshot in one step."""
        conn = PushConnection(ws)
        for event in snapshot:
            conn.enqueue(encode_event(event))
        self._connections[conn.id] = conn
        conn.start()
        logger.info(f"WebSocket client connected ({conn.id}, {len(self._connections)} total)")
        return conn

    async def unregister(self, conn: PushConnection) -> None:
        if self._connections.pop(conn.id, None) is None:
            return
        logger.info(f"WebSocket client disconnected ({conn.id}, {len(self._connections)} left)")
        await conn.stop()

    def broadcast(self, event: ServerEvent) -> None:
        frame = encode_event(event)
        logger.debug(f"Broadcasting to {len(self._connections)} clients: {event.type}")
        for conn in list(self._connections.values()):
            conn.enqueue(frame)

    def send_to(self, conn: PushConnection, event: ServerEvent) -> None:
        conn.enqueue(encode_event(event))

    async def drain(self) -> None:
        """Wait until every queued frame has been attempted."""
        for conn in list(self._connections.values()):
            await conn.drain()

    async def close(self) -> None:
        conns = list(self._connections.values())
        self._connections.clear()
        for conn in conns:
            await conn.stop()
