"""
HTTP + WebSocket surface.

GET / upgrades to the push channel when asked to, otherwise serves the
browser client's index.html from the static directory. The relay, command
handler and status task live on the aiohttp application.
"""

import asyncio
import logging
import weakref
from pathlib import Path
from typing import Optional

from aiohttp import WSCloseCode, WSMsgType, web

from steam_relay.broadcast import ConnectionRegistry
from steam_relay.commands import CommandHandler
from steam_relay.config import RelayConfig
from steam_relay.credentials import Credentials
from steam_relay.relay import Relay
from steam_relay.state import RelayState
from steam_relay.upstream import UpstreamAdapter

logger = logging.getLogger("steam_relay.server")

RELAY_KEY = web.AppKey("relay", Relay)
COMMANDS_KEY = web.AppKey("commands", CommandHandler)
CONFIG_KEY = web.AppKey("config", RelayConfig)
STATUS_TASK_KEY = web.AppKey("status_task", asyncio.Task)
SOCKETS_KEY = web.AppKey("sockets", weakref.WeakSet)


async def root_handler(request: web.Request) -> web.StreamResponse:
    ws = web.WebSocketResponse()
    if ws.can_prepare(request).ok:
        return await websocket_handler(request, ws)

    static_dir = request.app[CONFIG_KEY].static_dir
    if static_dir:
        index = Path(static_dir) / "index.html"
        if index.is_file():
            return web.FileResponse(index)
    raise web.HTTPNotFound()


async def websocket_handler(request: web.Request, ws: web.WebSocketResponse) -> web.WebSocketResponse:
    relay = request.app[RELAY_KEY]
    commands = request.app[COMMANDS_KEY]

    await ws.prepare(request)
    request.app[SOCKETS_KEY].add(ws)
    conn = relay.connect(ws)
    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                raw = msg.data
            elif msg.type == WSMsgType.BINARY:
                raw = msg.data.decode("utf-8", errors="replace")
            elif msg.type == WSMsgType.ERROR:
                logger.error(f"WebSocket error on {conn.id}: {ws.exception()}")
                continue
            else:
                continue
            try:
                await commands.handle(conn, raw)
            except Exception:
                logger.exception(f"Unhandled error processing message from {conn.id}")
    finally:
        await relay.disconnect(conn)
    return ws


async def status_loop(relay: Relay, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        logger.info(
            f"Connection check - Steam connected: {'YES' if relay.adapter.connected else 'NO'}, "
            f"friends: {len(relay.state.friends)}, requests: {len(relay.state.requests)}, "
            f"clients: {relay.registry.count}"
        )


async def _start_status(app: web.Application) -> None:
    interval = app[CONFIG_KEY].status_interval
    if interval > 0:
        app[STATUS_TASK_KEY] = asyncio.create_task(status_loop(app[RELAY_KEY], interval))


async def _shutdown(app: web.Application) -> None:
    task = app.get(STATUS_TASK_KEY)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    for ws in set(app[SOCKETS_KEY]):
        await ws.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")
    await app[RELAY_KEY].registry.close()


def create_app(relay: Relay, config: Optional[RelayConfig] = None) -> web.Application:
    config = config or RelayConfig()
    app = web.Application()
    app[RELAY_KEY] = relay
    app[COMMANDS_KEY] = CommandHandler(relay)
    app[CONFIG_KEY] = config
    app[SOCKETS_KEY] = weakref.WeakSet()

    app.router.add_get("/", root_handler)
    if config.static_dir:
        if Path(config.static_dir).is_dir():
            app.router.add_static("/", config.static_dir)
        else:
            logger.warning(f"Static directory {config.static_dir} not found, not serving the frontend")

    app.on_startup.append(_start_status)
    app.on_shutdown.append(_shutdown)
    return app


async def run_relay(config: RelayConfig, adapter: UpstreamAdapter, credentials: Credentials) -> None:
    """Log on upstream, then serve until cancelled. AuthError propagates."""
    relay = Relay(adapter, RelayState(), ConnectionRegistry())
    await adapter.log_on(credentials)

    app = create_app(relay, config)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, config.host, config.port)
    await site.start()
    logger.info(f"Backend running on http://{config.host}:{config.port}")
    if config.static_dir:
        logger.info(f"Frontend available at http://{config.host}:{config.port}")

    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
        relay.detach()
        await adapter.log_off()
