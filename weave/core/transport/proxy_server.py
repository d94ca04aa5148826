"""
Device Proxy Server - aiohttp WebSocket endpoint for live device proxies.

Each phone/watch/glass proxy opens a WebSocket to ``/ws`` and announces
the devices it fronts. Inbound messages become proxy events handed to the
engine; outbound actions are queued on the owning socket without waiting.

Inbound messages::

    {"type": "join", "id": "...", "deviceType": "watch", "name": "..."}
    {"type": "leave", "id": "..."}
    {"type": "event", "id": "...", "event": "shake", "value": ..., "timestamp": ...}

Outbound messages::

    {"verb": "show", "payload": ...}
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

from aiohttp import WSMsgType, web

from weave.core.devices.events import (
    DeviceJoinedEvent,
    DeviceLeftEvent,
    ProxyEvent,
    ProxyEventHandler,
    event_from_message,
)
from weave.core.logging_utils import get_module_logger

logger = get_module_logger("DeviceProxyServer")


class DeviceProxyServer:
    """
    WebSocket server that implements the Transport protocol.

    Usage:
        server = DeviceProxyServer(host="0.0.0.0", port=9999)
        server.set_event_handler(engine.handle_event)
        engine.transport = server
        await server.start()
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 9999):
        self.host = host
        self.port = port

        self._handler: Optional[ProxyEventHandler] = None
        self._sockets: dict[str, web.WebSocketResponse] = {}
        self._pending: set[asyncio.Task] = set()

        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._running = False

    # =========================================================================
    # Application
    # =========================================================================

    def create_app(self) -> web.Application:
        """Create the aiohttp application (also used directly by tests)."""
        app = web.Application()
        app["proxy_server"] = self
        app.router.add_get("/ws", self._handle_ws)
        app.router.add_get("/health", self._handle_health)
        app.on_shutdown.append(self._on_shutdown)
        return app

    def set_event_handler(self, handler: ProxyEventHandler) -> None:
        self._handler = handler

    async def start(self) -> None:
        """Start serving (non-blocking)."""
        if self._running:
            logger.warning("Proxy server already running")
            return

        self._app = self.create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()

        self._running = True
        logger.info("Device proxy server listening on ws://%s:%d/ws", self.host, self.port)

    async def stop(self) -> None:
        if not self._running:
            return

        logger.info("Stopping device proxy server...")
        if self._site:
            await self._site.stop()
            self._site = None
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        self._app = None
        self._running = False
        logger.info("Device proxy server stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}/ws"

    @property
    def connected_device_ids(self) -> list[str]:
        return list(self._sockets)

    # =========================================================================
    # Transport
    # =========================================================================

    def send(self, device_id: str, verb: str, payload: Any = None) -> None:
        """Queue ``verb`` for a device; never waits and never raises."""
        ws = self._sockets.get(device_id)
        if ws is None or ws.closed:
            logger.warning("No proxy connection for %s, dropping %s", device_id, verb)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, dropping %s for %s", verb, device_id)
            return

        task = loop.create_task(self._send(ws, device_id, verb, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, ws: web.WebSocketResponse, device_id: str, verb: str, payload: Any) -> None:
        try:
            await ws.send_json({"verb": verb, "payload": payload})
        except Exception as e:
            logger.error(f"Failed to send {verb} to {device_id}: {e}")

    async def drain(self) -> None:
        """Wait for queued outbound messages (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # =========================================================================
    # Handlers
    # =========================================================================

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "devices": len(self._sockets)})

    async def _handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        owned: list[str] = []
        logger.info("Proxy connected from %s", request.remote)

        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    self._handle_text(ws, msg.data, owned)
                elif msg.type == WSMsgType.ERROR:
                    logger.error("Proxy socket error: %s", ws.exception())
                    break
        finally:
            for device_id in owned:
                if self._sockets.get(device_id) is ws:
                    del self._sockets[device_id]
                    self._dispatch(DeviceLeftEvent(device_id=device_id))
            logger.info("Proxy disconnected (%d devices)", len(owned))

        return ws

    def _handle_text(self, ws: web.WebSocketResponse, data: str, owned: list[str]) -> None:
        try:
            message = json.loads(data)
            if not isinstance(message, dict):
                raise ValueError("proxy message must be a JSON object")
            event = event_from_message(message)
        except ValueError as e:
            logger.warning("Ignoring malformed proxy message: %s", e)
            return

        if isinstance(event, DeviceJoinedEvent):
            # A rejected join must not take over an id owned elsewhere.
            if not self._dispatch(event):
                logger.warning("Join for %s was rejected, socket not bound", event.device_id)
                return
            self._sockets[event.device_id] = ws
            if event.device_id not in owned:
                owned.append(event.device_id)
            return

        if isinstance(event, DeviceLeftEvent):
            if event.device_id not in owned:
                logger.warning("Ignoring leave for %s, not joined on this socket", event.device_id)
                return
            owned.remove(event.device_id)
            if self._sockets.get(event.device_id) is ws:
                del self._sockets[event.device_id]

        self._dispatch(event)

    def _dispatch(self, event: ProxyEvent) -> bool:
        """Hand ``event`` to the handler; True when the handler accepted it."""
        if self._handler is None:
            logger.debug("No event handler registered, dropping %s", event)
            return False
        try:
            return bool(self._handler(event))
        except Exception as e:
            logger.error(f"Error in proxy event handler: {e}")
            return False

    async def _on_shutdown(self, app: web.Application) -> None:
        await self.drain()
        for ws in list(self._sockets.values()):
            await ws.close()
        self._sockets.clear()


__all__ = ["DeviceProxyServer"]
