"""
Inbound control channel.

The only command is ``{"action": "reloadSettings"}``, sent by whatever
surface edits the preferences. It is accepted in-process through
``ControlChannel.dispatch`` and over HTTP at ``POST /messages``.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import web

from .exceptions import ControlError

logger = logging.getLogger(__name__)

RELOAD_SETTINGS = "reloadSettings"

CommandHandler = Callable[[], Awaitable[Dict[str, Any]]]


class ControlChannel:
    """Routes control messages to their handlers."""

    def __init__(self):
        self._handlers: Dict[str, CommandHandler] = {}

    def register(self, action: str, handler: CommandHandler) -> None:
        self._handlers[action] = handler

    async def dispatch(self, message: Any) -> Dict[str, Any]:
        if not isinstance(message, dict) or not isinstance(message.get("action"), str):
            raise ControlError("Control message must be an object with an 'action'")
        action = message["action"]
        handler = self._handlers.get(action)
        if handler is None:
            raise ControlError(f"Unknown action: {action}", action=action)
        logger.info(f"Control command received: {action}")
        return await handler()

    async def handle(self, message: Any) -> Dict[str, Any]:
        """Like ``dispatch`` but reports failures in the response."""
        try:
            return await self.dispatch(message)
        except ControlError as e:
            logger.warning(str(e))
            return {"success": False, "error": e.message}


def create_control_app(channel: ControlChannel) -> web.Application:
    async def messages(request: web.Request) -> web.Response:
        try:
            message = await request.json()
        except ValueError:
            return web.json_response({"success": False, "error": "Invalid JSON"}, status=400)
        response = await channel.handle(message)
        return web.json_response(response, status=200 if response.get("success") else 400)

    app = web.Application()
    app.router.add_post("/messages", messages)
    return app


class ControlServer:
    """Serves a control channel on a local TCP port."""

    def __init__(self, channel: ControlChannel, host: str = "127.0.0.1", port: int = 8765):
        self.channel = channel
        self.host = host
        self.port = port
        self._runner: Optional[web.AppRunner] = None

    async def start(self) -> None:
        self._runner = web.AppRunner(create_control_app(self.channel))
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"Control server listening on http://{self.host}:{self.port}/messages")

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
