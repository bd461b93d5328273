"""Websocket relay for group sessions.

Clients connect to ``/party/<code>?_pk=<id>&name=<name>&isHost=<bool>``.
The relay keeps one room per code (see :mod:`pomojam_cli.relay.room`) and
fans messages out to the connections of that room.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import NamedTuple
from urllib.parse import parse_qs, unquote, urlsplit

from websockets.asyncio.server import Server, ServerConnection, broadcast, serve
from websockets.exceptions import ConnectionClosed
from websockets.frames import CloseCode
from websockets.http11 import Request, Response

from pomojam_cli.group.session_code import normalize_session_code
from pomojam_cli.relay.room import Delivery, RoomArena

logger = logging.getLogger(__name__)

ROOM_PATH_PREFIX = "/party/"
DEFAULT_NAME = "Anonymous"


class RoomRequest(NamedTuple):
    """Connection parameters taken from the request path."""

    code: str
    participant_id: str | None
    name: str
    host_intent: bool


def parse_room_request(path: str) -> RoomRequest | None:
    """Parse ``/party/<code>?...``; None when the path names no room."""
    parts = urlsplit(path)
    if not parts.path.startswith(ROOM_PATH_PREFIX):
        return None
    code = normalize_session_code(unquote(parts.path[len(ROOM_PATH_PREFIX) :]))
    if not code or "/" in code:
        return None

    params = parse_qs(parts.query)
    participant_id = params.get("_pk", [""])[0] or None
    name = params.get("name", [""])[0].strip() or DEFAULT_NAME
    host_intent = params.get("isHost", ["false"])[0] == "true"
    return RoomRequest(code, participant_id, name, host_intent)


class RelayServer:
    """Room relay bound to a websocket listener."""

    def __init__(self, arena: RoomArena | None = None):
        self.arena = arena or RoomArena()
        self._connections: dict[tuple[str, str], ServerConnection] = {}
        self._server: Server | None = None

    @property
    def port(self) -> int:
        if self._server is None:
            raise RuntimeError("Relay is not running")
        return next(iter(self._server.sockets)).getsockname()[1]

    async def start(self, host: str = "127.0.0.1", port: int = 0) -> RelayServer:
        """Start listening. ``port=0`` picks a free port."""
        self._server = await serve(
            self.handler, host, port, process_request=self._process_request
        )
        logger.info("relay listening on %s:%d", host, self.port)
        return self

    async def stop(self) -> None:
        if self._server is None:
            return
        server, self._server = self._server, None
        server.close()
        await server.wait_closed()
        logger.info("relay stopped")

    async def __aenter__(self) -> RelayServer:
        if self._server is None:
            await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    def _process_request(
        self, connection: ServerConnection, request: Request
    ) -> Response | None:
        room_request = parse_room_request(request.path)
        if room_request is None:
            return connection.respond(HTTPStatus.NOT_FOUND, "Unknown room\n")
        # Read back by handler() once the handshake completes
        connection.room_request = room_request
        return None

    async def handler(self, connection: ServerConnection) -> None:
        """Serve one participant connection for its whole lifetime."""
        room_request: RoomRequest = connection.room_request

        code = room_request.code
        participant_id = room_request.participant_id or connection.id.hex
        key = (code, participant_id)

        previous = self._connections.get(key)
        self._connections[key] = connection
        self._dispatch(
            code,
            self.arena.connect(
                code, participant_id, room_request.name, room_request.host_intent
            ),
        )
        if previous is not None:
            await previous.close(CloseCode.NORMAL_CLOSURE, "replaced")

        try:
            async for raw in connection:
                self._dispatch(code, self.arena.handle_message(code, participant_id, raw))
        except ConnectionClosed as e:
            logger.debug("room %s: %s closed abnormally: %s", code, participant_id, e)
        finally:
            if self._connections.get(key) is connection:
                del self._connections[key]
                self._dispatch(code, self.arena.disconnect(code, participant_id))

    def _dispatch(self, code: str, deliveries: list[Delivery]) -> None:
        for delivery in deliveries:
            connections = [
                self._connections[(code, pid)]
                for pid in delivery.recipients
                if (code, pid) in self._connections
            ]
            broadcast(connections, delivery.payload)
