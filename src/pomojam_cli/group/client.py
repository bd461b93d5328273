"""Relay client: one persistent connection to a group-session room.

The client owns reconnection. A dropped (or never established) transport is
retried with exponential backoff, ``base * 2 ** (attempt - 1)``, up to
``max_reconnect_attempts`` times; after that the client parks in the
``error`` state until :meth:`RelayClient.connect` is called again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import suppress
from typing import Protocol
from urllib.parse import quote, urlencode

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from pomojam_cli.group.messages import (
    ConnectionState,
    GroupMessage,
    JoinMessage,
    LeaveMessage,
    Participant,
    ParticipantUpdateMessage,
    encode_message,
    parse_message,
)
from pomojam_cli.models.config_models import DEFAULT_GROUP_SERVER

logger = logging.getLogger(__name__)

MAX_RECONNECT_ATTEMPTS = 5
RECONNECT_DELAY_BASE = 1.0  # seconds
CONNECTION_TIMEOUT = 10.0  # seconds
LEAVE_FLUSH_TIMEOUT = 1.0  # seconds

_SCHEMES = (
    ("https://", "wss"),
    ("wss://", "wss"),
    ("http://", "ws"),
    ("ws://", "ws"),
)


class Transport(Protocol):
    """The subset of a websocket connection the client relies on."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...


Connector = Callable[[str], Awaitable[Transport]]


async def _websocket_connector(url: str) -> Transport:
    return await ws_connect(url)


def build_room_url(
    server: str | None,
    session_code: str,
    participant_id: str,
    participant_name: str,
    is_host: bool,
) -> str:
    """Build the room address, e.g. ``wss://host/party/XYZ234?_pk=...``.

    ``https://`` and bare origins use ``wss``; ``http://`` uses plain ``ws``
    so a relay on localhost can be reached without TLS.
    """
    origin = (server or DEFAULT_GROUP_SERVER).strip().rstrip("/")
    scheme = "wss"
    for prefix, mapped in _SCHEMES:
        if origin.startswith(prefix):
            origin = origin[len(prefix) :]
            scheme = mapped
            break

    query = urlencode(
        {
            "_pk": participant_id,
            "name": participant_name,
            "isHost": "true" if is_host else "false",
        },
        quote_via=quote,
    )
    return f"{scheme}://{origin}/party/{quote(session_code)}?{query}"


def backoff_delay(base: float, attempt: int) -> float:
    """Delay before reconnect ``attempt`` (1-indexed)."""
    return base * 2 ** (attempt - 1)


class RelayClient:
    """Connection to one room on the relay.

    ``send`` is fire-and-forget: it silently drops the message unless the
    transport is open. Outgoing messages go through a queue drained by a
    writer task, so they leave in the order they were sent.
    """

    def __init__(
        self,
        session_code: str,
        participant_id: str,
        participant_name: str,
        is_host: bool,
        *,
        server: str | None = None,
        on_message: Callable[[GroupMessage], None] | None = None,
        on_connection_change: Callable[[ConnectionState], None] | None = None,
        on_participants_update: Callable[[list[Participant]], None] | None = None,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        reconnect_delay_base: float = RECONNECT_DELAY_BASE,
        connection_timeout: float = CONNECTION_TIMEOUT,
        connector: Connector | None = None,
    ):
        self.session_code = session_code
        self.participant_id = participant_id
        self.participant_name = participant_name
        self.is_host = is_host
        self.server = server
        self.on_message = on_message
        self.on_connection_change = on_connection_change
        self.on_participants_update = on_participants_update
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_delay_base = reconnect_delay_base
        self.connection_timeout = connection_timeout
        self._connector = connector or _websocket_connector

        self._state: ConnectionState = "disconnected"
        self._reconnect_attempts = 0
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._opening: asyncio.Task | None = None

        self._socket: Transport | None = None
        self._outbox: asyncio.Queue[str] | None = None
        self._reader: asyncio.Task | None = None
        self._writer: asyncio.Task | None = None

    @property
    def url(self) -> str:
        return build_room_url(
            self.server,
            self.session_code,
            self.participant_id,
            self.participant_name,
            self.is_host,
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    def is_connected(self) -> bool:
        return self._state == "connected"

    async def connect(self) -> None:
        """Open the connection. Also the manual retry after ``error``."""
        if self._state == "connected":
            return
        self._cancel_reconnect()
        # A backoff-triggered open may still be in its handshake
        _cancel_task(self._opening)
        self._opening = None
        self._reconnect_attempts = 0
        await self._open()

    def send(self, message: GroupMessage) -> None:
        """Queue a message; no-op unless connected."""
        if self._state != "connected" or self._outbox is None:
            return
        self._outbox.put_nowait(encode_message(message))

    async def disconnect(self) -> None:
        """Tear down the connection and suppress automatic reconnects.

        Safe to call repeatedly; only the first call sends ``leave``.
        """
        self._cancel_reconnect()
        was_connected = self._state == "connected"
        if self._state != "disconnected":
            self._set_state("disconnected")

        _cancel_task(self._opening)
        self._opening = None

        socket, outbox = self._socket, self._outbox
        if socket is None:
            return
        self._socket = None
        self._outbox = None

        if was_connected and outbox is not None:
            outbox.put_nowait(encode_message(LeaveMessage(sender_id=self.participant_id)))
            with suppress(asyncio.TimeoutError):
                await asyncio.wait_for(outbox.join(), timeout=LEAVE_FLUSH_TIMEOUT)

        _cancel_task(self._writer)
        _cancel_task(self._reader)
        self._writer = None
        self._reader = None
        await _close_quietly(socket)

    # Connection lifecycle

    async def _open(self) -> None:
        self._set_state("connecting")
        url = self.url
        try:
            socket = await asyncio.wait_for(
                self._connector(url), timeout=self.connection_timeout
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.warning("relay connection to %s failed: %s", self.session_code, e)
            self._handle_disconnect()
            return

        if self._state == "disconnected":
            # disconnect() won the race against the handshake
            await _close_quietly(socket)
            return
        self._attach(socket)

    def _attach(self, socket: Transport) -> None:
        loop = asyncio.get_running_loop()
        self._socket = socket
        self._outbox = asyncio.Queue()
        self._reconnect_attempts = 0
        self._set_state("connected")

        self._writer = loop.create_task(self._write_loop(socket, self._outbox))
        self._reader = loop.create_task(self._read_loop(socket))

        self.send(
            JoinMessage(
                sender_id=self.participant_id,
                name=self.participant_name,
                is_host=self.is_host,
            )
        )

    async def _read_loop(self, socket: Transport) -> None:
        try:
            async for raw in socket:
                self._handle_raw(raw)
        except ConnectionClosed as e:
            logger.info("relay connection closed: %s", e)
        except OSError as e:
            logger.warning("relay connection lost: %s", e)

        if socket is self._socket:
            self._detach()
            self._handle_disconnect()

    async def _write_loop(self, socket: Transport, outbox: asyncio.Queue[str]) -> None:
        while True:
            payload = await outbox.get()
            try:
                await socket.send(payload)
            except (ConnectionClosed, OSError) as e:
                logger.debug("dropped outgoing message: %s", e)
            finally:
                outbox.task_done()

    def _detach(self) -> None:
        _cancel_task(self._writer)
        self._writer = None
        self._reader = None
        self._socket = None
        self._outbox = None

    def _handle_disconnect(self) -> None:
        if self._state == "disconnected":
            return

        if self._reconnect_attempts < self.max_reconnect_attempts:
            self._reconnect_attempts += 1
            delay = backoff_delay(self.reconnect_delay_base, self._reconnect_attempts)
            self._set_state("connecting")
            logger.info(
                "reconnect attempt %d/%d in %.2fs",
                self._reconnect_attempts,
                self.max_reconnect_attempts,
                delay,
            )
            self._schedule_reconnect(delay)
        else:
            logger.error(
                "giving up on room %s after %d reconnect attempts",
                self.session_code,
                self._reconnect_attempts,
            )
            self._set_state("error")

    def _schedule_reconnect(self, delay: float) -> None:
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self._reconnect_handle = None
        if self._state == "disconnected":
            return
        self._opening = asyncio.get_running_loop().create_task(self._open())

    def _cancel_reconnect(self) -> None:
        handle, self._reconnect_handle = self._reconnect_handle, None
        if handle is not None:
            handle.cancel()

    # Inbound

    def _handle_raw(self, raw: str | bytes) -> None:
        message = parse_message(raw)
        if message is None:
            logger.debug("dropped malformed payload: %.80r", raw)
            return

        try:
            if self.on_message:
                self.on_message(message)
            if isinstance(message, ParticipantUpdateMessage) and self.on_participants_update:
                self.on_participants_update(message.participants)
        except Exception:
            logger.exception("message handler failed for %s", message.type)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        logger.debug("connection state %s -> %s", self._state, state)
        self._state = state
        if self.on_connection_change:
            self.on_connection_change(state)


def _cancel_task(task: asyncio.Task | None) -> None:
    if task is not None and not task.done() and task is not asyncio.current_task():
        task.cancel()


async def _close_quietly(socket: Transport) -> None:
    with suppress(ConnectionClosed, OSError):
        await socket.close()
