"""Group session manager: ties a RelayClient to the local timer.

The host's timer is authoritative. While hosting, the manager pushes a full
timer snapshot every ``state_sync_interval`` seconds; participants overwrite
their local timer with whatever the host last sent and never count down on
their own. Role changes (failover, host transfer) are learned from the
relay's roster broadcasts.

None of the public methods raise on network trouble: failures show up as
connection-state changes.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable

from pomojam_cli.group.client import RelayClient
from pomojam_cli.group.messages import (
    CONTROL_ACTIONS,
    ConnectionState,
    ControlAction,
    ControlMessage,
    ErrorMessage,
    GroupMessage,
    JoinMessage,
    LeaveMessage,
    Participant,
    ParticipantUpdateMessage,
    StateSyncMessage,
    TransferHostMessage,
)
from pomojam_cli.group.session_code import (
    generate_session_code,
    normalize_session_code,
    validate_session_code,
)
from pomojam_cli.models.config_models import GroupConfig
from pomojam_cli.models.focus.timer import Pomodoro

logger = logging.getLogger(__name__)

DEFAULT_PARTICIPANT_NAME = "Anonymous"


def generate_participant_id() -> str:
    """Opaque per-session participant id."""
    return uuid.uuid4().hex[:12]


class SessionManager:
    """Host/participant-aware control surface for one group session at a time."""

    def __init__(
        self,
        pomodoro: Pomodoro,
        *,
        config: GroupConfig | None = None,
        on_state_change: Callable[[], None] | None = None,
        on_participants_change: Callable[[list[Participant]], None] | None = None,
        on_connection_change: Callable[[ConnectionState], None] | None = None,
        on_host_change: Callable[[bool], None] | None = None,
        client_factory: Callable[..., RelayClient] = RelayClient,
    ):
        self.pomodoro = pomodoro
        self.config = config or GroupConfig()
        self.on_state_change = on_state_change
        self.on_participants_change = on_participants_change
        self.on_connection_change = on_connection_change
        self.on_host_change = on_host_change
        self._client_factory = client_factory

        self._client: RelayClient | None = None
        self._session_code = ""
        self._participant_id = ""
        self._participants: list[Participant] = []
        self._connection_state: ConnectionState = "disconnected"
        self._is_host = False
        self._broadcast_task: asyncio.Task | None = None

    # Accessors

    @property
    def is_active(self) -> bool:
        return self._client is not None

    @property
    def is_host(self) -> bool:
        return self._is_host

    @property
    def session_code(self) -> str:
        return self._session_code

    @property
    def participant_id(self) -> str:
        return self._participant_id

    @property
    def participants(self) -> list[Participant]:
        return list(self._participants)

    @property
    def other_participants(self) -> list[Participant]:
        """Everyone but this client, e.g. for a transfer-host picker."""
        return [p for p in self._participants if p.id != self._participant_id]

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection_state

    def is_connected(self) -> bool:
        return self._connection_state == "connected"

    # Session lifecycle

    async def start_hosting(self, name: str, server: str | None = None) -> str | None:
        """Host a new session. Returns its code, or None if one is active."""
        if self.is_active:
            return None

        code = generate_session_code()
        client = self._open_session(code, name, server, is_host=True)
        self._start_broadcast()
        logger.info("hosting session %s as %s", code, self._participant_id)
        await client.connect()
        return code

    async def join_session(
        self, code: str, name: str, server: str | None = None
    ) -> bool:
        """Join an existing session. False if one is active or the code is invalid."""
        if self.is_active:
            return False

        code = normalize_session_code(code)
        if not validate_session_code(code):
            logger.info("rejected malformed session code %r", code)
            return False

        self.pomodoro.set_group_mode(True)
        client = self._open_session(code, name, server, is_host=False)
        logger.info("joining session %s as %s", code, self._participant_id)
        await client.connect()
        return True

    async def disconnect(self) -> None:
        """Leave the session. Safe to call when no session is active."""
        self._stop_broadcast()
        client, self._client = self._client, None
        if client is not None:
            await client.disconnect()
            logger.info("left session %s", self._session_code)

        self.pomodoro.set_group_mode(False)
        self._is_host = False
        self._participants = []
        self._session_code = ""
        self._connection_state = "disconnected"

    def _open_session(
        self, code: str, name: str, server: str | None, *, is_host: bool
    ) -> RelayClient:
        self._session_code = code
        self._participant_id = generate_participant_id()
        self._participants = []
        self._is_host = is_host
        self._client = self._client_factory(
            code,
            self._participant_id,
            name.strip() or DEFAULT_PARTICIPANT_NAME,
            is_host,
            server=server or self.config.server,
            on_message=self._handle_message,
            on_connection_change=self._handle_connection_change,
            on_participants_update=self._handle_participants_update,
            max_reconnect_attempts=self.config.max_reconnect_attempts,
            reconnect_delay_base=self.config.reconnect_delay_base,
            connection_timeout=self.config.connection_timeout,
        )
        return self._client

    # Host controls

    def send_control(self, action: ControlAction) -> None:
        """Apply a timer action as host and relay it to everyone else.

        Ignored for participants. The snapshot goes out before the control
        message so participants already hold the new state when the hint lands.
        """
        if action not in CONTROL_ACTIONS:
            logger.warning("ignored unknown control action %r", action)
            return
        if not self._is_host or self._client is None:
            return

        if action == "start":
            self.pomodoro.start()
        elif action == "pause":
            self.pomodoro.pause()
        elif action == "reset":
            self.pomodoro.reset()
        else:
            self.pomodoro.skip()

        client = self._client
        if client.is_connected():
            self._broadcast_state()
            client.send(ControlMessage(sender_id=self._participant_id, action=action))

    def transfer_host(self, target_id: str) -> None:
        """Ask the relay to make ``target_id`` host.

        The local role only changes once the relay's roster confirms it.
        """
        client = self._client
        if not self._is_host or client is None or not client.is_connected():
            return
        if target_id == self._participant_id:
            return
        if not any(p.id == target_id for p in self._participants):
            logger.info("transfer to unknown participant %s ignored", target_id)
            return

        client.send(
            TransferHostMessage(sender_id=self._participant_id, new_host_id=target_id)
        )

    # State broadcast

    def _start_broadcast(self) -> None:
        if self._broadcast_task is not None and not self._broadcast_task.done():
            return
        self._broadcast_task = asyncio.get_running_loop().create_task(
            self._broadcast_loop()
        )

    def _stop_broadcast(self) -> None:
        task, self._broadcast_task = self._broadcast_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _broadcast_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.state_sync_interval)
            self._broadcast_state()

    def _broadcast_state(self) -> None:
        # Role is checked at send time: a demotion may land between ticks
        client = self._client
        if not self._is_host or client is None or not client.is_connected():
            return
        client.send(
            StateSyncMessage(
                sender_id=self._participant_id,
                state=self.pomodoro.get_state(),
            )
        )

    # Relay events

    def _handle_message(self, message: GroupMessage) -> None:
        if isinstance(message, StateSyncMessage):
            if not self._is_host and message.sender_id != self._participant_id:
                self.pomodoro.set_state(message.state)
                self._notify_state_change()
        elif isinstance(message, ControlMessage):
            # The effect already arrived with the paired state-sync
            if not self._is_host:
                self._notify_state_change()
        elif isinstance(message, ErrorMessage):
            logger.warning("relay reported an error: %s", message.message)
        elif isinstance(message, ParticipantUpdateMessage):
            pass  # delivered through _handle_participants_update
        elif isinstance(message, (JoinMessage, LeaveMessage, TransferHostMessage)):
            pass  # relay-bound; nothing to do if one is echoed back

    def _handle_participants_update(self, participants: list[Participant]) -> None:
        self._participants = list(participants)

        me = next((p for p in participants if p.id == self._participant_id), None)
        if me is not None and me.is_host != self._is_host:
            self._set_role(me.is_host)

        if self._is_host:
            # Newcomers should not wait a full interval for their first snapshot
            self._broadcast_state()

        if self.on_participants_change:
            self.on_participants_change(self.participants)

    def _set_role(self, is_host: bool) -> None:
        self._is_host = is_host
        if self._client is not None:
            self._client.is_host = is_host

        if is_host:
            self.pomodoro.set_group_mode(False)
            self._start_broadcast()
            logger.info("now hosting session %s", self._session_code)
        else:
            self._stop_broadcast()
            self.pomodoro.set_group_mode(True)
            logger.info("no longer hosting session %s", self._session_code)

        if self.on_host_change:
            self.on_host_change(is_host)

    def _handle_connection_change(self, state: ConnectionState) -> None:
        self._connection_state = state
        if self.on_connection_change:
            self.on_connection_change(state)

    def _notify_state_change(self) -> None:
        if self.on_state_change:
            self.on_state_change()
