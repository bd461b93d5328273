"""Wire messages exchanged between group clients and the relay.

Every message is a JSON object with ``type``, ``senderId`` and ``timestamp``
(milliseconds since epoch) plus type-specific fields. Python attributes are
snake_case; the wire uses camelCase aliases.
"""

from __future__ import annotations

import time
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from pomojam_cli.models.focus.state import PomodoroState

ConnectionState = Literal["disconnected", "connecting", "connected", "error"]
ControlAction = Literal["start", "pause", "reset", "skip"]
CONTROL_ACTIONS: tuple[str, ...] = ("start", "pause", "reset", "skip")

SERVER_SENDER_ID = "server"


def now_ms() -> int:
    """Current time in milliseconds since epoch."""
    return int(time.time() * 1000)


class Participant(BaseModel):
    """One connection in a room, as seen in roster broadcasts."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    is_host: bool = Field(default=False, alias="isHost")
    joined_at: int = Field(alias="joinedAt")


class _BaseMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sender_id: str = Field(alias="senderId")
    timestamp: int = Field(default_factory=now_ms)


class JoinMessage(_BaseMessage):
    type: Literal["join"] = "join"
    name: str
    is_host: bool = Field(default=False, alias="isHost")


class LeaveMessage(_BaseMessage):
    type: Literal["leave"] = "leave"


class StateSyncMessage(_BaseMessage):
    type: Literal["state-sync"] = "state-sync"
    state: PomodoroState


class ControlMessage(_BaseMessage):
    type: Literal["control"] = "control"
    action: ControlAction


class ParticipantUpdateMessage(_BaseMessage):
    type: Literal["participant-update"] = "participant-update"
    participants: list[Participant]


class TransferHostMessage(_BaseMessage):
    type: Literal["transfer-host"] = "transfer-host"
    new_host_id: str = Field(alias="newHostId")


class ErrorMessage(_BaseMessage):
    type: Literal["error"] = "error"
    message: str


GroupMessage = Annotated[
    Union[
        JoinMessage,
        LeaveMessage,
        StateSyncMessage,
        ControlMessage,
        ParticipantUpdateMessage,
        TransferHostMessage,
        ErrorMessage,
    ],
    Field(discriminator="type"),
]

MESSAGE_TYPES: frozenset[str] = frozenset(
    {
        "join",
        "leave",
        "state-sync",
        "control",
        "participant-update",
        "transfer-host",
        "error",
    }
)

_adapter: TypeAdapter[GroupMessage] = TypeAdapter(GroupMessage)


def parse_message(raw: str | bytes) -> GroupMessage | None:
    """Parse a raw JSON payload into a typed message.

    Returns None for invalid JSON, non-object payloads, unknown types and
    schema violations.
    """
    try:
        return _adapter.validate_json(raw)
    except ValidationError:
        return None


def parse_payload(data: dict) -> GroupMessage | None:
    """Like :func:`parse_message` for an already-decoded JSON object."""
    try:
        return _adapter.validate_python(data)
    except ValidationError:
        return None


def encode_message(message: _BaseMessage) -> str:
    """Serialize a message with its camelCase wire names."""
    return message.model_dump_json(by_alias=True)
