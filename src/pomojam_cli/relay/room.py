"""Room state for the relay: roster, host arbitration and message routing.

Nothing here does I/O. Each operation returns the deliveries the network
layer should perform, which keeps host arbitration testable without sockets.
The relay is the single writer of every room's roster and host pointer.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import NamedTuple

from pomojam_cli.group.messages import (
    MESSAGE_TYPES,
    SERVER_SENDER_ID,
    Participant,
    ParticipantUpdateMessage,
    TransferHostMessage,
    encode_message,
    now_ms,
    parse_payload,
)

logger = logging.getLogger(__name__)

# Only the current host may fan these out.
HOST_ONLY_TYPES = frozenset({"state-sync", "control"})
# Only the relay itself may emit these.
SERVER_ONLY_TYPES = frozenset({"participant-update", "error"})


class Delivery(NamedTuple):
    """A payload and the participant ids it must be sent to."""

    recipients: tuple[str, ...]
    payload: str


@dataclass
class Room:
    """One active session code. Participants are kept in join order."""

    code: str
    participants: dict[str, Participant] = field(default_factory=dict)
    host_id: str | None = None
    _last_joined_at: int = field(default=0, repr=False)

    def next_joined_at(self) -> int:
        """A join timestamp strictly greater than any previous one in this room."""
        self._last_joined_at = max(now_ms(), self._last_joined_at + 1)
        return self._last_joined_at

    def roster(self) -> list[Participant]:
        return [p.model_copy() for p in self.participants.values()]

    def everyone(self) -> tuple[str, ...]:
        return tuple(self.participants)

    def everyone_but(self, participant_id: str) -> tuple[str, ...]:
        return tuple(pid for pid in self.participants if pid != participant_id)

    def promote_earliest(self) -> Participant | None:
        """Make the earliest-joined remaining participant host."""
        if not self.participants:
            self.host_id = None
            return None
        earliest = min(self.participants.values(), key=lambda p: p.joined_at)
        earliest.is_host = True
        self.host_id = earliest.id
        return earliest


class RoomArena:
    """All rooms on a relay, keyed by session code.

    A room is created by its first connection and disposed when its last
    participant disconnects. Rooms share no state.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, Room] = {}

    def __contains__(self, code: str) -> bool:
        return code in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def get(self, code: str) -> Room | None:
        return self._rooms.get(code)

    def connect(
        self, code: str, participant_id: str, name: str, host_intent: bool
    ) -> list[Delivery]:
        """Admit a connection and broadcast the roster.

        Host intent is advisory: it is granted only when the room has no host.
        A participant id already in the room (a reconnect that beat the close
        of its previous connection) keeps its entry.
        """
        room = self._rooms.get(code)
        if room is None:
            room = self._rooms[code] = Room(code=code)
            logger.info("room %s created", code)

        existing = room.participants.get(participant_id)
        if existing is not None:
            existing.name = name
            logger.info("room %s: %s reconnected", code, participant_id)
        else:
            participant = Participant(
                id=participant_id,
                name=name,
                is_host=False,
                joined_at=room.next_joined_at(),
            )
            if host_intent and room.host_id is None:
                participant.is_host = True
                room.host_id = participant_id
            elif host_intent:
                logger.info(
                    "room %s: %s asked to host but %s already is; admitted as participant",
                    code,
                    participant_id,
                    room.host_id,
                )
            room.participants[participant_id] = participant
            logger.info(
                "room %s: %s (%s) joined%s",
                code,
                participant_id,
                name,
                " as host" if participant.is_host else "",
            )

        return [self._roster_delivery(room)]

    def handle_message(
        self, code: str, sender_id: str, raw: str | bytes
    ) -> list[Delivery]:
        """Route one inbound payload from ``sender_id``."""
        room = self._rooms.get(code)
        if room is None or sender_id not in room.participants:
            return []

        try:
            payload = raw.decode() if isinstance(raw, bytes) else raw
            data = json.loads(payload)
        except ValueError:
            # UnicodeDecodeError is a ValueError too
            logger.debug("room %s: dropped malformed payload from %s", code, sender_id)
            return []
        if not isinstance(data, dict):
            return []

        msg_type = data.get("type")

        if msg_type not in MESSAGE_TYPES:
            # Forward-compatible default: relay unknown types to the whole room
            return [Delivery(room.everyone(), payload)]

        message = parse_payload(data)
        if message is None:
            logger.debug("room %s: dropped invalid %s from %s", code, msg_type, sender_id)
            return []

        if msg_type in HOST_ONLY_TYPES:
            if sender_id != room.host_id:
                logger.debug(
                    "room %s: dropped %s from non-host %s", code, msg_type, sender_id
                )
                return []
            return [Delivery(room.everyone_but(sender_id), payload)]

        if msg_type == "join":
            return [self._roster_delivery(room)]

        if msg_type == "leave":
            # Cleanup happens when the transport closes
            return []

        if isinstance(message, TransferHostMessage):
            return self._transfer_host(room, sender_id, message.new_host_id)

        if msg_type in SERVER_ONLY_TYPES:
            logger.debug("room %s: dropped %s forged by %s", code, msg_type, sender_id)
        return []

    def disconnect(self, code: str, participant_id: str) -> list[Delivery]:
        """Remove a participant, fail over the host if needed, rebroadcast."""
        room = self._rooms.get(code)
        if room is None or participant_id not in room.participants:
            return []

        del room.participants[participant_id]
        logger.info("room %s: %s left", code, participant_id)

        if participant_id == room.host_id:
            room.host_id = None
            new_host = room.promote_earliest()
            if new_host is not None:
                logger.info("room %s: host failover to %s", code, new_host.id)

        if not room.participants:
            del self._rooms[code]
            logger.info("room %s disposed", code)
            return []

        return [self._roster_delivery(room)]

    def _transfer_host(
        self, room: Room, sender_id: str, new_host_id: str
    ) -> list[Delivery]:
        if sender_id != room.host_id or new_host_id == sender_id:
            return []
        new_host = room.participants.get(new_host_id)
        if new_host is None:
            logger.debug("room %s: transfer to unknown %s ignored", room.code, new_host_id)
            return []

        room.participants[sender_id].is_host = False
        new_host.is_host = True
        room.host_id = new_host_id
        logger.info("room %s: host transferred %s -> %s", room.code, sender_id, new_host_id)
        return [self._roster_delivery(room)]

    @staticmethod
    def _roster_delivery(room: Room) -> Delivery:
        message = ParticipantUpdateMessage(
            sender_id=SERVER_SENDER_ID,
            participants=room.roster(),
        )
        return Delivery(room.everyone(), encode_message(message))
