"""Tests for relay room state: host arbitration, routing and failover."""

from __future__ import annotations

import json

import pytest

from pomojam_cli.group.messages import (
    ControlMessage,
    StateSyncMessage,
    TransferHostMessage,
    encode_message,
)
from pomojam_cli.models.focus.state import PomodoroState
from pomojam_cli.relay.room import Room, RoomArena

CODE = "XYZ234"


def roster_of(deliveries) -> list[dict]:
    """Decode the participant list of the single roster delivery."""
    assert len(deliveries) == 1
    payload = json.loads(deliveries[0].payload)
    assert payload["type"] == "participant-update"
    assert payload["senderId"] == "server"
    return payload["participants"]


def hosts(arena: RoomArena, code: str = CODE) -> list[str]:
    room = arena.get(code)
    return [p.id for p in room.participants.values() if p.is_host]


def assert_single_host(arena: RoomArena, code: str = CODE) -> None:
    room = arena.get(code)
    flagged = hosts(arena, code)
    assert len(flagged) <= 1
    assert room.host_id == (flagged[0] if flagged else None)


def state_sync(sender: str) -> str:
    return encode_message(StateSyncMessage(sender_id=sender, state=PomodoroState()))


@pytest.fixture()
def arena() -> RoomArena:
    return RoomArena()


@pytest.fixture()
def hosted(arena) -> RoomArena:
    """Room with host ``alice`` and participants ``bob`` and ``carol``."""
    arena.connect(CODE, "alice", "Alice", True)
    arena.connect(CODE, "bob", "Bob", False)
    arena.connect(CODE, "carol", "Carol", False)
    return arena


class TestConnect:
    def test_first_connection_creates_room(self, arena) -> None:
        deliveries = arena.connect(CODE, "alice", "Alice", True)

        assert CODE in arena
        assert len(arena) == 1
        assert deliveries[0].recipients == ("alice",)
        assert roster_of(deliveries) == [
            {
                "id": "alice",
                "name": "Alice",
                "isHost": True,
                "joinedAt": arena.get(CODE).participants["alice"].joined_at,
            }
        ]

    def test_roster_goes_to_everyone(self, hosted) -> None:
        deliveries = hosted.connect(CODE, "dave", "Dave", False)

        assert deliveries[0].recipients == ("alice", "bob", "carol", "dave")
        assert [p["id"] for p in roster_of(deliveries)] == ["alice", "bob", "carol", "dave"]

    def test_second_host_claim_is_demoted(self, arena) -> None:
        arena.connect(CODE, "alice", "Alice", True)

        roster = roster_of(arena.connect(CODE, "mallory", "Mallory", True))

        assert {p["id"]: p["isHost"] for p in roster} == {"alice": True, "mallory": False}
        assert arena.get(CODE).host_id == "alice"
        assert_single_host(arena)

    def test_host_claim_granted_when_room_has_no_host(self, arena) -> None:
        arena.connect(CODE, "bob", "Bob", False)
        assert arena.get(CODE).host_id is None

        arena.connect(CODE, "alice", "Alice", True)

        assert hosts(arena) == ["alice"]

    def test_joined_at_strictly_increasing(self, arena, mocker) -> None:
        mocker.patch("pomojam_cli.relay.room.now_ms", return_value=1000)

        for pid in ("a", "b", "c"):
            arena.connect(CODE, pid, pid, False)

        stamps = [p.joined_at for p in arena.get(CODE).participants.values()]
        assert stamps == [1000, 1001, 1002]

    def test_reconnect_keeps_entry(self, hosted) -> None:
        before = hosted.get(CODE).participants["alice"].model_copy()

        roster = roster_of(hosted.connect(CODE, "alice", "Alice B", True))

        alice = next(p for p in roster if p["id"] == "alice")
        assert alice["isHost"] is True
        assert alice["joinedAt"] == before.joined_at
        assert alice["name"] == "Alice B"
        assert len(roster) == 3

    def test_rooms_are_independent(self, hosted) -> None:
        hosted.connect("ABC234", "zed", "Zed", True)

        assert len(hosted) == 2
        assert hosts(hosted, "ABC234") == ["zed"]
        assert hosts(hosted) == ["alice"]


class TestRouting:
    def test_host_state_sync_goes_to_others(self, hosted) -> None:
        raw = state_sync("alice")

        deliveries = hosted.handle_message(CODE, "alice", raw)

        assert len(deliveries) == 1
        assert deliveries[0].recipients == ("bob", "carol")
        assert deliveries[0].payload == raw

    def test_non_host_state_sync_dropped(self, hosted) -> None:
        assert hosted.handle_message(CODE, "bob", state_sync("bob")) == []

    def test_non_host_control_dropped(self, hosted) -> None:
        raw = encode_message(ControlMessage(sender_id="bob", action="start"))
        assert hosted.handle_message(CODE, "bob", raw) == []

    def test_host_control_relayed(self, hosted) -> None:
        raw = encode_message(ControlMessage(sender_id="alice", action="pause"))

        deliveries = hosted.handle_message(CODE, "alice", raw)

        assert deliveries[0].recipients == ("bob", "carol")

    def test_bytes_payload_relayed_as_text(self, hosted) -> None:
        raw = state_sync("alice")

        deliveries = hosted.handle_message(CODE, "alice", raw.encode())

        assert deliveries[0].payload == raw

    def test_join_rebroadcasts_roster(self, hosted) -> None:
        raw = json.dumps({"type": "join", "senderId": "bob", "timestamp": 1, "name": "Bob"})

        roster = roster_of(hosted.handle_message(CODE, "bob", raw))

        assert len(roster) == 3

    def test_leave_is_silent(self, hosted) -> None:
        raw = json.dumps({"type": "leave", "senderId": "bob", "timestamp": 1})

        assert hosted.handle_message(CODE, "bob", raw) == []
        assert "bob" in hosted.get(CODE).participants

    def test_unknown_type_relayed_to_whole_room(self, hosted) -> None:
        raw = json.dumps({"type": "emoji", "senderId": "bob", "value": "tomato"})

        deliveries = hosted.handle_message(CODE, "bob", raw)

        assert deliveries[0].recipients == ("alice", "bob", "carol")
        assert deliveries[0].payload == raw

    def test_forged_roster_dropped(self, hosted) -> None:
        raw = json.dumps(
            {
                "type": "participant-update",
                "senderId": "bob",
                "timestamp": 1,
                "participants": [{"id": "bob", "name": "Bob", "isHost": True, "joinedAt": 0}],
            }
        )

        assert hosted.handle_message(CODE, "bob", raw) == []
        assert hosts(hosted) == ["alice"]

    @pytest.mark.parametrize(
        "raw",
        [
            "{oops",
            "[]",
            "42",
            '{"type":"control","senderId":"alice","timestamp":1,"action":"explode"}',
        ],
    )
    def test_malformed_payloads_dropped(self, hosted, raw) -> None:
        assert hosted.handle_message(CODE, "alice", raw) == []

    def test_non_utf8_bytes_dropped(self, hosted) -> None:
        raw = state_sync("alice").encode("utf-16")

        assert hosted.handle_message(CODE, "alice", raw) == []
        assert hosts(hosted) == ["alice"]
        assert len(hosted.get(CODE).participants) == 3

    def test_unknown_sender_or_room_ignored(self, hosted) -> None:
        assert hosted.handle_message(CODE, "ghost", state_sync("ghost")) == []
        assert hosted.handle_message("QQQ999", "alice", state_sync("alice")) == []


class TestTransferHost:
    def transfer(self, arena, sender: str, target: str):
        raw = encode_message(TransferHostMessage(sender_id=sender, new_host_id=target))
        return arena.handle_message(CODE, sender, raw)

    def test_host_can_transfer(self, hosted) -> None:
        roster = roster_of(self.transfer(hosted, "alice", "bob"))

        assert {p["id"]: p["isHost"] for p in roster} == {
            "alice": False,
            "bob": True,
            "carol": False,
        }
        assert hosted.get(CODE).host_id == "bob"
        assert_single_host(hosted)

    def test_non_host_transfer_ignored(self, hosted) -> None:
        assert self.transfer(hosted, "bob", "carol") == []
        assert hosts(hosted) == ["alice"]

    def test_transfer_to_unknown_ignored(self, hosted) -> None:
        assert self.transfer(hosted, "alice", "ghost") == []
        assert hosts(hosted) == ["alice"]

    def test_transfer_to_self_ignored(self, hosted) -> None:
        assert self.transfer(hosted, "alice", "alice") == []

    def test_authority_follows_transfer(self, hosted) -> None:
        self.transfer(hosted, "alice", "bob")

        assert hosted.handle_message(CODE, "alice", state_sync("alice")) == []
        assert hosted.handle_message(CODE, "bob", state_sync("bob"))[0].recipients == (
            "alice",
            "carol",
        )


class TestDisconnect:
    def test_host_failover_to_earliest(self, hosted) -> None:
        roster = roster_of(hosted.disconnect(CODE, "alice"))

        assert {p["id"]: p["isHost"] for p in roster} == {"bob": True, "carol": False}
        assert hosted.get(CODE).host_id == "bob"
        assert_single_host(hosted)

    def test_failover_uses_joined_at_not_insertion(self, arena) -> None:
        arena.connect(CODE, "alice", "Alice", True)
        arena.connect(CODE, "bob", "Bob", False)
        arena.connect(CODE, "carol", "Carol", False)
        room = arena.get(CODE)
        room.participants["bob"].joined_at = room.participants["carol"].joined_at + 1

        arena.disconnect(CODE, "alice")

        assert hosts(arena) == ["carol"]

    def test_participant_leave_keeps_host(self, hosted) -> None:
        deliveries = hosted.disconnect(CODE, "carol")

        assert deliveries[0].recipients == ("alice", "bob")
        assert hosts(hosted) == ["alice"]

    def test_last_participant_disposes_room(self, arena) -> None:
        arena.connect(CODE, "alice", "Alice", True)

        assert arena.disconnect(CODE, "alice") == []
        assert CODE not in arena
        assert arena.get(CODE) is None

    def test_room_recreated_after_disposal(self, arena) -> None:
        arena.connect(CODE, "alice", "Alice", True)
        arena.disconnect(CODE, "alice")

        arena.connect(CODE, "bob", "Bob", True)

        assert hosts(arena) == ["bob"]

    def test_unknown_disconnect_ignored(self, hosted) -> None:
        assert hosted.disconnect(CODE, "ghost") == []
        assert hosted.disconnect("QQQ999", "alice") == []

    def test_single_host_through_churn(self, arena) -> None:
        arena.connect(CODE, "a", "A", True)
        arena.connect(CODE, "b", "B", True)
        arena.connect(CODE, "c", "C", False)
        assert_single_host(arena)

        arena.disconnect(CODE, "a")
        assert_single_host(arena)
        assert hosts(arena) == ["b"]

        arena.connect(CODE, "d", "D", True)
        assert_single_host(arena)

        raw = encode_message(TransferHostMessage(sender_id="b", new_host_id="d"))
        arena.handle_message(CODE, "b", raw)
        assert_single_host(arena)
        assert hosts(arena) == ["d"]

        arena.disconnect(CODE, "d")
        arena.disconnect(CODE, "b")
        assert_single_host(arena)
        assert hosts(arena) == ["c"]


class TestRoom:
    def test_promote_earliest_on_empty_room(self) -> None:
        room = Room(code=CODE, host_id="gone")

        assert room.promote_earliest() is None
        assert room.host_id is None
