"""Minimal room relay for group sessions."""

from pomojam_cli.relay.room import Delivery, Room, RoomArena
from pomojam_cli.relay.server import RelayServer

__all__ = ["Delivery", "Room", "RoomArena", "RelayServer"]
