"""Group sessions: a shared timer hosted by one participant."""

from pomojam_cli.group.client import RelayClient, build_room_url
from pomojam_cli.group.manager import SessionManager
from pomojam_cli.group.messages import ConnectionState, ControlAction, Participant
from pomojam_cli.group.session_code import (
    generate_session_code,
    normalize_session_code,
    validate_session_code,
)

__all__ = [
    "ConnectionState",
    "ControlAction",
    "Participant",
    "RelayClient",
    "SessionManager",
    "build_room_url",
    "generate_session_code",
    "normalize_session_code",
    "validate_session_code",
]
