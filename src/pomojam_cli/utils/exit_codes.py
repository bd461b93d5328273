"""
Exit codes for pomojam.

Semantic exit codes so scripts wrapping a group session can tell a typo in a
session code apart from a relay that stopped answering.
"""

# Success
SUCCESS = 0

# General error (unspecified)
ERROR_GENERAL = 1

# Invalid arguments or validation error (e.g. malformed session code)
ERROR_INVALID_ARGS = 2

# Network or relay error (reconnect attempts exhausted, relay unreachable)
ERROR_NETWORK = 4


def get_exit_code_name(code: int) -> str:
    """Get the name of an exit code for display purposes."""
    code_names = {
        SUCCESS: "SUCCESS",
        ERROR_GENERAL: "ERROR_GENERAL",
        ERROR_INVALID_ARGS: "ERROR_INVALID_ARGS",
        ERROR_NETWORK: "ERROR_NETWORK",
    }
    return code_names.get(code, f"UNKNOWN({code})")


def get_exit_code_description(code: int) -> str:
    """Get a human-readable description of an exit code."""
    descriptions = {
        SUCCESS: "Command executed successfully",
        ERROR_GENERAL: "A general error occurred",
        ERROR_INVALID_ARGS: "Invalid arguments or session code",
        ERROR_NETWORK: "Relay unreachable - check connection and retry",
    }
    return descriptions.get(code, "Unknown error")
