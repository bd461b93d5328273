"""Human-friendly session codes (e.g. ``XYZ234``).

Codes use only unambiguous characters: consonants (no vowels, so no
accidental words) followed by the digits 2-9 (no 0/1 to confuse with O/I).
"""

import secrets

CONSONANTS = "BCDFGHJKLMNPQRSTVWXYZ"
DIGITS = "23456789"

CODE_LETTERS = 3
CODE_DIGITS = 3
CODE_LENGTH = CODE_LETTERS + CODE_DIGITS


def generate_session_code() -> str:
    """Generate a code of 3 consonants followed by 3 digits."""
    letters = "".join(secrets.choice(CONSONANTS) for _ in range(CODE_LETTERS))
    digits = "".join(secrets.choice(DIGITS) for _ in range(CODE_DIGITS))
    return letters + digits


def validate_session_code(code: object) -> bool:
    """Check the shape of a session code, ignoring letter case."""
    if not isinstance(code, str) or len(code) != CODE_LENGTH:
        return False

    upper = code.upper()
    return all(c in CONSONANTS for c in upper[:CODE_LETTERS]) and all(
        c in DIGITS for c in upper[CODE_LETTERS:]
    )


def normalize_session_code(code: str) -> str:
    """Uppercase and trim a user-typed code. Does not validate."""
    return code.upper().strip()
