import secrets
import string

# No 0/O or 1/I so codes survive being read aloud or copied by hand
CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
CODE_LENGTH = 6

_ACCEPTED = frozenset(string.ascii_uppercase + string.digits)


def generate_code(length: int = CODE_LENGTH) -> str:
    """Generate a short, shareable session code.

    Uniqueness is not checked here; session creation rejects reused codes.
    """
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return code.strip().upper()


def is_valid_code(code: str) -> bool:
    """Accept any 6 upper-case letters/digits; hand-picked codes need not avoid 0/O or 1/I."""
    return len(code) == CODE_LENGTH and all(ch in _ACCEPTED for ch in code)
