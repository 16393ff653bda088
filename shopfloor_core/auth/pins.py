# =============================================================================
# shopfloor_core/auth/pins.py
# PIN hashing for operator and administrator logins
# =============================================================================
"""
PINs are stored as bcrypt hashes.

Documents written before hashing was introduced may still hold the PIN in
plaintext; ``verify_pin`` accepts those with a constant-time comparison so
existing accounts keep working until they are saved again.

There is no attempt throttling; a 4-digit PIN space is small.
"""

import hmac
from typing import Optional

import bcrypt

DEFAULT_ROUNDS = 12

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def is_hashed(value: Optional[str]) -> bool:
    """True if ``value`` looks like a bcrypt hash."""
    return bool(value) and value.startswith(_BCRYPT_PREFIXES)


def hash_pin(pin: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """
    Hash a PIN using bcrypt.

    Example:
        >>> hash_pin("1234")
        '$2b$12$...'
    """
    return bcrypt.hashpw(pin.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_pin(pin: str, stored: Optional[str]) -> bool:
    """Check ``pin`` against a stored bcrypt hash or legacy plaintext value."""
    if not stored or pin is None:
        return False
    if is_hashed(stored):
        try:
            return bcrypt.checkpw(pin.encode(), stored.encode())
        except ValueError:
            return False
    return hmac.compare_digest(pin.encode(), stored.encode())
