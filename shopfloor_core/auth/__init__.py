# =============================================================================
# shopfloor_core/auth/__init__.py
# =============================================================================

from .pins import DEFAULT_ROUNDS, hash_pin, verify_pin, is_hashed

__all__ = ["DEFAULT_ROUNDS", "hash_pin", "verify_pin", "is_hashed"]
