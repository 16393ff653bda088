# =============================================================================
# tests/unit/test_pins.py
# Unit Tests for PIN hashing
# =============================================================================

from shopfloor_core.auth import hash_pin, is_hashed, verify_pin


class TestPinHashing:

    def test_hash_is_bcrypt_and_salted(self):
        first = hash_pin("1234", rounds=4)
        second = hash_pin("1234", rounds=4)

        assert is_hashed(first)
        assert first != second
        assert "1234" not in first

    def test_verify_hashed(self):
        stored = hash_pin("2061", rounds=4)

        assert verify_pin("2061", stored)
        assert not verify_pin("2060", stored)

    def test_verify_legacy_plaintext(self):
        assert verify_pin("9999", "9999")
        assert not verify_pin("9998", "9999")

    def test_missing_stored_value_never_matches(self):
        assert not verify_pin("1234", "")
        assert not verify_pin("1234", None)
