"""
Unit tests for session password generation
"""

import random

import pytest

from sendeasy.core.passwords import (
    ALPHABET,
    PasswordGenerator,
    device_hash,
    generate_device_password,
    generate_random_password,
    is_well_formed,
    normalize_password,
)

pytestmark = pytest.mark.unit


class TestRandomPasswords:
    """Test the random password policy"""

    def test_length_and_alphabet(self):
        for _ in range(200):
            password = generate_random_password()
            assert len(password) == 6
            assert all(char in ALPHABET for char in password)
            assert is_well_formed(password)

    def test_seeded_rng_is_reproducible(self):
        first = generate_random_password(random.Random(42))
        second = generate_random_password(random.Random(42))
        assert first == second


class TestDevicePasswords:
    """Test the deterministic policy"""

    def test_hash_matches_31_multiplier_fold(self):
        # ((97 * 31) + 98) * 31 + 99
        assert device_hash("abc") == 96354

    def test_hash_wraps_to_signed_32_bits(self):
        value = device_hash("a-fairly-long-device-identifier-0123456789")
        assert -(2 ** 31) <= value < 2 ** 31

    def test_known_device_password(self):
        # 96354 % 36 == 18 -> "I", then consecutive characters
        assert generate_device_password("abc") == "IJKLMN"

    def test_same_device_same_password(self):
        assert generate_device_password("device-1") == generate_device_password("device-1")

    def test_empty_device_id(self):
        assert generate_device_password("") == "012345"


class TestNormalization:
    @pytest.mark.parametrize("raw, expected", [
        ("abc123", "ABC123"),
        ("  xyz789 ", "XYZ789"),
        ("ABC123", "ABC123"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_password(raw) == expected

    @pytest.mark.parametrize("candidate", ["ABC12", "ABC1234", "ABC-12", "abc123", ""])
    def test_malformed(self, candidate):
        assert not is_well_formed(candidate)


class TestPasswordGenerator:
    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError):
            PasswordGenerator("sequential")

    def test_deterministic_policy_uses_device(self):
        generator = PasswordGenerator("deterministic")
        assert generator.generate("abc") == "IJKLMN"

    def test_deterministic_policy_requires_device(self):
        with pytest.raises(ValueError):
            PasswordGenerator("deterministic").generate(None)

    def test_random_fallback_ignores_policy(self):
        generator = PasswordGenerator("deterministic", rng=random.Random(7))
        assert is_well_formed(generator.generate_random())
