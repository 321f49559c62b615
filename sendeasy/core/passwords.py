"""
Session password generation.

Passwords are 6 characters drawn from ``[0-9A-Z]``. They are share codes, not
secrets, so the random policy uses the ``random`` module rather than a CSPRNG.
"""

import random
import re
from typing import Optional

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
PASSWORD_LENGTH = 6
PASSWORD_POLICIES = ("random", "deterministic")

_PASSWORD_RE = re.compile(r"^[0-9A-Z]{6}$")


def generate_random_password(rng: Optional[random.Random] = None) -> str:
    """Draw each character independently and uniformly from the alphabet."""
    rng = rng or random
    return "".join(rng.choice(ALPHABET) for _ in range(PASSWORD_LENGTH))


def device_hash(device_id: str) -> int:
    """
    Fold a device identifier into a signed 32-bit integer.

    Computes ``hash = hash * 31 + ord(char)`` truncated to 32 bits for every
    character. Not collision resistant: two devices can share a password and
    the store's unique constraint is what detects it.
    """
    value = 0
    for char in device_id:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return value


def generate_device_password(device_id: str) -> str:
    """Derive a reproducible password from a device identifier."""
    value = device_hash(device_id)
    return "".join(
        ALPHABET[abs(value + position) % len(ALPHABET)]
        for position in range(PASSWORD_LENGTH)
    )


def normalize_password(password: str) -> str:
    return password.strip().upper()


def is_well_formed(password: str) -> bool:
    return bool(_PASSWORD_RE.match(password))


class PasswordGenerator:
    """Produces session passwords according to the configured policy."""

    def __init__(self, policy: str = "random", rng: Optional[random.Random] = None):
        if policy not in PASSWORD_POLICIES:
            raise ValueError(f"Unknown password policy: {policy}")
        self.policy = policy
        self._rng = rng

    def generate(self, device_id: Optional[str] = None) -> str:
        if self.policy == "deterministic":
            if not device_id:
                raise ValueError("deterministic policy requires a device identifier")
            return generate_device_password(device_id)
        return generate_random_password(self._rng)

    def generate_random(self) -> str:
        """Fallback used after a collision, whatever the configured policy."""
        return generate_random_password(self._rng)
