"""Random seed / side-key generation."""

from __future__ import annotations

import secrets

KEY_CHARSET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ9"
SEED_LENGTH = 81

# Largest multiple of 27 below 256; bytes at or above it would bias mod 27.
_REJECT_AT = 243


def key_gen(length: int = SEED_LENGTH) -> str:
    """Generate a uniformly random tryte string of the given length.

    Draws random bytes and discards any >= 243 so every character of the
    27-symbol charset is equally likely.
    """
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    key: list[str] = []
    while len(key) < length:
        byte = secrets.token_bytes(1)[0]
        if byte < _REJECT_AT:
            key.append(KEY_CHARSET[byte % 27])
    return "".join(key)
