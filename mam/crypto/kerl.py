"""Kerl sponge: Keccak-384 over ternary, used for bundle hashes.

Each 243-trit block is read as a balanced ternary integer (last trit
forced to 0), written as a 48-byte big-endian two's complement value
and fed to Keccak-384. Squeezing reverses the mapping, then re-seeds the
sponge with the bitwise complement of the digest.
"""

from __future__ import annotations

from Crypto.Hash import keccak

from mam.crypto.converter import int_from_trits, trits_from_int

HASH_LENGTH = 243
BYTE_LENGTH = 48
BIT_LENGTH = 8 * BYTE_LENGTH


def trits_to_bytes(trit_block: list[int]) -> bytes:
    """243 trits to 48 bytes. The last trit is ignored."""
    if len(trit_block) != HASH_LENGTH:
        raise ValueError(f"Kerl blocks are {HASH_LENGTH} trits, got {len(trit_block)}")
    value = int_from_trits(trit_block[:HASH_LENGTH - 1])
    return value.to_bytes(BYTE_LENGTH, "big", signed=True)


def bytes_to_trits(data: bytes) -> list[int]:
    """48 bytes to 243 trits with the last trit zeroed."""
    if len(data) != BYTE_LENGTH:
        raise ValueError(f"Kerl digests are {BYTE_LENGTH} bytes, got {len(data)}")
    out = trits_from_int(int.from_bytes(data, "big", signed=True), HASH_LENGTH)
    out[HASH_LENGTH - 1] = 0
    return out


class Kerl:
    def __init__(self) -> None:
        self._keccak = keccak.new(digest_bits=BIT_LENGTH)

    def reset(self) -> None:
        self._keccak = keccak.new(digest_bits=BIT_LENGTH)

    def absorb(self, trits: list[int]) -> None:
        """Absorb whole 243-trit blocks."""
        if not trits or len(trits) % HASH_LENGTH:
            raise ValueError(f"Kerl input must be a non-empty multiple of {HASH_LENGTH} trits")
        for offset in range(0, len(trits), HASH_LENGTH):
            self._keccak.update(trits_to_bytes(trits[offset:offset + HASH_LENGTH]))

    def squeeze(self, length: int = HASH_LENGTH) -> list[int]:
        out: list[int] = []
        while len(out) < length:
            digest = self._keccak.digest()
            out.extend(bytes_to_trits(digest))
            self.reset()
            self._keccak.update(bytes(b ^ 0xFF for b in digest))
        return out[:length]


def kerl_hash(*keys: list[int]) -> list[int]:
    """Absorb each key in turn and squeeze one 243-trit digest."""
    sponge = Kerl()
    for key in keys:
        sponge.absorb(key)
    return sponge.squeeze(HASH_LENGTH)
