"""Curl-P sponge: the ternary hash used for MAM address derivation.

Pure functions, no I/O. State is 729 trits; absorb and squeeze operate
on 243-trit blocks.
"""

from __future__ import annotations

HASH_LENGTH = 243
STATE_LENGTH = 3 * HASH_LENGTH
DEFAULT_ROUNDS = 81

_TRUTH_TABLE = (1, 0, -1, 2, 1, -1, 0, 2, -1, 1, 0)


class Curl:
    """Curl-P sponge with a configurable number of rounds."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        if rounds <= 0:
            raise ValueError(f"rounds must be positive, got {rounds}")
        self.rounds = rounds
        self._state = [0] * STATE_LENGTH

    def reset(self) -> None:
        self._state = [0] * STATE_LENGTH

    def absorb(self, trits: list[int]) -> None:
        """Absorb trits in 243-trit blocks. A short final block overwrites only its own positions."""
        offset = 0
        length = len(trits)
        while True:
            block = trits[offset:offset + HASH_LENGTH]
            self._state[0:len(block)] = block
            self._transform()
            offset += HASH_LENGTH
            if offset >= length:
                break

    def squeeze(self, length: int = HASH_LENGTH) -> list[int]:
        out: list[int] = []
        while len(out) < length:
            out.extend(self._state[0:HASH_LENGTH])
            self._transform()
        return out[:length]

    def _transform(self) -> None:
        state = self._state
        index = 0
        for _ in range(self.rounds):
            prev = state[:]
            for pos in range(STATE_LENGTH):
                prev_index = index
                index += 364 if index < 365 else -365
                state[pos] = _TRUTH_TABLE[prev[prev_index] + (prev[index] << 2) + 5]


def hash_trits(rounds: int, *keys: list[int]) -> list[int]:
    """Absorb each key in turn and squeeze one 243-trit digest."""
    curl = Curl(rounds)
    for key in keys:
        curl.absorb(key)
    return curl.squeeze(HASH_LENGTH)
