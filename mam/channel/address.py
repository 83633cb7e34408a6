"""Attachment address derivation: pure functions, no I/O.

Public channels attach each message at its root. Private and restricted
channels attach at a one-way Curl hash of the root, so the address
cannot be linked to the root without already knowing it.
"""

from __future__ import annotations

from mam.channel.state import Mode
from mam.crypto.converter import is_trytes, trits, trytes
from mam.crypto.curl import DEFAULT_ROUNDS, hash_trits
from mam.errors import InvalidAddressError

ADDRESS_LENGTH = 81


def validate_root(root: str) -> str:
    """Return root unchanged, or raise InvalidAddressError."""
    if not is_trytes(root, ADDRESS_LENGTH):
        raise InvalidAddressError(
            f"Root must be {ADDRESS_LENGTH} trytes, got {root!r:.100}",
            value=root if isinstance(root, str) else "",
        )
    return root


def hash_trytes(data: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Curl hash of a tryte string, returned as 81 trytes."""
    return trytes(hash_trits(rounds, trits(data)))


def derive_address(root: str, mode: Mode | str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Ledger address a message with this root is attached at.

    ``rounds`` must match what the codec used when building the message,
    otherwise lookups find nothing.
    """
    validate_root(root)
    if Mode(mode) is Mode.PUBLIC:
        return root
    return hash_trytes(root, rounds)
