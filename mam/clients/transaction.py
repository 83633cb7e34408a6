"""Ledger transaction wire format: parse and build, no I/O.

A transaction is 2673 trytes. Integer fields are little-endian balanced
ternary. Field layout (offset, length in trytes):

    signature_message_fragment     0  2187
    address                     2187    81
    value                       2268    27
    obsolete_tag                2295    27
    timestamp                   2322     9
    current_index               2331     9
    last_index                  2340     9
    bundle                      2349    81
    trunk_transaction           2430    81
    branch_transaction          2511    81
    tag                         2592    27
    attachment_timestamp        2619     9
    attachment_timestamp_lower  2628     9
    attachment_timestamp_upper  2637     9
    nonce                       2646    27
"""

from __future__ import annotations

import time
from typing import Callable

from pydantic import BaseModel

from mam.channel.fragments import Fragment
from mam.crypto.converter import (
    int_from_trytes,
    is_trytes,
    pad_trytes,
    trits,
    trits_from_int,
    trytes,
    trytes_from_int,
)
from mam.crypto.curl import DEFAULT_ROUNDS, hash_trits
from mam.crypto.kerl import kerl_hash

TRANSACTION_LENGTH = 2673
FRAGMENT_LENGTH = 2187
HASH_LENGTH = 81
TAG_LENGTH = 27
NULL_HASH = "9" * HASH_LENGTH
MAX_TRYTE_VALUE = 13

_LAYOUT: list[tuple[str, int, bool]] = [
    ("signature_message_fragment", FRAGMENT_LENGTH, False),
    ("address", HASH_LENGTH, False),
    ("value", 27, True),
    ("obsolete_tag", TAG_LENGTH, False),
    ("timestamp", 9, True),
    ("current_index", 9, True),
    ("last_index", 9, True),
    ("bundle", HASH_LENGTH, False),
    ("trunk_transaction", HASH_LENGTH, False),
    ("branch_transaction", HASH_LENGTH, False),
    ("tag", TAG_LENGTH, False),
    ("attachment_timestamp", 9, True),
    ("attachment_timestamp_lower_bound", 9, True),
    ("attachment_timestamp_upper_bound", 9, True),
    ("nonce", TAG_LENGTH, False),
]


class Transaction(BaseModel):
    """Decoded transaction fields."""

    signature_message_fragment: str
    address: str
    value: int = 0
    obsolete_tag: str = "9" * TAG_LENGTH
    timestamp: int = 0
    current_index: int = 0
    last_index: int = 0
    bundle: str = NULL_HASH
    trunk_transaction: str = NULL_HASH
    branch_transaction: str = NULL_HASH
    tag: str = "9" * TAG_LENGTH
    attachment_timestamp: int = 0
    attachment_timestamp_lower_bound: int = 0
    attachment_timestamp_upper_bound: int = 0
    nonce: str = "9" * TAG_LENGTH

    def as_trytes(self) -> str:
        parts = []
        for name, length, numeric in _LAYOUT:
            value = getattr(self, name)
            parts.append(trytes_from_int(value, length) if numeric else pad_trytes(value, length))
        return "".join(parts)

    def as_fragment(self) -> Fragment:
        return Fragment(
            bundle=self.bundle,
            position=self.current_index,
            content=self.signature_message_fragment,
            last_index=self.last_index,
        )

    def essence_trits(self) -> list[int]:
        """Fields covered by the bundle hash."""
        return (
            trits(self.address)
            + trits_from_int(self.value, 81)
            + trits(self.obsolete_tag)
            + trits_from_int(self.timestamp, 27)
            + trits_from_int(self.current_index, 27)
            + trits_from_int(self.last_index, 27)
        )


def parse_transaction(raw: str) -> Transaction:
    """Split raw transaction trytes into fields."""
    if not is_trytes(raw, TRANSACTION_LENGTH):
        raise ValueError(f"Transaction must be {TRANSACTION_LENGTH} trytes, got {len(raw)}")
    fields: dict[str, str | int] = {}
    offset = 0
    for name, length, numeric in _LAYOUT:
        chunk = raw[offset:offset + length]
        fields[name] = int_from_trytes(chunk) if numeric else chunk
        offset += length
    return Transaction(**fields)


def kerl_bundle_hash(essence: list[int]) -> list[int]:
    """Bundle hash as nodes validate it."""
    return kerl_hash(essence)


def curl_bundle_hash(essence: list[int]) -> list[int]:
    """Curl-P-81 bundle hash, for networks that still validate with Curl."""
    return hash_trits(DEFAULT_ROUNDS, essence)


def normalized_bundle(bundle_hash: str) -> list[int]:
    """Tryte values of the hash, each 27-tryte chunk shifted to sum to zero."""
    normalized: list[int] = []
    for start in range(0, HASH_LENGTH, 27):
        chunk = [int_from_trytes(c) for c in bundle_hash[start:start + 27]]
        total = sum(chunk)
        while total > 0:
            total -= 1
            for j, v in enumerate(chunk):
                if v > -MAX_TRYTE_VALUE:
                    chunk[j] -= 1
                    break
        while total < 0:
            total += 1
            for j, v in enumerate(chunk):
                if v < MAX_TRYTE_VALUE:
                    chunk[j] += 1
                    break
        normalized.extend(chunk)
    return normalized


def is_secure_bundle_hash(bundle_hash: str) -> bool:
    """A normalized 13 would leak a full private key fragment when signing."""
    return MAX_TRYTE_VALUE not in normalized_bundle(bundle_hash)


def _increment_tag(tag: str) -> str:
    return trytes_from_int(int_from_trytes(tag) + 1, TAG_LENGTH)


class Transfer(BaseModel):
    """One output of a bundle. Only zero-value transfers are supported."""

    address: str
    value: int = 0
    message: str = ""
    tag: str = ""


def build_bundle(
    transfers: list[Transfer],
    timestamp: int | None = None,
    bundle_hasher: Callable[[list[int]], list[int]] = kerl_bundle_hash,
) -> list[Transaction]:
    """Build a zero-value bundle carrying each transfer's message.

    Each message is split into 2187-tryte fragments, one per transaction,
    in transfer order. ``bundle_hasher`` maps the concatenated essence
    trits of every transaction to the 243-trit bundle hash. While the hash
    is insecure, the tail's obsolete tag is incremented and the bundle
    rehashed. Trunk, branch and nonce are left null for attachToTangle to
    fill in.
    """
    if not transfers:
        raise ValueError("A bundle needs at least one transfer")

    ts = int(time.time()) if timestamp is None else timestamp
    pending: list[tuple[Transfer, str]] = []
    for transfer in transfers:
        if transfer.value != 0:
            raise ValueError("Value transfers are not supported")
        if not is_trytes(transfer.address, HASH_LENGTH):
            raise ValueError(f"Address must be {HASH_LENGTH} trytes")
        if not is_trytes(transfer.message):
            raise ValueError("Message must be a tryte string")
        if not is_trytes(transfer.tag) or len(transfer.tag) > TAG_LENGTH:
            raise ValueError(f"Tag must be at most {TAG_LENGTH} trytes")
        msg = transfer.message
        chunks = [msg[i:i + FRAGMENT_LENGTH] for i in range(0, len(msg), FRAGMENT_LENGTH)] or [""]
        pending.extend((transfer, chunk) for chunk in chunks)

    last_index = len(pending) - 1
    txs = []
    for i, (transfer, chunk) in enumerate(pending):
        tag = pad_trytes(transfer.tag, TAG_LENGTH)
        txs.append(Transaction(
            signature_message_fragment=pad_trytes(chunk, FRAGMENT_LENGTH),
            address=transfer.address,
            obsolete_tag=tag,
            tag=tag,
            timestamp=ts,
            current_index=i,
            last_index=last_index,
        ))

    while True:
        essence: list[int] = []
        for tx in txs:
            essence.extend(tx.essence_trits())
        bundle_hash = trytes(bundle_hasher(essence))
        if is_secure_bundle_hash(bundle_hash):
            break
        txs[0].obsolete_tag = _increment_tag(txs[0].obsolete_tag)
    for tx in txs:
        tx.bundle = bundle_hash
    return txs
