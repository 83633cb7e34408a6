"""In-memory ledger implementing the LedgerClient protocol."""

from __future__ import annotations

import itertools
from typing import Any

from mam.clients.transaction import (
    Transaction,
    Transfer,
    build_bundle,
    parse_transaction,
)
from mam.crypto.converter import trits, trytes_from_int


class InMemoryLedger:
    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self.transactions: dict[str, Transaction] = {}
        self.by_address: dict[str, list[str]] = {}
        self.find_calls: list[list[str]] = []
        self.fail_send: Exception | None = None
        self.fail_find: Exception | None = None
        self.closed = False

    def _next_hash(self) -> str:
        return trytes_from_int(next(self._counter), 81)

    def _bundle_hasher(self, essence: list[int]) -> list[int]:
        return trits(self._next_hash())

    def store(self, tx: Transaction) -> str:
        tx_hash = self._next_hash()
        self.transactions[tx_hash] = tx
        self.by_address.setdefault(tx.address, []).append(tx_hash)
        return tx_hash

    async def find_transactions(self, addresses: list[str]) -> list[str]:
        self.find_calls.append(list(addresses))
        if self.fail_find is not None:
            raise self.fail_find
        hashes: list[str] = []
        for address in addresses:
            hashes.extend(self.by_address.get(address, []))
        return hashes

    async def get_transaction_objects(self, hashes: list[str]) -> list[Transaction]:
        return [self.transactions[h] for h in hashes if h in self.transactions]

    async def prepare_transfers(
        self, seed: str, transfers: list[Transfer], options: dict[str, Any] | None = None
    ) -> list[str]:
        txs = build_bundle(transfers, timestamp=1_700_000_000, bundle_hasher=self._bundle_hasher)
        return [tx.as_trytes() for tx in reversed(txs)]

    async def send_trytes(self, trytes: list[str], depth: int, min_weight_magnitude: int) -> list[Transaction]:
        if self.fail_send is not None:
            raise self.fail_send
        txs = [parse_transaction(t) for t in trytes]
        for tx in txs:
            self.store(tx)
        return txs

    async def close(self) -> None:
        self.closed = True
