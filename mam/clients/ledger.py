"""Ledger node client: IRI-compatible HTTP API.

Provides the four calls the channel layer needs:
- find_transactions: hashes of transactions at a set of addresses
- get_transaction_objects: raw trytes fetched and parsed into Transactions
- prepare_transfers: build a zero-value message bundle
- send_trytes: tip selection, remote proof of work, store, broadcast

Anything satisfying ``LedgerClient`` can stand in for IriClient.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, runtime_checkable

import httpx

from mam.clients.base import APIError, BaseClient
from mam.clients.transaction import (
    NULL_HASH,
    Transaction,
    Transfer,
    build_bundle,
    parse_transaction,
)

log = logging.getLogger("mam.ledger")

API_VERSION_HEADER = {"X-IOTA-API-Version": "1"}


@runtime_checkable
class LedgerClient(Protocol):
    async def find_transactions(self, addresses: list[str]) -> list[str]: ...

    async def get_transaction_objects(self, hashes: list[str]) -> list[Transaction]: ...

    async def prepare_transfers(
        self, seed: str, transfers: list[Transfer], options: dict[str, Any] | None = None
    ) -> list[str]: ...

    async def send_trytes(self, trytes: list[str], depth: int, min_weight_magnitude: int) -> list[Transaction]: ...


class IriClient:
    """Talks to one node over its JSON command API."""

    def __init__(
        self,
        provider: str,
        timeout: float = 30.0,
        rate_limit: float = 10.0,
        max_retries: int = 0,
        bundle_hasher: Callable[[list[int]], list[int]] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.provider = provider
        self._bundle_hasher = bundle_hasher
        self._client = BaseClient(
            base_url=provider,
            headers=dict(API_VERSION_HEADER),
            rate_limit=rate_limit,
            timeout=timeout,
            max_retries=max_retries,
            provider_name="iri",
            transport=transport,
        )

    async def command(self, name: str, **params: Any) -> dict[str, Any]:
        """Issue one API command. Node-reported errors raise APIError."""
        body = {"command": name, **params}
        result = await self._client.post("/", json_data=body)
        if not isinstance(result, dict):
            raise APIError(f"Unexpected {name} response: {result!r:.200}", provider="iri")
        if "error" in result:
            raise APIError(f"{name} failed: {result['error']}", provider="iri")
        return result

    async def find_transactions(self, addresses: list[str]) -> list[str]:
        """Hashes of every transaction attached at any of the addresses."""
        result = await self.command("findTransactions", addresses=addresses)
        return list(result.get("hashes", []))

    async def get_trytes(self, hashes: list[str]) -> list[str]:
        if not hashes:
            return []
        result = await self.command("getTrytes", hashes=hashes)
        return list(result.get("trytes", []))

    async def get_transaction_objects(self, hashes: list[str]) -> list[Transaction]:
        """Fetch and parse transactions. Unknown hashes (all-9 trytes) are skipped."""
        raw = await self.get_trytes(hashes)
        txs = []
        for tx_trytes in raw:
            if not tx_trytes.strip("9"):
                continue
            txs.append(parse_transaction(tx_trytes))
        return txs

    async def prepare_transfers(
        self, seed: str, transfers: list[Transfer], options: dict[str, Any] | None = None
    ) -> list[str]:
        """Build raw trytes for a zero-value bundle, head transaction first.

        Zero-value bundles need no inputs, so ``seed`` is only accepted for
        interface parity and is expected to be the null seed.
        """
        if seed != NULL_HASH:
            log.debug("prepare_transfers ignores non-null seed for zero-value bundles")
        kwargs: dict[str, Any] = {}
        if options and "timestamp" in options:
            kwargs["timestamp"] = options["timestamp"]
        if self._bundle_hasher is not None:
            kwargs["bundle_hasher"] = self._bundle_hasher
        txs = build_bundle(transfers, **kwargs)
        return [tx.as_trytes() for tx in reversed(txs)]

    async def send_trytes(self, trytes: list[str], depth: int = 3, min_weight_magnitude: int = 9) -> list[Transaction]:
        """Select tips, attach (remote PoW), store and broadcast."""
        tips = await self.command("getTransactionsToApprove", depth=depth)
        attached = await self.command(
            "attachToTangle",
            trunkTransaction=tips["trunkTransaction"],
            branchTransaction=tips["branchTransaction"],
            minWeightMagnitude=min_weight_magnitude,
            trytes=trytes,
        )
        attached_trytes = list(attached.get("trytes", []))
        await self.command("storeTransactions", trytes=attached_trytes)
        await self.command("broadcastTransactions", trytes=attached_trytes)
        log.debug("Broadcast %d transactions", len(attached_trytes))
        return [parse_transaction(t) for t in attached_trytes]

    async def close(self) -> None:
        await self._client.close()
