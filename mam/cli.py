"""MAM command line.

Usage:
    python3 -m mam.cli keygen [--length 81]
    python3 -m mam.cli address <ROOT> [--mode private] [--rounds 81]
    python3 -m mam.cli bundles <ADDRESS>
    python3 -m mam.cli fetch <ROOT> [--mode restricted --key KEY] [--limit N]

Output is JSON on stdout. Exit code 1 on error.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

import httpx

from mam.channel.address import derive_address
from mam.channel.fragments import FragmentReassembler
from mam.channel.state import Mode
from mam.channel.traversal import ChainReader
from mam.clients.base import APIError
from mam.config import load_config
from mam.controller import Mam
from mam.crypto.keygen import SEED_LENGTH, key_gen
from mam.errors import ConfigurationError, MamError
from mam.utils.retry import with_retry


async def raw_bundles(mam: Mam, address: str) -> dict[str, Any]:
    """Reassembled, undecoded payloads at an address."""
    hashes = await mam.ledger.find_transactions([address])
    txs = await mam.ledger.get_transaction_objects(hashes) if hashes else []
    reassembler = FragmentReassembler(
        capacity=mam.config.fragment_capacity,
        max_age=mam.config.fragment_max_age,
    )
    payloads = reassembler.ingest(tx.as_fragment() for tx in txs)
    return {
        "status": "OK",
        "address": address,
        "transactions": len(txs),
        "payloads": payloads,
        "incomplete_bundles": reassembler.pending,
    }


async def fetch_chain(mam: Mam, root: str, mode: str, key: str | None, limit: int | None, retries: int) -> dict[str, Any]:
    """Walk the chain from root. A failure mid-way reports what was read."""
    if mam.codec is None:
        raise ConfigurationError("fetch needs a codec: set 'codec' in config or MAM_CODEC")
    fetch_one = mam.fetch_single
    if retries > 1:
        fetch_one = with_retry(attempts=retries)(fetch_one)

    reader = ChainReader(fetch_one, root, mode, key, limit)
    messages: list[dict[str, str]] = []
    result: dict[str, Any] = {"status": "OK"}
    try:
        async for message in reader:
            messages.append({"root": message.root, "payload": message.payload})
    except Exception as e:
        result = {"status": "PARTIAL", "error": str(e)}
    result.update(messages=messages, next_root=reader.root)
    return result


async def _run_async(args: argparse.Namespace) -> dict[str, Any]:
    config = load_config(args.config)
    mam = Mam.from_config(config)
    try:
        if args.command == "bundles":
            return await raw_bundles(mam, args.address)
        return await fetch_chain(mam, args.root, args.mode, args.key, args.limit, args.retries)
    finally:
        await mam.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mam", description="MAM channel tools")
    parser.add_argument("--config", default=None, help="Path to YAML config")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    keygen = sub.add_parser("keygen", help="Generate a random seed")
    keygen.add_argument("--length", type=int, default=SEED_LENGTH)

    modes = [m.value for m in Mode]

    address = sub.add_parser("address", help="Attachment address for a root")
    address.add_argument("root")
    address.add_argument("--mode", choices=modes, default=Mode.PUBLIC.value)
    address.add_argument("--rounds", type=int, default=None)

    bundles = sub.add_parser("bundles", help="Raw reassembled payloads at an address")
    bundles.add_argument("address")

    fetch = sub.add_parser("fetch", help="Read a channel from a root (needs a codec)")
    fetch.add_argument("root")
    fetch.add_argument("--mode", choices=modes, default=Mode.PUBLIC.value)
    fetch.add_argument("--key", default=None)
    fetch.add_argument("--limit", type=int, default=None)
    fetch.add_argument("--retries", type=int, default=1, help="Attempts per fetch (1 = no retry)")
    return parser


def run(argv: list[str] | None = None) -> dict[str, Any]:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        if args.command == "keygen":
            return {"status": "OK", "seed": key_gen(args.length)}
        if args.command == "address":
            rounds = args.rounds or load_config(args.config).hash_rounds
            return {
                "status": "OK",
                "root": args.root,
                "mode": args.mode,
                "address": derive_address(args.root, args.mode, rounds),
            }
        return asyncio.run(_run_async(args))
    except (MamError, APIError, httpx.HTTPError) as e:
        return {"status": "ERROR", "error": str(e)}


def main() -> None:
    result = run()
    print(json.dumps(result, indent=2))
    sys.exit(1 if result["status"] == "ERROR" else 0)


if __name__ == "__main__":
    main()
