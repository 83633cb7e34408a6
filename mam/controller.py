"""MAM channel controller: publish to and read from masked message chains.

Composes the pieces:
  - codec (MaskingCodec) masks/unmasks payloads and knows the roots
  - advance() moves the publisher's merkle cursor after each message
  - derive_address() turns a root into the ledger address for its mode
  - FragmentReassembler rebuilds payloads from bundle transactions
  - traverse()/ChainReader walk next_root pointers
  - Listener polls subscriptions

Every collaborator is injected; nothing here is process-global, so one
process can run any number of independent sessions.

Usage:
    mam, state = init("https://node.example.org:443", codec=my_codec)
    pub = mam.create(state, ascii_to_trytes("hello"))
    await mam.attach(pub.payload, pub.address)
    result = await mam.fetch(pub.root, "public")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from mam.channel.address import derive_address, validate_root
from mam.channel.fragments import FragmentReassembler
from mam.channel.listener import ListenHandle, Listener, MessagesCallback
from mam.channel.state import (
    ChannelState,
    MamState,
    Mode,
    Subscription,
    advance,
    pad_side_key,
)
from mam.channel.traversal import ChainReader, TraversalResult, traverse
from mam.clients.ledger import IriClient, LedgerClient
from mam.clients.transaction import NULL_HASH, Transaction, Transfer
from mam.codec import DecodedMessage, MaskingCodec, load_codec
from mam.config import MamConfig
from mam.crypto.keygen import SEED_LENGTH, key_gen
from mam.errors import ConfigurationError, DecodeError, SubmissionError

log = logging.getLogger("mam.controller")


@dataclass
class Publication:
    """Result of create(): what to attach, and where."""

    state: MamState
    payload: str
    root: str
    address: str


@dataclass
class ModeChangeResult:
    state: MamState
    error: ConfigurationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def new_state(seed: str | None = None, security: int = 2) -> MamState:
    """Fresh session state: public mode, cursor at leaf 0 of a 1-leaf subtree."""
    return MamState(
        seed=seed if seed is not None else key_gen(SEED_LENGTH),
        channel=ChannelState(security=security),
    )


class Mam:
    """One MAM session bound to a ledger client and a codec."""

    def __init__(
        self,
        ledger: LedgerClient,
        codec: MaskingCodec | None = None,
        config: MamConfig | None = None,
    ):
        self.ledger = ledger
        self.codec = codec
        self.config = config or MamConfig()
        self._listener = Listener(self.fetch_single)

    @classmethod
    def from_config(cls, config: MamConfig, codec: MaskingCodec | None = None) -> Mam:
        ledger = IriClient(
            config.provider,
            timeout=config.request_timeout,
            rate_limit=config.rate_limit,
        )
        if codec is None and config.codec:
            codec = load_codec(config.codec)
        return cls(ledger, codec, config)

    def _require_codec(self) -> MaskingCodec:
        if self.codec is None:
            raise ConfigurationError("No masking codec configured for this session")
        return self.codec

    # ── Session state ───────────────────────────────────────────────

    def init(self, seed: str | None = None, security: int | None = None) -> MamState:
        return new_state(
            seed if seed is not None else self.config.seed,
            security if security is not None else self.config.security,
        )

    def subscribe(
        self,
        state: MamState,
        root: str,
        key: str | None = None,
        mode: Mode | str | None = None,
    ) -> MamState:
        """Register a subscription keyed by root.

        Mode defaults to restricted when a key is given, public otherwise.
        """
        validate_root(root)
        if mode is None:
            mode = Mode.RESTRICTED if key else Mode.PUBLIC
        state.subscribed[root] = Subscription(
            root=root,
            channel_key=key,
            mode=Mode(mode),
            timeout=self.config.listen_timeout,
        )
        return state

    def change_mode(self, state: MamState, mode: Mode | str, side_key: str | None = None) -> ModeChangeResult:
        """Switch channel visibility. Rejections are returned, never raised.

        State is left untouched when the mode is unknown or a restricted
        channel is requested without a side key.
        """
        try:
            new_mode = Mode(mode)
        except ValueError:
            log.warning("Rejected mode change: unknown mode %r", mode)
            return ModeChangeResult(state, ConfigurationError(f"Did not recognise mode {mode!r}"))

        if new_mode is Mode.RESTRICTED and not side_key:
            log.warning("Rejected mode change: restricted channel without side key")
            return ModeChangeResult(
                state, ConfigurationError("A side key is required for a restricted channel")
            )

        if side_key:
            state.channel.side_key = pad_side_key(side_key)
        state.channel.mode = new_mode
        return ModeChangeResult(state)

    # ── Publishing ─────────────────────────────────────────────────

    def create(self, state: MamState, message: str) -> Publication:
        """Mask ``message`` under the next unused leaf and advance the cursor.

        The address is derived from the root the message was masked
        under, before the cursor moves.
        """
        codec = self._require_codec()
        channel = state.channel
        masked = codec.create_message(state.seed, message, channel.side_key, channel)

        address = derive_address(masked.root, channel.mode, self.config.hash_rounds)
        state.channel = advance(channel, masked.next_root)
        log.debug("Created message at leaf %d, next leaf %d", channel.leaf, state.channel.leaf)

        return Publication(state=state, payload=masked.payload, root=masked.root, address=address)

    def get_root(self, state: MamState) -> str:
        """Root the next create() will publish under."""
        return self._require_codec().get_root(state.seed, state.channel)

    async def attach(
        self,
        payload: str,
        address: str,
        depth: int | None = None,
        mwm: int | None = None,
    ) -> list[Transaction]:
        """Submit ``payload`` as a zero-value bundle at ``address``.

        Any failure is wrapped in SubmissionError.
        """
        depth = depth if depth is not None else self.config.depth
        mwm = mwm if mwm is not None else self.config.mwm
        try:
            trytes = await self.ledger.prepare_transfers(
                NULL_HASH, [Transfer(address=address, message=payload)], {}
            )
            return await self.ledger.send_trytes(trytes, depth, mwm)
        except Exception as e:
            raise SubmissionError(f"failed to attach message: {e}") from e

    async def publish(self, state: MamState, message: str) -> Publication:
        """create() then attach(). The leaf stays consumed even if attach fails."""
        publication = self.create(state, message)
        await self.attach(publication.payload, publication.address)
        return publication

    # ── Reading ────────────────────────────────────────────────────

    def decode(self, payload: str, side_key: str | None, root: str) -> DecodedMessage:
        """Unmask one payload. Raises DecodeError on failure."""
        return self._require_codec().decode_message(payload, pad_side_key(side_key), root)

    async def fetch_single(
        self,
        root: str,
        mode: Mode | str = Mode.PUBLIC,
        side_key: str | None = None,
        rounds: int | None = None,
    ) -> DecodedMessage | None:
        """First decodable message attached for ``root``, or None."""
        address = derive_address(root, mode, rounds or self.config.hash_rounds)
        hashes = await self.ledger.find_transactions([address])
        if not hashes:
            return None

        txs = await self.ledger.get_transaction_objects(hashes)
        reassembler = FragmentReassembler(
            capacity=self.config.fragment_capacity,
            max_age=self.config.fragment_max_age,
        )
        payloads = reassembler.ingest(tx.as_fragment() for tx in txs)
        if len(reassembler):
            log.debug("%d incomplete bundles at %s", len(reassembler), address[:12])

        for payload in payloads:
            try:
                return self.decode(payload, side_key, root)
            except DecodeError as e:
                log.warning("Failed to parse candidate at %s: %s", address[:12], e)
        return None

    async def fetch(
        self,
        root: str,
        mode: Mode | str = Mode.PUBLIC,
        side_key: str | None = None,
        callback: Callable[[str], None] | None = None,
        limit: int | None = None,
    ) -> TraversalResult:
        """Every message from ``root`` to the end of the chain."""
        return await traverse(self.fetch_single, root, mode, side_key, on_message=callback, limit=limit)

    def read(
        self,
        root: str,
        mode: Mode | str = Mode.PUBLIC,
        side_key: str | None = None,
        limit: int | None = None,
    ) -> ChainReader:
        """Lazy async iterator over the chain from ``root``."""
        return ChainReader(self.fetch_single, root, mode, side_key, limit)

    def listen(self, subscription: Subscription, callback: MessagesCallback) -> ListenHandle:
        """Poll ``subscription`` every ``subscription.timeout`` seconds."""
        return self._listener.listen(subscription, callback)

    async def close(self) -> None:
        close = getattr(self.ledger, "close", None)
        if close is not None:
            await close()


def init(
    provider: str | LedgerClient,
    seed: str | None = None,
    security: int | None = None,
    codec: MaskingCodec | None = None,
    config: MamConfig | None = None,
) -> tuple[Mam, MamState]:
    """Create a session for ``provider`` (node URL or LedgerClient) and its state.

    ``seed`` and ``security`` fall back to the config values.
    """
    config = config or MamConfig()
    if isinstance(provider, str):
        config = config.model_copy(update={"provider": provider})
        mam = Mam.from_config(config, codec)
    else:
        mam = Mam(provider, codec, config)
    return mam, mam.init(seed, security)
