"""MAM channel layer: masked, chained messages anchored on a ternary ledger.

Publisher:  init → change_mode → create/publish (advances the merkle cursor)
Reader:     fetch / read (walks next_root pointers) → listen (polls)

Controller: mam/controller.py
State:      mam/channel/state.py  (ChannelState, advance)
Addresses:  mam/channel/address.py
Fragments:  mam/channel/fragments.py
Traversal:  mam/channel/traversal.py, mam/channel/listener.py
Ledger:     mam/clients/ledger.py (IRI HTTP API), mam/clients/transaction.py (bundles, Kerl hash)
"""

from mam.channel.address import derive_address, hash_trytes
from mam.channel.fragments import Fragment, FragmentReassembler
from mam.channel.listener import ListenHandle, Listener
from mam.channel.state import (
    ChannelState,
    MamState,
    Mode,
    Subscription,
    advance,
    pad_side_key,
)
from mam.channel.traversal import ChainReader, Message, TraversalResult, traverse
from mam.clients.ledger import IriClient, LedgerClient
from mam.codec import DecodedMessage, MaskedMessage, MaskingCodec, load_codec
from mam.config import MamConfig, load_config
from mam.controller import Mam, ModeChangeResult, Publication, init, new_state
from mam.crypto.keygen import key_gen
from mam.errors import (
    ConfigurationError,
    DecodeError,
    InvalidAddressError,
    MamError,
    SubmissionError,
    TraversalAbort,
)

__all__ = [
    # Controller
    "Mam",
    "ModeChangeResult",
    "Publication",
    "init",
    "new_state",
    # State
    "ChannelState",
    "MamState",
    "Mode",
    "Subscription",
    "advance",
    "pad_side_key",
    # Addresses / fragments / traversal
    "derive_address",
    "hash_trytes",
    "Fragment",
    "FragmentReassembler",
    "ChainReader",
    "Message",
    "TraversalResult",
    "traverse",
    "Listener",
    "ListenHandle",
    # Boundaries
    "IriClient",
    "LedgerClient",
    "DecodedMessage",
    "MaskedMessage",
    "MaskingCodec",
    "load_codec",
    # Config
    "MamConfig",
    "load_config",
    "key_gen",
    # Errors
    "MamError",
    "ConfigurationError",
    "DecodeError",
    "InvalidAddressError",
    "SubmissionError",
    "TraversalAbort",
]
