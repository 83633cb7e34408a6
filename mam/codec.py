"""Masking codec boundary.

The codec owns the cryptography: it masks a message under a merkle leaf
of the seed, embeds the next root, and reverses that for readers. This
package only moves its output around, so any object satisfying
``MaskingCodec`` can be plugged in.
"""

from __future__ import annotations

import importlib
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from mam.channel.state import ChannelState
from mam.errors import ConfigurationError


class MaskedMessage(BaseModel):
    """Codec output for one publication."""

    payload: str
    root: str
    next_root: str


class DecodedMessage(BaseModel):
    """Codec output for one successfully unmasked payload."""

    payload: str
    next_root: str


@runtime_checkable
class MaskingCodec(Protocol):
    """Deterministic given identical seed and channel state."""

    def create_message(
        self, seed: str, message: str, side_key: str | None, channel: ChannelState
    ) -> MaskedMessage: ...

    def decode_message(self, payload: str, side_key: str | None, root: str) -> DecodedMessage:
        """Raise ``mam.errors.DecodeError`` when the payload does not unmask."""
        ...

    def get_root(self, seed: str, channel: ChannelState) -> str: ...


def load_codec(path: str, **kwargs: Any) -> MaskingCodec:
    """Resolve a ``"package.module:attribute"`` path to a codec instance.

    A class or factory function is called with ``kwargs``; a ready-made
    codec object is used as-is.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"Codec path must look like 'module:attribute', got {path!r}")
    try:
        module = importlib.import_module(module_name)
        target = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load codec {path!r}: {e}") from e

    if isinstance(target, type) or (callable(target) and not isinstance(target, MaskingCodec)):
        codec = target(**kwargs)
    else:
        codec = target
    if isinstance(codec, type) or not isinstance(codec, MaskingCodec):
        raise ConfigurationError(f"{path!r} does not provide create_message/decode_message/get_root")
    return codec
