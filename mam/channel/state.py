"""Channel state: the publisher's merkle-tree cursor and consumer subscriptions.

A channel publishes each message under one leaf of a merkle subtree.
``start`` is the first leaf of the active subtree, ``index`` the next
unused leaf inside it. ``advance`` is the only function that moves the
cursor; it must run exactly once per successful publication.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mam.crypto.converter import pad_trytes

SIDE_KEY_LENGTH = 81
DEFAULT_SECURITY = 2
DEFAULT_POLL_SECONDS = 5.0


class Mode(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    RESTRICTED = "restricted"


def pad_side_key(side_key: str | None) -> str | None:
    """Right-pad a side key with ``9`` to 81 trytes. ``None`` passes through."""
    if side_key is None:
        return None
    return pad_trytes(side_key, SIDE_KEY_LENGTH)


class ChannelState(BaseModel):
    """Merkle-tree position of a publishing channel."""

    model_config = ConfigDict(validate_assignment=True)

    side_key: str | None = Field(default=None, repr=False)
    mode: Mode = Mode.PUBLIC
    next_root: str | None = None
    security: int = Field(default=DEFAULT_SECURITY, ge=1, le=3)
    start: int = Field(default=0, ge=0)
    count: int = Field(default=1, ge=1)
    next_count: int = Field(default=1, ge=1)
    index: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _index_within_subtree(self) -> ChannelState:
        if self.index >= self.count:
            raise ValueError(f"index {self.index} outside subtree of {self.count} leaves")
        return self

    @property
    def leaf(self) -> int:
        """Absolute position of the next unused leaf."""
        return self.start + self.index


class Subscription(BaseModel):
    """A consumer's position on someone else's channel."""

    root: str
    channel_key: str | None = Field(default=None, repr=False)
    mode: Mode = Mode.PUBLIC
    timeout: float = DEFAULT_POLL_SECONDS
    next_root: str | None = None
    active: bool = True


class MamState(BaseModel):
    """Everything a session owns: its seed, its channel, its subscriptions."""

    seed: str = Field(repr=False)
    channel: ChannelState = Field(default_factory=ChannelState)
    subscribed: dict[str, Subscription] = Field(default_factory=dict)


def advance(channel: ChannelState, next_root: str | None = None) -> ChannelState:
    """Step the cursor past the leaf that was just used.

    When the last leaf of the subtree was consumed, the cursor moves to
    the first leaf of the following subtree (``start += next_count``).
    Returns a new ChannelState; the input is left untouched.
    """
    if channel.index == channel.count - 1:
        start = channel.start + channel.next_count
        index = 0
    else:
        start = channel.start
        index = channel.index + 1

    return channel.model_copy(update={
        "start": start,
        "index": index,
        "next_root": next_root if next_root is not None else channel.next_root,
    })
