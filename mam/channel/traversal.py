"""Chain traversal: follow next_root pointers until the chain runs out.

Each message's decoded payload names the root of the following message,
so the walk is strictly sequential: root n+1 is unknown until root n has
been fetched and decoded.

``ChainReader`` is the lazy form: an async iterator that fetches one
message per step and exposes ``root`` as the resume point. ``traverse``
drains a reader into a TraversalResult and wraps fetch failures in
TraversalAbort so callers keep the partial result.

A cyclic chain never runs out; pass ``limit`` when reading untrusted
channels.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from pydantic import BaseModel, Field

from mam.channel.state import Mode
from mam.codec import DecodedMessage
from mam.errors import TraversalAbort

log = logging.getLogger("mam.traversal")

FetchOne = Callable[[str, Mode, "str | None"], Awaitable["DecodedMessage | None"]]


class Message(BaseModel):
    """A decoded channel message and where it was found."""

    payload: str
    root: str
    next_root: str


class TraversalResult(BaseModel):
    messages: list[str] = Field(default_factory=list)
    next_root: str


class ChainReader:
    """Async iterator over a channel, starting at ``root``.

    After iteration stops, ``root`` is the first root with no message:
    poll it later to pick up new publications.
    """

    def __init__(
        self,
        fetch_one: FetchOne,
        root: str,
        mode: Mode | str = Mode.PUBLIC,
        side_key: str | None = None,
        limit: int | None = None,
    ):
        self._fetch_one = fetch_one
        self.root = root
        self.mode = Mode(mode)
        self.side_key = side_key
        self.limit = limit
        self.count = 0
        self.exhausted = False

    def __aiter__(self) -> ChainReader:
        return self

    async def __anext__(self) -> Message:
        if self.exhausted or (self.limit is not None and self.count >= self.limit):
            raise StopAsyncIteration

        decoded = await self._fetch_one(self.root, self.mode, self.side_key)
        if decoded is None:
            self.exhausted = True
            raise StopAsyncIteration

        message = Message(payload=decoded.payload, root=self.root, next_root=decoded.next_root)
        self.root = decoded.next_root
        self.count += 1
        return message


async def traverse(
    fetch_one: FetchOne,
    root: str,
    mode: Mode | str = Mode.PUBLIC,
    side_key: str | None = None,
    on_message: Callable[[str], None] | None = None,
    limit: int | None = None,
) -> TraversalResult:
    """Read every message from ``root`` onward.

    ``on_message`` is called synchronously with each payload as it is
    decoded. Raises TraversalAbort (carrying the partial result) if the
    fetch primitive fails.
    """
    reader = ChainReader(fetch_one, root, mode, side_key, limit)
    messages: list[str] = []
    while True:
        try:
            message = await reader.__anext__()
        except StopAsyncIteration:
            break
        except Exception as e:
            log.warning("Traversal aborted at %s after %d messages: %s", reader.root[:12], len(messages), e)
            raise TraversalAbort(
                f"Fetch failed at {reader.root}: {e}",
                partial=TraversalResult(messages=messages, next_root=reader.root),
            ) from e

        messages.append(message.payload)
        if on_message is not None:
            on_message(message.payload)

    log.debug("Traversal from %s read %d messages", root[:12], len(messages))
    return TraversalResult(messages=messages, next_root=reader.root)
