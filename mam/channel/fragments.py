"""Bundle fragment reassembly.

A message longer than one transaction is split across the transactions
of a bundle, each carrying a fragment at ``current_index`` out of
``last_index + 1``. Fragments arrive unordered and possibly interleaved
with other bundles. The reassembler buffers them per bundle and emits
the concatenated payload the moment every position is present.

Incomplete bundles are held in a bounded buffer: the oldest is evicted
once ``capacity`` is exceeded, and any older than ``max_age`` seconds is
dropped on the next ingest.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Iterable

log = logging.getLogger("mam.fragments")

DEFAULT_CAPACITY = 256
DEFAULT_MAX_AGE_SECONDS = 600.0


@dataclass(frozen=True)
class Fragment:
    """One transaction's share of a bundle's message."""

    bundle: str
    position: int
    content: str
    last_index: int


@dataclass
class _PendingBundle:
    total: int
    parts: dict[int, str] = field(default_factory=dict)
    first_seen: float = 0.0


class FragmentReassembler:
    """Accumulates fragments across calls; emits completed payloads."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        max_age: float | None = DEFAULT_MAX_AGE_SECONDS,
        clock=time.monotonic,
    ):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self.max_age = max_age
        self._clock = clock
        self._pending: OrderedDict[str, _PendingBundle] = OrderedDict()

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, bundle: str) -> bool:
        return bundle in self._pending

    @property
    def pending(self) -> list[str]:
        """Bundle ids still waiting for fragments, oldest first."""
        return list(self._pending)

    def ingest(self, fragments: Iterable[Fragment]) -> list[str]:
        """Record fragments; return payloads of bundles completed by this call.

        A duplicate position overwrites the earlier content (last write wins).
        Payloads are ordered by when their bundle completed.
        """
        self._expire()
        completed: list[str] = []

        for frag in fragments:
            entry = self._pending.get(frag.bundle)
            if entry is None:
                entry = _PendingBundle(total=frag.last_index + 1, first_seen=self._clock())
                self._pending[frag.bundle] = entry
                self._enforce_capacity()
            elif frag.position in entry.parts:
                log.debug("Duplicate fragment %s[%d], overwriting", frag.bundle[:12], frag.position)

            entry.parts[frag.position] = frag.content

            if len(entry.parts) == entry.total:
                del self._pending[frag.bundle]
                completed.append(
                    "".join(content for _, content in sorted(entry.parts.items()))
                )

        return completed

    def abandon(self, bundle: str) -> bool:
        """Drop an incomplete bundle. Returns False if it was not pending."""
        return self._pending.pop(bundle, None) is not None

    def clear(self) -> None:
        self._pending.clear()

    def _enforce_capacity(self) -> None:
        while len(self._pending) > self.capacity:
            bundle, entry = self._pending.popitem(last=False)
            log.warning(
                "Fragment buffer full, evicting bundle %s (%d/%d fragments)",
                bundle[:12], len(entry.parts), entry.total,
            )

    def _expire(self) -> None:
        if self.max_age is None:
            return
        cutoff = self._clock() - self.max_age
        stale = [b for b, e in self._pending.items() if e.first_seen < cutoff]
        for bundle in stale:
            entry = self._pending.pop(bundle)
            log.warning(
                "Abandoning stale bundle %s (%d/%d fragments)",
                bundle[:12], len(entry.parts), entry.total,
            )
