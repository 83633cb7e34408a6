"""Exception types for the MAM channel layer.

Propagation policy:
  - ConfigurationError is returned (not raised) by change_mode
  - DecodeError is raised by codecs, caught per candidate, logged, skipped
  - SubmissionError and TraversalAbort always reach the caller
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mam.channel.traversal import TraversalResult


class MamError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(MamError):
    """Invalid channel mode or missing side key."""


class InvalidAddressError(MamError, ValueError):
    """Root / address is not a tryte string of the expected length."""

    def __init__(self, message: str, value: str = ""):
        super().__init__(message)
        self.value = value


class DecodeError(MamError):
    """A reassembled payload could not be unmasked / parsed."""


class SubmissionError(MamError):
    """The ledger rejected, or failed to accept, an attach."""


class TraversalAbort(MamError):
    """The fetch primitive failed mid-chain.

    ``partial`` holds every message decoded before the failure and the
    root that was being fetched when it happened.
    """

    def __init__(self, message: str, partial: TraversalResult):
        super().__init__(message)
        self.partial = partial
