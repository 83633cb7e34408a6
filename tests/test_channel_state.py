"""Tests for the channel cursor and attachment address derivation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from mam.channel.address import derive_address, hash_trytes, validate_root
from mam.channel.state import (
    SIDE_KEY_LENGTH,
    ChannelState,
    Mode,
    Subscription,
    advance,
    pad_side_key,
)
from mam.errors import InvalidAddressError

ROOT = "MAMROOT" + "A" * 74


# --- Cursor ---


class TestAdvance:
    def test_steps_within_subtree(self):
        channel = ChannelState(start=10, count=4, next_count=4, index=1)
        nxt = advance(channel)
        assert (nxt.start, nxt.index, nxt.count) == (10, 2, 4)

    def test_exhausted_subtree_moves_to_next(self):
        channel = ChannelState(start=10, count=4, next_count=8, index=3)
        nxt = advance(channel)
        assert nxt.index == 0
        assert nxt.start == 18

    def test_default_single_leaf_channel(self):
        channel = ChannelState()
        for expected_start in range(1, 6):
            channel = advance(channel)
            assert channel.index == 0
            assert channel.start == expected_start

    def test_index_always_below_count(self):
        channel = ChannelState(count=3, next_count=5)
        for _ in range(50):
            channel = advance(channel)
            assert 0 <= channel.index < channel.count

    def test_no_leaf_used_twice(self):
        """Each advance yields a fresh absolute leaf."""
        channel = ChannelState(count=4, next_count=4)
        seen = {channel.leaf}
        for _ in range(40):
            channel = advance(channel)
            assert channel.leaf not in seen
            seen.add(channel.leaf)

    def test_input_not_mutated(self):
        channel = ChannelState(count=2, index=0)
        advance(channel, next_root="B" * 81)
        assert channel.index == 0
        assert channel.next_root is None

    def test_next_root_recorded(self):
        nxt = advance(ChannelState(), next_root="B" * 81)
        assert nxt.next_root == "B" * 81

    def test_next_root_kept_when_not_given(self):
        nxt = advance(ChannelState(next_root="C" * 81))
        assert nxt.next_root == "C" * 81


class TestChannelStateValidation:
    def test_index_outside_subtree_rejected(self):
        with pytest.raises(ValidationError):
            ChannelState(count=2, index=2)

    def test_assignment_validated(self):
        channel = ChannelState(count=2)
        with pytest.raises(ValidationError):
            channel.index = 5

    def test_security_range(self):
        with pytest.raises(ValidationError):
            ChannelState(security=4)

    def test_side_key_hidden_from_repr(self):
        channel = ChannelState(side_key="SECRET")
        assert "SECRET" not in repr(channel)

    def test_subscription_defaults(self):
        sub = Subscription(root=ROOT)
        assert sub.active is True
        assert sub.timeout == 5.0
        assert sub.next_root is None
        assert sub.mode is Mode.PUBLIC


class TestPadSideKey:
    def test_pads_to_81(self):
        assert pad_side_key("ABC") == "ABC" + "9" * 78
        assert len(pad_side_key("ABC")) == SIDE_KEY_LENGTH

    def test_none_passes_through(self):
        assert pad_side_key(None) is None

    def test_full_length_unchanged(self):
        assert pad_side_key("Z" * 81) == "Z" * 81


# --- Addresses ---


class TestDeriveAddress:
    def test_public_is_root(self):
        assert derive_address(ROOT, Mode.PUBLIC) == ROOT
        assert derive_address(derive_address(ROOT, "public"), "public") == ROOT

    def test_private_is_hashed(self):
        address = derive_address(ROOT, Mode.PRIVATE)
        assert address != ROOT
        assert len(address) == 81
        assert address == hash_trytes(ROOT, 81)

    def test_private_deterministic(self):
        assert derive_address(ROOT, "private") == derive_address(ROOT, "private")

    def test_restricted_same_as_private(self):
        assert derive_address(ROOT, Mode.RESTRICTED) == derive_address(ROOT, Mode.PRIVATE)

    def test_rounds_matter(self):
        assert derive_address(ROOT, Mode.PRIVATE, rounds=27) != derive_address(ROOT, Mode.PRIVATE)

    @pytest.mark.parametrize("bad", ["", "A" * 80, "A" * 82, "a" * 81, "A" * 80 + "!"])
    def test_malformed_root(self, bad):
        with pytest.raises(InvalidAddressError):
            derive_address(bad, Mode.PUBLIC)

    def test_invalid_address_is_value_error(self):
        with pytest.raises(ValueError):
            validate_root("short")

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            derive_address(ROOT, "secret")
