"""Tests for tryte/trit conversion, the Curl and Kerl sponges, and key generation."""

from __future__ import annotations

import pytest

from mam.crypto.converter import (
    TRYTE_ALPHABET,
    ascii_to_trytes,
    int_from_trits,
    int_from_trytes,
    is_trytes,
    pad_trytes,
    trits,
    trits_from_int,
    trytes,
    trytes_to_ascii,
    trytes_from_int,
)
from mam.crypto.curl import HASH_LENGTH, Curl, hash_trits
from mam.crypto.kerl import BYTE_LENGTH, Kerl, bytes_to_trits, kerl_hash, trits_to_bytes
from mam.crypto.keygen import KEY_CHARSET, key_gen


class TestConverter:
    def test_tryte_values(self):
        assert trits("9") == [0, 0, 0]
        assert trits("A") == [1, 0, 0]
        assert trits("M") == [1, 1, 1]      # 13
        assert trits("N") == [-1, -1, -1]   # -13
        assert trits("Z") == [-1, 0, 0]     # -1

    def test_every_tryte_survives_conversion(self):
        assert trytes(trits(TRYTE_ALPHABET)) == TRYTE_ALPHABET

    def test_invalid_character_rejected(self):
        with pytest.raises(ValueError):
            trits("abc")

    def test_trit_count_must_be_multiple_of_three(self):
        with pytest.raises(ValueError):
            trytes([1, 0])

    def test_integer_encoding(self):
        assert int_from_trits([1, 1, 1]) == 13
        assert int_from_trits([0, 1]) == 3
        assert trits_from_int(-4, 3) == [-1, -1, 0]
        assert int_from_trytes(trytes_from_int(1234567, 9)) == 1234567
        assert int_from_trytes(trytes_from_int(-42, 9)) == -42

    def test_integer_too_large_for_length(self):
        with pytest.raises(ValueError):
            trits_from_int(100, 3)

    def test_is_trytes(self):
        assert is_trytes("ABC9")
        assert is_trytes("A" * 81, 81)
        assert not is_trytes("A" * 80, 81)
        assert not is_trytes("abc")
        assert not is_trytes(None)  # type: ignore[arg-type]

    def test_pad(self):
        assert pad_trytes("ABC", 6) == "ABC999"
        assert pad_trytes("ABCDEF", 3) == "ABCDEF"

    def test_ascii(self):
        encoded = ascii_to_trytes("Hello, MAM!")
        assert is_trytes(encoded)
        assert len(encoded) == 22
        assert trytes_to_ascii(encoded) == "Hello, MAM!"
        assert trytes_to_ascii(encoded + "9999") == "Hello, MAM!"


class TestCurl:
    def test_digest_length(self):
        assert len(hash_trits(81, trits("A" * 81))) == HASH_LENGTH

    def test_deterministic(self):
        data = trits("MAMROOT" + "9" * 74)
        assert hash_trits(81, data) == hash_trits(81, data)

    def test_input_changes_digest(self):
        a = hash_trits(81, trits("A" * 81))
        b = hash_trits(81, trits("B" + "A" * 80))
        assert a != b

    def test_rounds_change_digest(self):
        data = trits("A" * 81)
        assert hash_trits(27, data) != hash_trits(81, data)

    def test_digest_trits_balanced(self):
        assert set(hash_trits(27, trits("Q" * 81))) <= {-1, 0, 1}

    def test_rejects_non_positive_rounds(self):
        with pytest.raises(ValueError):
            Curl(0)

    def test_reset_restores_initial_state(self):
        curl = Curl(27)
        curl.absorb(trits("A" * 81))
        first = curl.squeeze()
        curl.reset()
        curl.absorb(trits("A" * 81))
        assert curl.squeeze() == first


class TestKerl:
    def test_known_answer(self):
        data = trits("EMIDYNHBWMBCXVDEFOFWINXTERALUKYYPPHKP9JJFGJEIUY9MUDVNFZHMMWZUYUSWAIOWEVTHNWMHANBH")
        expected = "EJEAOOZYSAWFPZQESYDHZCGYNSTWXUMVJOVDWUNZJXDGWCLUFGIMZRMGCAZGKNPLBRLGUNYWKLJTYEAQX"
        assert trytes(kerl_hash(data)) == expected

    def test_block_to_bytes_twos_complement(self):
        assert trits_to_bytes([0] * HASH_LENGTH) == bytes(BYTE_LENGTH)
        assert trits_to_bytes([-1] + [0] * (HASH_LENGTH - 1)) == b"\xff" * BYTE_LENGTH

    def test_last_trit_ignored(self):
        block = trits("A" * 81)
        flipped = block[:-1] + [-block[-1] or 1]
        assert trits_to_bytes(block) == trits_to_bytes(flipped)

    def test_bytes_to_trits_zeroes_last_trit(self):
        out = bytes_to_trits(b"\x7f" + b"\xff" * (BYTE_LENGTH - 1))
        assert len(out) == HASH_LENGTH
        assert out[-1] == 0

    def test_rejects_partial_block(self):
        with pytest.raises(ValueError):
            Kerl().absorb([0] * 100)

    def test_differs_from_curl(self):
        data = trits("A" * 81)
        assert kerl_hash(data) != hash_trits(81, data)

    def test_multi_squeeze_continues(self):
        sponge = Kerl()
        sponge.absorb(trits("A" * 81))
        out = sponge.squeeze(2 * HASH_LENGTH)
        assert out[:HASH_LENGTH] == kerl_hash(trits("A" * 81))
        assert out[:HASH_LENGTH] != out[HASH_LENGTH:]


class TestKeyGen:
    def test_length_and_charset(self):
        key = key_gen(81)
        assert len(key) == 81
        assert set(key) <= set(KEY_CHARSET)

    def test_keys_differ(self):
        assert key_gen(81) != key_gen(81)

    def test_zero_length(self):
        assert key_gen(0) == ""

    def test_negative_length_rejected(self):
        with pytest.raises(ValueError):
            key_gen(-1)
