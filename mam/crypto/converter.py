"""Tryte / trit conversion: pure functions, no I/O.

Trytes use the 27-character alphabet ``9ABCDEFGHIJKLMNOPQRSTUVWXYZ``.
Each tryte maps to three balanced trits (-1, 0, 1), least significant
first: ``9`` = 0, ``A``..``M`` = 1..13, ``N``..``Z`` = -13..-1.
"""

from __future__ import annotations

TRYTE_ALPHABET = "9ABCDEFGHIJKLMNOPQRSTUVWXYZ"
TRITS_PER_TRYTE = 3
PAD_CHAR = "9"

_TRYTE_TO_TRITS: dict[str, tuple[int, int, int]] = {}
_TRITS_TO_TRYTE: dict[tuple[int, int, int], str] = {}

for _value, _char in enumerate(TRYTE_ALPHABET):
    _v = _value if _value <= 13 else _value - 27
    _trits = []
    for _ in range(TRITS_PER_TRYTE):
        _r = _v % 3
        if _r == 2:
            _r = -1
        _trits.append(_r)
        _v = (_v - _r) // 3
    _TRYTE_TO_TRITS[_char] = tuple(_trits)  # type: ignore[assignment]
    _TRITS_TO_TRYTE[tuple(_trits)] = _char  # type: ignore[index]


def is_trytes(value: str, length: int | None = None) -> bool:
    """True if value is a tryte string (optionally of an exact length)."""
    if not isinstance(value, str):
        return False
    if length is not None and len(value) != length:
        return False
    return all(c in _TRYTE_TO_TRITS for c in value)


def trits(trytes: str) -> list[int]:
    """Convert a tryte string to a flat list of trits."""
    out: list[int] = []
    for c in trytes:
        try:
            out.extend(_TRYTE_TO_TRITS[c])
        except KeyError:
            raise ValueError(f"Invalid tryte character: {c!r}") from None
    return out


def trytes(trit_list: list[int]) -> str:
    """Convert a list of trits (length multiple of 3) to a tryte string."""
    if len(trit_list) % TRITS_PER_TRYTE:
        raise ValueError(f"Trit count must be a multiple of 3, got {len(trit_list)}")
    return "".join(
        _TRITS_TO_TRYTE[tuple(trit_list[i:i + TRITS_PER_TRYTE])]  # type: ignore[index]
        for i in range(0, len(trit_list), TRITS_PER_TRYTE)
    )


def int_from_trits(trit_list: list[int]) -> int:
    """Decode little-endian balanced ternary."""
    value = 0
    for t in reversed(trit_list):
        value = value * 3 + t
    return value


def trits_from_int(value: int, length: int) -> list[int]:
    """Encode an integer as little-endian balanced ternary, padded to length."""
    out: list[int] = []
    v = value
    while v != 0:
        r = v % 3
        if r == 2:
            r = -1
        out.append(r)
        v = (v - r) // 3
    if len(out) > length:
        raise ValueError(f"{value} does not fit in {length} trits")
    return out + [0] * (length - len(out))


def int_from_trytes(tryte_str: str) -> int:
    return int_from_trits(trits(tryte_str))


def trytes_from_int(value: int, length: int) -> str:
    """Encode an integer into exactly ``length`` trytes."""
    return trytes(trits_from_int(value, length * TRITS_PER_TRYTE))


def pad_trytes(value: str, length: int) -> str:
    """Right-pad a tryte string with ``9`` to the given length."""
    return value.ljust(length, PAD_CHAR)


def ascii_to_trytes(text: str) -> str:
    """Encode ASCII text as trytes, two trytes per character."""
    out = []
    for ch in text:
        code = ord(ch)
        if code > 255:
            raise ValueError(f"Non-ASCII character: {ch!r}")
        first, second = code % 27, code // 27
        out.append(TRYTE_ALPHABET[first] + TRYTE_ALPHABET[second])
    return "".join(out)


def trytes_to_ascii(tryte_str: str) -> str:
    """Decode trytes produced by ``ascii_to_trytes``. Trailing ``9`` pairs are dropped."""
    stripped = tryte_str.rstrip(PAD_CHAR)
    if len(stripped) % 2:
        stripped += PAD_CHAR
    chars = []
    for i in range(0, len(stripped), 2):
        first = TRYTE_ALPHABET.index(stripped[i])
        second = TRYTE_ALPHABET.index(stripped[i + 1])
        chars.append(chr(first + second * 27))
    return "".join(chars)
