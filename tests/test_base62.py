"""Unit tests for Base62 encoding and decoding."""

import pytest

from shortener.base62 import ALPHABET, MAX_VALUE, decode, encode, encode_padded
from shortener.exceptions import EmptyInputError, InvalidCharacterError, InvalidShortCodeError


def test_alphabet_order() -> None:
    assert ALPHABET[:10] == "0123456789"
    assert ALPHABET[10:36] == "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    assert ALPHABET[36:] == "abcdefghijklmnopqrstuvwxyz"
    assert len(set(ALPHABET)) == 62


def test_encode_basic() -> None:
    assert encode(0) == "0"
    assert encode(1) == "1"
    assert encode(10) == "A"
    assert encode(61) == "z"
    assert encode(62) == "10"
    assert encode(12345) == "3D7"


def test_encode_rejects_out_of_range() -> None:
    with pytest.raises(ValueError):
        encode(-1)
    with pytest.raises(ValueError):
        encode(MAX_VALUE + 1)


@pytest.mark.parametrize("number", [0, 1, 61, 62, 3843, 3844, 12345, 2**41, 2**63, MAX_VALUE])
def test_round_trip(number: int) -> None:
    assert decode(encode(number)) == number


def test_max_value_fits_eleven_characters() -> None:
    assert len(encode(MAX_VALUE)) == 11


@pytest.mark.parametrize("number", [0, 12345, 2**40, MAX_VALUE])
def test_padded_length_and_value(number: int) -> None:
    for length in range(0, 12):
        padded = encode_padded(number, length)
        assert len(padded) == max(length, len(encode(number)))
        assert decode(padded) == number


def test_padding_uses_zero_character() -> None:
    assert encode_padded(1, 6) == "000001"


def test_decode_empty() -> None:
    with pytest.raises(EmptyInputError):
        decode("")


def test_decode_invalid_character() -> None:
    with pytest.raises(InvalidCharacterError) as exc_info:
        decode("!!")
    assert exc_info.value.character == "!"
    assert exc_info.value.position == 0


def test_decode_errors_are_invalid_short_codes() -> None:
    with pytest.raises(InvalidShortCodeError):
        decode("ab-c")


def test_decode_overflow() -> None:
    with pytest.raises(InvalidShortCodeError):
        decode("z" * 12)
