"""Base62 encoding of 64-bit unsigned integers.

The alphabet is digits, then uppercase, then lowercase, so ``"0"`` is the
zero digit and left-padding with it never changes the decoded value.

How to Use
===========
::
    >>> encode(12345)
    '3D7'
    >>> encode_padded(12345, 6)
    '0003D7'
    >>> decode("0003D7")
    12345

Functions:
    encode():  Shortest Base62 representation of a non-negative integer.
    encode_padded():  Same, left-padded to a minimum length.
    decode():  Inverse of encode/encode_padded.
"""

from shortener.exceptions import EmptyInputError, InvalidCharacterError, InvalidShortCodeError

__all__ = ["ALPHABET", "BASE", "MAX_VALUE", "encode", "encode_padded", "decode"]

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
BASE = len(ALPHABET)
MAX_VALUE = (1 << 64) - 1

_INDEX = {char: index for index, char in enumerate(ALPHABET)}


def encode(number: int) -> str:
    if number < 0 or number > MAX_VALUE:
        raise ValueError(f"Number must be an unsigned 64-bit integer, got {number!r}")

    if number == 0:
        return ALPHABET[0]

    result = []
    while number > 0:
        number, remainder = divmod(number, BASE)
        result.append(ALPHABET[remainder])

    return "".join(result[::-1])


def encode_padded(number: int, min_length: int) -> str:
    return encode(number).rjust(min_length, ALPHABET[0])


def decode(value: str) -> int:
    """Decode a Base62 string, most significant digit first.

    Raises:
        EmptyInputError: If ``value`` is empty.
        InvalidCharacterError: If ``value`` holds a character outside the alphabet.
        InvalidShortCodeError: If the decoded value does not fit in 64 bits.
    """
    if not value:
        raise EmptyInputError("Cannot decode an empty string")

    number = 0
    for position, char in enumerate(value):
        digit = _INDEX.get(char)
        if digit is None:
            raise InvalidCharacterError(char, position)
        number = number * BASE + digit

    if number > MAX_VALUE:
        raise InvalidShortCodeError(f"'{value}' does not fit in 64 bits")
    return number
