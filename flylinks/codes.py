"""Map sequence positions to short codes and back.

Codes are base 62 numerals over ``0-9a-zA-Z``. Every non-negative integer
has exactly one code (no leading zeros), so walking :func:`advance` from
``encode(0)`` visits every code once, in increasing order.
"""

import string

from flylinks.errors import InvalidCodeError

ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase
BASE = len(ALPHABET)
INDEX = {char: position for position, char in enumerate(ALPHABET)}


def encode(n: int) -> str:
    if isinstance(n, bool) or not isinstance(n, int) or n < 0:
        raise ValueError(f"Sequence position must be a non-negative integer, got {n!r}")
    if n < BASE:
        return ALPHABET[n]
    digits = []
    while n:
        n, remainder = divmod(n, BASE)
        digits.append(ALPHABET[remainder])
    return "".join(reversed(digits))


def decode(code: str) -> int:
    if not isinstance(code, str) or not code:
        raise InvalidCodeError("Empty code")
    if len(code) > 1 and code[0] == ALPHABET[0]:
        raise InvalidCodeError(f"Code {code!r} has a leading zero")
    n = 0
    for char in code:
        try:
            n = n * BASE + INDEX[char]
        except KeyError:
            raise InvalidCodeError(f"Code {code!r} contains {char!r}") from None
    return n


def advance(code: str) -> str:
    """Return the code that follows ``code`` in the sequence."""
    return encode(decode(code) + 1)

