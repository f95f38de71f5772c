"""NUL-terminated string and raw memory helpers with C library semantics."""

from itertools import islice, zip_longest
from typing import List, Optional, Tuple, Union

Text = Union[str, bytes, bytearray]

_LONG_BITS = 64
_LONG_MASK = (1 << _LONG_BITS) - 1


def _codes(s: Text) -> List[int]:
    """Character codes of ``s`` up to (not including) its first NUL."""
    if isinstance(s, (bytes, bytearray, memoryview)):
        return list(bytes(s).split(b"\0", 1)[0])
    return [ord(ch) for ch in s.split("\0", 1)[0]]


def _char_code(c) -> int:
    if isinstance(c, int):
        return c
    if isinstance(c, (bytes, bytearray)):
        return c[0] if c else 0
    return ord(c) if c else 0


def _to_signed_long(value: int) -> int:
    value &= _LONG_MASK
    if value >= 1 << (_LONG_BITS - 1):
        value -= 1 << _LONG_BITS
    return value


def strnlen(s: Text, length: int) -> int:
    """Length of ``s`` up to its terminator, but at most ``length``."""
    return min(len(_codes(s)), max(length, 0))


def strncpy(src: Text, length: int) -> Text:
    """Copy ``src`` into exactly ``length`` characters, padding with NULs."""
    if isinstance(src, (bytes, bytearray)):
        head = bytes(src).split(b"\0", 1)[0][:length]
        return head + b"\0" * (length - len(head))
    head = src.split("\0", 1)[0][:length]
    return head + "\0" * (length - len(head))


def strcmp(s1: Text, s2: Text) -> int:
    """Difference of the first differing characters, or 0 if equal."""
    for a, b in zip_longest(_codes(s1), _codes(s2), fillvalue=0):
        if a != b:
            return a - b
    return 0


def strncmp(s1: Text, s2: Text, n: int) -> int:
    """Like :func:`strcmp` but compares at most ``n`` characters."""
    pairs = zip_longest(_codes(s1), _codes(s2), fillvalue=0)
    for a, b in islice(pairs, max(n, 0)):
        if a != b:
            return a - b
    return 0


def strchr(s: Text, c) -> Optional[int]:
    """Index of the first ``c`` in ``s``, or None if it does not occur."""
    code = _char_code(c)
    for index, value in enumerate(_codes(s)):
        if value == code:
            return index
    return None


def strfind(s: Text, c) -> int:
    """Index of the first ``c`` in ``s``, or of the terminator if absent."""
    codes = _codes(s)
    found = strchr(s, c)
    return len(codes) if found is None else found


def _digit(ch: str) -> Optional[int]:
    if "0" <= ch <= "9":
        return ord(ch) - ord("0")
    if "a" <= ch <= "z":
        return ord(ch) - ord("a") + 10
    if "A" <= ch <= "Z":
        return ord(ch) - ord("A") + 10
    return None


def strtol(s: Text, base: int = 0) -> Tuple[int, int]:
    """Parse a long integer; return it with the index just past the digits.

    Base 0 picks hexadecimal for a ``0x`` prefix, octal for a leading ``0``
    and decimal otherwise. Overflow wraps like a 64-bit long.
    """
    if isinstance(s, (bytes, bytearray)):
        s = bytes(s).decode("latin-1")
    text = s.split("\0", 1)[0]

    def at(index: int) -> str:
        return text[index] if index < len(text) else "\0"

    pos = 0
    while at(pos) in (" ", "\t"):
        pos += 1

    neg = False
    if at(pos) == "+":
        pos += 1
    elif at(pos) == "-":
        pos += 1
        neg = True

    if base in (0, 16) and at(pos) == "0" and at(pos + 1) == "x":
        pos += 2
        base = 16
    elif base == 0 and at(pos) == "0":
        pos += 1
        base = 8
    elif base == 0:
        base = 10

    value = 0
    while True:
        dig = _digit(at(pos))
        if dig is None or dig >= base:
            break
        pos += 1
        value = (value * base + dig) & _LONG_MASK

    value = _to_signed_long(value)
    return (_to_signed_long(-value) if neg else value), pos


def memset(buf: bytearray, c, n: int) -> bytearray:
    """Set the first ``n`` bytes of ``buf`` to ``c``; return ``buf``."""
    if n < 0 or n > len(buf):
        raise IndexError("memset range outside buffer")
    buf[:n] = bytes([_char_code(c) & 0xFF]) * n
    return buf


def memmove(buf: bytearray, dst: int, src: int, n: int) -> bytearray:
    """Copy ``n`` bytes inside ``buf`` from ``src`` to ``dst``; overlap is safe."""
    if n < 0 or min(dst, src) < 0 or max(dst, src) + n > len(buf):
        raise IndexError("memmove range outside buffer")
    buf[dst:dst + n] = bytes(buf[src:src + n])
    return buf


def memcmp(v1, v2, n: int) -> int:
    """Compare the first ``n`` bytes as unsigned values."""
    if n < 0 or n > len(v1) or n > len(v2):
        raise IndexError("memcmp range outside buffer")
    for a, b in zip(bytes(v1[:n]), bytes(v2[:n])):
        if a != b:
            return a - b
    return 0