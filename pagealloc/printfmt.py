"""Console-style formatted output with the kernel's printf conventions."""

from typing import Callable, List, Tuple

from .errors import ErrorCode, KernelError, error_string

_DIGITS = "0123456789abcdef"
_POINTER_MASK = (1 << 64) - 1


def _int_arg(value, lflag: int, signed: bool) -> int:
    """Reduce ``value`` to the target's int (32 bits) or long (64 bits)."""
    bits = 64 if lflag else 32
    value = int(value) & ((1 << bits) - 1)
    if signed and value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _print_number(putch: Callable[[str], None], num: int, base: int,
                  width: int, padc: str) -> None:
    digits = []
    while True:
        num, mod = divmod(num, base)
        digits.append(_DIGITS[mod])
        if num == 0:
            break
    for _ in range(width - len(digits)):
        putch(padc)
    for digit in reversed(digits):
        putch(digit)


def _print_string(putch: Callable[[str], None], text, width: int,
                  precision: int, padc: str, altflag: bool) -> None:
    if text is None:
        text = "(null)"
    text = str(text).split("\0", 1)[0]
    if width > 0 and padc != "-":
        width -= len(text) if precision < 0 else min(len(text), precision)
        while width > 0:
            putch(padc)
            width -= 1
    limited = precision >= 0
    for ch in text:
        if limited:
            precision -= 1
            if precision < 0:
                break
        putch("?" if altflag and not (" " <= ch <= "~") else ch)
        width -= 1
    while width > 0:
        putch(" ")
        width -= 1


def printfmt(putch: Callable[[str], None], fmt: str, *args) -> None:
    """Format ``fmt`` with ``args``, handing each output character to ``putch``."""
    values = iter(args)

    def next_arg():
        try:
            return next(values)
        except StopIteration:
            raise TypeError("not enough arguments for format string") from None

    end = len(fmt)

    def at(index: int) -> str:
        return fmt[index] if index < end else "\0"

    pos = 0
    while True:
        ch = at(pos)
        pos += 1
        if ch == "\0":
            return
        if ch != "%":
            putch(ch)
            continue

        start = pos
        padc = " "
        width = precision = -1
        lflag = 0
        altflag = False

        while True:
            ch = at(pos)
            pos += 1
            if ch == "-":
                padc = "-"
            elif ch == "0":
                padc = "0"
            elif "1" <= ch <= "9":
                precision = ord(ch) - ord("0")
                while "0" <= at(pos) <= "9":
                    precision = precision * 10 + ord(at(pos)) - ord("0")
                    pos += 1
                if width < 0:
                    width, precision = precision, -1
            elif ch == "*":
                precision = int(next_arg())
                if width < 0:
                    width, precision = precision, -1
            elif ch == ".":
                if width < 0:
                    width = 0
            elif ch == "#":
                altflag = True
            elif ch == "l":
                lflag += 1
            else:
                break

        if ch == "c":
            value = next_arg()
            putch(chr(value & 0xFF) if isinstance(value, int) else str(value)[:1])
        elif ch == "e":
            for out in error_string(_int_arg(next_arg(), 0, True)):
                putch(out)
        elif ch == "s":
            _print_string(putch, next_arg(), width, precision, padc, altflag)
        elif ch == "d":
            num = _int_arg(next_arg(), lflag, True)
            if num < 0:
                putch("-")
                num = -num
            _print_number(putch, num, 10, width, padc)
        elif ch == "u":
            _print_number(putch, _int_arg(next_arg(), lflag, False), 10, width, padc)
        elif ch == "o":
            _print_number(putch, _int_arg(next_arg(), lflag, False), 8, width, padc)
        elif ch == "p":
            putch("0")
            putch("x")
            _print_number(putch, int(next_arg()) & _POINTER_MASK, 16, width, padc)
        elif ch == "x":
            _print_number(putch, _int_arg(next_arg(), lflag, False), 16, width, padc)
        elif ch == "%":
            putch("%")
        else:
            # Unknown escape: print it literally from the '%' onwards.
            putch("%")
            pos = start


def format_string(fmt: str, *args) -> str:
    """Return the text that ``printfmt`` would produce."""
    out: List[str] = []
    printfmt(out.append, fmt, *args)
    return "".join(out)


def snprintf(size: int, fmt: str, *args) -> Tuple[str, int]:
    """Format into a buffer of ``size`` slots, one kept for the terminator.

    Returns the text that fits and the length the full output would have.
    """
    if size <= 0:
        raise KernelError(ErrorCode.INVAL)
    text = format_string(fmt, *args)
    return text[: size - 1], len(text)