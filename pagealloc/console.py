"""Character console with formatted output and line input."""

import sys
from typing import Optional

from .printfmt import printfmt


class Console:
    """A console device backed by a text output stream and a text input stream."""

    BUFSIZE = 1024

    def __init__(self, output=None, input=None):
        self._output = output if output is not None else sys.stdout
        self._input = input if input is not None else sys.stdin

    def putc(self, c) -> None:
        """Write one character; integers are taken as a byte value."""
        self._output.write(chr(c & 0xFF) if isinstance(c, int) else c)

    def getc(self) -> int:
        """Read one character code, 0 if none is waiting, -1 at end of input."""
        ch = self._input.read(1)
        return ord(ch) if ch else -1

    def cprintf(self, fmt: str, *args) -> int:
        """Write formatted text and return the number of characters written."""
        count = 0

        def putch(ch: str) -> None:
            nonlocal count
            self.putc(ch)
            count += 1

        printfmt(putch, fmt, *args)
        return count

    def cputchar(self, c) -> None:
        self.putc(c)

    def cputs(self, text: str) -> int:
        """Write ``text`` followed by a newline; return the characters written."""
        text = text.split("\0", 1)[0]
        for ch in text:
            self.putc(ch)
        self.putc("\n")
        return len(text) + 1

    def getchar(self) -> int:
        """Read the next non-zero character code (-1 at end of input)."""
        while True:
            c = self.getc()
            if c != 0:
                return c

    def readline(self, prompt: Optional[str] = None) -> Optional[str]:
        """Read and echo a line; return None if input ends first."""
        if prompt is not None:
            self.cprintf("%s", prompt)
        buf = []
        while True:
            c = self.getchar()
            if c < 0:
                return None
            if c >= ord(" ") and len(buf) < self.BUFSIZE - 1:
                self.cputchar(chr(c))
                buf.append(chr(c))
            elif c == ord("\b") and buf:
                self.cputchar(chr(c))
                buf.pop()
            elif c in (ord("\n"), ord("\r")):
                self.cputchar(chr(c))
                return "".join(buf)