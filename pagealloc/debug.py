"""Kernel panics, warnings and assertions."""

import inspect

from .printfmt import format_string


class KernelPanic(Exception):
    """Raised when the kernel hits an unrecoverable error."""

    def __init__(self, file: str, line: int, message: str):
        self.file = file
        self.line = line
        self.message = message
        super().__init__(f"{file}:{line}: {message}")


class Debugger:
    """Reports panics and warnings on a console."""

    def __init__(self, console):
        self.console = console
        self._panicking = False

    def panic(self, file: str, line: int, fmt: str, *args):
        """Report a fatal error once, then raise KernelPanic."""
        message = format_string(fmt, *args)
        if not self._panicking:
            self._panicking = True
            self.console.cprintf("kernel panic at %s:%d:\n    ", file, line)
            self.console.cprintf(fmt, *args)
            self.console.cprintf("\n")
        raise KernelPanic(file, line, message)

    def warn(self, file: str, line: int, fmt: str, *args) -> None:
        """Report a problem without stopping."""
        self.console.cprintf("kernel warning at %s:%d:\n    ", file, line)
        self.console.cprintf(fmt, *args)
        self.console.cprintf("\n")

    def check(self, condition, text: str) -> None:
        """Panic at the caller's location if ``condition`` is false."""
        if condition:
            return
        frame = inspect.currentframe()
        caller = frame.f_back if frame is not None else None
        if caller is not None:
            file, line = caller.f_code.co_filename, caller.f_lineno
        else:
            file, line = "<unknown>", 0
        self.panic(file, line, "assertion failed: %s", text)

    def is_kernel_panic(self) -> bool:
        return self._panicking