"""Kernel error codes and their descriptions."""

from enum import IntEnum


class ErrorCode(IntEnum):
    """Error codes reported by kernel routines."""

    UNSPECIFIED = 1
    BAD_PROC = 2
    INVAL = 3
    NO_MEM = 4
    NO_FREE_PROC = 5
    FAULT = 6

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    ErrorCode.UNSPECIFIED: "unspecified error",
    ErrorCode.BAD_PROC: "bad process",
    ErrorCode.INVAL: "invalid parameter",
    ErrorCode.NO_MEM: "out of memory",
    ErrorCode.NO_FREE_PROC: "out of processes",
    ErrorCode.FAULT: "segmentation fault",
}

MAXERROR = max(ErrorCode)


def error_string(code) -> str:
    """Describe an error code; negative codes mean the same as positive ones."""
    value = abs(int(code))
    try:
        return ErrorCode(value).description
    except ValueError:
        return f"error {value}"


class KernelError(Exception):
    """An operation failed with one of the kernel error codes."""

    def __init__(self, code):
        self.code = ErrorCode(abs(int(code)))
        super().__init__(error_string(self.code))