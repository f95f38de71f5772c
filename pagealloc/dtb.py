"""Flattened device tree parsing: find the physical memory region."""

import struct
from dataclasses import dataclass, fields
from typing import Optional

FDT_MAGIC = 0xD00DFEED

FDT_BEGIN_NODE = 0x00000001
FDT_END_NODE = 0x00000002
FDT_PROP = 0x00000003
FDT_NOP = 0x00000004
FDT_END = 0x00000009

_U32 = struct.Struct(">I")
_U64 = struct.Struct(">Q")


class DtbError(Exception):
    """The device tree blob is malformed."""

    def __init__(self, message: str, magic: Optional[int] = None):
        super().__init__(message)
        self.magic = magic


@dataclass(frozen=True)
class FdtHeader:
    """The fixed header at the start of a device tree blob."""

    magic: int
    totalsize: int
    off_dt_struct: int
    off_dt_strings: int
    off_mem_rsvmap: int
    version: int
    last_comp_version: int
    boot_cpuid_phys: int
    size_dt_strings: int
    size_dt_struct: int


_HEADER = struct.Struct(">" + "I" * len(fields(FdtHeader)))


@dataclass(frozen=True)
class MemoryRegion:
    """A range of physical memory."""

    base: int
    size: int

    @property
    def end(self) -> int:
        """Address of the last byte in the region."""
        return self.base + self.size - 1


def parse_header(blob: bytes) -> FdtHeader:
    """Decode and validate the blob's header."""
    if len(blob) < _HEADER.size:
        raise DtbError("DTB header is truncated")
    header = FdtHeader(*_HEADER.unpack_from(blob, 0))
    if header.magic != FDT_MAGIC:
        raise DtbError(f"invalid DTB magic number: 0x{header.magic:x}", header.magic)
    return header


def _c_string(blob: bytes, offset: int) -> bytes:
    end = blob.find(b"\0", offset)
    if offset < 0 or offset > len(blob) or end < 0:
        raise DtbError("unterminated string in DTB")
    return blob[offset:end]


def extract_memory_info(blob: bytes) -> Optional[MemoryRegion]:
    """Return the first memory node's ``reg`` range, or None if there is none."""
    header = parse_header(blob)
    pos = header.off_dt_struct
    strings = header.off_dt_strings
    in_memory_node = False

    try:
        while True:
            (token,) = _U32.unpack_from(blob, pos)
            pos += 4
            if token == FDT_BEGIN_NODE:
                name = _c_string(blob, pos)
                if name.startswith(b"memory"):
                    in_memory_node = True
                pos = (pos + len(name) + 4) & ~3
            elif token == FDT_END_NODE:
                in_memory_node = False
            elif token == FDT_PROP:
                (prop_len,) = _U32.unpack_from(blob, pos)
                (name_off,) = _U32.unpack_from(blob, pos + 4)
                pos += 8
                prop_name = _c_string(blob, strings + name_off)
                if in_memory_node and prop_name == b"reg" and prop_len >= 16:
                    (base,) = _U64.unpack_from(blob, pos)
                    (size,) = _U64.unpack_from(blob, pos + 8)
                    return MemoryRegion(base, size)
                pos = (pos + prop_len + 3) & ~3
            elif token == FDT_NOP:
                continue
            else:
                # FDT_END, or a token that makes no sense here.
                return None
    except struct.error as exc:
        raise DtbError("DTB structure block is truncated") from exc


def dtb_init(blob: Optional[bytes], console, hartid: int = 0) -> Optional[MemoryRegion]:
    """Report the boot hart and the memory found in ``blob`` on ``console``."""
    console.cprintf("DTB Init\n")
    console.cprintf("HartID: %ld\n", hartid)

    if not blob:
        console.cprintf("Error: DTB address is null\n")
        return None

    try:
        region = extract_memory_info(blob)
    except DtbError as exc:
        if exc.magic is not None:
            console.cprintf("Error: Invalid DTB magic number: 0x%x\n", exc.magic)
        else:
            console.cprintf("Error: %s\n", str(exc))
        return None

    if region is not None:
        console.cprintf("Physical Memory from DTB:\n")
        console.cprintf("  Base: 0x%016lx\n", region.base)
        console.cprintf("  Size: 0x%016lx (%ld MB)\n", region.size,
                        region.size // (1024 * 1024))
        console.cprintf("  End:  0x%016lx\n", region.end)
    else:
        console.cprintf("Warning: Could not extract memory info from DTB\n")
    console.cprintf("DTB init completed\n")
    return region