import io
import struct

import pytest

from pagealloc.console import Console
from pagealloc.dtb import (
    FDT_MAGIC,
    DtbError,
    FdtHeader,
    MemoryRegion,
    dtb_init,
    extract_memory_info,
    parse_header,
)

STRINGS = b"reg\0compatible\0"
REG_OFF = 0
COMPAT_OFF = 4


def _pad(data: bytes) -> bytes:
    return data + b"\0" * (-len(data) % 4)


def begin(name: str) -> bytes:
    return struct.pack(">I", 1) + _pad(name.encode() + b"\0")


def prop(nameoff: int, data: bytes) -> bytes:
    return struct.pack(">III", 3, len(data), nameoff) + _pad(data)


def end_node() -> bytes:
    return struct.pack(">I", 2)


def nop() -> bytes:
    return struct.pack(">I", 4)


def end() -> bytes:
    return struct.pack(">I", 9)


def reg(base: int, size: int) -> bytes:
    return struct.pack(">QQ", base, size)


def build(structure: bytes, magic: int = FDT_MAGIC) -> bytes:
    off_struct = 40
    off_strings = off_struct + len(structure)
    total = off_strings + len(STRINGS)
    header = struct.pack(
        ">10I", magic, total, off_struct, off_strings, 0, 17, 16, 0,
        len(STRINGS), len(structure),
    )
    return header + structure + STRINGS


def memory_tree(base=0x80000000, size=0x8000000) -> bytes:
    return build(
        begin("")
        + prop(COMPAT_OFF, b"riscv-virtio\0")
        + begin("memory@80000000")
        + prop(REG_OFF, reg(base, size))
        + end_node()
        + end_node()
        + end()
    )


def make_console():
    out = io.StringIO()
    return Console(out, io.StringIO()), out


def test_parse_header_fields():
    blob = memory_tree()
    header = parse_header(blob)
    assert isinstance(header, FdtHeader)
    assert header.magic == FDT_MAGIC
    assert header.totalsize == len(blob)
    assert header.off_dt_struct == 40
    assert header.size_dt_strings == len(STRINGS)


def test_parse_header_rejects_bad_magic():
    blob = build(end(), magic=0x12345678)
    with pytest.raises(DtbError) as info:
        parse_header(blob)
    assert info.value.magic == 0x12345678


def test_parse_header_rejects_truncated():
    with pytest.raises(DtbError):
        parse_header(b"\xd0\x0d\xfe\xed")


def test_extract_memory_info_finds_reg():
    region = extract_memory_info(memory_tree(0x80000000, 0x8000000))
    assert region == MemoryRegion(0x80000000, 0x8000000)
    assert region.end == 0x80000000 + 0x8000000 - 1


def test_extract_skips_nops_and_other_nodes():
    blob = build(
        begin("")
        + nop()
        + begin("cpus")
        + prop(REG_OFF, reg(1, 2))
        + end_node()
        + begin("memory")
        + nop()
        + prop(COMPAT_OFF, b"x\0")
        + prop(REG_OFF, reg(0x1000, 0x2000))
        + end_node()
        + end_node()
        + end()
    )
    assert extract_memory_info(blob) == MemoryRegion(0x1000, 0x2000)


def test_extract_ignores_short_reg():
    blob = build(
        begin("memory@0") + prop(REG_OFF, b"\0" * 8) + end_node() + end()
    )
    assert extract_memory_info(blob) is None


def test_extract_no_memory_node():
    blob = build(begin("") + prop(REG_OFF, reg(5, 6)) + end_node() + end())
    assert extract_memory_info(blob) is None


def test_extract_unknown_token_stops():
    blob = build(begin("") + struct.pack(">I", 7) + begin("memory")
                 + prop(REG_OFF, reg(5, 6)) + end())
    assert extract_memory_info(blob) is None


def test_extract_truncated_structure():
    blob = build(begin("memory"))
    with pytest.raises(DtbError):
        extract_memory_info(blob[:-len(STRINGS)])


def test_dtb_init_reports_memory():
    console, out = make_console()
    region = dtb_init(memory_tree(), console, 0)
    text = out.getvalue()
    assert region == MemoryRegion(0x80000000, 0x8000000)
    assert text.startswith("DTB Init\nHartID: 0\n")
    assert "Physical Memory from DTB:\n" in text
    assert "  Base: 0x0000000080000000\n" in text
    assert "(128 MB)" in text
    assert text.endswith("DTB init completed\n")


def test_dtb_init_null_blob():
    console, out = make_console()
    assert dtb_init(None, console, 3) is None
    assert out.getvalue().endswith("Error: DTB address is null\n")


def test_dtb_init_bad_magic():
    console, out = make_console()
    assert dtb_init(build(end(), magic=0xCAFEBABE), console, 0) is None
    assert "Error: Invalid DTB magic number: 0xcafebabe\n" in out.getvalue()


def test_dtb_init_without_memory_warns():
    console, out = make_console()
    assert dtb_init(build(begin("") + end_node() + end()), console, 1) is None
    text = out.getvalue()
    assert "Warning: Could not extract memory info from DTB\n" in text
    assert text.endswith("DTB init completed\n")