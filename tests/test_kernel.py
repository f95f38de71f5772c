import io
import re
import struct

import pytest

from pagealloc.best_fit_pmm import BestFitManager
from pagealloc.console import Console
from pagealloc.debug import KernelPanic
from pagealloc.kernel import kern_init, main


def _pad(data):
    return data + b"\0" * (-len(data) % 4)


def build_dtb(base, size):
    strings = b"reg\0"
    body = b""
    body += struct.pack(">I", 1) + _pad(b"\0")
    body += struct.pack(">I", 1) + _pad(b"memory@80000000\0")
    body += struct.pack(">III", 3, 16, 0) + struct.pack(">QQ", base, size)
    body += struct.pack(">I", 2)
    body += struct.pack(">I", 2)
    body += struct.pack(">I", 9)
    off_struct = 40
    off_strings = off_struct + len(body)
    total = off_strings + len(strings)
    header = struct.pack(">10I", 0xD00DFEED, total, off_struct, off_strings,
                         40, 17, 16, 0, len(strings), len(body))
    return header + body + strings


def make_console():
    output = io.StringIO()
    return Console(output, io.StringIO()), output


def test_boot_reports_and_checks_allocator():
    console, output = make_console()
    memory = kern_init(build_dtb(0x80000000, 0x8000000), console, 0)
    text = output.getvalue()
    assert "(THU.CST) os is loading ...\n" in text
    assert "memory management: best_fit_pmm_manager\n" in text
    assert "check_alloc_page() succeeded!\n" in text
    assert "  memory: 0x0000000008000000, [0x0000000080000000, 0x0000000087ffffff].\n" in text
    assert isinstance(memory.manager, BestFitManager)
    assert memory.nr_free_pages() > 0


def test_free_pages_lie_after_page_array():
    console, _ = make_console()
    memory = kern_init(build_dtb(0x80000000, 0x8000000), console, 0)
    blocks = memory.manager.free_blocks()
    assert len(blocks) == 1
    base, length = blocks[0]
    assert base + length == len(memory.pages)
    assert memory.page2pa(base) >= memory.freemem


def test_kernel_info_is_printed():
    console, output = make_console()
    kern_init(build_dtb(0x80000000, 0x8000000), console, 0)
    text = output.getvalue()
    assert "Special kernel symbols:\n" in text
    assert re.search(r"  entry  0x[0-9a-f]{16} \(virtual\)\n", text)
    assert re.search(r"satp virtual address: 0x[0-9a-f]{16}\n", text)
    assert re.search(r"satp physical address: 0x[0-9a-f]{16}\n", text)


def test_boot_without_dtb_panics():
    console, output = make_console()
    with pytest.raises(KernelPanic) as info:
        kern_init(None, console, 0)
    assert info.value.message == "DTB memory info not available"
    assert "Error: DTB address is null" in output.getvalue()


def test_main_succeeds(tmp_path, capsys):
    path = tmp_path / "board.dtb"
    path.write_bytes(build_dtb(0x80000000, 0x8000000))
    assert main([str(path)]) == 0
    assert "check_alloc_page() succeeded!" in capsys.readouterr().out


def test_main_fails_on_blob_without_memory(tmp_path):
    path = tmp_path / "empty.dtb"
    path.write_bytes(build_dtb(0x80000000, 0))
    assert main([str(path)]) == 1


def test_main_fails_on_missing_file(tmp_path):
    assert main([str(tmp_path / "absent.dtb")]) == 1