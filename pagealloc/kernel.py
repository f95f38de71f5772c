"""Kernel start-up: read the device tree, set up and check page allocation."""

import argparse
import inspect
import sys
from dataclasses import dataclass
from typing import Optional

from .best_fit_pmm import BestFitManager
from .console import Console
from .debug import Debugger, KernelPanic
from .dtb import dtb_init
from .memlayout import KERNBASE, KERNEL_BEGIN_VADDR, PHYSICAL_MEMORY_OFFSET
from .pmm import PhysicalMemory

BOOT_MESSAGE = "(THU.CST) os is loading ...\0"


@dataclass(frozen=True)
class KernelImage:
    """Virtual addresses of the kernel image's landmarks."""

    entry: int = KERNEL_BEGIN_VADDR
    etext: int = KERNEL_BEGIN_VADDR + 0x1000
    edata: int = KERNEL_BEGIN_VADDR + 0x4000
    end: int = KERNEL_BEGIN_VADDR + 0x8000
    boot_page_table: int = KERNEL_BEGIN_VADDR + 0x5000


def _here() -> tuple:
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    if caller is None:
        return "<unknown>", 0
    return caller.f_code.co_filename, caller.f_lineno


def print_kerninfo(console, image: KernelImage) -> None:
    """Report where the kernel image lies and how much memory it takes."""
    console.cprintf("Special kernel symbols:\n")
    console.cprintf("  entry  0x%016lx (virtual)\n", image.entry)
    console.cprintf("  etext  0x%016lx (virtual)\n", image.etext)
    console.cprintf("  edata  0x%016lx (virtual)\n", image.edata)
    console.cprintf("  end    0x%016lx (virtual)\n", image.end)
    console.cprintf("Kernel executable memory footprint: %dKB\n",
                    (image.end - image.entry + 1023) // 1024)


def pmm_init(console, region, image: KernelImage) -> PhysicalMemory:
    """Set up the best-fit allocator over the memory in ``region`` and check it."""
    debugger = Debugger(console)
    manager = BestFitManager()
    console.cprintf("memory management: %s\n", manager.name)

    mem_base = region.base if region is not None else 0
    mem_size = region.size if region is not None else 0
    if mem_size == 0:
        debugger.panic(*_here(), "DTB memory info not available")
    mem_end = mem_base + mem_size
    console.cprintf("physcial memory map:\n")
    console.cprintf("  memory: 0x%016lx, [0x%016lx, 0x%016lx].\n",
                    mem_size, mem_base, mem_end - 1)

    memory = PhysicalMemory(manager, mem_base, mem_size, image.end)

    memory.check()
    console.cprintf("check_alloc_page() succeeded!\n")

    satp_virtual = image.boot_page_table
    if satp_virtual < KERNBASE:
        debugger.panic(*_here(), "PADDR called with invalid kva %08lx", satp_virtual)
    satp_physical = satp_virtual - PHYSICAL_MEMORY_OFFSET
    console.cprintf("satp virtual address: 0x%016lx\nsatp physical address: 0x%016lx\n",
                    satp_virtual, satp_physical)
    return memory


def kern_init(blob: Optional[bytes], console, hartid: int = 0) -> PhysicalMemory:
    """Boot: read the device tree, greet, and bring up physical memory."""
    image = KernelImage()
    region = dtb_init(blob, console, hartid)
    console.cputs(BOOT_MESSAGE)
    print_kerninfo(console, image)
    return pmm_init(console, region, image)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Boot the page allocator on the memory a device tree describes.")
    parser.add_argument("dtb", help="path of a flattened device tree blob")
    parser.add_argument("--hartid", type=int, default=0, help="boot hart id")
    args = parser.parse_args(argv)

    try:
        with open(args.dtb, "rb") as handle:
            blob = handle.read()
    except OSError as exc:
        print(f"cannot read {args.dtb}: {exc.strerror}", file=sys.stderr)
        return 1

    console = Console(sys.stdout, sys.stdin)
    try:
        kern_init(blob, console, args.hartid)
    except KernelPanic:
        return 1
    return 0