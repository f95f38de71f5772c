"""Physical memory management: the page array and the allocator interface."""

import inspect
from abc import ABC, abstractmethod
from typing import List, Optional

from .debug import KernelPanic
from .memlayout import (
    DRAM_BASE,
    KERNBASE,
    KERNTOP,
    PAGE_STRUCT_SIZE,
    PGSHIFT,
    PGSIZE,
    PHYSICAL_MEMORY_OFFSET,
    Page,
    round_down,
    round_up,
)
from .printfmt import format_string

# Page number of the first physical page of DRAM.
NBASE = DRAM_BASE // PGSIZE


def _panic(fmt: str, *args):
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    if caller is not None:
        file, line = caller.f_code.co_filename, caller.f_lineno
    else:
        file, line = "<unknown>", 0
    raise KernelPanic(file, line, format_string(fmt, *args))


class PmmManager(ABC):
    """A page allocation algorithm working on an array of page descriptors.

    Pages are named by their index in the array.
    """

    name = "pmm_manager"

    def init(self, pages: List[Page]) -> None:
        """Take the page array and reset the allocator's bookkeeping."""
        self.pages = pages

    @abstractmethod
    def init_memmap(self, base: int, n: int) -> None:
        """Add ``n`` free pages starting at index ``base``."""

    @abstractmethod
    def alloc_pages(self, n: int) -> Optional[int]:
        """Allocate ``n`` contiguous pages; return the first index or None."""

    @abstractmethod
    def free_pages(self, base: int, n: int) -> None:
        """Return ``n`` pages starting at index ``base`` to the allocator."""

    @abstractmethod
    def nr_free_pages(self) -> int:
        """Number of pages currently free."""

    @abstractmethod
    def check(self) -> None:
        """Exercise the allocator and panic if it misbehaves."""


class PhysicalMemory:
    """The machine's physical pages, handed to a page allocator.

    Lays out the page descriptor array just after the kernel image, marks
    every page reserved and gives the memory behind the array to ``manager``.
    """

    def __init__(self, manager: PmmManager, mem_base: int, mem_size: int,
                 kernel_end: int):
        if mem_size == 0:
            _panic("DTB memory info not available")

        self.manager = manager
        self.va_pa_offset = PHYSICAL_MEMORY_OFFSET
        self.memory_base = mem_base
        self.memory_end = mem_base + mem_size

        maxpa = min(self.memory_end, KERNTOP)
        self.npage = maxpa // PGSIZE
        self.nbase = NBASE
        if self.npage < self.nbase:
            raise ValueError("physical memory ends below the DRAM base")

        self.pages_vaddr = round_up(kernel_end, PGSIZE)
        self.pages: List[Page] = [Page() for _ in range(self.npage - self.nbase)]
        manager.init(self.pages)
        for page in self.pages:
            page.set_reserved()

        self.freemem = self._paddr(self.pages_vaddr + PAGE_STRUCT_SIZE * len(self.pages))
        free_begin = round_up(self.freemem, PGSIZE)
        free_end = round_down(self.memory_end, PGSIZE)
        if self.freemem < free_end:
            manager.init_memmap(self.pa2page(free_begin), (free_end - free_begin) // PGSIZE)

    def _paddr(self, kva: int) -> int:
        if kva < KERNBASE:
            _panic("PADDR called with invalid kva %08lx", kva)
        return kva - self.va_pa_offset

    def alloc_pages(self, n: int) -> Optional[int]:
        return self.manager.alloc_pages(n)

    def free_pages(self, base: int, n: int) -> None:
        self.manager.free_pages(base, n)

    def nr_free_pages(self) -> int:
        return self.manager.nr_free_pages()

    def page2ppn(self, index: int) -> int:
        """Physical page number of the page at ``index``."""
        return index + self.nbase

    def page2pa(self, index: int) -> int:
        """Physical address of the page at ``index``."""
        return self.page2ppn(index) << PGSHIFT

    def pa2page(self, pa: int) -> int:
        """Index of the page holding physical address ``pa``."""
        ppn = pa >> PGSHIFT
        if ppn >= self.npage or ppn < self.nbase:
            _panic("pa2page called with invalid pa")
        return ppn - self.nbase

    def check(self) -> None:
        """Run the allocator's own consistency check."""
        self.manager.check()