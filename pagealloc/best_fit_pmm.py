"""Best-fit page allocator over an address-ordered free list."""

import inspect
from typing import Optional

from .debug import KernelPanic
from .default_pmm import FirstFitManager
from .printfmt import format_string


def _require(condition, text: str) -> None:
    """Panic at the caller's location if ``condition`` is false."""
    if condition:
        return
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    if caller is not None:
        file, line = caller.f_code.co_filename, caller.f_lineno
    else:
        file, line = "<unknown>", 0
    raise KernelPanic(file, line, format_string("assertion failed: %s", text))


class BestFitManager(FirstFitManager):
    """Hands out the smallest free block that is large enough.

    Among blocks of equal size the lowest-addressed one wins. Splitting,
    freeing and merging work as in the first-fit allocator.
    """

    name = "best_fit_pmm_manager"

    def _select(self, n: int) -> Optional[int]:
        best_position = None
        best_size = None
        for position, base in enumerate(self._free):
            size = self.pages[base].property
            if size >= n and (best_size is None or size < best_size):
                best_position, best_size = position, size
        return best_position

    def alloc_pages(self, n: int) -> Optional[int]:
        """Allocate ``n`` pages from the tightest-fitting free block."""
        return super().alloc_pages(n)

    def check(self) -> None:
        count = total = 0
        for base in self._free:
            page = self.pages[base]
            _require(page.is_head(), "PageProperty(p)")
            count += 1
            total += page.property
        _require(total == self.nr_free_pages(), "total == nr_free_pages()")

        self._basic_check()

        p0 = self.alloc_pages(5)
        _require(p0 is not None, "p0 != NULL")
        _require(not self.pages[p0].is_head(), "!PageProperty(p0)")

        free_store = self._free
        self._free = []
        _require(not self._free, "list_empty(&free_list)")
        _require(self.alloc_pages(1) is None, "alloc_page() == NULL")

        nr_free_store = self._nr_free
        self._nr_free = 0

        # Layout: * - - * -
        self.free_pages(p0 + 1, 2)
        self.free_pages(p0 + 4, 1)
        _require(self.alloc_pages(4) is None, "alloc_pages(4) == NULL")
        _require(self.pages[p0 + 1].is_head() and self.pages[p0 + 1].property == 2,
                 "PageProperty(p0 + 1) && p0[1].property == 2")
        # Layout: * - - * *
        p1 = self.alloc_pages(1)
        _require(p1 is not None, "(p1 = alloc_pages(1)) != NULL")
        _require(self.alloc_pages(2) is not None, "alloc_pages(2) != NULL")
        _require(p0 + 4 == p1, "p0 + 4 == p1")

        self.free_pages(p0, 5)
        p0 = self.alloc_pages(5)
        _require(p0 is not None, "(p0 = alloc_pages(5)) != NULL")
        _require(self.alloc_pages(1) is None, "alloc_page() == NULL")

        _require(self._nr_free == 0, "nr_free == 0")
        self._nr_free = nr_free_store

        self._free = free_store
        self.free_pages(p0, 5)

        for base in self._free:
            count -= 1
            total -= self.pages[base].property
        _require(count == 0, "count == 0")
        _require(total == 0, "total == 0")