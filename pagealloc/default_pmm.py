"""First-fit page allocator over an address-ordered free list."""

import inspect
from bisect import bisect_left, insort
from typing import List, Optional, Tuple

from .debug import KernelPanic
from .memlayout import Page
from .pmm import PmmManager
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


class FirstFitManager(PmmManager):
    """Hands out the lowest-addressed free block that is large enough.

    Free blocks are kept sorted by address. The head page of each block
    carries the head flag and the block's length in ``property``; freed
    blocks are merged with adjacent free neighbours.
    """

    name = "default_pmm_manager"

    def __init__(self):
        self.pages: List[Page] = []
        self._free: List[int] = []
        self._nr_free = 0

    def init(self, pages: List[Page]) -> None:
        super().init(pages)
        self._free = []
        self._nr_free = 0

    def _insert(self, base: int) -> None:
        insort(self._free, base)

    def init_memmap(self, base: int, n: int) -> None:
        _require(n > 0, "n > 0")
        for page in self.pages[base:base + n]:
            _require(page.reserved(), "PageReserved(p)")
            page.flags = type(page.flags)(0)
            page.property = 0
            page.ref = 0
        head = self.pages[base]
        head.property = n
        head.set_head()
        self._nr_free += n
        self._insert(base)

    def _select(self, n: int) -> Optional[int]:
        """Position in the free list of the block to allocate from."""
        for position, base in enumerate(self._free):
            if self.pages[base].property >= n:
                return position
        return None

    def alloc_pages(self, n: int) -> Optional[int]:
        _require(n > 0, "n > 0")
        if n > self._nr_free:
            return None
        position = self._select(n)
        if position is None:
            return None
        base = self._free.pop(position)
        page = self.pages[base]
        if page.property > n:
            rest = self.pages[base + n]
            rest.property = page.property - n
            rest.set_head()
            self._free.insert(position, base + n)
        self._nr_free -= n
        page.clear_head()
        return base

    def free_pages(self, base: int, n: int) -> None:
        _require(n > 0, "n > 0")
        for page in self.pages[base:base + n]:
            _require(not page.reserved() and not page.is_head(),
                     "!PageReserved(p) && !PageProperty(p)")
            page.flags = type(page.flags)(0)
            page.ref = 0
        head = self.pages[base]
        head.property = n
        head.set_head()
        self._nr_free += n
        self._insert(base)

        position = bisect_left(self._free, base)
        if position > 0:
            prev_base = self._free[position - 1]
            prev = self.pages[prev_base]
            if prev_base + prev.property == base:
                prev.property += head.property
                head.clear_head()
                del self._free[position]
                position -= 1
                base, head = prev_base, prev

        if position + 1 < len(self._free):
            next_base = self._free[position + 1]
            if base + head.property == next_base:
                following = self.pages[next_base]
                head.property += following.property
                following.clear_head()
                del self._free[position + 1]

    def nr_free_pages(self) -> int:
        return self._nr_free

    def free_blocks(self) -> List[Tuple[int, int]]:
        """The free blocks as ``(first page index, length)`` in address order."""
        return [(base, self.pages[base].property) for base in self._free]

    def _basic_check(self) -> None:
        p0 = self.alloc_pages(1)
        _require(p0 is not None, "(p0 = alloc_page()) != NULL")
        p1 = self.alloc_pages(1)
        _require(p1 is not None, "(p1 = alloc_page()) != NULL")
        p2 = self.alloc_pages(1)
        _require(p2 is not None, "(p2 = alloc_page()) != NULL")

        _require(p0 != p1 and p0 != p2 and p1 != p2, "p0 != p1 && p0 != p2 && p1 != p2")
        _require(self.pages[p0].ref == 0 and self.pages[p1].ref == 0
                 and self.pages[p2].ref == 0,
                 "page_ref(p0) == 0 && page_ref(p1) == 0 && page_ref(p2) == 0")
        for index in (p0, p1, p2):
            _require(0 <= index < len(self.pages), "page2pa(p) < npage * PGSIZE")

        free_store = self._free
        self._free = []
        _require(not self._free, "list_empty(&free_list)")
        nr_free_store = self._nr_free
        self._nr_free = 0

        _require(self.alloc_pages(1) is None, "alloc_page() == NULL")

        self.free_pages(p0, 1)
        self.free_pages(p1, 1)
        self.free_pages(p2, 1)
        _require(self._nr_free == 3, "nr_free == 3")

        p0 = self.alloc_pages(1)
        _require(p0 is not None, "(p0 = alloc_page()) != NULL")
        p1 = self.alloc_pages(1)
        _require(p1 is not None, "(p1 = alloc_page()) != NULL")
        p2 = self.alloc_pages(1)
        _require(p2 is not None, "(p2 = alloc_page()) != NULL")

        _require(self.alloc_pages(1) is None, "alloc_page() == NULL")

        self.free_pages(p0, 1)
        _require(bool(self._free), "!list_empty(&free_list)")

        p = self.alloc_pages(1)
        _require(p == p0, "(p = alloc_page()) == p0")
        _require(self.alloc_pages(1) is None, "alloc_page() == NULL")

        _require(self._nr_free == 0, "nr_free == 0")
        self._free = free_store
        self._nr_free = nr_free_store

        self.free_pages(p, 1)
        self.free_pages(p1, 1)
        self.free_pages(p2, 1)

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

        self.free_pages(p0 + 2, 3)
        _require(self.alloc_pages(4) is None, "alloc_pages(4) == NULL")
        _require(self.pages[p0 + 2].is_head() and self.pages[p0 + 2].property == 3,
                 "PageProperty(p0 + 2) && p0[2].property == 3")
        p1 = self.alloc_pages(3)
        _require(p1 is not None, "(p1 = alloc_pages(3)) != NULL")
        _require(self.alloc_pages(1) is None, "alloc_page() == NULL")
        _require(p0 + 2 == p1, "p0 + 2 == p1")

        p2 = p0 + 1
        self.free_pages(p0, 1)
        self.free_pages(p1, 3)
        _require(self.pages[p0].is_head() and self.pages[p0].property == 1,
                 "PageProperty(p0) && p0->property == 1")
        _require(self.pages[p1].is_head() and self.pages[p1].property == 3,
                 "PageProperty(p1) && p1->property == 3")

        p0 = self.alloc_pages(1)
        _require(p0 == p2 - 1, "(p0 = alloc_page()) == p2 - 1")
        self.free_pages(p0, 1)
        p0 = self.alloc_pages(2)
        _require(p0 == p2 + 1, "(p0 = alloc_pages(2)) == p2 + 1")

        self.free_pages(p0, 2)
        self.free_pages(p2, 1)

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