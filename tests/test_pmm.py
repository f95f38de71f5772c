import pytest

from pagealloc.debug import KernelPanic
from pagealloc.memlayout import (
    DRAM_BASE,
    KERNEL_BEGIN_PADDR,
    KERNEL_BEGIN_VADDR,
    PGSIZE,
    round_up,
)
from pagealloc.pmm import PhysicalMemory, PmmManager

MEM_SIZE = 0x400000
KERNEL_END = KERNEL_BEGIN_VADDR + 0x1000


class RunManager(PmmManager):
    name = "run_manager"

    def init(self, pages):
        super().init(pages)
        self.free = set()
        self.memmaps = []
        self.checked = False

    def init_memmap(self, base, n):
        self.memmaps.append((base, n))
        for index in range(base, base + n):
            self.pages[index].clear_reserved()
        self.free.update(range(base, base + n))

    def alloc_pages(self, n):
        for start in sorted(self.free):
            run = range(start, start + n)
            if all(index in self.free for index in run):
                self.free.difference_update(run)
                return start
        return None

    def free_pages(self, base, n):
        self.free.update(range(base, base + n))

    def nr_free_pages(self):
        return len(self.free)

    def check(self):
        self.checked = True


@pytest.fixture
def memory():
    return PhysicalMemory(RunManager(), DRAM_BASE, MEM_SIZE, KERNEL_END)


def test_page_array_spans_memory(memory):
    assert len(memory.pages) == memory.npage - memory.nbase
    assert memory.page2pa(0) == DRAM_BASE
    assert memory.page2pa(len(memory.pages)) == DRAM_BASE + MEM_SIZE


def test_manager_receives_page_array(memory):
    assert memory.manager.pages is memory.pages


def test_free_block_is_tail_after_descriptors(memory):
    assert len(memory.manager.memmaps) == 1
    base, n = memory.manager.memmaps[0]
    assert base + n == len(memory.pages)
    assert memory.page2pa(base) == round_up(memory.freemem, PGSIZE)
    assert memory.freemem > KERNEL_BEGIN_PADDR
    assert memory.nr_free_pages() == n


def test_pages_before_free_block_stay_reserved(memory):
    base, _ = memory.manager.memmaps[0]
    assert base > 0
    assert all(memory.pages[i].reserved() for i in range(base))
    assert not any(memory.pages[i].reserved() for i in range(base, len(memory.pages)))


def test_page_address_round_trip(memory):
    for index in (0, 1, len(memory.pages) // 2, len(memory.pages) - 1):
        assert memory.pa2page(memory.page2pa(index)) == index
        assert memory.page2ppn(index) == memory.page2pa(index) // PGSIZE


def test_pa2page_inside_page(memory):
    assert memory.pa2page(memory.page2pa(3) + 123) == 3


def test_pa2page_past_end_panics(memory):
    with pytest.raises(KernelPanic) as info:
        memory.pa2page(memory.page2pa(len(memory.pages)))
    assert info.value.message == "pa2page called with invalid pa"


def test_alloc_and_free_delegate(memory):
    before = memory.nr_free_pages()
    first = memory.alloc_pages(2)
    assert first is not None
    assert memory.nr_free_pages() == before - 2
    memory.free_pages(first, 2)
    assert memory.nr_free_pages() == before


def test_alloc_too_many_returns_none(memory):
    assert memory.alloc_pages(len(memory.pages) + 1) is None


def test_check_delegates(memory):
    memory.check()
    assert memory.manager.checked is True


def test_zero_memory_size_panics():
    with pytest.raises(KernelPanic) as info:
        PhysicalMemory(RunManager(), DRAM_BASE, 0, KERNEL_END)
    assert info.value.message == "DTB memory info not available"


def test_kernel_end_outside_kernel_space_panics():
    with pytest.raises(KernelPanic) as info:
        PhysicalMemory(RunManager(), DRAM_BASE, MEM_SIZE, 0x1000)
    assert "PADDR called with invalid kva" in info.value.message


def test_memory_smaller_than_kernel_has_no_free_pages():
    manager = RunManager()
    memory = PhysicalMemory(manager, DRAM_BASE, 0x100000, KERNEL_END)
    assert manager.memmaps == []
    assert memory.nr_free_pages() == 0
    assert all(page.reserved() for page in memory.pages)


def test_memory_below_dram_is_rejected():
    with pytest.raises(ValueError):
        PhysicalMemory(RunManager(), 0x1000, PGSIZE, KERNEL_END)


def test_manager_interface_is_abstract():
    with pytest.raises(TypeError):
        PmmManager()