"""Physical memory layout, page descriptors and address arithmetic."""

from dataclasses import dataclass, field
from enum import IntFlag

# Kernel virtual address space: all physical memory is mapped above KERNBASE.
KERNBASE = 0xFFFFFFFFC0200000
KMEMSIZE = 0x7E00000
KERNTOP = KERNBASE + KMEMSIZE

PHYSICAL_MEMORY_END = 0x88000000
PHYSICAL_MEMORY_OFFSET = 0xFFFFFFFF40000000
KERNEL_BEGIN_PADDR = 0x80200000
KERNEL_BEGIN_VADDR = 0xFFFFFFFFC0200000

# Physical memory starts here on the target machine.
DRAM_BASE = 0x80000000

PGSIZE = 4096
PGSHIFT = 12

KSTACKPAGE = 2
KSTACKSIZE = KSTACKPAGE * PGSIZE

# Sv39 paging.
SV39_NENTRY = 512
SV39_PGSIZE = 4096
SV39_PGSHIFT = 12
SV39_PTSHIFT = 21
SV39_VPN0SHIFT = 12
SV39_VPN1SHIFT = 21
SV39_VPN2SHIFT = 30
SV39_PTE_PPN_SHIFT = 10

# Page table entry fields.
PTE_V = 0x001
PTE_R = 0x002
PTE_W = 0x004
PTE_X = 0x008
PTE_U = 0x010
PTE_G = 0x020
PTE_A = 0x040
PTE_D = 0x080
PTE_SOFT = 0x300

PAGE_TABLE_DIR = PTE_V
READ_ONLY = PTE_R | PTE_V
READ_WRITE = PTE_R | PTE_W | PTE_V
EXEC_ONLY = PTE_X | PTE_V
READ_EXEC = PTE_R | PTE_X | PTE_V
READ_WRITE_EXEC = PTE_R | PTE_W | PTE_X | PTE_V
PTE_USER = PTE_R | PTE_W | PTE_X | PTE_U | PTE_V

# Bytes one page descriptor occupies in the kernel's descriptor array.
PAGE_STRUCT_SIZE = 40


def round_down(a: int, n: int) -> int:
    """Round ``a`` down to the nearest multiple of ``n``."""
    return a - a % n


def round_up(a: int, n: int) -> int:
    """Round ``a`` up to the nearest multiple of ``n``."""
    return round_down(a + n - 1, n)


class PageFlag(IntFlag):
    """Status bits of a physical page frame."""

    # The page belongs to the kernel and may not be allocated or freed.
    RESERVED = 1 << 0
    # The page heads a free block of contiguous pages.
    PROPERTY = 1 << 1


@dataclass
class Page:
    """Descriptor of one physical page frame."""

    ref: int = 0
    flags: PageFlag = field(default_factory=lambda: PageFlag(0))
    property: int = 0

    def reserved(self) -> bool:
        return bool(self.flags & PageFlag.RESERVED)

    def set_reserved(self) -> None:
        self.flags |= PageFlag.RESERVED

    def clear_reserved(self) -> None:
        self.flags &= ~PageFlag.RESERVED

    def is_head(self) -> bool:
        """Whether this page heads a free block."""
        return bool(self.flags & PageFlag.PROPERTY)

    def set_head(self) -> None:
        self.flags |= PageFlag.PROPERTY

    def clear_head(self) -> None:
        self.flags &= ~PageFlag.PROPERTY