# pagealloc

A small, self-contained model of a kernel's physical memory manager. Page
frames are `Page` descriptors (`pagealloc.memlayout`), named by their index in
the page array. You can allocate and free runs of contiguous pages with either
of two policies:

- `FirstFitManager` (`pagealloc.default_pmm`) takes the lowest-addressed free
  block that is large enough.
- `BestFitManager` (`pagealloc.best_fit_pmm`) takes the smallest free block that
  is large enough. Among blocks of the same size it takes the lowest-addressed.

Both keep their free blocks in address order. A block larger than the request
is split. A freed block is merged with free neighbours next to it.
`FirstFitManager.free_blocks()` lists the free blocks as
`(first page index, length)` pairs. Each manager's `check()` runs a fixed
allocate/free sequence. It raises `KernelPanic` if the allocator misbehaves.

## Other modules

- `pagealloc.pmm`:
  - `PmmManager` is the abstract allocator interface.
  - `PhysicalMemory` lays out the page array after the kernel image. It marks
    every page reserved and hands the remaining memory to a manager.
  - It also provides `page2ppn`, `page2pa` and `pa2page`.
- `pagealloc.dtb`:
  - `parse_header` reads and validates a flattened device tree header. It
    raises `DtbError` on a bad magic number or a truncated blob.
  - `extract_memory_info` returns the first memory node's `reg` range as a
    `MemoryRegion`, or `None`.
  - `dtb_init` reports what it finds on a console.
- `pagealloc.printfmt`:
  - `printfmt` and `format_string` are kernel-style formatters. They support
    `%d %u %o %x %p %s %c %e %%`, widths, `0`/`-` padding, `*`, `#` and
    `l`/`ll` flags.
  - `snprintf(size, fmt, *args)` returns the text that fits in `size` slots and
    the full length. It raises `KernelError` when `size <= 0`.
- `pagealloc.console.Console` wraps any text output and input streams. They
  default to standard output and input. It provides `putc`, `getc`, `cprintf`,
  `cputchar`, `cputs`, `getchar` and an echoing `readline`.
- `pagealloc.debug.Debugger` offers `panic`, `warn`, `check` and
  `is_kernel_panic`. A panic prints its report once and raises `KernelPanic`.
- `pagealloc.cstring` holds NUL-terminated string and byte-buffer helpers:
  - `strnlen`, `strncpy`, `strcmp`, `strncmp`, `strchr`, `strfind` and `strtol`.
  - `memset`, `memmove` and `memcmp`.
  - `strtol` returns the value and the index just past the digits.
- `pagealloc.errors` defines `ErrorCode`, `KernelError` and `error_string`.

## Installation

```
pip install .
```

## Library use

```python
from pagealloc.best_fit_pmm import BestFitManager
from pagealloc.pmm import PhysicalMemory

memory = PhysicalMemory(BestFitManager(), mem_base=0x80000000,
                        mem_size=0x8000000, kernel_end=0xFFFFFFFFC0220000)
first = memory.alloc_pages(4)
print(memory.nr_free_pages())
memory.free_pages(first, 4)
memory.check()
```

`alloc_pages` returns the index of the first page of the block. It returns
`None` when no free block is large enough.

## Booting from a device tree

`pagealloc.kernel.kern_init(blob, console, hartid)` runs the boot sequence on a
device tree blob, in this order:

1. It reports the memory the blob describes.
2. It prints the banner and the kernel image's symbol addresses.
3. It sets up a `BestFitManager` over that memory and runs its check.
4. It returns the `PhysicalMemory`.

From the command line:

```
pagealloc path/to/machine.dtb [--hartid N]
```

The boot log goes to standard output. The exit status is 1 in two cases: the
file cannot be read, or a kernel panic occurs, for example when the blob
describes no memory.

## What it does not do

This is a model of physical memory, nothing more:

- No real memory is touched.
- No page tables are built.
- No virtual memory is managed.
- The command line does not take interactive input.

## Running the tests

```
pip install .[test]
pytest
```