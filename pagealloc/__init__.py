"""Physical page allocation with first-fit and best-fit managers, device-tree
memory discovery, and kernel-style console and string helpers."""

__version__ = "0.1.0"