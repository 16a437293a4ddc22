"""In-memory model of a small inode-based file system (layout, formatting, free lists), with contract, text and queue utilities."""

__version__ = "0.1.0"

__all__ = [
    "layout",
    "dal",
    "mksofs",
    "freelists",
    "dbc",
    "textutils",
    "fifo",
    "box",
]