"""A first-in first-out queue that also gives access to its elements by position."""

from __future__ import annotations

from collections import deque
from typing import Generic, Iterator, TypeVar

from .dbc import require

T = TypeVar("T")


class Fifo(Generic[T]):
    """A queue of elements, oldest first, with array-like access by index."""

    def __init__(self) -> None:
        self._items: deque[T] = deque()

    def put(self, elem: T) -> None:
        """Add elem at the end of the queue."""
        require(elem is not None, "element must not be None")
        self._items.append(elem)

    def get(self) -> T:
        """Remove and return the oldest element."""
        if not self._items:
            raise IndexError("get from an empty queue")
        return self._items.popleft()

    def _check_index(self, idx: int) -> None:
        if not 0 <= idx < len(self._items):
            raise IndexError(f"queue index out of range ({idx})")

    def remove(self, idx: int) -> T:
        """Remove and return the element at position idx, counting from the oldest."""
        self._check_index(idx)
        elem = self._items[idx]
        del self._items[idx]
        return elem

    def is_empty(self) -> bool:
        return not self._items

    def __getitem__(self, idx: int) -> T:
        self._check_index(idx)
        return self._items[idx]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __repr__(self) -> str:
        return f"Fifo({list(self._items)!r})"