"""Disk access layer: a block device and access to superblock, inodes and tables."""

from __future__ import annotations

import errno
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from .layout import MAGIC_NUMBER, Geometry, Inode, SOFSError, SuperBlock

R_OK, W_OK, X_OK = 4, 2, 1


def _ids() -> tuple[int, int]:
    if hasattr(os, "getuid"):
        return os.getuid(), os.getgid()
    return 0, 0


class Disk:
    """An in-memory block device."""

    def __init__(self, num_blocks: int, geometry: Geometry | None = None):
        if num_blocks <= 0:
            raise ValueError("a disk needs at least one block")
        self.geometry = geometry or Geometry()
        self.num_blocks = num_blocks
        self._data = bytearray(num_blocks * self.geometry.block_size)

    def _span(self, bn: int, where: str) -> slice:
        if not 0 <= bn < self.num_blocks:
            raise SOFSError(errno.EINVAL, where)
        size = self.geometry.block_size
        return slice(bn * size, (bn + 1) * size)

    def read_block(self, bn: int) -> bytes:
        """Return the contents of block bn."""
        return bytes(self._data[self._span(bn, "read_block")])

    def write_block(self, bn: int, data: bytes) -> None:
        """Overwrite block bn with exactly one block of data."""
        data = bytes(data)
        if len(data) != self.geometry.block_size:
            raise ValueError("data must be exactly one block long")
        self._data[self._span(bn, "write_block")] = data


@dataclass
class _OpenInode:
    number: int
    inode: Inode
    count: int = 1


class FileSystem:
    """A mounted volume: the superblock and a table of open inodes."""

    def __init__(self, disk: Disk):
        self.disk = disk
        self.geometry = disk.geometry
        self.superblock = SuperBlock.unpack(disk.read_block(0), self.geometry)
        if self.superblock.magic != MAGIC_NUMBER:
            raise SOFSError(errno.EINVAL, "FileSystem")
        self._handles: dict[int, _OpenInode] = {}
        self._by_number: dict[int, int] = {}
        self._next_handle = 0

    def save_superblock(self) -> None:
        self.disk.write_block(0, self.superblock.pack(self.geometry))

    def _inode_location(self, in_: int) -> tuple[int, int]:
        ipb = self.geometry.inodes_per_block
        return self.superblock.it_start + in_ // ipb, (in_ % ipb) * self.geometry.inode_size

    def open_inode(self, in_: int) -> int:
        """Open inode in_ and return a handle to it."""
        if not 0 <= in_ < self.superblock.itotal:
            raise SOFSError(errno.EINVAL, "open_inode")
        if in_ in self._by_number:
            ih = self._by_number[in_]
            self._handles[ih].count += 1
            return ih
        bn, off = self._inode_location(in_)
        data = self.disk.read_block(bn)[off:off + self.geometry.inode_size]
        ih = self._next_handle
        self._next_handle += 1
        self._handles[ih] = _OpenInode(in_, Inode.unpack(data, self.geometry))
        self._by_number[in_] = ih
        return ih

    def _entry(self, ih: int, where: str) -> _OpenInode:
        try:
            return self._handles[ih]
        except KeyError:
            raise SOFSError(errno.EINVAL, where) from None

    def inode(self, ih: int) -> Inode:
        """The in-memory inode behind handle ih."""
        return self._entry(ih, "inode").inode

    def save_inode(self, ih: int) -> None:
        entry = self._entry(ih, "save_inode")
        bn, off = self._inode_location(entry.number)
        block = bytearray(self.disk.read_block(bn))
        block[off:off + self.geometry.inode_size] = entry.inode.pack(self.geometry)
        self.disk.write_block(bn, block)

    def close_inode(self, ih: int) -> None:
        entry = self._entry(ih, "close_inode")
        entry.count -= 1
        if entry.count == 0:
            del self._handles[ih]
            del self._by_number[entry.number]

    def inode_number(self, ih: int) -> int:
        return self._entry(ih, "inode_number").number

    def check_inode_access(self, ih: int, access: int) -> bool:
        """Whether the current user may access the inode as asked (R_OK|W_OK|X_OK)."""
        if not 0 < access <= R_OK | W_OK | X_OK:
            raise SOFSError(errno.EINVAL, "check_inode_access")
        inode = self.inode(ih)
        uid, gid = _ids()
        if uid == 0:
            return not access & X_OK or bool(inode.mode & 0o111)
        if uid == inode.owner:
            bits = (inode.mode >> 6) & 7
        elif gid == inode.group:
            bits = (inode.mode >> 3) & 7
        else:
            bits = inode.mode & 7
        return bits & access == access

    def _ref_block(self, bn: int) -> Iterator[list[int]]:
        refs = self.geometry.unpack_refs(self.disk.read_block(bn))
        yield refs
        self.disk.write_block(bn, self.geometry.pack_refs(refs))

    @contextmanager
    def filt_block(self, bn: int) -> Iterator[list[int]]:
        """Block bn of the free inode list table; changes are saved on exit."""
        if not 0 <= bn < self.superblock.filt_size:
            raise SOFSError(errno.EINVAL, "filt_block")
        yield from self._ref_block(self.superblock.filt_start + bn)

    @contextmanager
    def fblt_block(self, bn: int) -> Iterator[list[int]]:
        """Block bn of the free block list table; changes are saved on exit."""
        if not 0 <= bn < self.superblock.fblt_size:
            raise SOFSError(errno.EINVAL, "fblt_block")
        yield from self._ref_block(self.superblock.fblt_start + bn)

    def read_data_block(self, bn: int) -> bytes:
        if not 0 <= bn < self.superblock.dz_total:
            raise SOFSError(errno.EINVAL, "read_data_block")
        return self.disk.read_block(self.superblock.dz_start + bn)

    def write_data_block(self, bn: int, data: bytes) -> None:
        if not 0 <= bn < self.superblock.dz_total:
            raise SOFSError(errno.EINVAL, "write_data_block")
        self.disk.write_block(self.superblock.dz_start + bn, data)