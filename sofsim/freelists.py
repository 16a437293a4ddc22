"""Management of the lists of free inodes and free data blocks."""

from __future__ import annotations

import errno
import os
import stat
import time
from contextlib import AbstractContextManager
from typing import Callable

from .dal import FileSystem
from .layout import INODE_FREE, NULL_REFERENCE, ReferenceCache, SOFSError

_ALLOWED_TYPES = (stat.S_IFREG, stat.S_IFDIR, stat.S_IFLNK)

_BlockOpener = Callable[[int], AbstractContextManager]


def _ids() -> tuple[int, int]:
    if hasattr(os, "getuid"):
        return os.getuid(), os.getgid()
    return 0, 0


class FreeLists:
    """Allocation and release of inodes and data blocks through the reference caches."""

    def __init__(self, fs: FileSystem):
        self.fs = fs

    @property
    def _sb(self):
        return self.fs.superblock

    # ------------------------------------------------------------------ inodes

    def alloc_inode(self, type_: int) -> int:
        """Allocate a free inode of the given type and return its number."""
        if type_ not in _ALLOWED_TYPES:
            raise SOFSError(errno.EINVAL, "alloc_inode")
        sb = self._sb
        if sb.ifree <= 0:
            raise SOFSError(errno.ENOSPC, "alloc_inode")
        size = self.fs.geometry.inode_cache_size
        if sb.ircache.idx == size:
            self.replenish_ir_cache()
        if sb.ircache.idx >= size:
            raise SOFSError(errno.ENOSPC, "alloc_inode")

        idx = sb.ircache.idx
        in_ = sb.ircache.ref[idx]

        ih = self.fs.open_inode(in_)
        try:
            inode = self.fs.inode(ih)
            now = int(time.time()) & 0xFFFFFFFF
            inode.mode = type_
            inode.atime = inode.mtime = inode.ctime = now
            inode.owner, inode.group = _ids()
            self.fs.save_inode(ih)
        finally:
            self.fs.close_inode(ih)

        sb.ircache.ref[idx] = NULL_REFERENCE
        sb.ircache.idx += 1
        sb.ifree = max(sb.ifree - 1, 0)
        self.fs.save_superblock()
        return in_

    def free_inode(self, in_: int) -> None:
        """Return inode in_ to the free list, clearing its metadata."""
        sb = self._sb
        if sb.iicache.idx == self.fs.geometry.inode_cache_size:
            self.deplete_ii_cache()

        ih = self.fs.open_inode(in_)
        try:
            inode = self.fs.inode(ih)
            sb.iicache.ref[sb.iicache.idx] = in_
            sb.iicache.idx += 1
            sb.ifree += 1

            inode.mode = INODE_FREE
            inode.lnkcnt = 0
            inode.owner = 0
            inode.group = 0
            inode.size = 0
            inode.blkcnt = 0
            inode.atime = inode.mtime = inode.ctime = 0

            self.fs.save_inode(ih)
            self.fs.save_superblock()
        finally:
            self.fs.close_inode(ih)

    def replenish_ir_cache(self) -> None:
        """Refill the inode retrieval cache once it is exhausted."""
        self._replenish(
            self._sb.ircache, self._sb.iicache, "filt",
            self.fs.filt_block, self.fs.geometry.inode_cache_size,
        )

    def deplete_ii_cache(self) -> None:
        """Move inode references from the insertion cache to the free inode list table."""
        self._deplete(
            self._sb.iicache, "filt",
            self.fs.filt_block, self.fs.geometry.inode_cache_size,
        )

    # ------------------------------------------------------------------ blocks

    def alloc_data_block(self) -> int:
        """Allocate a free data block and return its number."""
        sb = self._sb
        if sb.dz_free == 0:
            raise SOFSError(errno.ENOSPC, "alloc_data_block")
        size = self.fs.geometry.block_cache_size
        if sb.brcache.idx == size:
            self.replenish_br_cache()
        if sb.brcache.idx >= size:
            raise SOFSError(errno.ENOSPC, "alloc_data_block")

        idx = sb.brcache.idx
        bn = sb.brcache.ref[idx]
        sb.brcache.ref[idx] = NULL_REFERENCE
        sb.dz_free -= 1
        sb.brcache.idx += 1
        self.fs.save_superblock()
        return bn

    def free_data_block(self, bn: int) -> None:
        """Return data block bn to the free list."""
        sb = self._sb
        if sb.bicache.idx == self.fs.geometry.block_cache_size:
            self.deplete_bi_cache()
        sb.bicache.ref[sb.bicache.idx] = bn
        sb.bicache.idx += 1
        sb.dz_free += 1
        self.fs.save_superblock()

    def replenish_br_cache(self) -> None:
        """Refill the block retrieval cache once it is exhausted."""
        self._replenish(
            self._sb.brcache, self._sb.bicache, "fblt",
            self.fs.fblt_block, self.fs.geometry.block_cache_size,
        )

    def deplete_bi_cache(self) -> None:
        """Move block references from the insertion cache to the free block list table."""
        self._deplete(
            self._sb.bicache, "fblt",
            self.fs.fblt_block, self.fs.geometry.block_cache_size,
        )

    # ----------------------------------------------------------------- shared

    def _replenish(
        self,
        retrieval: ReferenceCache,
        insertion: ReferenceCache,
        table: str,
        open_block: _BlockOpener,
        size: int,
    ) -> None:
        if retrieval.idx != size:
            return
        sb = self._sb
        head = getattr(sb, f"{table}_head")
        tail = getattr(sb, f"{table}_tail")

        if head == tail:
            n = insertion.idx
            dest = size - n
            retrieval.ref[dest:] = insertion.ref[:n]
            insertion.ref[:n] = [NULL_REFERENCE] * n
            retrieval.idx = dest
            insertion.idx = 0
        else:
            rpb = self.fs.geometry.references_per_block
            head_block, ref_head = divmod(head, rpb)
            tail_block, ref_tail = divmod(tail, rpb)
            last = ref_tail if head_block == tail_block and ref_tail > ref_head else rpb
            available = min(last - ref_head, size)
            dest = size - available

            with open_block(head_block) as refs:
                retrieval.ref[dest:] = refs[ref_head:ref_head + available]
                refs[ref_head:ref_head + available] = [NULL_REFERENCE] * available
            retrieval.idx = dest

            table_size = getattr(sb, f"{table}_size")
            head = (head + available) % (table_size * rpb)
            if head == tail:
                head = tail = 0
            setattr(sb, f"{table}_head", head)
            setattr(sb, f"{table}_tail", tail)

        self.fs.save_superblock()

    def _deplete(
        self,
        insertion: ReferenceCache,
        table: str,
        open_block: _BlockOpener,
        size: int,
    ) -> None:
        sb = self._sb
        rpb = self.fs.geometry.references_per_block
        head = getattr(sb, f"{table}_head")
        tail = getattr(sb, f"{table}_tail")
        table_size = getattr(sb, f"{table}_size")

        block, used = divmod(tail, rpb)
        if block == head // rpb and head % rpb > used:
            free_slots = head % rpb - used
        else:
            free_slots = rpb - used

        moved = min(insertion.idx, free_slots)
        with open_block(block) as refs:
            refs[used:used + moved] = insertion.ref[:moved]

        setattr(sb, f"{table}_tail", (tail + moved) % (table_size * rpb))

        remaining = insertion.ref[moved:insertion.idx]
        insertion.ref[:] = remaining + [NULL_REFERENCE] * (size - len(remaining))
        insertion.idx = len(remaining)

        self.fs.save_superblock()