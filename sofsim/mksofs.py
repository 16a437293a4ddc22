"""Formatting of a disk into an empty file system."""

from __future__ import annotations

import os
import stat
import time
from dataclasses import dataclass

from .dal import Disk
from .layout import (
    INODE_FREE,
    NULL_REFERENCE,
    DirEntry,
    Geometry,
    Inode,
    ReferenceCache,
    SuperBlock,
)


def _ids() -> tuple[int, int]:
    if hasattr(os, "getuid"):
        return os.getuid(), os.getgid()
    return 0, 0


@dataclass(frozen=True)
class Structure:
    """Sizes chosen for a new volume."""

    itotal: int
    btotal: int
    rdsize: int


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def compute_structure(geometry: Geometry, ntotal: int, itotal: int = 0) -> Structure:
    """Choose the number of inodes, data blocks and root directory blocks."""
    ipb, rpb = geometry.inodes_per_block, geometry.references_per_block
    if itotal == 0:
        itotal = ntotal // 8
    elif itotal > ntotal // 2:
        itotal = ntotal // 2

    it = _ceil_div(itotal, ipb)
    itotal = it * ipb
    filt = _ceil_div(itotal, rpb)
    empty_filt_refs = filt * rpb - it * ipb

    data = ntotal - 1 - filt - it
    if data <= 0:
        raise ValueError("disk too small for a file system")
    fblt = data // (rpb + 1)
    btotal = fblt * rpb
    remaining = data - fblt - btotal

    rdsize = 1
    if remaining == 1:
        if empty_filt_refs > 0:
            it += 1
            itotal = it * ipb
        else:
            rdsize += 1
            btotal += 1
    elif remaining > 1:
        btotal += remaining - 1
    return Structure(itotal, btotal, rdsize)


def fill_in_superblock(disk: Disk, name: str, ntotal: int, itotal: int, rdsize: int) -> None:
    """Write a fresh superblock to block 0."""
    g = disk.geometry
    rpb = g.references_per_block
    sb = SuperBlock(name=name, mntstat=1, mntcnt=0, ntotal=ntotal)

    sb.filt_start = 1
    sb.filt_head = 0
    sb.filt_tail = itotal - 1
    sb.filt_size = _ceil_div(itotal, rpb)
    sb.it_size = itotal // g.inodes_per_block
    sb.it_start = sb.filt_size + 1
    sb.itotal = itotal
    sb.ifree = itotal - 1

    data = ntotal - 1 - sb.filt_size - sb.it_size
    sb.fblt_size = data // (rpb + 1)
    sb.dz_total = sb.fblt_size * rpb
    remaining = data % (rpb + 1)
    if remaining == 1:
        if rdsize == 2:
            sb.dz_total += 1
    elif remaining > 1:
        sb.fblt_size += 1
        sb.dz_total += remaining - 1

    sb.fblt_start = sb.it_start + sb.it_size
    sb.fblt_head = 0
    sb.fblt_tail = sb.dz_total - 1
    sb.dz_start = sb.fblt_start + sb.fblt_size
    sb.dz_free = sb.dz_total - 1
    if rdsize == 2:
        sb.dz_free -= 1

    sb.ircache = ReferenceCache(g.inode_cache_size, [NULL_REFERENCE] * g.inode_cache_size)
    sb.iicache = ReferenceCache(0, [NULL_REFERENCE] * g.inode_cache_size)
    sb.brcache = ReferenceCache(g.block_cache_size, [NULL_REFERENCE] * g.block_cache_size)
    sb.bicache = ReferenceCache(0, [NULL_REFERENCE] * g.block_cache_size)

    disk.write_block(0, sb.pack(g))


def fill_in_free_inode_list_table(disk: Disk, first_block: int, itotal: int) -> int:
    """Write the list of free inodes (1 .. itotal-1); return the blocks used."""
    g = disk.geometry
    rpb = g.references_per_block
    free = itotal - 1
    blocks = free // rpb
    count = 1
    for i in range(blocks):
        refs = list(range(count, count + rpb))
        count += rpb
        disk.write_block(first_block + i, g.pack_refs(refs))
    if free % g.inodes_per_block != 0:
        refs = [count + k if count + k <= free else NULL_REFERENCE for k in range(rpb)]
        disk.write_block(first_block + blocks, g.pack_refs(refs))
        blocks += 1
    return blocks


def fill_in_inode_table(disk: Disk, first_block: int, itotal: int, rdsize: int) -> int:
    """Write the inode table with inode 0 as the root directory; return the blocks used."""
    g = disk.geometry
    blocks = itotal // g.inodes_per_block
    for bn in range(first_block, first_block + blocks):
        inodes = [Inode.free(g) for _ in range(g.inodes_per_block)]
        if bn == first_block:
            root = inodes[0]
            now = int(time.time()) & 0xFFFFFFFF
            root.mode = stat.S_IFDIR | 0o775
            root.lnkcnt = 2
            root.owner, root.group = _ids()
            root.atime = root.mtime = root.ctime = now
            root.d[0] = 0
            if rdsize < 2:
                root.size = g.block_size
                root.blkcnt = 1
            else:
                root.d[1] = 1
                root.size = 2 * g.block_size
                root.blkcnt = 2
        for inode in inodes[1:] if bn == first_block else inodes:
            inode.mode = INODE_FREE
        block = b"".join(i.pack(g) for i in inodes).ljust(g.block_size, b"\0")
        disk.write_block(bn, block)
    return blocks


def fill_in_free_block_list_table(disk: Disk, first_block: int, btotal: int, rdsize: int) -> int:
    """Write the list of free data blocks (rdsize .. btotal-1); return the blocks used."""
    g = disk.geometry
    rpb = g.references_per_block
    blocks = _ceil_div(btotal, rpb)
    nxt = rdsize
    for i in range(blocks):
        refs = []
        for _ in range(rpb):
            if btotal > nxt:
                refs.append(nxt)
                nxt += 1
            else:
                refs.append(NULL_REFERENCE)
        disk.write_block(first_block + i, g.pack_refs(refs))
    return blocks


def fill_in_root_dir(disk: Disk, first_block: int, rdsize: int) -> int:
    """Write the root directory with "." and ".." entries; return rdsize."""
    g = disk.geometry
    entries = [DirEntry(".", 0), DirEntry("..", 0)]
    entries += [DirEntry() for _ in range(g.direntries_per_block - 2)]
    disk.write_block(first_block, DirEntry.pack_block(entries, g))
    if rdsize == 2:
        empty = [DirEntry() for _ in range(g.direntries_per_block)]
        disk.write_block(first_block + 1, DirEntry.pack_block(empty, g))
    return rdsize


def reset_blocks(disk: Disk, first_block: int, cnt: int) -> None:
    """Zero the blocks from first_block up to, but not including, block cnt."""
    zero = bytes(disk.geometry.block_size)
    for bn in range(first_block, cnt):
        disk.write_block(bn, zero)