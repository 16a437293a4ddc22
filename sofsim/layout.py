"""On-disk layout of the file system: geometry, superblock, inodes and directory entries."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass, field

NULL_REFERENCE = 0xFFFFFFFF
MAGIC_NUMBER = 0xFFFF
VERSION_NUMBER = 0x2018
INODE_FREE = 0

_INODE_HEAD = struct.Struct("<HHIIIIIII")
_SB_INT_FIELDS = (
    "ntotal",
    "filt_start",
    "filt_size",
    "filt_head",
    "filt_tail",
    "it_start",
    "it_size",
    "itotal",
    "ifree",
    "fblt_start",
    "fblt_size",
    "fblt_head",
    "fblt_tail",
    "dz_start",
    "dz_total",
    "dz_free",
)


class SOFSError(OSError):
    """File system error carrying an errno code."""

    def __init__(self, err: int, where: str = ""):
        text = os.strerror(err)
        super().__init__(err, f"{where}: {text}" if where else text)
        self.where = where


@dataclass(frozen=True)
class Geometry:
    """Sizes that fix the layout of a volume."""

    block_size: int = 1024
    n_direct: int = 4
    n_indirect: int = 1
    n_double_indirect: int = 1
    inode_cache_size: int = 50
    block_cache_size: int = 50
    max_name: int = 59
    partition_name_size: int = 22

    def __post_init__(self) -> None:
        if self.block_size <= 0 or self.block_size % 4:
            raise ValueError("block size must be a positive multiple of 4")
        if min(self.n_direct, self.n_indirect, self.n_double_indirect) < 0:
            raise ValueError("reference counts must not be negative")
        if min(self.inode_cache_size, self.block_cache_size, self.max_name) <= 0:
            raise ValueError("cache sizes and name length must be positive")
        if self.inode_size > self.block_size:
            raise ValueError("an inode does not fit in a block")
        if self.block_size % self.direntry_size:
            raise ValueError("directory entries must fill a block exactly")
        if self.superblock_size > self.block_size:
            raise ValueError("the superblock does not fit in a block")

    @property
    def references_per_block(self) -> int:
        return self.block_size // 4

    @property
    def inode_size(self) -> int:
        raw = _INODE_HEAD.size + 4 * (self.n_direct + self.n_indirect + self.n_double_indirect)
        size = 1
        while size < raw:
            size *= 2
        return size

    @property
    def inodes_per_block(self) -> int:
        return self.block_size // self.inode_size

    @property
    def direntry_size(self) -> int:
        return self.max_name + 1 + 4

    @property
    def direntries_per_block(self) -> int:
        return self.block_size // self.direntry_size

    @property
    def _sb_head(self) -> struct.Struct:
        return struct.Struct(f"<HH{self.partition_name_size + 1}sBB{len(_SB_INT_FIELDS)}I")

    @property
    def superblock_size(self) -> int:
        caches = 2 * (1 + self.inode_cache_size) + 2 * (1 + self.block_cache_size)
        return self._sb_head.size + 4 * caches

    def pack_refs(self, refs: list[int]) -> bytes:
        """Pack a full block of references."""
        if len(refs) != self.references_per_block:
            raise ValueError("a reference block must hold exactly references_per_block entries")
        return struct.pack(f"<{len(refs)}I", *refs)

    def unpack_refs(self, data: bytes) -> list[int]:
        """Unpack a block of references."""
        return list(struct.unpack(f"<{len(data) // 4}I", data[: len(data) // 4 * 4]))


@dataclass
class ReferenceCache:
    """A cache of free inode or block references."""

    idx: int = 0
    ref: list[int] = field(default_factory=list)


@dataclass
class Inode:
    """An inode as held in the inode table."""

    mode: int = INODE_FREE
    lnkcnt: int = 0
    owner: int = 0
    group: int = 0
    size: int = 0
    blkcnt: int = 0
    atime: int = 0
    mtime: int = 0
    ctime: int = 0
    d: list[int] = field(default_factory=list)
    i1: list[int] = field(default_factory=list)
    i2: list[int] = field(default_factory=list)

    @classmethod
    def free(cls, geometry: Geometry) -> "Inode":
        """A free inode with every reference null."""
        return cls(
            d=[NULL_REFERENCE] * geometry.n_direct,
            i1=[NULL_REFERENCE] * geometry.n_indirect,
            i2=[NULL_REFERENCE] * geometry.n_double_indirect,
        )

    def pack(self, geometry: Geometry) -> bytes:
        if (len(self.d), len(self.i1), len(self.i2)) != (
            geometry.n_direct,
            geometry.n_indirect,
            geometry.n_double_indirect,
        ):
            raise ValueError("inode reference lists do not match the geometry")
        head = _INODE_HEAD.pack(
            self.mode, self.lnkcnt, self.owner, self.group, self.size,
            self.blkcnt, self.atime, self.mtime, self.ctime,
        )
        refs = [*self.d, *self.i1, *self.i2]
        body = head + struct.pack(f"<{len(refs)}I", *refs)
        return body.ljust(geometry.inode_size, b"\0")

    @classmethod
    def unpack(cls, data: bytes, geometry: Geometry) -> "Inode":
        fields = _INODE_HEAD.unpack_from(data)
        n = geometry.n_direct + geometry.n_indirect + geometry.n_double_indirect
        refs = list(struct.unpack_from(f"<{n}I", data, _INODE_HEAD.size))
        nd, ni = geometry.n_direct, geometry.n_indirect
        return cls(*fields, d=refs[:nd], i1=refs[nd:nd + ni], i2=refs[nd + ni:])


@dataclass
class DirEntry:
    """A directory entry: a name and the inode it refers to."""

    name: str = ""
    in_: int = NULL_REFERENCE

    def pack(self, geometry: Geometry) -> bytes:
        raw = self.name.encode()
        if len(raw) > geometry.max_name:
            raise SOFSError(36, "DirEntry.pack")  # ENAMETOOLONG
        return raw.ljust(geometry.max_name + 1, b"\0") + struct.pack("<I", self.in_)

    @classmethod
    def unpack(cls, data: bytes, geometry: Geometry) -> "DirEntry":
        raw = data[: geometry.max_name + 1].split(b"\0", 1)[0]
        (in_,) = struct.unpack_from("<I", data, geometry.max_name + 1)
        return cls(raw.decode(errors="replace"), in_)

    @classmethod
    def pack_block(cls, entries: list["DirEntry"], geometry: Geometry) -> bytes:
        if len(entries) != geometry.direntries_per_block:
            raise ValueError("a directory block must hold exactly direntries_per_block entries")
        return b"".join(e.pack(geometry) for e in entries)

    @classmethod
    def unpack_block(cls, data: bytes, geometry: Geometry) -> list["DirEntry"]:
        size = geometry.direntry_size
        return [
            cls.unpack(data[off:off + size], geometry)
            for off in range(0, geometry.direntries_per_block * size, size)
        ]


def _empty_cache(size: int, idx: int) -> ReferenceCache:
    return ReferenceCache(idx, [NULL_REFERENCE] * size)


@dataclass
class SuperBlock:
    """The superblock, stored in block 0."""

    magic: int = MAGIC_NUMBER
    version: int = VERSION_NUMBER
    name: str = ""
    mntstat: int = 1
    mntcnt: int = 0
    ntotal: int = 0
    filt_start: int = 0
    filt_size: int = 0
    filt_head: int = 0
    filt_tail: int = 0
    it_start: int = 0
    it_size: int = 0
    itotal: int = 0
    ifree: int = 0
    fblt_start: int = 0
    fblt_size: int = 0
    fblt_head: int = 0
    fblt_tail: int = 0
    dz_start: int = 0
    dz_total: int = 0
    dz_free: int = 0
    ircache: ReferenceCache = field(default_factory=ReferenceCache)
    iicache: ReferenceCache = field(default_factory=ReferenceCache)
    brcache: ReferenceCache = field(default_factory=ReferenceCache)
    bicache: ReferenceCache = field(default_factory=ReferenceCache)

    def _caches(self, geometry: Geometry):
        return (
            (self.ircache, geometry.inode_cache_size),
            (self.iicache, geometry.inode_cache_size),
            (self.brcache, geometry.block_cache_size),
            (self.bicache, geometry.block_cache_size),
        )

    def pack(self, geometry: Geometry) -> bytes:
        name = self.name.encode()[: geometry.partition_name_size]
        parts = [
            geometry._sb_head.pack(
                self.magic, self.version, name, self.mntstat, self.mntcnt,
                *(getattr(self, f) for f in _SB_INT_FIELDS),
            )
        ]
        for cache, size in self._caches(geometry):
            if len(cache.ref) != size:
                raise ValueError("cache size does not match the geometry")
            parts.append(struct.pack(f"<I{size}I", cache.idx, *cache.ref))
        return b"".join(parts).ljust(geometry.block_size, b"\0")

    @classmethod
    def unpack(cls, data: bytes, geometry: Geometry) -> "SuperBlock":
        head = geometry._sb_head
        magic, version, name, mntstat, mntcnt, *ints = head.unpack_from(data)
        offset = head.size
        caches = []
        for size in (
            geometry.inode_cache_size,
            geometry.inode_cache_size,
            geometry.block_cache_size,
            geometry.block_cache_size,
        ):
            idx, *refs = struct.unpack_from(f"<I{size}I", data, offset)
            caches.append(ReferenceCache(idx, list(refs)))
            offset += 4 * (size + 1)
        return cls(
            magic, version, name.split(b"\0", 1)[0].decode(errors="replace"),
            mntstat, mntcnt, *ints, *caches,
        )