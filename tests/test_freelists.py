import errno
import stat

import pytest

from sofsim.dal import Disk, FileSystem
from sofsim.freelists import FreeLists
from sofsim.layout import INODE_FREE, NULL_REFERENCE, Geometry, SOFSError, SuperBlock
from sofsim.mksofs import (
    compute_structure,
    fill_in_free_block_list_table,
    fill_in_free_inode_list_table,
    fill_in_inode_table,
    fill_in_root_dir,
    fill_in_superblock,
)

GEOM = Geometry(block_size=256, inode_cache_size=4, block_cache_size=4)


def make_fs(ntotal=100):
    disk = Disk(ntotal, GEOM)
    s = compute_structure(GEOM, ntotal, 0)
    fill_in_superblock(disk, "vol", ntotal, s.itotal, s.rdsize)
    sb = SuperBlock.unpack(disk.read_block(0), GEOM)
    fill_in_free_inode_list_table(disk, sb.filt_start, s.itotal)
    fill_in_inode_table(disk, sb.it_start, s.itotal, s.rdsize)
    fill_in_free_block_list_table(disk, sb.fblt_start, s.btotal, s.rdsize)
    fill_in_root_dir(disk, sb.dz_start, s.rdsize)
    fs = FileSystem(disk)
    return fs, FreeLists(fs), s


def filt_contents(fs, bn=0):
    with fs.filt_block(bn) as refs:
        return list(refs)


def fblt_contents(fs, bn):
    with fs.fblt_block(bn) as refs:
        return list(refs)


def test_first_inode_allocated_is_one():
    fs, fl, _ = make_fs()
    before = fs.superblock.ifree
    assert fl.alloc_inode(stat.S_IFREG) == 1
    assert fs.superblock.ifree == before - 1


def test_allocated_inode_has_type():
    fs, fl, _ = make_fs()
    in_ = fl.alloc_inode(stat.S_IFDIR)
    ih = fs.open_inode(in_)
    assert fs.inode(ih).mode == stat.S_IFDIR
    fs.close_inode(ih)


def test_alloc_inode_rejects_bad_type():
    _, fl, _ = make_fs()
    with pytest.raises(SOFSError) as exc:
        fl.alloc_inode(stat.S_IFCHR)
    assert exc.value.errno == errno.EINVAL


def test_alloc_all_inodes_then_no_space():
    fs, fl, _ = make_fs()
    itotal = fs.superblock.itotal
    got = [fl.alloc_inode(stat.S_IFREG) for _ in range(itotal - 1)]
    assert sorted(got) == list(range(1, itotal))
    assert fs.superblock.ifree == 0
    with pytest.raises(SOFSError) as exc:
        fl.alloc_inode(stat.S_IFREG)
    assert exc.value.errno == errno.ENOSPC


def test_free_inode_clears_metadata():
    fs, fl, _ = make_fs()
    in_ = fl.alloc_inode(stat.S_IFREG)
    ifree = fs.superblock.ifree
    fl.free_inode(in_)
    assert fs.superblock.ifree == ifree + 1
    assert fs.superblock.iicache.ref[0] == in_
    assert fs.superblock.iicache.idx == 1
    ih = fs.open_inode(in_)
    inode = fs.inode(ih)
    assert (inode.mode, inode.owner, inode.atime) == (INODE_FREE, 0, 0)
    fs.close_inode(ih)


def test_free_inodes_deplete_into_filt_and_come_back():
    fs, fl, _ = make_fs()
    itotal = fs.superblock.itotal
    for _ in range(itotal - 1):
        fl.alloc_inode(stat.S_IFREG)
    assert (fs.superblock.filt_head, fs.superblock.filt_tail) == (0, 0)

    freed = [1, 2, 3, 4, 5]
    for in_ in freed:
        fl.free_inode(in_)
    assert filt_contents(fs)[:4] == freed[:4]
    assert fs.superblock.filt_tail == 4
    assert fs.superblock.iicache.idx == 1
    assert fs.superblock.iicache.ref[0] == freed[4]

    again = [fl.alloc_inode(stat.S_IFREG) for _ in range(4)]
    assert again == freed[:4]


def test_replenish_ir_cache_noop_when_not_exhausted():
    fs, fl, _ = make_fs()
    fl.alloc_inode(stat.S_IFREG)
    before = (fs.superblock.ircache.idx, list(fs.superblock.ircache.ref), fs.superblock.filt_head)
    fl.replenish_ir_cache()
    after = (fs.superblock.ircache.idx, list(fs.superblock.ircache.ref), fs.superblock.filt_head)
    assert after == before


def test_replenish_ir_cache_takes_from_filt_head():
    fs, fl, _ = make_fs()
    fl.replenish_ir_cache()
    assert fs.superblock.ircache.ref == [1, 2, 3, 4]
    assert fs.superblock.ircache.idx == 0
    assert fs.superblock.filt_head == 4
    assert filt_contents(fs)[:4] == [NULL_REFERENCE] * 4


def test_first_data_block_is_after_root_dir():
    fs, fl, s = make_fs()
    before = fs.superblock.dz_free
    assert fl.alloc_data_block() == s.rdsize
    assert fs.superblock.dz_free == before - 1


def test_alloc_all_blocks_then_no_space():
    fs, fl, s = make_fs()
    count = fs.superblock.dz_free
    got = [fl.alloc_data_block() for _ in range(count)]
    assert sorted(got) == list(range(s.rdsize, fs.superblock.dz_total))
    assert len(set(got)) == count
    with pytest.raises(SOFSError) as exc:
        fl.alloc_data_block()
    assert exc.value.errno == errno.ENOSPC


def test_free_data_block_updates_counters():
    fs, fl, _ = make_fs()
    bn = fl.alloc_data_block()
    before = fs.superblock.dz_free
    fl.free_data_block(bn)
    assert fs.superblock.dz_free == before + 1
    assert fs.superblock.bicache.ref[0] == bn
    assert fs.superblock.bicache.idx == 1


def test_deplete_bi_cache_writes_at_tail():
    fs, fl, _ = make_fs()
    got = [fl.alloc_data_block() for _ in range(10)]
    tail = fs.superblock.fblt_tail
    rpb = GEOM.references_per_block
    for bn in got[:5]:
        fl.free_data_block(bn)
    block, used = divmod(tail, rpb)
    assert fblt_contents(fs, block)[used:used + 4] == got[:4]
    assert fs.superblock.fblt_tail == tail + 4
    assert fs.superblock.bicache.idx == 1
    assert fs.superblock.bicache.ref[0] == got[4]


def test_replenish_from_insertion_cache_when_table_empty():
    fs, fl, _ = make_fs()
    got = [fl.alloc_data_block() for _ in range(fs.superblock.dz_free)]
    assert fs.superblock.fblt_head == fs.superblock.fblt_tail
    returned = got[:3]
    for bn in returned:
        fl.free_data_block(bn)
    again = [fl.alloc_data_block() for _ in range(3)]
    assert again == returned
    assert fs.superblock.bicache.idx == 0
    assert fs.superblock.dz_free == 0


def test_superblock_is_saved_to_disk():
    fs, fl, _ = make_fs()
    fl.alloc_inode(stat.S_IFREG)
    fl.alloc_data_block()
    reloaded = FileSystem(fs.disk)
    assert reloaded.superblock == fs.superblock