import errno
import stat
from unittest.mock import patch

import pytest

from sofsim import mksofs
from sofsim.dal import R_OK, Disk, FileSystem
from sofsim.layout import MAGIC_NUMBER, NULL_REFERENCE, SOFSError, SuperBlock


def _formatted(ntotal=1000):
    disk = Disk(ntotal)
    s = mksofs.compute_structure(disk.geometry, ntotal, 0)
    mksofs.fill_in_superblock(disk, "vol", ntotal, s.itotal, s.rdsize)
    sb = SuperBlock.unpack(disk.read_block(0), disk.geometry)
    mksofs.fill_in_free_inode_list_table(disk, sb.filt_start, s.itotal)
    mksofs.fill_in_inode_table(disk, sb.it_start, s.itotal, s.rdsize)
    mksofs.fill_in_free_block_list_table(disk, sb.fblt_start, s.btotal, s.rdsize)
    mksofs.fill_in_root_dir(disk, sb.dz_start, s.rdsize)
    mksofs.reset_blocks(disk, sb.dz_start + s.rdsize, ntotal)
    return disk


def test_superblock_loaded():
    fs = FileSystem(_formatted())
    assert fs.superblock.magic == MAGIC_NUMBER
    assert fs.superblock.name == "vol"


def test_unformatted_disk_rejected():
    with pytest.raises(SOFSError):
        FileSystem(Disk(10))


def test_root_inode_is_directory():
    fs = FileSystem(_formatted())
    ih = fs.open_inode(0)
    assert stat.S_ISDIR(fs.inode(ih).mode)
    assert fs.inode(ih).lnkcnt == 2
    assert fs.inode_number(ih) == 0


def test_handles_are_shared_and_counted():
    fs = FileSystem(_formatted())
    a = fs.open_inode(3)
    b = fs.open_inode(3)
    assert a == b
    fs.close_inode(a)
    assert fs.inode_number(b) == 3
    fs.close_inode(b)
    with pytest.raises(SOFSError):
        fs.inode(a)


def test_open_inode_out_of_range():
    fs = FileSystem(_formatted())
    with pytest.raises(SOFSError) as info:
        fs.open_inode(fs.superblock.itotal)
    assert info.value.errno == errno.EINVAL


def test_save_inode_persists():
    disk = _formatted()
    fs = FileSystem(disk)
    ih = fs.open_inode(5)
    fs.inode(ih).size = 77
    fs.save_inode(ih)
    fs.close_inode(ih)
    other = FileSystem(disk)
    assert other.inode(other.open_inode(5)).size == 77


def test_save_superblock_persists():
    disk = _formatted()
    fs = FileSystem(disk)
    fs.superblock.mntcnt = 4
    fs.save_superblock()
    assert FileSystem(disk).superblock.mntcnt == 4


def test_filt_block_changes_saved():
    fs = FileSystem(_formatted())
    with fs.filt_block(0) as refs:
        refs[0] = NULL_REFERENCE
    with fs.filt_block(0) as refs:
        assert refs[0] == NULL_REFERENCE


def test_fblt_block_not_saved_on_error():
    fs = FileSystem(_formatted())
    with fs.fblt_block(0) as refs:
        original = refs[0]
    with pytest.raises(RuntimeError):
        with fs.fblt_block(0) as refs:
            refs[0] = NULL_REFERENCE
            raise RuntimeError
    with fs.fblt_block(0) as refs:
        assert refs[0] == original


def test_filt_block_out_of_range():
    fs = FileSystem(_formatted())
    with pytest.raises(SOFSError):
        with fs.filt_block(fs.superblock.filt_size):
            pass


def test_data_block_round_trip():
    fs = FileSystem(_formatted())
    data = bytes(range(256)) * (fs.geometry.block_size // 256)
    fs.write_data_block(2, data)
    assert fs.read_data_block(2) == data
    with pytest.raises(SOFSError):
        fs.read_data_block(fs.superblock.dz_total)


def test_disk_errors():
    disk = Disk(4)
    with pytest.raises(SOFSError):
        disk.read_block(4)
    with pytest.raises(ValueError):
        disk.write_block(0, b"short")


def test_check_inode_access_by_owner():
    fs = FileSystem(_formatted())
    ih = fs.open_inode(0)
    inode = fs.inode(ih)
    inode.mode = stat.S_IFDIR | 0o700
    inode.owner, inode.group = 1000, 1000
    with patch("os.getuid", return_value=1000, create=True), patch(
        "os.getgid", return_value=1000, create=True
    ):
        assert fs.check_inode_access(ih, R_OK) is True
    with patch("os.getuid", return_value=2000, create=True), patch(
        "os.getgid", return_value=2000, create=True
    ):
        assert fs.check_inode_access(ih, R_OK) is False
    with pytest.raises(SOFSError):
        fs.check_inode_access(ih, 0)