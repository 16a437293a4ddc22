# sofsim

`sofsim` is an in-memory model of a small inode-based file system. It can lay out
a volume on a block device that lives in memory. It reads back the superblock,
inodes and free-list tables. It also allocates and releases inodes and data blocks
through the reference caches kept in the superblock.

The package also holds a few general helpers. These are design-by-contract checks,
a FIFO with indexed access, string and UTF-8 utilities, and a generator of text
boxes, rectangles, matrices, lines and progress bars.

It has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

| Module | What it provides |
| --- | --- |
| `sofsim.layout` | On-disk structures. These are `Geometry` (block size, reference counts, cache sizes and name length, with derived sizes), `SuperBlock`, `Inode`, `DirEntry` and `ReferenceCache`, each with `pack`/`unpack`. It also provides the `NULL_REFERENCE` constant and the `SOFSError` exception. |
| `sofsim.dal` | `Disk` stores raw blocks in memory, through `read_block` and `write_block`. `FileSystem` covers a formatted disk: the superblock, open inode handles, the FILT and FBLT blocks as context managers, data-zone access and `check_inode_access`. It also defines the `R_OK`, `W_OK` and `X_OK` constants. |
| `sofsim.mksofs` | Formatting functions: `compute_structure` (which returns a `Structure`), `fill_in_superblock`, `fill_in_free_inode_list_table`, `fill_in_inode_table`, `fill_in_free_block_list_table`, `fill_in_root_dir` and `reset_blocks`. |
| `sofsim.freelists` | `FreeLists` has `alloc_inode`, `free_inode`, `alloc_data_block` and `free_data_block`. It also has `replenish_ir_cache`, `replenish_br_cache`, `deplete_ii_cache` and `deplete_bi_cache`. |
| `sofsim.dbc` | The checks `check`, `require`, `ensure`, `invariant` and `not_null`. A failed check raises `CheckError`, `PreconditionError`, `PostconditionError` or `InvariantError`, all of which are subclasses of `ContractError`. |
| `sofsim.textutils` | Helpers for strings (`concat`), numbers (`num_digits`, `int2nstring`, `percentage2string`) and line metrics. It also has random choice (`random_boolean`, `random_int`, `random_string`), terminal cursor control and UTF-8 (`num_chars_utf8`, `code2utf8`). |
| `sofsim.fifo` | `Fifo` is a first-in first-out queue. It has `put`, `get`, `remove`, `is_empty`, indexing, `len` and iteration. |
| `sofsim.box` | `gen_boxes`, `gen_rect`, `gen_empty_rect`, `gen_matrix`, `gen_lines`, `box_dimensions`, `gen_overlap_boxes`, `gen_overlap_valid_boxes` and `progress_bar`. It also provides the `Direction` enum and the ASCII/UTF-8 mode switches. |

## Example: formatting a volume and allocating from it

```python
import stat

from sofsim.dal import Disk, FileSystem
from sofsim.freelists import FreeLists
from sofsim.layout import SuperBlock
from sofsim.mksofs import (
    compute_structure,
    fill_in_free_block_list_table,
    fill_in_free_inode_list_table,
    fill_in_inode_table,
    fill_in_root_dir,
    fill_in_superblock,
)

ntotal = 1000
disk = Disk(ntotal)
s = compute_structure(disk.geometry, ntotal)
fill_in_superblock(disk, "vol", ntotal, s.itotal, s.rdsize)

sb = SuperBlock.unpack(disk.read_block(0), disk.geometry)
fill_in_free_inode_list_table(disk, sb.filt_start, s.itotal)
fill_in_inode_table(disk, sb.it_start, s.itotal, s.rdsize)
fill_in_free_block_list_table(disk, sb.fblt_start, s.btotal, s.rdsize)
fill_in_root_dir(disk, sb.dz_start, s.rdsize)

fs = FileSystem(disk)
lists = FreeLists(fs)
inode_number = lists.alloc_inode(stat.S_IFREG)
block_number = lists.alloc_data_block()
```

## Example: text boxes

```python
from sofsim.box import gen_rect, progress_bar

print(gen_rect(4, 10, 0xF, True))
print(progress_bar(40, 20, "#", "."))
```

## Errors

File system operations raise `sofsim.layout.SOFSError`, which is a subclass of
`OSError`. The error carries an `errno` value. Examples are `ENOSPC` when no free
inode or data block is left, and `EINVAL` for a bad argument or block number.

Contract checks raise subclasses of `sofsim.dbc.ContractError`, which is itself an
`AssertionError`.

## What the package does not do

- It does not map a file's block numbers to data blocks through the direct,
  indirect and double-indirect references of an inode. It does not read or write
  a file block by block either. The `Inode` fields are there, but nothing walks
  them.
- It has no directory operations. It cannot look up, add, delete or rename entries,
  and it does not traverse paths. `fill_in_root_dir` writes the root directory and
  `DirEntry` packs entries, and that is all it does with directories.
- A `Disk` exists only in memory. Nothing saves it to a file or loads it from one.
- There is no command-line tool and no timer. Formatting is done by calling the
  `sofsim.mksofs` functions in turn, as shown above.