"""Text boxes, rectangles, matrices, line drawings, overlays and progress bars."""

from __future__ import annotations

from enum import IntEnum
from typing import Iterator

from .dbc import require
from .textutils import num_chars_utf8, string_num_columns, string_num_lines


class Direction(IntEnum):
    """Drawing directions, one bit each in N.E.W.S order."""

    NONE = 0x0
    SOUTH = 0x1
    WEST = 0x2
    EAST = 0x4
    NORTH = 0x8
    DOWN = 0x1
    LEFT = 0x2
    RIGHT = 0x4
    UP = 0x8


_N, _E, _W, _S = Direction.NORTH, Direction.EAST, Direction.WEST, Direction.SOUTH

_UTF8_CORNERS = {
    0: "+",
    _N: "│",
    _S: "│",
    _N | _S: "│",
    _E: "─",
    _W: "─",
    _E | _W: "─",
    _E | _S: "┌",
    _W | _S: "┐",
    _N | _E: "└",
    _N | _W: "┘",
    _N | _E | _S: "├",
    _N | _W | _S: "┤",
    _E | _W | _S: "┬",
    _N | _E | _W: "┴",
    _N | _E | _W | _S: "┼",
}
_UTF8_ROUND = {_E | _S: "╭", _W | _S: "╮", _N | _E: "╰", _N | _W: "╯"}

_ascii_mode = False


def set_ascii_mode_boxes() -> None:
    """Draw boxes with ASCII characters only."""
    global _ascii_mode
    _ascii_mode = True


def set_utf8_mode_boxes() -> None:
    """Draw boxes with UTF-8 line drawing characters."""
    global _ascii_mode
    _ascii_mode = False


def ascii_mode_boxes() -> bool:
    return _ascii_mode


def utf8_mode_boxes() -> bool:
    return not _ascii_mode


def _horizontal() -> str:
    return "-" if _ascii_mode else "─"


def _vertical() -> str:
    return "|" if _ascii_mode else "│"


def _corner(mask: int, round_: bool) -> str:
    if _ascii_mode:
        return "+"
    if round_ and mask in _UTF8_ROUND:
        return _UTF8_ROUND[mask]
    return _UTF8_CORNERS[mask]


def gen_boxes(box: str, *args: object) -> str:
    """Translate a box skeleton into drawing characters, filling '#' runs with args.

    '.' is dropped, '-' and '|' are segments, '+' and '@' are corners shaped by
    their neighbours ('@' rounded), and each run of '#' takes the next argument,
    cut or padded with spaces to the run's width.
    """
    require(box is not None, "box must not be None")
    lines = box.split("\n")

    def at(r: int, c: int) -> str:
        if 0 <= r < len(lines) and 0 <= c < len(lines[r]):
            return lines[r][c]
        return " "

    pending = iter(args)
    result = []
    for r, line in enumerate(lines):
        out = []
        c = 0
        while c < len(line):
            ch = line[c]
            if ch == "#":
                end = c
                while end < len(line) and line[end] == "#":
                    end += 1
                width = end - c
                arg = next(pending, _MISSING)
                require(arg is not _MISSING, "missing argument for box")
                out.append(str(arg)[:width].ljust(width))
                c = end
                continue
            if ch == "-":
                out.append(_horizontal())
            elif ch == "|":
                out.append(_vertical())
            elif ch in "+@":
                mask = 0
                if at(r - 1, c) in "|+@":
                    mask |= _N
                if at(r + 1, c) in "|+@":
                    mask |= _S
                if at(r, c - 1) in "-+@":
                    mask |= _W
                if at(r, c + 1) in "-+@":
                    mask |= _E
                out.append(_corner(mask, ch == "@"))
            elif ch != ".":
                out.append(ch)
            c += 1
        result.append("".join(out))
    require(next(pending, _MISSING) is _MISSING, "too many arguments for box")
    return "\n".join(result)


_MISSING = object()


def gen_rect(num_lines: int, num_columns: int, wall_mask: int, round_corners: bool) -> str:
    """A rectangle with the walls selected by wall_mask (bits N.E.W.S)."""
    require(num_lines > 1, f"invalid number of lines ({num_lines})")
    require(num_columns > 1, f"invalid number of columns ({num_columns})")
    require(0 <= wall_mask <= 0xF, f"invalid wall mask ({wall_mask})")
    corner = "@" if round_corners else "+"
    rows = []
    for r in range(num_lines):
        row = []
        for c in range(num_columns):
            horiz = (r == 0 and wall_mask & _N) or (r == num_lines - 1 and wall_mask & _S)
            vert = (c == 0 and wall_mask & _W) or (c == num_columns - 1 and wall_mask & _E)
            if horiz and vert:
                row.append(corner)
            elif horiz:
                row.append("-")
            elif vert:
                row.append("|")
            else:
                row.append(" ")
        rows.append("".join(row))
    return gen_boxes("\n".join(rows))


def gen_empty_rect(num_lines: int, num_columns: int) -> str:
    """A rectangle filled with spaces."""
    require(num_lines > 1, f"invalid number of lines ({num_lines})")
    require(num_columns > 1, f"invalid number of columns ({num_columns})")
    return "\n".join(" " * num_columns for _ in range(num_lines))


def gen_matrix(
    num_lines: int,
    num_columns: int,
    rect_num_lines: int,
    rect_num_columns: int,
    round_corners: bool,
) -> str:
    """A grid of num_lines x num_columns rectangles that share their borders."""
    require(num_lines >= 1, f"invalid number of lines ({num_lines})")
    require(num_columns >= 1, f"invalid number of columns ({num_columns})")
    require(rect_num_lines > 1, f"invalid rectangle lines ({rect_num_lines})")
    require(rect_num_columns > 1, f"invalid rectangle columns ({rect_num_columns})")
    height = num_lines * (rect_num_lines - 1) + 1
    width = num_columns * (rect_num_columns - 1) + 1
    corner = "@" if round_corners else "+"
    rows = []
    for r in range(height):
        on_row = r % (rect_num_lines - 1) == 0
        row = []
        for c in range(width):
            on_col = c % (rect_num_columns - 1) == 0
            if on_row and on_col:
                row.append(corner)
            elif on_row:
                row.append("-")
            elif on_col:
                row.append("|")
            else:
                row.append(" ")
        rows.append("".join(row))
    return gen_boxes("\n".join(rows))


def valid_direction(direction: int) -> bool:
    """Whether direction is one of the Direction values."""
    return direction in (0x0, 0x1, 0x2, 0x4, 0x8)


_DELTAS = {_N: (-1, 0), _S: (1, 0), _E: (0, 1), _W: (0, -1)}
_OPPOSITE = {_N: _S, _S: _N, _E: _W, _W: _E}


def gen_lines(*args: int) -> str:
    """A continuous line drawn from (direction, length) pairs, ended by Direction.NONE or the last pair."""
    cells: dict[tuple[int, int], int] = {}
    pos = (0, 0)
    items = iter(args)
    for direction in items:
        require(valid_direction(direction), f"invalid direction ({direction})")
        if direction == Direction.NONE:
            break
        length = next(items, None)
        require(isinstance(length, int) and length >= 0, f"invalid length ({length})")
        d = Direction(direction)
        dr, dc = _DELTAS[d]
        cells.setdefault(pos, 0)
        for _ in range(length):
            cells[pos] |= d
            pos = (pos[0] + dr, pos[1] + dc)
            cells[pos] = cells.get(pos, 0) | _OPPOSITE[d]
    if not cells:
        return ""
    rows = [r for r, _ in cells]
    cols = [c for _, c in cells]
    top, left = min(rows), min(cols)
    grid = [[" "] * (max(cols) - left + 1) for _ in range(max(rows) - top + 1)]
    for (r, c), mask in cells.items():
        if mask and not mask & (_N | _S):
            ch = _horizontal()
        elif mask and not mask & (_E | _W):
            ch = _vertical()
        else:
            ch = _corner(mask, False)
        grid[r - top][c - left] = ch
    return "\n".join("".join(row) for row in grid)


def box_dimensions(box: str) -> tuple[int, int]:
    """Number of lines and of columns (newlines not counted) of a box."""
    require(box is not None, "box must not be None")
    return string_num_lines(box), string_num_columns(box)


def _overlays(args: tuple) -> Iterator[tuple[str, int, int]]:
    items = iter(args)
    for box in items:
        if box is None:
            return
        line = next(items, None)
        column = next(items, None)
        require(isinstance(line, int) and isinstance(column, int), "box position missing")
        yield box, line, column


def gen_overlap_valid_boxes(first_box: str, *args: object) -> bool:
    """Whether every (box, line, column) triple lies fully inside first_box."""
    require(first_box is not None, "first box must not be None")
    num_lines, num_cols = box_dimensions(first_box)
    for box, line, column in _overlays(args):
        lines, cols = box_dimensions(box)
        if not (
            0 <= line < num_lines
            and 0 <= column < num_cols
            and 1 <= line + lines <= num_lines
            and 1 <= column + cols <= num_cols
        ):
            return False
    return True


def gen_overlap_boxes(first_box: str, *args: object) -> str:
    """first_box with each (box, line, column) written over it, in order."""
    require(first_box is not None, "first box must not be None")
    require(first_box.isascii(), "boxes must be ASCII")
    require(gen_overlap_valid_boxes(first_box, *args), "overlapping boxes out of range")
    lines = first_box.split("\n")
    for box, line, column in _overlays(args):
        require(box.isascii(), "boxes must be ASCII")
        for offset, text in enumerate(box.split("\n")[: string_num_lines(box)]):
            row = lines[line + offset].ljust(column + len(text))
            lines[line + offset] = row[:column] + text + row[column + len(text):]
    return "\n".join(lines)


def progress_bar(percentage: int, num_cols: int, complete_char: str, incomplete_char: str) -> str:
    """A bar of num_cols characters, the completed share drawn with complete_char."""
    require(0 <= percentage <= 100, f"invalid percentage value ({percentage})")
    require(num_cols > 0, f"invalid number of columns ({num_cols})")
    require(complete_char is not None and num_chars_utf8(complete_char) == 1, "invalid complete char")
    require(incomplete_char is not None and num_chars_utf8(incomplete_char) == 1, "invalid incomplete char")
    done = percentage * num_cols // 100
    return complete_char * done + incomplete_char * (num_cols - done)