"""Text helpers: concatenation, number formatting, line metrics, randomness, terminal control and UTF-8."""

from __future__ import annotations

import random
import sys
from typing import Iterable, MutableSet, Sequence, TextIO

from .dbc import require

MAX_UTF8_STRING = 4
"""Maximum number of bytes of a UTF-8 character handled here."""

MAX_UTF8_CODE = 0x001FFFFF

_ESC = "\x1b["


def concat(*args: str | None) -> str:
    """Concatenate the arguments, treating None as an empty string."""
    return "".join(arg for arg in args if arg is not None)


def num_digits(num: int) -> int:
    """Number of characters needed to print num in decimal, sign included."""
    return len(str(num))


def int2nstring(num: int, length: int) -> str:
    """Decimal representation of num, padded with left zeros to at least length characters."""
    require(length >= num_digits(num), f"invalid length value ({length})")
    return f"{num:0{length}d}"


def percentage2string(percentage: int) -> str:
    """A percentage as a right-aligned three digit number followed by '%'."""
    require(0 <= percentage <= 100, f"invalid percentage value ({percentage})")
    return f"{percentage:3d}%"


def _lines(text: str) -> list[str]:
    if text == "":
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return lines


def string_num_lines(text: str) -> int:
    """Number of lines of text; a trailing newline does not start a new line."""
    require(text is not None, "text must not be None")
    return len(_lines(text))


def string_num_columns(text: str) -> int:
    """Length of the longest line of text, in characters, not counting newlines."""
    require(text is not None, "text must not be None")
    return max((len(line) for line in _lines(text)), default=0)


def string_count_char(text: str, ch: str) -> int:
    """Number of occurrences of the single character ch in text."""
    require(text is not None, "text must not be None")
    require(ch is not None and num_chars_utf8(ch) == 1, "ch must be a single character")
    return text.count(ch)


def random_boolean(true_prob: int) -> bool:
    """A random boolean that is True with probability true_prob percent."""
    require(0 <= true_prob <= 100, f"invalid probability ({true_prob})")
    return random.randrange(100) < true_prob


def random_int(min_value: int, max_value: int) -> int:
    """A uniformly distributed random integer in [min_value, max_value]."""
    require(max_value >= min_value, f"invalid interval [{min_value};{max_value}]")
    return random.randint(min_value, max_value)


def random_string(choices: Sequence[str], used: MutableSet[int]) -> str:
    """Pick a random string from choices whose index is not in used, and record its index.

    Once every index has been used, the record is cleared and picking starts over.
    """
    require(choices is not None and len(choices) > 0, "choices must not be empty")
    require(used is not None, "used must not be None")
    available = [i for i in range(len(choices)) if i not in used]
    if not available:
        used.clear()
        available = list(range(len(choices)))
    idx = random.choice(available)
    used.add(idx)
    return choices[idx]


def _emit(stream: TextIO | None, text: str) -> None:
    out = stream if stream is not None else sys.stdout
    out.write(text)
    out.flush()


def clear_console(stream: TextIO | None = None) -> None:
    """Clear the terminal and put the cursor at its top left corner."""
    _emit(stream, f"{_ESC}2J{_ESC}H")


def move_cursor(line: int, column: int, stream: TextIO | None = None) -> None:
    """Move the terminal cursor to the zero-based position (line, column)."""
    require(line >= 0 and column >= 0, f"invalid position ({line}, {column})")
    _emit(stream, f"{_ESC}{line + 1};{column + 1}H")


def hide_cursor(stream: TextIO | None = None) -> None:
    """Hide the terminal cursor."""
    _emit(stream, f"{_ESC}?25l")


def show_cursor(stream: TextIO | None = None) -> None:
    """Show the terminal cursor."""
    _emit(stream, f"{_ESC}?25h")


def num_chars_utf8(text: str | bytes) -> int:
    """Number of characters in text; for bytes, the number of UTF-8 lead bytes."""
    require(text is not None, "text must not be None")
    if isinstance(text, (bytes, bytearray)):
        return sum(1 for b in text if b & 0xC0 != 0x80)
    return len(text)


def _continuation(code: int, count: int) -> Iterable[int]:
    for shift in range(6 * (count - 1), -1, -6):
        yield 0x80 | ((code >> shift) & 0x3F)


def code2utf8(code: int) -> bytes:
    """The UTF-8 byte sequence of a character code up to 0x1FFFFF."""
    require(0 <= code <= MAX_UTF8_CODE, f"invalid UTF8 code ({code:#x})")
    if code < 0x80:
        return bytes([code])
    if code < 0x800:
        return bytes([0xC0 | (code >> 6), *_continuation(code, 1)])
    if code < 0x10000:
        return bytes([0xE0 | (code >> 12), *_continuation(code, 2)])
    return bytes([0xF0 | (code >> 18), *_continuation(code, 3)])