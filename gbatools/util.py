"""File helpers, number parsing and the error type shared by the graphics tools."""

from __future__ import annotations

import os
import string
from pathlib import Path
from typing import Optional, Tuple, Union

PathLike = Union[str, "os.PathLike[str]"]

INT_MIN = -(2**31)
INT_MAX = 2**31 - 1

_WHITESPACE = " \t\n\v\f\r"


class GfxError(Exception):
    """A fatal error raised while reading, converting or writing data."""


def _digit_value(char: str) -> int:
    if char in string.digits:
        return ord(char) - ord("0")
    if char in string.ascii_letters:
        return ord(char.lower()) - ord("a") + 10
    return 99


def parse_number(text: str, radix: int = 10) -> Tuple[int, int]:
    """Parse an integer at the start of ``text``.

    Leading whitespace and a sign are accepted; radix 0 detects ``0x`` and
    octal prefixes. Returns the value and the index just past the digits.
    Raises ValueError if there are no digits or the value does not fit in a
    32-bit signed integer.
    """
    if radix != 0 and not 2 <= radix <= 36:
        raise ValueError(f"invalid radix {radix}")

    length = len(text)
    pos = 0
    while pos < length and text[pos] in _WHITESPACE:
        pos += 1

    negative = False
    if pos < length and text[pos] in "+-":
        negative = text[pos] == "-"
        pos += 1

    if (
        radix in (0, 16)
        and text[pos : pos + 2].lower() == "0x"
        and pos + 2 < length
        and _digit_value(text[pos + 2]) < 16
    ):
        radix = 16
        pos += 2
    elif radix == 0:
        radix = 8 if text[pos : pos + 1] == "0" else 10

    start = pos
    value = 0
    while pos < length:
        digit = _digit_value(text[pos])
        if digit >= radix:
            break
        value = value * radix + digit
        pos += 1

    if pos == start:
        raise ValueError(f"not a number: {text!r}")

    if negative:
        value = -value

    if not INT_MIN <= value <= INT_MAX:
        raise ValueError(f"number out of range: {text!r}")

    return value, pos


def file_extension(path: PathLike) -> Optional[str]:
    """Return the text after the last '.' of ``path``, or None.

    A dot at the very start of the path or at its very end yields None.
    """
    text = os.fspath(path)
    dot = text.rfind(".")
    if dot <= 0:
        return None
    extension = text[dot + 1 :]
    return extension or None


def read_whole_file(path: PathLike) -> bytes:
    """Read the whole of a non-empty file."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise GfxError(f'Failed to open "{os.fspath(path)}" for reading.') from exc
    if not data:
        raise GfxError(f'Failed to read "{os.fspath(path)}".')
    return data


def read_whole_file_zero_padded(path: PathLike, pad_amount: int) -> bytes:
    """Read a non-empty file and append ``pad_amount`` zero bytes."""
    return read_whole_file(path) + bytes(pad_amount)


def write_whole_file(path: PathLike, data: bytes) -> None:
    """Write ``data`` to ``path``, replacing it; empty data is an error."""
    try:
        with open(path, "wb") as handle:
            if not data:
                raise GfxError(f'Failed to write to "{os.fspath(path)}".')
            handle.write(data)
    except OSError as exc:
        raise GfxError(f'Failed to open "{os.fspath(path)}" for writing.') from exc