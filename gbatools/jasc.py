"""Reading and writing Paint Shop Pro (JASC-PAL) palette files.

The format is line based, every line ending in CRLF::

    JASC-PAL
    0100
    <number of colors>
    <red> <green> <blue>      (once per color, each 0-255)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Tuple

from .gfx import Color, Palette
from .util import GfxError, PathLike, parse_number

SIGNATURE = "JASC-PAL"
VERSION = "0100"
MAX_LINE_LENGTH = 11


def _read_line(text: str, pos: int) -> Tuple[str, int]:
    """Return the CRLF-terminated line starting at ``pos`` and the next position."""
    start = pos
    while True:
        if pos >= len(text):
            raise GfxError("Unexpected EOF. No CRLF at end of file.")
        char = text[pos]
        if char == "\r":
            if pos + 1 >= len(text) or text[pos + 1] != "\n":
                raise GfxError("CR line endings aren't supported.")
            return text[start:pos], pos + 2
        if char == "\n":
            raise GfxError("LF line endings aren't supported.")
        if char == "\0":
            raise GfxError("NUL character in file.")
        if pos - start == MAX_LINE_LENGTH:
            raise GfxError(f'The line "{text[start:pos]}" is too long.')
        pos += 1


def _parse_component(line: str, start: int, name: str) -> Tuple[int, int]:
    try:
        value, length = parse_number(line[start:], 10)
    except ValueError:
        raise GfxError(f"Failed to parse {name} color component.") from None
    return value, start + length


def _expect_separator(line: str, pos: int, before: str, after: str) -> int:
    if pos >= len(line) or line[pos] != " ":
        raise GfxError(f"Expected a space after {before} color component.")
    pos += 1
    if pos >= len(line) or not "0" <= line[pos] <= "9":
        raise GfxError(
            f"Expected only a space between {before} and {after} color components."
        )
    return pos


def _parse_color(line: str) -> Color:
    red, pos = _parse_component(line, 0, "red")
    pos = _expect_separator(line, pos, "red", "green")
    green, pos = _parse_component(line, pos, "green")
    pos = _expect_separator(line, pos, "green", "blue")
    blue, pos = _parse_component(line, pos, "blue")
    if pos != len(line):
        raise GfxError("Garbage after blue color component.")

    for name, value in (("Red", red), ("Green", green), ("Blue", blue)):
        if not 0 <= value <= 255:
            raise GfxError(
                f"{name} color component ({value}) is outside the range [0, 255]."
            )
    return Color(red, green, blue)


def parse_jasc_palette(data: bytes) -> Palette:
    """Parse the contents of a JASC-PAL file."""
    text = bytes(data).decode("latin-1")

    line, pos = _read_line(text, 0)
    if line != SIGNATURE:
        raise GfxError("Invalid JASC-PAL signature.")

    line, pos = _read_line(text, pos)
    if line != VERSION:
        raise GfxError("Unsuported JASC-PAL version.")

    line, pos = _read_line(text, pos)
    try:
        num_colors, _ = parse_number(line, 10)
    except ValueError:
        raise GfxError("Failed to parse number of colors.") from None
    if not 1 <= num_colors <= 256:
        raise GfxError(
            f"{num_colors} is an invalid number of colors. "
            "The number of colors must be in the range [1, 256]."
        )

    colors = []
    for _ in range(num_colors):
        line, pos = _read_line(text, pos)
        colors.append(_parse_color(line))

    if pos != len(text):
        raise GfxError("Garbage after color data.")

    return Palette(colors)


def format_jasc_palette(palette: Palette) -> bytes:
    """Render a palette as the contents of a JASC-PAL file."""
    lines = [SIGNATURE, VERSION, str(len(palette.colors))]
    lines.extend(f"{c.red} {c.green} {c.blue}" for c in palette.colors)
    return "".join(line + "\r\n" for line in lines).encode("ascii")


def read_jasc_palette(path: PathLike) -> Palette:
    """Read a JASC-PAL file."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise GfxError(
            f'Failed to open JASC-PAL file "{os.fspath(path)}" for reading.'
        ) from exc
    return parse_jasc_palette(data)


def write_jasc_palette(path: PathLike, palette: Palette) -> None:
    """Write a JASC-PAL file."""
    try:
        Path(path).write_bytes(format_jasc_palette(palette))
    except OSError as exc:
        raise GfxError(f'Failed to open "{os.fspath(path)}" for writing.') from exc