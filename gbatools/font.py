"""Conversion between GBA 2bpp font glyph data and font sheet images."""

from __future__ import annotations

from typing import Callable, Iterator, Tuple

from .gfx import Color, Image, Palette
from .util import GfxError, PathLike, read_whole_file, write_whole_file

FONT_PALETTE = (
    (0x90, 0xC8, 0xFF),  # background: saturated blue that contrasts with the shadow
    (0x38, 0x38, 0x38),  # foreground: dark grey
    (0xD8, 0xD8, 0xD8),  # shadow: light grey
    (0xFF, 0xFF, 0xFF),  # box: white
)

_GLYPHS_PER_ROW = 16

Layout = Callable[[int], Iterator[Tuple[int, int]]]


def _latin_layout(num_rows: int) -> Iterator[Tuple[int, int]]:
    """Yield (file offset, pixel offset) of each 2-byte unit of a Latin font."""
    file_offset = 0
    for row in range(num_rows):
        for column in range(_GLYPHS_PER_ROW):
            for tile in range(4):
                x = column * 16 + (tile & 1) * 8
                for line in range(8):
                    y = row * 16 + (tile >> 1) * 8 + line
                    yield file_offset, y * 64 + x // 4
                    file_offset += 2


def _halfwidth_layout(num_rows: int) -> Iterator[Tuple[int, int]]:
    """Yield (file offset, pixel offset) of each unit of a halfwidth Japanese font."""
    for row in range(num_rows):
        for column in range(_GLYPHS_PER_ROW):
            glyph = row * _GLYPHS_PER_ROW + column
            for tile in range(2):
                x = column * 8
                file_offset = 512 * (glyph >> 4) + 16 * (glyph & 0xF) + 256 * tile
                for line in range(8):
                    y = row * 16 + tile * 8 + line
                    yield file_offset, y * 32 + x // 4
                    file_offset += 2


def _fullwidth_layout(num_rows: int) -> Iterator[Tuple[int, int]]:
    """Yield (file offset, pixel offset) of each unit of a fullwidth Japanese font."""
    for row in range(num_rows):
        for column in range(_GLYPHS_PER_ROW):
            glyph = row * _GLYPHS_PER_ROW + column
            for tile in range(4):
                x = column * 16 + (tile & 1) * 8
                file_offset = (
                    512 * (glyph >> 3)
                    + 32 * (glyph & 7)
                    + 256 * (tile >> 1)
                    + 16 * (tile & 1)
                )
                for line in range(8):
                    y = row * 16 + (tile >> 1) * 8 + line
                    yield file_offset, y * 64 + x // 4
                    file_offset += 2


def _font_palette() -> Palette:
    return Palette([Color(*rgb) for rgb in FONT_PALETTE])


def _count_rows(num_glyphs: int) -> int:
    if num_glyphs % _GLYPHS_PER_ROW != 0:
        raise GfxError(f"The number of glyphs ({num_glyphs}) is not a multiple of 16.")
    return num_glyphs // _GLYPHS_PER_ROW


def _decode(data: bytes, layout: Layout, num_rows: int, width: int) -> Image:
    pitch = width // 4
    pixels = bytearray(num_rows * 16 * pitch)
    for file_offset, pixel_offset in layout(num_rows):
        pixels[pixel_offset] = data[file_offset + 1]
        pixels[pixel_offset + 1] = data[file_offset]
    return Image(
        width=width,
        height=num_rows * 16,
        bit_depth=2,
        pixels=pixels,
        has_palette=True,
        palette=_font_palette(),
        has_transparency=False,
    )


def _encode(image: Image, layout: Layout, width: int) -> bytes:
    if image.width != width:
        raise GfxError(f"The width of the font image ({image.width}) is not {width}.")
    if image.height % 16 != 0:
        raise GfxError(
            f"The height of the font image ({image.height}) is not a multiple of 16."
        )
    num_rows = image.height // 16
    size = image.height * (width // 4)
    pixels = bytes(image.pixels)
    if len(pixels) < size:
        raise GfxError("The font image has too little pixel data.")
    out = bytearray(size)
    for file_offset, pixel_offset in layout(num_rows):
        out[file_offset] = pixels[pixel_offset + 1]
        out[file_offset + 1] = pixels[pixel_offset]
    return bytes(out)


def decode_latin_font(data: bytes) -> Image:
    """Lay out Latin font glyphs (64 bytes each) as a 256-pixel-wide sheet."""
    data = bytes(data)
    return _decode(data, _latin_layout, _count_rows(len(data) // 64), 256)


def encode_latin_font(image: Image) -> bytes:
    """Cut a 256-pixel-wide sheet into Latin font glyph data."""
    return _encode(image, _latin_layout, 256)


def decode_halfwidth_japanese_font(data: bytes) -> Image:
    """Lay out halfwidth Japanese glyphs (32 bytes each) as a 128-pixel-wide sheet."""
    data = bytes(data)
    if len(data) % 32 != 0:
        raise GfxError(f"The file size ({len(data)}) is not a multiple of 32.")
    return _decode(data, _halfwidth_layout, _count_rows(len(data) // 32), 128)


def encode_halfwidth_japanese_font(image: Image) -> bytes:
    """Cut a 128-pixel-wide sheet into halfwidth Japanese glyph data."""
    return _encode(image, _halfwidth_layout, 128)


def decode_fullwidth_japanese_font(data: bytes) -> Image:
    """Lay out fullwidth Japanese glyphs (64 bytes each) as a 256-pixel-wide sheet."""
    data = bytes(data)
    return _decode(data, _fullwidth_layout, _count_rows(len(data) // 64), 256)


def encode_fullwidth_japanese_font(image: Image) -> bytes:
    """Cut a 256-pixel-wide sheet into fullwidth Japanese glyph data."""
    return _encode(image, _fullwidth_layout, 256)


def read_latin_font(path: PathLike) -> Image:
    """Read a Latin font file."""
    return decode_latin_font(read_whole_file(path))


def write_latin_font(path: PathLike, image: Image) -> None:
    """Write a Latin font file."""
    write_whole_file(path, encode_latin_font(image))


def read_halfwidth_japanese_font(path: PathLike) -> Image:
    """Read a halfwidth Japanese font file."""
    return decode_halfwidth_japanese_font(read_whole_file(path))


def write_halfwidth_japanese_font(path: PathLike, image: Image) -> None:
    """Write a halfwidth Japanese font file."""
    write_whole_file(path, encode_halfwidth_japanese_font(image))


def read_fullwidth_japanese_font(path: PathLike) -> Image:
    """Read a fullwidth Japanese font file."""
    return decode_fullwidth_japanese_font(read_whole_file(path))


def write_fullwidth_japanese_font(path: PathLike, image: Image) -> None:
    """Write a fullwidth Japanese font file."""
    write_whole_file(path, encode_fullwidth_japanese_font(image))