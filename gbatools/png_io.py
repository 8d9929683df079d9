"""Reading and writing grayscale and palette PNG images."""

from __future__ import annotations

import os
import struct
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from .gfx import Color, Image, Palette
from .util import GfxError, PathLike

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

_COLOR_GRAY = 0
_COLOR_PALETTE = 3
_GRAY_DEPTHS = (1, 2, 4, 8, 16)
_PALETTE_DEPTHS = (1, 2, 4, 8)
_PACKED_DEPTHS = (1, 2, 4, 8)

# (x0, y0, dx, dy) of each Adam7 pass.
_ADAM7 = (
    (0, 0, 8, 8),
    (4, 0, 8, 8),
    (0, 4, 4, 8),
    (2, 0, 4, 4),
    (0, 2, 2, 4),
    (1, 0, 2, 2),
    (0, 1, 1, 2),
)


class _CorruptPng(ValueError):
    """Raised internally when PNG data cannot be decoded."""


@dataclass
class _PngInfo:
    width: int
    height: int
    bit_depth: int
    color_type: int
    interlaced: bool
    palette: Optional[bytes]
    idat: bytes


def _unpack(data: bytes, bit_depth: int, count: int) -> List[int]:
    """Split packed big-endian pixel data into ``count`` values."""
    if bit_depth == 8:
        return list(data[:count])
    if bit_depth == 16:
        return [int.from_bytes(data[2 * i : 2 * i + 2], "big") for i in range(count)]
    mask = (1 << bit_depth) - 1
    needed = (count * bit_depth + 7) // 8
    values = [
        (byte >> shift) & mask
        for byte in data[:needed]
        for shift in range(8 - bit_depth, -1, -bit_depth)
    ]
    return values[:count]


def _pack(values: Sequence[int], bit_depth: int) -> bytes:
    """Pack values into big-endian pixel data, the first pixel in the high bits."""
    if bit_depth == 8:
        return bytes(values)
    if bit_depth == 16:
        return b"".join(value.to_bytes(2, "big") for value in values)
    per_byte = 8 // bit_depth
    out = bytearray((len(values) * bit_depth + 7) // 8)
    for index, value in enumerate(values):
        byte, slot = divmod(index, per_byte)
        out[byte] |= value << (8 - bit_depth * (slot + 1))
    return bytes(out)


def convert_bit_depth(
    data: bytes, src_bit_depth: int, dest_bit_depth: int, num_pixels: int
) -> bytes:
    """Repack ``num_pixels`` pixels from one bit depth to another."""
    if src_bit_depth not in _PACKED_DEPTHS:
        raise GfxError("Bit depth of image must be 1, 2, 4, or 8.")
    if dest_bit_depth not in _PACKED_DEPTHS:
        raise GfxError(f"Unsupported bit depth {dest_bit_depth}.")
    data = bytes(data)
    if len(data) < (num_pixels * src_bit_depth + 7) // 8:
        raise GfxError("Not enough pixel data to convert.")
    values = _unpack(data, src_bit_depth, num_pixels)
    limit = 1 << dest_bit_depth
    if any(value >= limit for value in values):
        raise GfxError(
            f"Image exceeds the maximum color value for a {dest_bit_depth}bpp image."
        )
    return _pack(values, dest_bit_depth)


def _iter_chunks(data: bytes) -> Iterable[Tuple[bytes, bytes]]:
    pos = len(PNG_SIGNATURE)
    while pos < len(data):
        if pos + 8 > len(data):
            raise _CorruptPng("truncated chunk header")
        length, kind = struct.unpack(">I4s", data[pos : pos + 8])
        body = data[pos + 8 : pos + 8 + length]
        crc = data[pos + 8 + length : pos + 12 + length]
        if len(body) != length or len(crc) != 4:
            raise _CorruptPng("truncated chunk")
        if struct.unpack(">I", crc)[0] != zlib.crc32(kind + body) & 0xFFFFFFFF:
            raise _CorruptPng("bad chunk CRC")
        yield kind, body
        if kind == b"IEND":
            return
        pos += 12 + length


def _read_png_file(path: PathLike) -> _PngInfo:
    name = os.fspath(path)
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise GfxError(f'Failed to open "{name}" for reading.') from exc

    if len(data) < len(PNG_SIGNATURE):
        raise GfxError(f'Failed to read PNG signature from "{name}".')
    if data[: len(PNG_SIGNATURE)] != PNG_SIGNATURE:
        raise GfxError(f'"{name}" does not have a valid PNG signature.')

    header = None
    palette = None
    idat = bytearray()
    try:
        for kind, body in _iter_chunks(data):
            if header is None:
                if kind != b"IHDR" or len(body) != 13:
                    raise _CorruptPng("missing IHDR")
                header = struct.unpack(">IIBBBBB", body)
            elif kind == b"PLTE":
                if len(body) % 3 != 0:
                    raise _CorruptPng("bad PLTE length")
                palette = body
            elif kind == b"IDAT":
                idat += body
    except _CorruptPng as exc:
        raise GfxError(f'Failed to init I/O for reading "{name}".') from exc

    if header is None:
        raise GfxError(f'Failed to init I/O for reading "{name}".')

    width, height, bit_depth, color_type, compression, filtering, interlace = header
    valid_depths = {_COLOR_GRAY: _GRAY_DEPTHS, _COLOR_PALETTE: _PALETTE_DEPTHS}
    if (
        width == 0
        or height == 0
        or compression != 0
        or filtering != 0
        or interlace not in (0, 1)
        or bit_depth not in valid_depths.get(color_type, (1, 2, 4, 8, 16))
    ):
        raise GfxError(f'Failed to init I/O for reading "{name}".')

    return _PngInfo(
        width=width,
        height=height,
        bit_depth=bit_depth,
        color_type=color_type,
        interlaced=bool(interlace),
        palette=palette,
        idat=bytes(idat),
    )


def _paeth(left: int, up: int, up_left: int) -> int:
    estimate = left + up - up_left
    distance_left = abs(estimate - left)
    distance_up = abs(estimate - up)
    distance_up_left = abs(estimate - up_left)
    if distance_left <= distance_up and distance_left <= distance_up_left:
        return left
    if distance_up <= distance_up_left:
        return up
    return up_left


def _unfilter(
    raw: bytes, pos: int, width: int, height: int, bit_depth: int
) -> Tuple[List[bytes], int]:
    """Undo the per-row filters of one image or interlace pass."""
    row_bytes = (width * bit_depth + 7) // 8
    step = max(1, bit_depth // 8)
    previous = bytearray(row_bytes)
    rows = []
    for _ in range(height):
        if pos + 1 + row_bytes > len(raw):
            raise _CorruptPng("truncated image data")
        kind = raw[pos]
        line = bytearray(raw[pos + 1 : pos + 1 + row_bytes])
        pos += 1 + row_bytes
        for i in range(row_bytes):
            left = line[i - step] if i >= step else 0
            up = previous[i]
            if kind == 0:
                break
            if kind == 1:
                predictor = left
            elif kind == 2:
                predictor = up
            elif kind == 3:
                predictor = (left + up) // 2
            elif kind == 4:
                predictor = _paeth(left, up, previous[i - step] if i >= step else 0)
            else:
                raise _CorruptPng(f"unknown filter type {kind}")
            line[i] = (line[i] + predictor) & 0xFF
        rows.append(bytes(line))
        previous = line
    return rows, pos


def _decode_rows(info: _PngInfo) -> List[bytes]:
    """Return the image rows packed at the file's own bit depth."""
    raw = zlib.decompress(info.idat)
    depth = info.bit_depth
    if not info.interlaced:
        rows, _ = _unfilter(raw, 0, info.width, info.height, depth)
        return rows

    grid = [[0] * info.width for _ in range(info.height)]
    pos = 0
    for x0, y0, dx, dy in _ADAM7:
        pass_width = max(0, (info.width - x0 + dx - 1) // dx)
        pass_height = max(0, (info.height - y0 + dy - 1) // dy)
        if pass_width == 0 or pass_height == 0:
            continue
        rows, pos = _unfilter(raw, pos, pass_width, pass_height, depth)
        for r, row in enumerate(rows):
            for c, value in enumerate(_unpack(row, depth, pass_width)):
                grid[y0 + r * dy][x0 + c * dx] = value
    return [_pack(row, depth) for row in grid]


def read_png(path: PathLike, bit_depth: Optional[int] = None) -> Image:
    """Read a grayscale or palette PNG, repacking pixels to ``bit_depth``.

    With no ``bit_depth`` the file's own depth is kept. The palette itself
    is not read; only whether the image has one.
    """
    name = os.fspath(path)
    info = _read_png_file(path)
    if info.color_type not in (_COLOR_GRAY, _COLOR_PALETTE):
        raise GfxError(f'"{name}" has an unsupported color type.')

    try:
        rows = _decode_rows(info)
    except (_CorruptPng, zlib.error) as exc:
        raise GfxError(f'Error reading from "{name}".') from exc

    target = info.bit_depth if bit_depth is None else bit_depth
    if target == info.bit_depth:
        pixels = b"".join(rows)
    else:
        if info.bit_depth not in _PACKED_DEPTHS:
            raise GfxError("Bit depth of image must be 1, 2, 4, or 8.")
        pixels = b"".join(
            convert_bit_depth(row, info.bit_depth, target, info.width) for row in rows
        )

    return Image(
        width=info.width,
        height=info.height,
        bit_depth=target,
        pixels=bytearray(pixels),
        has_palette=info.color_type == _COLOR_PALETTE,
    )


def read_png_palette(path: PathLike) -> Palette:
    """Read the palette of a palette PNG."""
    name = os.fspath(path)
    info = _read_png_file(path)
    if info.color_type != _COLOR_PALETTE:
        raise GfxError(f'The image "{name}" does not contain a palette.')
    if info.palette is None:
        raise GfxError(f'Failed to retrieve palette from "{name}".')
    num_colors = len(info.palette) // 3
    if num_colors > 256:
        raise GfxError("Images with more than 256 colors are not supported.")
    entries = info.palette
    return Palette(
        [Color(*entries[i * 3 : i * 3 + 3]) for i in range(num_colors)]
    )


def _chunk(kind: bytes, body: bytes) -> bytes:
    crc = zlib.crc32(kind + body) & 0xFFFFFFFF
    return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", crc)


def write_png(path: PathLike, image: Image) -> None:
    """Write an image as a grayscale or palette PNG at its own bit depth."""
    name = os.fspath(path)
    depth = image.bit_depth
    color_type = _COLOR_PALETTE if image.has_palette else _COLOR_GRAY
    valid = _PALETTE_DEPTHS if image.has_palette else _GRAY_DEPTHS
    if depth not in valid or image.width <= 0 or image.height <= 0:
        raise GfxError(f'Error writing header for "{name}".')

    row_bytes = (image.width * depth + 7) // 8
    pixels = bytes(image.pixels)
    if len(pixels) < row_bytes * image.height:
        raise GfxError(f'Error writing "{name}".')

    parts = [
        PNG_SIGNATURE,
        _chunk(
            b"IHDR",
            struct.pack(">IIBBBBB", image.width, image.height, depth, color_type, 0, 0, 0),
        ),
    ]

    if image.has_palette:
        colors = image.palette.colors
        if not colors or len(colors) > 1 << depth:
            raise GfxError(f'Error writing header for "{name}".')
        try:
            entries = bytes(
                component
                for color in colors
                for component in (color.red, color.green, color.blue)
            )
        except ValueError as exc:
            raise GfxError(f'Error writing header for "{name}".') from exc
        parts.append(_chunk(b"PLTE", entries))
        if image.has_transparency:
            parts.append(_chunk(b"tRNS", b"\x00"))

    raw = b"".join(
        b"\x00" + pixels[row * row_bytes : (row + 1) * row_bytes]
        for row in range(image.height)
    )
    parts.append(_chunk(b"IDAT", zlib.compress(raw, 9)))
    parts.append(_chunk(b"IEND", b""))

    try:
        with open(path, "wb") as handle:
            handle.write(b"".join(parts))
    except OSError as exc:
        raise GfxError(f'Failed to open "{name}" for writing.') from exc