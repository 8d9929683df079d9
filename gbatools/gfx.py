"""Tiled GBA image data and 15-bit GBA palettes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Tuple

from .util import GfxError, PathLike, read_whole_file, write_whole_file

MAX_COLORS = 256


@dataclass
class Color:
    red: int
    green: int
    blue: int


@dataclass
class Palette:
    colors: List[Color] = field(default_factory=list)

    def __post_init__(self) -> None:
        if len(self.colors) > MAX_COLORS:
            raise GfxError(
                f"A palette holds at most {MAX_COLORS} colors, got {len(self.colors)}."
            )

    def __len__(self) -> int:
        return len(self.colors)


@dataclass
class Image:
    width: int
    height: int
    bit_depth: int
    pixels: bytearray = field(default_factory=bytearray)
    has_palette: bool = False
    palette: Palette = field(default_factory=Palette)
    has_transparency: bool = False


def _reverse_bits(value: int) -> int:
    return int(f"{value:08b}"[::-1], 2)


_TABLES = {
    1: bytes(_reverse_bits(b) for b in range(256)),
    4: bytes(((b & 0xF) << 4) | (b >> 4) for b in range(256)),
    8: bytes(range(256)),
}
_INVERTED_TABLES = {depth: bytes(b ^ 0xFF for b in table) for depth, table in _TABLES.items()}


def _table(bit_depth: int, invert_colors: bool) -> bytes:
    try:
        return (_INVERTED_TABLES if invert_colors else _TABLES)[bit_depth]
    except KeyError:
        raise GfxError(f"Unsupported bit depth {bit_depth}.") from None


def _tile_positions(
    num_tiles: int, metatiles_wide: int, metatile_width: int, metatile_height: int
) -> Iterator[Tuple[int, int]]:
    """Yield the (x, y) tile coordinates of each tile in storage order."""
    per_metatile = metatile_width * metatile_height
    for index in range(num_tiles):
        metatile, sub = divmod(index, per_metatile)
        sub_y, sub_x = divmod(sub, metatile_width)
        meta_y, meta_x = divmod(metatile, metatiles_wide)
        yield meta_x * metatile_width + sub_x, meta_y * metatile_height + sub_y


def _check_metatiles(
    tiles_width: int, tiles_height: int, metatile_width: int, metatile_height: int
) -> None:
    if tiles_width % metatile_width != 0:
        raise GfxError(
            f"The width in tiles ({tiles_width}) isn't a multiple of the "
            f"specified metatile width ({metatile_width})"
        )
    if tiles_height % metatile_height != 0:
        raise GfxError(
            f"The height in tiles ({tiles_height}) isn't a multiple of the "
            f"specified metatile height ({metatile_height})"
        )


def _check_positive(**values: int) -> None:
    for name, value in values.items():
        if value < 1:
            raise GfxError(f"{name} must be positive, got {value}.")


def decode_tiles(
    data: bytes,
    tiles_width: int,
    bit_depth: int,
    metatile_width: int = 1,
    metatile_height: int = 1,
    invert_colors: bool = False,
) -> Image:
    """Lay out tile data as a linear image ``tiles_width`` tiles wide."""
    _check_positive(
        tiles_width=tiles_width,
        metatile_width=metatile_width,
        metatile_height=metatile_height,
    )
    table = _table(bit_depth, invert_colors)
    data = bytes(data)
    tile_size = bit_depth * 8
    num_tiles = len(data) // tile_size
    tiles_height = -(-num_tiles // tiles_width)

    _check_metatiles(tiles_width, tiles_height, metatile_width, metatile_height)

    pitch = tiles_width * bit_depth
    pixels = bytearray(tiles_width * tiles_height * tile_size)
    metatiles_wide = tiles_width // metatile_width

    positions = _tile_positions(num_tiles, metatiles_wide, metatile_width, metatile_height)
    for index, (tile_x, tile_y) in enumerate(positions):
        for row in range(8):
            src = (index * 8 + row) * bit_depth
            dst = (tile_y * 8 + row) * pitch + tile_x * bit_depth
            pixels[dst : dst + bit_depth] = data[src : src + bit_depth].translate(table)

    return Image(
        width=tiles_width * 8,
        height=tiles_height * 8,
        bit_depth=bit_depth,
        pixels=pixels,
    )


def encode_tiles(
    image: Image,
    num_tiles: int = 0,
    bit_depth: int = 4,
    metatile_width: int = 1,
    metatile_height: int = 1,
    invert_colors: bool = False,
) -> bytes:
    """Cut a linear image into tile data; ``num_tiles`` 0 means all tiles."""
    _check_positive(metatile_width=metatile_width, metatile_height=metatile_height)
    table = _table(bit_depth, invert_colors)

    if image.width % 8 != 0:
        raise GfxError(f"The width in pixels ({image.width}) isn't a multiple of 8.")
    if image.height % 8 != 0:
        raise GfxError(f"The height in pixels ({image.height}) isn't a multiple of 8.")

    tiles_width = image.width // 8
    tiles_height = image.height // 8
    _check_metatiles(tiles_width, tiles_height, metatile_width, metatile_height)

    max_num_tiles = tiles_width * tiles_height
    if num_tiles == 0:
        num_tiles = max_num_tiles
    elif num_tiles > max_num_tiles:
        raise GfxError(
            f"The specified number of tiles ({num_tiles}) is greater than the "
            f"maximum possible value ({max_num_tiles})."
        )

    pixels = bytes(image.pixels)
    pitch = tiles_width * bit_depth
    metatiles_wide = tiles_width // metatile_width
    out = bytearray()

    for tile_x, tile_y in _tile_positions(
        num_tiles, metatiles_wide, metatile_width, metatile_height
    ):
        for row in range(8):
            src = (tile_y * 8 + row) * pitch + tile_x * bit_depth
            out += pixels[src : src + bit_depth].translate(table)

    return bytes(out)


def read_image(
    path: PathLike,
    tiles_width: int,
    bit_depth: int,
    metatile_width: int = 1,
    metatile_height: int = 1,
    invert_colors: bool = False,
) -> Image:
    """Read a tile data file as an image."""
    return decode_tiles(
        read_whole_file(path),
        tiles_width,
        bit_depth,
        metatile_width,
        metatile_height,
        invert_colors,
    )


def write_image(
    path: PathLike,
    image: Image,
    num_tiles: int = 0,
    bit_depth: int = 4,
    metatile_width: int = 1,
    metatile_height: int = 1,
    invert_colors: bool = False,
) -> None:
    """Write an image as a tile data file."""
    write_whole_file(
        path,
        encode_tiles(image, num_tiles, bit_depth, metatile_width, metatile_height, invert_colors),
    )


def _upconvert(value: int) -> int:
    return value * 255 // 31


def decode_gba_palette(data: bytes) -> Palette:
    """Decode little-endian 15-bit BGR entries into a palette."""
    if len(data) % 2 != 0:
        raise GfxError(f"The file size ({len(data)}) is not a multiple of 2.")
    colors = []
    for offset in range(0, len(data), 2):
        entry = data[offset] | (data[offset + 1] << 8)
        colors.append(
            Color(
                red=_upconvert(entry & 0x1F),
                green=_upconvert((entry >> 5) & 0x1F),
                blue=_upconvert((entry >> 10) & 0x1F),
            )
        )
    return Palette(colors)


def encode_gba_palette(palette: Palette) -> bytes:
    """Encode a palette as little-endian 15-bit BGR entries."""
    out = bytearray()
    for color in palette.colors:
        entry = ((color.blue // 8) << 10) | ((color.green // 8) << 5) | (color.red // 8)
        out += entry.to_bytes(2, "little")
    return bytes(out)


def read_gba_palette(path: PathLike) -> Palette:
    """Read a GBA palette file."""
    return decode_gba_palette(read_whole_file(path))


def write_gba_palette(path: PathLike, palette: Palette) -> None:
    """Write a GBA palette file."""
    try:
        with open(path, "wb") as handle:
            handle.write(encode_gba_palette(palette))
    except OSError as exc:
        raise GfxError(f'Failed to open "{path}" for writing.') from exc