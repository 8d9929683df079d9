"""Command-line converter between GBA graphics, palette, font and compressed formats.

The conversion is chosen by the extensions of the input and output paths.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from .font import (
    read_fullwidth_japanese_font,
    read_halfwidth_japanese_font,
    read_latin_font,
    write_fullwidth_japanese_font,
    write_halfwidth_japanese_font,
    write_latin_font,
)
from .gfx import Color, Palette, read_gba_palette, read_image, write_gba_palette, write_image
from .huff import huff_compress, huff_decompress
from .jasc import read_jasc_palette, write_jasc_palette
from .lz import lz_compress, lz_decompress
from .png_io import read_png, read_png_palette, write_png
from .rl import rl_compress, rl_decompress
from .util import (
    GfxError,
    PathLike,
    file_extension,
    parse_number,
    read_whole_file,
    read_whole_file_zero_padded,
    write_whole_file,
)

USAGE = "Usage: gbagfx INPUT_PATH OUTPUT_PATH [options...]"

_MAX_COLORS = 256


@dataclass
class GbaToPngOptions:
    """Settings for turning tile data into a PNG."""

    bit_depth: int
    palette_file_path: Optional[PathLike] = None
    has_transparency: bool = False
    width: int = 1
    metatile_width: int = 1
    metatile_height: int = 1


@dataclass
class PngToGbaOptions:
    """Settings for turning a PNG into tile data; ``num_tiles`` 0 means all."""

    bit_depth: int
    num_tiles: int = 0
    metatile_width: int = 1
    metatile_height: int = 1


def convert_gba_to_png(
    input_path: PathLike, output_path: PathLike, options: GbaToPngOptions
) -> None:
    """Convert a tile data file to a PNG image."""
    palette = None
    if options.palette_file_path is not None:
        palette = read_gba_palette(options.palette_file_path)

    image = read_image(
        input_path,
        options.width,
        options.bit_depth,
        options.metatile_width,
        options.metatile_height,
        palette is None,
    )
    if palette is not None:
        image.has_palette = True
        image.palette = palette
    image.has_transparency = options.has_transparency
    write_png(output_path, image)


def convert_png_to_gba(
    input_path: PathLike, output_path: PathLike, options: PngToGbaOptions
) -> None:
    """Convert a PNG image to a tile data file."""
    image = read_png(input_path, options.bit_depth)
    write_image(
        output_path,
        image,
        options.num_tiles,
        options.bit_depth,
        options.metatile_width,
        options.metatile_height,
        not image.has_palette,
    )


def _next_int(args: Iterator[str], missing: str, what: str) -> int:
    try:
        text = next(args)
    except StopIteration:
        raise GfxError(missing) from None
    try:
        value, _ = parse_number(text, 10)
    except ValueError:
        raise GfxError(f"Failed to parse {what}.") from None
    return value


def _positive(value: int, message: str) -> int:
    if value < 1:
        raise GfxError(message)
    return value


def _unrecognized(option: str) -> GfxError:
    return GfxError(f'Unrecognized option "{option}".')


def _parse_metatile_option(option: str, args: Iterator[str]) -> Optional[Tuple[str, int]]:
    if option == "-mwidth":
        value = _next_int(
            args, 'No metatile width value following "-mwidth".', "metatile width"
        )
        return "metatile_width", _positive(value, "metatile width must be positive.")
    if option == "-mheight":
        value = _next_int(
            args, 'No metatile height value following "-mheight".', "metatile height"
        )
        return "metatile_height", _positive(value, "metatile height must be positive.")
    return None


def _depth_from_extension(path: PathLike) -> int:
    extension = file_extension(path) or ""
    try:
        return int(extension[0])
    except (IndexError, ValueError):
        raise GfxError(f'Cannot take a bit depth from "{extension}".') from None


def _gba_to_png(input_path: PathLike, output_path: PathLike, args: Sequence[str]) -> None:
    options = GbaToPngOptions(bit_depth=_depth_from_extension(input_path))
    items = iter(args)
    for option in items:
        if option == "-palette":
            try:
                options.palette_file_path = next(items)
            except StopIteration:
                raise GfxError('No palette file path following "-palette".') from None
        elif option == "-object":
            options.has_transparency = True
        elif option == "-width":
            value = _next_int(items, 'No width following "-width".', "width")
            options.width = _positive(value, "Width must be positive.")
        else:
            parsed = _parse_metatile_option(option, items)
            if parsed is None:
                raise _unrecognized(option)
            setattr(options, *parsed)

    if options.metatile_width > options.width:
        options.width = options.metatile_width
    convert_gba_to_png(input_path, output_path, options)


def _png_to_gba(input_path: PathLike, output_path: PathLike, args: Sequence[str]) -> None:
    options = PngToGbaOptions(bit_depth=_depth_from_extension(output_path))
    items = iter(args)
    for option in items:
        if option == "-num_tiles":
            value = _next_int(
                items, 'No number of tiles following "-num_tiles".', "number of tiles"
            )
            options.num_tiles = _positive(value, "Number of tiles must be positive.")
        else:
            parsed = _parse_metatile_option(option, items)
            if parsed is None:
                raise _unrecognized(option)
            setattr(options, *parsed)
    convert_png_to_gba(input_path, output_path, options)


# Commands that take no options ignore any extra arguments given to them.


def _png_to_gba_palette(input_path: PathLike, output_path: PathLike, _args: Sequence[str]) -> None:
    write_gba_palette(output_path, read_png_palette(input_path))


def _gba_to_jasc_palette(input_path: PathLike, output_path: PathLike, _args: Sequence[str]) -> None:
    write_jasc_palette(output_path, read_gba_palette(input_path))


def _jasc_to_gba_palette(input_path: PathLike, output_path: PathLike, args: Sequence[str]) -> None:
    num_colors = 0
    items = iter(args)
    for option in items:
        if option == "-num_colors":
            value = _next_int(
                items, 'No number of colors following "-num_colors".', "number of colors"
            )
            num_colors = _positive(value, "Number of colors must be positive.")
        else:
            raise _unrecognized(option)

    palette = read_jasc_palette(input_path)
    if num_colors:
        if num_colors > _MAX_COLORS:
            raise GfxError(f"A palette holds at most {_MAX_COLORS} colors.")
        colors = list(palette.colors[:num_colors])
        colors += [Color(0, 0, 0) for _ in range(num_colors - len(colors))]
        palette = Palette(colors)
    write_gba_palette(output_path, palette)


def _font_to_png(reader: Callable) -> Callable:
    def handler(input_path: PathLike, output_path: PathLike, _args: Sequence[str]) -> None:
        write_png(output_path, reader(input_path))

    return handler


def _png_to_font(writer: Callable) -> Callable:
    def handler(input_path: PathLike, output_path: PathLike, _args: Sequence[str]) -> None:
        writer(output_path, read_png(input_path, 2))

    return handler


def _lz_compress(input_path: PathLike, output_path: PathLike, args: Sequence[str]) -> None:
    overflow_size = 0
    min_distance = 2  # keeps the output safe for VRAM decompression
    items = iter(args)
    for option in items:
        if option == "-overflow":
            value = _next_int(items, 'No size following "-overflow".', "overflow size")
            overflow_size = _positive(value, "Overflow size must be positive.")
        elif option == "-search":
            value = _next_int(
                items, 'No size following "-overflow".', "LZ min search distance"
            )
            min_distance = _positive(value, "LZ min search distance must be positive.")
        else:
            raise _unrecognized(option)

    # Padding with zeros and then writing the unpadded size into the header
    # reproduces data that overflows its buffer when decompressed.
    file_size = len(read_whole_file(input_path))
    buffer = read_whole_file_zero_padded(input_path, overflow_size)
    compressed = bytearray(lz_compress(buffer, min_distance))
    compressed[1:4] = (file_size & 0xFFFFFF).to_bytes(3, "little")
    write_whole_file(output_path, bytes(compressed))


def _lz_decompress(input_path: PathLike, output_path: PathLike, _args: Sequence[str]) -> None:
    write_whole_file(output_path, lz_decompress(read_whole_file(input_path)))


def _rl_compress(input_path: PathLike, output_path: PathLike, _args: Sequence[str]) -> None:
    write_whole_file(output_path, rl_compress(read_whole_file(input_path)))


def _rl_decompress(input_path: PathLike, output_path: PathLike, _args: Sequence[str]) -> None:
    write_whole_file(output_path, rl_decompress(read_whole_file(input_path)))


def _huff_compress(input_path: PathLike, output_path: PathLike, args: Sequence[str]) -> None:
    bit_depth = 4
    items = iter(args)
    for option in items:
        if option == "-depth":
            bit_depth = _next_int(items, 'No size following "-depth".', "bit depth")
            if bit_depth not in (4, 8):
                raise GfxError("GBA only supports bit depth of 4 or 8.")
        else:
            raise _unrecognized(option)
    write_whole_file(output_path, huff_compress(read_whole_file(input_path), bit_depth))


def _huff_decompress(input_path: PathLike, output_path: PathLike, _args: Sequence[str]) -> None:
    write_whole_file(output_path, huff_decompress(read_whole_file(input_path)))


Handler = Callable[[PathLike, PathLike, Sequence[str]], None]

_HANDLERS: List[Tuple[Optional[str], Optional[str], Handler]] = [
    ("1bpp", "png", _gba_to_png),
    ("4bpp", "png", _gba_to_png),
    ("8bpp", "png", _gba_to_png),
    ("png", "1bpp", _png_to_gba),
    ("png", "4bpp", _png_to_gba),
    ("png", "8bpp", _png_to_gba),
    ("png", "gbapal", _png_to_gba_palette),
    ("gbapal", "pal", _gba_to_jasc_palette),
    ("pal", "gbapal", _jasc_to_gba_palette),
    ("latfont", "png", _font_to_png(read_latin_font)),
    ("png", "latfont", _png_to_font(write_latin_font)),
    ("hwjpnfont", "png", _font_to_png(read_halfwidth_japanese_font)),
    ("png", "hwjpnfont", _png_to_font(write_halfwidth_japanese_font)),
    ("fwjpnfont", "png", _font_to_png(read_fullwidth_japanese_font)),
    ("png", "fwjpnfont", _png_to_font(write_fullwidth_japanese_font)),
    (None, "huff", _huff_compress),
    (None, "lz", _lz_compress),
    ("huff", None, _huff_decompress),
    ("lz", None, _lz_decompress),
    (None, "rl", _rl_compress),
    ("rl", None, _rl_decompress),
]


def run(input_path: PathLike, output_path: PathLike, options: Sequence[str] = ()) -> None:
    """Convert ``input_path`` to ``output_path`` according to their extensions.

    ``options`` are the command-line options that follow the two paths.
    """
    input_extension = file_extension(input_path)
    output_extension = file_extension(output_path)
    if input_extension is None:
        raise GfxError(f'Input file "{input_path}" has no extension.')
    if output_extension is None:
        raise GfxError(f'Output file "{output_path}" has no extension.')

    for wanted_input, wanted_output, handler in _HANDLERS:
        if wanted_input not in (None, input_extension):
            continue
        if wanted_output not in (None, output_extension):
            continue
        handler(input_path, output_path, list(options))
        return

    raise GfxError(f'Don\'t know how to convert "{input_path}" to "{output_path}".')


def main(argv: Optional[List[str]] = None) -> int:
    """Run the converter on command-line arguments; returns the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        if len(args) < 2:
            raise GfxError(USAGE)
        run(args[0], args[1], args[2:])
    except GfxError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0