# gbatools

Tools for building Game Boy Advance software:

- **gbafix** repairs the cartridge header of a GBA ROM (or of the entry
  section of an ELF image): it restores the Nintendo logo and fixed bytes,
  optionally patches the title, game code, maker code, version and debug
  flag, recomputes the header complement, and can pad the file to a power
  of two.
- **gbagfx** converts between the GBA's native data formats and ordinary
  files: tiled 1/4/8 bpp graphics and PNG, GBA palettes and PNG or
  JASC-PAL palettes, bitmap fonts and PNG, and the BIOS LZ77, run-length
  and Huffman compression formats.

The package needs nothing beyond the Python standard library; PNG files
are read and written by its own code (grayscale and palette images only).

## Installation

```
pip install .
```

Python 3.10 or newer is required.

## gbafix

```
gbafix rom.gba [-p] [-t[title]] [-c<game_code>] [-m<maker_code>] [-r<version>] [-d<debug>] [--silent]
```

| Option | Meaning |
| --- | --- |
| `-p` | Pad the file with `0xFF` up to the next power of two (not for ELF input) |
| `-t[title]` | Patch the title; with no value, the file name without directory and extension is used |
| `-c<code>` | Patch the four-character game code |
| `-m<code>` | Patch the two-character maker code |
| `-r<number>` | Patch the game version |
| `-d<0 or 1>` | Enable the debug handler and choose its entry point |
| `-v` | Accepted and ignored |
| `--silent` | Print nothing except errors |

The header's checksum field is always written as zero. Run with no
arguments to see the usage text.

Example:

```
gbafix game.gba -tMYGAME -cAGBJ -m01 -r0
```

## gbagfx

```
gbagfx INPUT_PATH OUTPUT_PATH [options...]
```

The conversion is chosen from the two file extensions:

| Input | Output | Options |
| --- | --- | --- |
| `.1bpp`, `.4bpp`, `.8bpp` | `.png` | `-palette FILE`, `-object`, `-width N`, `-mwidth N`, `-mheight N` |
| `.png` | `.1bpp`, `.4bpp`, `.8bpp` | `-num_tiles N`, `-mwidth N`, `-mheight N` |
| `.png` | `.gbapal` | |
| `.gbapal` | `.pal` | |
| `.pal` | `.gbapal` | `-num_colors N` |
| `.latfont`, `.hwjpnfont`, `.fwjpnfont` | `.png` | |
| `.png` | `.latfont`, `.hwjpnfont`, `.fwjpnfont` | |
| any | `.huff` | `-depth 4` or `-depth 8` |
| any | `.lz` | `-overflow N`, `-search N` |
| `.huff` | any | |
| `.lz` | any | |
| any | `.rl` | |
| `.rl` | any | |

The first matching row in this order wins. Without `-palette`, tile data
becomes a grayscale PNG with inverted colors. `-num_colors` truncates the
palette, or pads it with black. `-overflow N` compresses the data with `N`
extra zero bytes but records the original size in the header.

Examples:

```
gbagfx sprite.png sprite.4bpp -mwidth 2 -mheight 2
gbagfx sprite.4bpp sprite.png -palette sprite.gbapal -width 4 -object
gbagfx sprite.4bpp sprite.4bpp.lz
gbagfx colors.pal colors.gbapal -num_colors 16
```

Errors are printed to standard error and the command exits with status 1.

## Using the library

The converters are also available from Python:

```python
from gbatools.lz import lz_compress, lz_decompress
from gbatools.rl import rl_compress, rl_decompress
from gbatools.huff import huff_compress, huff_decompress

data = bytes(range(64)) * 4
packed = lz_compress(data, 2)
assert lz_decompress(packed) == data

assert rl_decompress(rl_compress(data)) == data
assert huff_decompress(huff_compress(data, 8)) == data
```

```python
from gbatools.gfx import read_image, read_gba_palette
from gbatools.png_io import write_png

image = read_image("tiles.4bpp", 16, 4, 1, 1, False)
image.palette = read_gba_palette("tiles.gbapal")
image.has_palette = True
write_png("tiles.png", image)
```

```python
from gbatools.jasc import read_jasc_palette
from gbatools.gfx import write_gba_palette

write_gba_palette("out.gbapal", read_jasc_palette("in.pal"))
```

```python
from gbatools.gbafix import fix_rom

header = fix_rom("game.gba", title="MYGAME", game_code="AGBJ", maker_code="01", silent=True)
print(hex(header.complement))
```

The `gbagfx` command can also be driven with `gbatools.gbagfx.run(input_path,
output_path, options)`. Errors in input data are reported by raising
`gbatools.util.GfxError`.

## Running the tests

```
pip install .[test]
pytest
```