import pytest

from gbatools.gbagfx import (
    GbaToPngOptions,
    PngToGbaOptions,
    convert_gba_to_png,
    convert_png_to_gba,
    main,
    run,
)
from gbatools.gfx import Color, Palette, encode_gba_palette
from gbatools.jasc import read_jasc_palette
from gbatools.png_io import read_png, read_png_palette
from gbatools.util import GfxError


def _sample(size):
    return bytes((i * 7 + i // 5) & 0xFF for i in range(size))


def _write(path, data):
    path.write_bytes(data)
    return path


@pytest.mark.parametrize("ext", ["lz", "rl", "huff"])
def test_compression_round_trip(tmp_path, ext):
    source = _write(tmp_path / "in.bin", _sample(200) + bytes(40) + _sample(60))
    packed = tmp_path / f"out.{ext}"
    back = tmp_path / "back.bin"
    run(source, packed)
    run(packed, back)
    assert back.read_bytes() == source.read_bytes()
    assert len(packed.read_bytes()) % 4 == 0


def test_lz_header_type(tmp_path):
    source = _write(tmp_path / "in.bin", _sample(64))
    out = tmp_path / "out.lz"
    run(source, out)
    assert out.read_bytes()[0] == 0x10


def test_huff_depth_8_round_trip(tmp_path):
    source = _write(tmp_path / "in.bin", _sample(128))
    packed = tmp_path / "out.huff"
    back = tmp_path / "back.bin"
    run(source, packed, ["-depth", "8"])
    run(packed, back)
    assert back.read_bytes() == source.read_bytes()
    assert packed.read_bytes()[0] == 0x28


def test_huff_bad_depth(tmp_path):
    source = _write(tmp_path / "in.bin", _sample(16))
    with pytest.raises(GfxError, match="bit depth of 4 or 8"):
        run(source, tmp_path / "out.huff", ["-depth", "5"])


def test_lz_overflow_keeps_original_size_in_header(tmp_path):
    data = _sample(40)
    source = _write(tmp_path / "in.bin", data)
    out = tmp_path / "out.lz"
    run(source, out, ["-overflow", "16"])
    header = out.read_bytes()[:4]
    assert header[0] == 0x10
    assert int.from_bytes(header[1:4], "little") == len(data)


def test_lz_overflow_must_be_positive(tmp_path):
    source = _write(tmp_path / "in.bin", _sample(8))
    with pytest.raises(GfxError, match="Overflow size must be positive"):
        run(source, tmp_path / "out.lz", ["-overflow", "0"])


@pytest.mark.parametrize("depth", [1, 4, 8])
def test_tiles_png_round_trip(tmp_path, depth):
    data = _sample(depth * 8 * 4)
    source = _write(tmp_path / f"in.{depth}bpp", data)
    png = tmp_path / "mid.png"
    back = tmp_path / f"back.{depth}bpp"
    run(source, png, ["-width", "2"])
    image = read_png(png)
    assert (image.width, image.height) == (2 * 8, 2 * 8)
    assert not image.has_palette
    run(png, back)
    assert back.read_bytes() == data


def test_metatile_width_widens_image(tmp_path):
    source = _write(tmp_path / "in.4bpp", _sample(32 * 4))
    png = tmp_path / "out.png"
    run(source, png, ["-mwidth", "2"])
    assert read_png(png).width == 2 * 8


def test_num_tiles_limits_output(tmp_path):
    source = _write(tmp_path / "in.4bpp", _sample(32 * 4))
    png = tmp_path / "mid.png"
    back = tmp_path / "back.4bpp"
    run(source, png, ["-width", "2"])
    run(png, back, ["-num_tiles", "3"])
    assert back.read_bytes() == source.read_bytes()[: 32 * 3]


def test_palette_and_object_options(tmp_path):
    colors = [Color(0, 0, 0), Color(248, 0, 0), Color(0, 248, 0), Color(0, 0, 248)]
    pal = _write(tmp_path / "colors.gbapal", encode_gba_palette(Palette(colors)))
    source = _write(tmp_path / "in.4bpp", _sample(32))
    png = tmp_path / "out.png"
    run(source, png, ["-palette", str(pal), "-object"])
    assert b"tRNS" in png.read_bytes()
    assert len(read_png_palette(png)) == len(colors)
    assert read_png(png).has_palette


def test_convert_functions_round_trip(tmp_path):
    data = _sample(32 * 2)
    source = _write(tmp_path / "in.4bpp", data)
    png = tmp_path / "mid.png"
    back = tmp_path / "back.4bpp"
    convert_gba_to_png(source, png, GbaToPngOptions(bit_depth=4, width=2))
    convert_png_to_gba(png, back, PngToGbaOptions(bit_depth=4))
    assert back.read_bytes() == data


def test_palette_round_trip_through_jasc(tmp_path):
    colors = [Color(r * 8, g * 8, 248) for r, g in ((0, 1), (5, 9), (31, 31))]
    gbapal = _write(tmp_path / "in.gbapal", encode_gba_palette(Palette(colors)))
    jasc = tmp_path / "mid.pal"
    back = tmp_path / "back.gbapal"
    run(gbapal, jasc)
    assert jasc.read_bytes().startswith(b"JASC-PAL\r\n0100\r\n")
    assert len(read_jasc_palette(jasc)) == len(colors)
    run(jasc, back)
    assert back.read_bytes() == gbapal.read_bytes()


def test_num_colors_truncates_palette(tmp_path):
    colors = [Color(8, 16, 24), Color(32, 40, 48), Color(56, 64, 72)]
    gbapal = _write(tmp_path / "in.gbapal", encode_gba_palette(Palette(colors)))
    jasc = tmp_path / "mid.pal"
    back = tmp_path / "back.gbapal"
    run(gbapal, jasc)
    run(jasc, back, ["-num_colors", "1"])
    assert back.read_bytes() == gbapal.read_bytes()[:2]


def test_png_to_gbapal(tmp_path):
    colors = [Color(0, 0, 0), Color(248, 248, 248)]
    pal = _write(tmp_path / "colors.gbapal", encode_gba_palette(Palette(colors)))
    source = _write(tmp_path / "in.4bpp", _sample(32))
    png = tmp_path / "img.png"
    out = tmp_path / "out.gbapal"
    run(source, png, ["-palette", str(pal)])
    run(png, out)
    assert out.read_bytes() == pal.read_bytes()


@pytest.mark.parametrize(
    "ext, size", [("latfont", 64 * 16), ("hwjpnfont", 32 * 16), ("fwjpnfont", 64 * 16)]
)
def test_font_round_trip(tmp_path, ext, size):
    data = _sample(size)
    source = _write(tmp_path / f"in.{ext}", data)
    png = tmp_path / "mid.png"
    back = tmp_path / f"back.{ext}"
    run(source, png)
    assert read_png(png).has_palette
    run(png, back)
    assert back.read_bytes() == data


def test_unknown_conversion(tmp_path):
    source = _write(tmp_path / "in.txt", b"abc")
    with pytest.raises(GfxError, match="Don't know how to convert"):
        run(source, tmp_path / "out.doc")


def test_missing_extension(tmp_path):
    source = _write(tmp_path / "input", b"abc")
    with pytest.raises(GfxError, match="has no extension"):
        run(source, tmp_path / "out.lz")


def test_unrecognized_option(tmp_path):
    source = _write(tmp_path / "in.4bpp", _sample(32))
    with pytest.raises(GfxError, match="Unrecognized option"):
        run(source, tmp_path / "out.png", ["-bogus"])


def test_missing_option_value(tmp_path):
    source = _write(tmp_path / "in.4bpp", _sample(32))
    with pytest.raises(GfxError, match='No width following "-width"'):
        run(source, tmp_path / "out.png", ["-width"])


def test_unparsable_option_value(tmp_path):
    source = _write(tmp_path / "in.4bpp", _sample(32))
    with pytest.raises(GfxError, match="Failed to parse width"):
        run(source, tmp_path / "out.png", ["-width", "wide"])


def test_main_usage_error(capsys):
    assert main(["only-one.lz"]) == 1
    assert "Usage: gbagfx" in capsys.readouterr().err


def test_main_success_and_failure(tmp_path, capsys):
    source = _write(tmp_path / "in.bin", _sample(32))
    out = tmp_path / "out.rl"
    assert main([str(source), str(out)]) == 0
    assert out.read_bytes()[0] == 0x30
    assert main([str(source), str(tmp_path / "out.xyz")]) == 1
    assert "Don't know how to convert" in capsys.readouterr().err