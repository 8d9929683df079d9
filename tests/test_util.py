import pytest

from gbatools.util import (
    GfxError,
    file_extension,
    parse_number,
    read_whole_file,
    read_whole_file_zero_padded,
    write_whole_file,
)


def test_parse_decimal():
    assert parse_number("42", 10) == (42, len("42"))


def test_parse_skips_whitespace_and_sign():
    value, end = parse_number("  -7", 10)
    assert value == -7
    assert end == len("  -7")


def test_parse_stops_at_garbage():
    value, end = parse_number("12ab", 10)
    assert value == 12
    assert end == len("12")


def test_parse_auto_radix_hex():
    value, end = parse_number("0x1F", 0)
    assert value == 31
    assert end == len("0x1F")


def test_parse_no_digits():
    with pytest.raises(ValueError):
        parse_number("abc", 10)


def test_parse_empty():
    with pytest.raises(ValueError):
        parse_number("", 10)


def test_parse_int_limits():
    assert parse_number("2147483647", 10)[0] == 2147483647
    assert parse_number("-2147483648", 10)[0] == -2147483648
    with pytest.raises(ValueError):
        parse_number("2147483648", 10)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("foo.png", "png"),
        ("graphics/a.b.4bpp", "4bpp"),
        ("foo", None),
        (".png", None),
        ("foo.", None),
    ],
)
def test_file_extension(path, expected):
    assert file_extension(path) == expected


def test_write_then_read(tmp_path):
    target = tmp_path / "data.bin"
    write_whole_file(target, b"\x01\x02\x03")
    assert read_whole_file(target) == b"\x01\x02\x03"


def test_read_zero_padded(tmp_path):
    target = tmp_path / "data.bin"
    target.write_bytes(b"ab")
    assert read_whole_file_zero_padded(target, 3) == b"ab\x00\x00\x00"


def test_read_missing_file(tmp_path):
    with pytest.raises(GfxError):
        read_whole_file(tmp_path / "missing.bin")


def test_read_empty_file(tmp_path):
    target = tmp_path / "empty.bin"
    target.write_bytes(b"")
    with pytest.raises(GfxError):
        read_whole_file(target)


def test_write_empty_data(tmp_path):
    with pytest.raises(GfxError):
        write_whole_file(tmp_path / "out.bin", b"")