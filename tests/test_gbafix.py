import struct

import pytest

from gbatools.gbafix import (
    DEBUG_ENABLE,
    FIXED_VALUE,
    GOOD_LOGO,
    HEADER_SIZE,
    GbaHeader,
    find_header_offset,
    fix_rom,
    main,
    pad_size,
)
from gbatools.util import GfxError


def _complement_ok(header_bytes: bytes) -> bool:
    return (sum(header_bytes[0xA0:0xBE]) + 0x19) % 256 == 0


@pytest.fixture
def rom(tmp_path):
    path = tmp_path / "mygame.gba"
    path.write_bytes(bytes(range(256)) * 2)
    return path


def _elf(entry: int, section_addr: int) -> bytes:
    ident = b"\x7fELF" + bytes([1, 1, 1]) + bytes(9)
    ehdr = ident + struct.pack(
        "<HHIIIIIHHHHHH", 2, 40, 1, entry, 0, 64, 0, 52, 0, 0, 40, 2, 0
    )
    data = bytearray(ehdr.ljust(64, b"\0"))
    data += bytes(40)
    data += struct.pack("<IIIIIIIIII", 0, 1, 6, section_addr, 0x100, 0x200, 0, 0, 4, 0)
    data = data.ljust(0x100, b"\0")
    data += b"\x11" * 0x200
    return bytes(data)


def test_header_round_trip():
    raw = bytes((i * 3) & 0xFF for i in range(HEADER_SIZE))
    assert GbaHeader.from_bytes(raw).to_bytes() == raw


def test_short_header_reads_as_zero_padded():
    header = GbaHeader.from_bytes(b"\x01\x02")
    assert header.to_bytes() == b"\x01\x02" + bytes(HEADER_SIZE - 2)


def test_compute_complement_satisfies_check():
    header = GbaHeader.from_bytes(bytes(range(HEADER_SIZE)))
    complement = header.compute_complement()
    assert complement == 0x31
    header.complement = complement
    assert _complement_ok(header.to_bytes())


def test_fix_rom_restores_fixed_fields(rom):
    fix_rom(rom, silent=True)
    data = rom.read_bytes()
    assert data[4:0xA0] == GOOD_LOGO
    assert data[0xB2] == FIXED_VALUE
    assert data[0xB4] == 0
    assert data[0xBE:0xC0] == b"\0\0"
    assert _complement_ok(data)
    assert data[HEADER_SIZE:] == (bytes(range(256)) * 2)[HEADER_SIZE:]


def test_fix_rom_patches_codes(rom):
    header = fix_rom(rom, title="HELLO", game_code="BPEE", maker_code="01", version=2, silent=True)
    data = rom.read_bytes()
    assert data[0xA0:0xAC] == b"HELLO" + bytes(7)
    assert data[0xAC:0xB0] == b"BPEE"
    assert data[0xB0:0xB2] == b"01"
    assert data[0xBC] == 2
    assert header.to_bytes() == data[:HEADER_SIZE]


def test_title_is_truncated(rom):
    fix_rom(rom, title="ABCDEFGHIJKLMNOP", silent=True)
    assert rom.read_bytes()[0xA0:0xAC] == b"ABCDEFGHIJKL"


def test_empty_title_uses_file_name(rom, capsys):
    fix_rom(rom, title="")
    assert rom.read_bytes()[0xA0:0xAC] == b"mygame" + bytes(6)
    out = capsys.readouterr().out
    assert out.splitlines() == ["mygame", "ROM fixed!"]


def test_debug_sets_handler(rom):
    fix_rom(rom, debug=1, silent=True)
    data = rom.read_bytes()
    assert data[0x9C] == DEBUG_ENABLE
    assert data[0xB4] == 0x80
    assert _complement_ok(data)


def test_pad_fills_with_ff(tmp_path):
    path = tmp_path / "rom.gba"
    path.write_bytes(bytes(300))
    fix_rom(path, pad=True, silent=True)
    data = path.read_bytes()
    assert len(data) == pad_size(300)
    assert data[300:] == b"\xff" * (len(data) - 300)


@pytest.mark.parametrize("size", [1, 2, 3, 255, 256, 257, 300, 1 << 20])
def test_pad_size_is_next_power_of_two(size):
    result = pad_size(size)
    assert result >= size
    assert result & (result - 1) == 0
    assert result < 2 * size or size == 1


def test_pad_size_keeps_powers_of_two():
    assert pad_size(4096) == 4096


def test_plain_rom_header_offset_is_zero():
    assert find_header_offset(bytes(HEADER_SIZE)) == 0


def test_elf_header_offset():
    assert find_header_offset(_elf(0x08000000, 0x08000000)) == 0x100


def test_elf_without_entry_section():
    with pytest.raises(GfxError, match="Error finding entry point"):
        find_header_offset(_elf(0x08000000, 0x02000000))


def test_fix_rom_on_elf_writes_at_section(tmp_path, capsys):
    path = tmp_path / "rom.elf"
    original = _elf(0x08000000, 0x08000000)
    path.write_bytes(original)
    fix_rom(path, pad=True, silent=True)
    data = path.read_bytes()
    assert len(data) == len(original)
    assert data[:0x100] == original[:0x100]
    assert data[0x104:0x1A0] == GOOD_LOGO
    assert _complement_ok(data[0x100 : 0x100 + HEADER_SIZE])
    assert "Cannot safely pad an ELF" in capsys.readouterr().err


def test_fix_rom_missing_file(tmp_path):
    with pytest.raises(GfxError, match="Error opening input file"):
        fix_rom(tmp_path / "absent.gba")


def test_main_without_arguments_prints_usage(capsys):
    assert main([]) == -1
    assert "Syntax: gbafix" in capsys.readouterr().out


def test_main_needs_filename(capsys):
    assert main(["-p"]) == -1
    assert "Filename needed!" in capsys.readouterr().err


def test_main_applies_options_silently(rom, capsys):
    assert main([str(rom), "-tABC", "-cBPEE", "-m01", "-r2", "--silent"]) == 0
    data = rom.read_bytes()
    assert data[0xA0:0xAC] == b"ABC" + bytes(9)
    assert data[0xAC:0xB0] == b"BPEE"
    assert data[0xB0:0xB2] == b"01"
    assert data[0xBC] == 2
    assert capsys.readouterr().out == ""


def test_main_reports_invalid_option(rom, capsys):
    assert main([str(rom), "-x"]) == 0
    out = capsys.readouterr().out
    assert "Invalid option: -x" in out
    assert "ROM fixed!" in out


def test_main_version_needs_value(rom, capsys):
    assert main([str(rom), "-r", "--silent"]) == 0
    assert "Need value for -r" in capsys.readouterr().err


def test_main_missing_elf_entry_fails(tmp_path, capsys):
    path = tmp_path / "rom.elf"
    path.write_bytes(_elf(0x08000000, 0x02000000))
    assert main([str(path)]) == 1
    assert "Error finding entry point!" in capsys.readouterr().err