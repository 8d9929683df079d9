"""Fix the cartridge header of a GBA ROM image or of an ELF file holding one."""

from __future__ import annotations

import os
import struct
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .util import GfxError, PathLike, parse_number

VERSION = "1.07"

HEADER_SIZE = 0xC0
_HEADER_FORMAT = "<I156s12sIHBBB7sBBH"

ELF_MAGIC = b"\x7fELF"
_SHT_PROGBITS = 1
_SECTION_HEADER_SIZE = 40

GOOD_LOGO = bytes(
    [
        0x24, 0xFF, 0xAE, 0x51, 0x69, 0x9A, 0xA2, 0x21, 0x3D, 0x84, 0x82, 0x0A, 0x84, 0xE4, 0x09, 0xAD,
        0x11, 0x24, 0x8B, 0x98, 0xC0, 0x81, 0x7F, 0x21, 0xA3, 0x52, 0xBE, 0x19, 0x93, 0x09, 0xCE, 0x20,
        0x10, 0x46, 0x4A, 0x4A, 0xF8, 0x27, 0x31, 0xEC, 0x58, 0xC7, 0xE8, 0x33, 0x82, 0xE3, 0xCE, 0xBF,
        0x85, 0xF4, 0xDF, 0x94, 0xCE, 0x4B, 0x09, 0xC1, 0x94, 0x56, 0x8A, 0xC0, 0x13, 0x72, 0xA7, 0xFC,
        0x9F, 0x84, 0x4D, 0x73, 0xA3, 0xCA, 0x9A, 0x61, 0x58, 0x97, 0xA3, 0x27, 0xFC, 0x03, 0x98, 0x76,
        0x23, 0x1D, 0xC7, 0x61, 0x03, 0x04, 0xAE, 0x56, 0xBF, 0x38, 0x84, 0x00, 0x40, 0xA7, 0x0E, 0xFD,
        0xFF, 0x52, 0xFE, 0x03, 0x6F, 0x95, 0x30, 0xF1, 0x97, 0xFB, 0xC0, 0x85, 0x60, 0xD6, 0x80, 0x25,
        0xA9, 0x63, 0xBE, 0x03, 0x01, 0x4E, 0x38, 0xE2, 0xF9, 0xA2, 0x34, 0xFF, 0xBB, 0x3E, 0x03, 0x44,
        0x78, 0x00, 0x90, 0xCB, 0x88, 0x11, 0x3A, 0x94, 0x65, 0xC0, 0x7C, 0x63, 0x87, 0xF0, 0x3C, 0xAF,
        0xD6, 0x25, 0xE4, 0x8B, 0x38, 0x0A, 0xAC, 0x72, 0x21, 0xD4, 0xF8, 0x07,
    ]
)
FIXED_VALUE = 0x96
DEBUG_ENABLE = 0xA5
_DEBUG_LOGO_INDEX = 0x9C - 0x04

USAGE = f"""GBA ROM fixer v{VERSION}
Syntax: gbafix <rom.gba> [-p] [-t[title]] [-c<game_code>] [-m<maker_code>] [-r<version>] [-d<debug>] [--silent]

parameters:
    -p              Pad to next exact power of 2. No minimum size!
    -t[<title>]     Patch title. Stripped filename if none given.
    -c<game_code>   Patch game code (four characters)
    -m<maker_code>  Patch maker code (two characters)
    -r<version>     Patch game version (number)
    -d<debug>       Enable debugging handler and set debug entry point (0 or 1)
    --silent           Silence non-error output"""


@dataclass
class GbaHeader:
    """The 192-byte cartridge header at the start of a GBA ROM."""

    start_code: int = 0
    logo: bytes = bytes(156)
    title: bytes = bytes(12)
    game_code: int = 0
    maker_code: int = 0
    fixed: int = 0
    unit_code: int = 0
    device_type: int = 0
    unused: bytes = field(default=bytes(7))
    game_version: int = 0
    complement: int = 0
    checksum: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> "GbaHeader":
        """Decode a header; missing trailing bytes read as zero."""
        raw = bytes(data[:HEADER_SIZE]).ljust(HEADER_SIZE, b"\0")
        return cls(*struct.unpack(_HEADER_FORMAT, raw))

    def to_bytes(self) -> bytes:
        """Encode the header as its 192 bytes."""
        return struct.pack(
            _HEADER_FORMAT,
            self.start_code,
            self.logo,
            self.title,
            self.game_code,
            self.maker_code,
            self.fixed,
            self.unit_code,
            self.device_type,
            self.unused,
            self.game_version,
            self.complement,
            self.checksum,
        )

    def compute_complement(self) -> int:
        """Return the complement check over header bytes 0xA0 to 0xBC."""
        total = sum(self.to_bytes()[0xA0:0xBD])
        return -(0x19 + total) & 0xFF


def find_header_offset(data: bytes) -> int:
    """Return where the cartridge header lies in ``data``.

    A plain ROM has it at 0. In an ELF file it is the start of the PROGBITS
    section whose address is the entry point.
    """
    data = bytes(data)
    if data[:4] != ELF_MAGIC:
        return 0

    ident = data[:HEADER_SIZE].ljust(HEADER_SIZE, b"\0")
    entry, _phoff, shoff = struct.unpack_from("<III", ident, 24)
    (shnum,) = struct.unpack_from("<H", ident, 48)

    for index in range(shnum):
        start = shoff + index * _SECTION_HEADER_SIZE
        section = data[start : start + _SECTION_HEADER_SIZE]
        if len(section) < _SECTION_HEADER_SIZE:
            break
        _name, sh_type, _flags, sh_addr, sh_offset = struct.unpack_from("<IIIII", section)
        if sh_type == _SHT_PROGBITS and sh_addr == entry:
            return sh_offset
    raise GfxError("Error finding entry point!")


def pad_size(size: int) -> int:
    """Return ``size`` rounded up to a power of two; 0 stays 0."""
    if size <= 0:
        return size
    top = 1 << (size.bit_length() - 1)
    return size if size == top else top << 1


def _title_from_path(path: str) -> str:
    begin = 0
    for separator in ("\\", "/"):
        found = path.rfind(separator)
        if found >= 0:
            begin = found + 1
    name = path[begin:]
    dot = path.rfind(".")
    if dot >= begin:
        name = path[begin:dot]
    return name


def _code(text: str, width: int) -> int:
    raw = text.encode("utf-8")[:width].ljust(width, b"\0")
    return int.from_bytes(raw, "little")


def fix_rom(
    path: PathLike,
    title: Optional[str] = None,
    game_code: Optional[str] = None,
    maker_code: Optional[str] = None,
    version: Optional[int] = None,
    debug: Optional[int] = None,
    pad: bool = False,
    silent: bool = False,
) -> GbaHeader:
    """Repair the header of the ROM at ``path`` in place and return it.

    An empty ``title`` takes the file name without directory and extension.
    """
    name = os.fspath(path)
    try:
        data = bytearray(Path(path).read_bytes())
    except OSError as exc:
        raise GfxError("Error opening input file!") from exc

    offset = find_header_offset(data)
    header = GbaHeader.from_bytes(data[offset : offset + HEADER_SIZE])

    header.logo = GOOD_LOGO
    header.fixed = FIXED_VALUE
    header.device_type = 0

    if title is not None:
        if not title:
            title = _title_from_path(name)
            if not silent:
                print(title)
        raw = title.encode("utf-8").split(b"\0", 1)[0]
        header.title = raw[:12].ljust(12, b"\0")
    if game_code is not None:
        header.game_code = _code(game_code, 4)
    if maker_code is not None:
        header.maker_code = _code(maker_code, 2)
    if version is not None:
        header.game_version = version & 0xFF
    if debug is not None:
        logo = bytearray(header.logo)
        logo[_DEBUG_LOGO_INDEX] = DEBUG_ENABLE
        header.logo = bytes(logo)
        header.device_type = (debug & 1) << 7

    header.complement = 0
    header.checksum = 0
    header.complement = header.compute_complement()

    if pad:
        if offset != 0:
            print("Warning: Cannot safely pad an ELF", file=sys.stderr)
        else:
            data += b"\xff" * (pad_size(len(data)) - len(data))

    if len(data) < offset:
        data += bytes(offset - len(data))
    data[offset : offset + HEADER_SIZE] = header.to_bytes()

    try:
        Path(path).write_bytes(bytes(data))
    except OSError as exc:
        raise GfxError(f'Failed to write "{name}".') from exc

    if not silent:
        print("ROM fixed!")
    return header


def _number(text: str) -> int:
    try:
        value, _ = parse_number(text, 0)
    except ValueError:
        return 0
    return value


def main(argv: Optional[List[str]] = None) -> int:
    """Run the ROM fixer on command-line arguments."""
    args = list(sys.argv[1:] if argv is None else argv)

    if not args:
        print(USAGE)
        return -1

    filename = None
    silent = False
    for arg in args:
        if not arg.startswith("-"):
            filename = arg
        if arg.startswith("--silen"):
            silent = True

    if filename is None:
        print("Filename needed!", file=sys.stderr)
        return -1

    options = {}
    for arg in args:
        if not arg.startswith("-"):
            continue
        letter, value = arg[1:2], arg[2:]
        if letter == "p":
            options["pad"] = True
        elif letter == "t":
            options["title"] = value
        elif letter == "c":
            options["game_code"] = value
        elif letter == "m":
            options["maker_code"] = value
        elif letter == "v" or letter == "-":
            continue
        elif letter in ("r", "d"):
            if not value:
                print(f"Need value for {arg}", file=sys.stderr)
                continue
            options["version" if letter == "r" else "debug"] = _number(value)
        else:
            print(f"Invalid option: {arg}")

    try:
        fix_rom(filename, silent=silent, **options)
    except GfxError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0