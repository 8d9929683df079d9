"""GBA BIOS run-length compression (type 0x30)."""

from __future__ import annotations

from .util import GfxError

RL_TYPE = 0x30
_MAX_LITERAL = 0x7F + 1
_MIN_RUN = 3
_MAX_RUN = 0x7F + 3


def rl_decompress(data: bytes) -> bytes:
    """Decompress run-length data with a 4-byte GBA header."""
    fail = GfxError("Fatal error while decompressing RL file.")
    src = bytes(data)
    src_size = len(src)
    if src_size < 4:
        raise fail

    dest_size = (src[3] << 16) | (src[2] << 8) | src[1]
    dest = bytearray()
    src_pos = 4

    while True:
        if src_pos >= src_size:
            raise fail
        flags = src[src_pos]
        src_pos += 1

        if flags & 0x80:
            length = (flags & 0x7F) + _MIN_RUN
            if src_pos >= src_size:
                raise fail
            value = src[src_pos]
            src_pos += 1
            if len(dest) + length > dest_size:
                raise fail
            dest += bytes([value]) * length
        else:
            length = (flags & 0x7F) + 1
            if len(dest) + length > dest_size or src_pos + length > src_size:
                raise fail
            dest += src[src_pos : src_pos + length]
            src_pos += length

        if len(dest) == dest_size:
            return bytes(dest)


def rl_compress(data: bytes) -> bytes:
    """Compress ``data`` with run-length encoding; output is padded to 4 bytes."""
    src = bytes(data)
    src_size = len(src)
    if src_size <= 0:
        raise GfxError("Fatal error while compressing RL file.")

    dest = bytearray([RL_TYPE]) + (src_size & 0xFFFFFF).to_bytes(3, "little")
    src_pos = 0

    while True:
        compress = False
        literal_start = src_pos

        while src_pos < src_size and src_pos - literal_start < _MAX_LITERAL:
            compress = (
                src_pos + 2 < src_size
                and src[src_pos] == src[src_pos + 1] == src[src_pos + 2]
            )
            if compress:
                break
            src_pos += 1

        literal_length = src_pos - literal_start
        if literal_length > 0:
            dest.append(literal_length - 1)
            dest += src[literal_start:src_pos]

        if compress:
            value = src[src_pos]
            run_length = 0
            while (
                run_length < _MAX_RUN
                and src_pos + run_length < src_size
                and src[src_pos + run_length] == value
            ):
                run_length += 1
            dest.append(0x80 | (run_length - _MIN_RUN))
            dest.append(value)
            src_pos += run_length

        if src_pos == src_size:
            dest += bytes(-len(dest) % 4)
            return bytes(dest)