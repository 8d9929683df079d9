"""GBA BIOS LZ77 compression (type 0x10)."""

from __future__ import annotations

import warnings

from .util import GfxError

LZ_TYPE = 0x10
_MAX_DISTANCE = 0x1000
_MAX_BLOCK = 18
_MIN_BLOCK = 3


def lz_decompress(data: bytes) -> bytes:
    """Decompress LZ77 data with a 4-byte GBA header."""
    fail = GfxError("Fatal error while decompressing LZ file.")
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

        for bit in range(8):
            if flags & (0x80 >> bit):
                if src_pos + 1 >= src_size:
                    raise fail
                block_size = (src[src_pos] >> 4) + 3
                block_distance = (((src[src_pos] & 0xF) << 8) | src[src_pos + 1]) + 1
                src_pos += 2

                block_pos = len(dest) - block_distance
                if len(dest) + block_size > dest_size:
                    block_size = dest_size - len(dest)
                    warnings.warn("Destination buffer overflow.", RuntimeWarning, stacklevel=2)
                if block_pos < 0:
                    raise fail
                for offset in range(block_size):
                    dest.append(dest[block_pos + offset])
            else:
                if src_pos >= src_size or len(dest) >= dest_size:
                    raise fail
                dest.append(src[src_pos])
                src_pos += 1

            if len(dest) == dest_size:
                return bytes(dest)


def _longest_match(src: bytes, pos: int, min_distance: int) -> tuple:
    """Return (distance, size) of the best earlier match at ``pos``."""
    best_distance = 0
    best_size = 0
    max_size = min(_MAX_BLOCK, len(src) - pos)
    first = src[pos]
    limit = min(pos, _MAX_DISTANCE)
    for distance in range(min_distance, limit + 1):
        start = pos - distance
        if src[start] != first:
            continue
        size = 1
        while size < max_size and src[start + size] == src[pos + size]:
            size += 1
        if size > best_size:
            best_distance, best_size = distance, size
            if size == _MAX_BLOCK:
                break
    return best_distance, best_size


def lz_compress(data: bytes, min_distance: int = 2) -> bytes:
    """Compress ``data`` with LZ77, searching back no closer than ``min_distance``.

    The default of 2 keeps the output safe for VRAM decompression.
    """
    src = bytes(data)
    src_size = len(src)
    if src_size <= 0:
        raise GfxError("Fatal error while compressing LZ file.")

    dest = bytearray([LZ_TYPE]) + (src_size & 0xFFFFFF).to_bytes(3, "little")
    src_pos = 0

    while True:
        flags_pos = len(dest)
        dest.append(0)

        for bit in range(8):
            distance, size = _longest_match(src, src_pos, min_distance)
            if size >= _MIN_BLOCK:
                dest[flags_pos] |= 0x80 >> bit
                src_pos += size
                size -= _MIN_BLOCK
                distance -= 1
                dest.append((size << 4) | (distance >> 8))
                dest.append(distance & 0xFF)
            else:
                dest.append(src[src_pos])
                src_pos += 1

            if src_pos == src_size:
                dest += bytes(-len(dest) % 4)
                return bytes(dest)