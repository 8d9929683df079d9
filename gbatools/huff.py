"""GBA BIOS Huffman compression (type 0x20, 4- or 8-bit symbols)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .util import GfxError

HUFF_TYPE = 0x20
_MAX_CHILD_DISTANCE = 128
_WORD_MASK = 0xFFFFFFFF


@dataclass(eq=False)
class _Node:
    value: int
    key: int = 0
    left: Optional["_Node"] = None
    right: Optional["_Node"] = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None


def _by_value(node: _Node) -> int:
    return node.value


def _count_symbols(data: bytes, bit_depth: int) -> List[int]:
    counts = [0] * (1 << bit_depth)
    for byte in data:
        if bit_depth == 8:
            counts[byte] += 1
        else:
            counts[byte >> 4] += 1
            counts[byte & 0xF] += 1
    return counts


def _build_tree(counts: List[int]) -> Tuple[_Node, int]:
    """Repeatedly join the two least frequent nodes; returns the root and leaf count."""
    leaves = sorted(
        (_Node(count, key) for key, count in enumerate(counts)), key=_by_value
    )
    active = [leaf for leaf in leaves if leaf.value]
    if not active:
        raise GfxError("Fatal error while compressing Huff file.")
    nitems = len(active)

    while len(active) > 1:
        smallest, second = active[0], active[1]
        branch = _Node(smallest.value + second.value, left=second, right=smallest)
        active = sorted(active[2:] + [branch], key=_by_value)

    return active[0], nitems


def _serialize_tree(
    root: _Node, nitems: int
) -> Tuple[bytes, Dict[int, Tuple[int, int]]]:
    """Lay the tree out breadth-first and collect each symbol's code."""
    nodes = [root]
    paths = [(0, 0)]
    left_index: Dict[int, int] = {}

    parent = 0
    while parent < len(nodes):
        node = nodes[parent]
        if not node.is_leaf:
            depth, bits = paths[parent]
            left_index[parent] = len(nodes)
            for direction, child in ((0, node.left), (1, node.right)):
                if len(nodes) - parent > _MAX_CHILD_DISTANCE:
                    raise GfxError(
                        "Fatal error while compressing Huff file: "
                        "unable to encode binary tree."
                    )
                nodes.append(child)
                paths.append((depth + 1, (bits << 1) | direction))
        parent += 1

    tree = bytearray([(nitems - 1) & 0xFF])
    codes: Dict[int, Tuple[int, int]] = {}
    for index, node in enumerate(nodes):
        if node.is_leaf:
            tree.append(node.key)
            codes[node.key] = paths[index]
        else:
            right = left_index[index] + 1
            byte = ((right - index) // 2 - 1) & 0xFF
            if node.left.is_leaf:
                byte |= 0x80
            if node.right.is_leaf:
                byte |= 0x40
            tree.append(byte)
    return bytes(tree), codes


def huff_compress(data: bytes, bit_depth: int = 4) -> bytes:
    """Huffman-compress ``data`` using 4- or 8-bit symbols."""
    src = bytes(data)
    if not src:
        raise GfxError("Fatal error while compressing Huff file.")
    if bit_depth not in (4, 8):
        raise GfxError("GBA only supports bit depth of 4 or 8.")

    root, nitems = _build_tree(_count_symbols(src, bit_depth))
    tree, codes = _serialize_tree(root, nitems)

    out = bytearray([bit_depth | HUFF_TYPE]) + (len(src) & 0xFFFFFF).to_bytes(3, "little")
    out += tree

    symbol_mask = 0xFF >> (8 - bit_depth)
    padded = src + bytes(-len(src) % 4)
    acc = 0
    acc_bits = 0
    for offset in range(0, len(padded), 4):
        word = int.from_bytes(padded[offset : offset + 4], "little")
        for _ in range(32 // bit_depth):
            nbits, bits = codes.get(word & symbol_mask, (0, 0))
            word >>= bit_depth
            acc = (acc << nbits) | bits
            acc_bits += nbits
            if acc_bits >= 32:
                acc_bits -= 32
                out += ((acc >> acc_bits) & _WORD_MASK).to_bytes(4, "little")
                acc &= (1 << acc_bits) - 1

    if acc_bits:
        # The decoder reads each word from its top bit down.
        out += ((acc << (32 - acc_bits)) & _WORD_MASK).to_bytes(4, "little")

    out += bytes(-len(out) % 4)
    return bytes(out)


def huff_decompress(data: bytes) -> bytes:
    """Decompress Huffman data with a GBA header."""
    fail = GfxError("Fatal error while decompressing Huff file.")
    src = bytes(data)
    src_size = len(src)
    if src_size < 4:
        raise fail

    bit_depth = src[0] & 15
    if bit_depth not in (4, 8):
        raise fail

    dest_size = (src[3] << 16) | (src[2] << 8) | src[1]
    dest = bytearray()
    values_per_word = 32 // bit_depth

    try:
        tree_pos = 5
        src_pos = 4 + (src[4] + 1) * 2
        value_count = 0
        out_word = 0

        while True:
            if src_pos >= src_size or src_pos + 4 > src_size:
                raise fail
            window = int.from_bytes(src[src_pos : src_pos + 4], "little")
            src_pos += 4
            for _ in range(32):
                bit = (window >> 31) & 1
                view = src[tree_pos]
                is_leaf = ((view << bit) & 0x80) != 0
                tree_pos = (tree_pos & ~1) + ((view & 0x3F) + 1) * 2 + bit
                if is_leaf:
                    out_word = (out_word >> bit_depth) | (src[tree_pos] << (32 - bit_depth))
                    out_word &= _WORD_MASK
                    value_count += 1
                    if value_count == values_per_word:
                        dest += out_word.to_bytes(4, "little")
                        out_word = 0
                        value_count = 0
                        if len(dest) == dest_size:
                            return bytes(dest)
                    tree_pos = 5
                window = (window << 1) & _WORD_MASK
    except IndexError:
        raise fail from None