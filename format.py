"""
Defines the compressed file layout: constants, the magic number and format errors.

    magic        32 bits   HUFF_TREE
    tree header  variable  preorder: 0 = internal node, 1 + 9-bit value = leaf
    body         variable  codes of the input bytes, then the PSEUDO_EOF code
"""

from typing import Optional

from bitio import BitInputStream, BitOutputStream


BITS_PER_WORD = 8
BITS_PER_INT = 32
ALPH_SIZE = 1 << BITS_PER_WORD
PSEUDO_EOF = ALPH_SIZE
LEAF_VALUE_BITS = BITS_PER_WORD + 1

HUFF_NUMBER = 0xface8200
HUFF_TREE = HUFF_NUMBER | 1


class HuffException(ValueError):
    pass


class BadMagicError(HuffException):
    pass


class CorruptHeaderError(HuffException):
    pass


class TruncatedBodyError(HuffException):
    pass


def write_magic(out: BitOutputStream):
    out.write_bits(BITS_PER_INT, HUFF_TREE)


def check_magic(bits_in: BitInputStream) -> int:
    magic: Optional[int] = bits_in.read_bits(BITS_PER_INT)
    if magic is None:
        raise BadMagicError("Input too short for a huff header")
    if magic != HUFF_TREE:
        raise BadMagicError(f"Illegal header start with {magic:#010x}")
    return magic
