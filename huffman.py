"""
Huffman coding of a byte stream: frequency counting, tree construction,
the preorder tree header, and encoding/decoding of the body.
"""

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Dict, List, Union

from bitio import BitInputStream, BitOutputStream
from format import (
    ALPH_SIZE, BITS_PER_WORD, LEAF_VALUE_BITS, PSEUDO_EOF,
    CorruptHeaderError, HuffException, TruncatedBodyError,
)


@dataclass(frozen=True)
class HuffLeaf:
    value: int
    weight: int = field(default=0, compare=False)


@dataclass(frozen=True)
class HuffInternal:
    left: 'HuffNode'
    right: 'HuffNode'
    weight: int = field(default=0, compare=False)


HuffNode = Union[HuffLeaf, HuffInternal]


def read_for_counts(bits_in: BitInputStream) -> List[int]:
    counts = [0] * (ALPH_SIZE + 1)
    counts[PSEUDO_EOF] = 1

    while True:
        word = bits_in.read_bits(BITS_PER_WORD)
        if word is None:
            break
        counts[word] += 1

    return counts


class HuffmanTree:
    @staticmethod
    def build(counts: List[int]) -> HuffNode:
        """
        Merges the two lightest nodes until one remains. Equal weights are
        taken in insertion order, so the same counts always give the same tree.
        """
        sequence = itertools.count()
        heap = [(weight, next(sequence), HuffLeaf(value, weight))
                for value, weight in enumerate(counts) if weight > 0]
        if not heap:
            raise ValueError("Cannot build a tree from empty counts")
        heapq.heapify(heap)

        while len(heap) > 1:
            _, _, left = heapq.heappop(heap)
            _, _, right = heapq.heappop(heap)
            weight = left.weight + right.weight
            heapq.heappush(heap, (weight, next(sequence),
                                  HuffInternal(left, right, weight)))

        return heap[0][2]

    @staticmethod
    def make_codings(root: HuffNode) -> Dict[int, str]:
        codings: Dict[int, str] = {}
        stack = [(root, '')]

        while stack:
            node, path = stack.pop()
            if isinstance(node, HuffLeaf):
                codings[node.value] = path
            else:
                stack.append((node.right, path + '1'))
                stack.append((node.left, path + '0'))

        return codings

    @staticmethod
    def write_header(root: HuffNode, out: BitOutputStream):
        stack = [root]

        while stack:
            node = stack.pop()
            if isinstance(node, HuffLeaf):
                out.write_bits(1, 1)
                out.write_bits(LEAF_VALUE_BITS, node.value)
            else:
                out.write_bits(1, 0)
                stack.append(node.right)
                stack.append(node.left)

    @staticmethod
    def read_header(bits_in: BitInputStream) -> HuffNode:
        # each entry collects the finished children of an open internal node
        pending: List[List[HuffNode]] = []
        seen = set()

        while True:
            bit = bits_in.read_bits(1)
            if bit is None:
                raise CorruptHeaderError("Error in reading tree header")

            if bit == 0:
                if len(pending) >= ALPH_SIZE:
                    raise CorruptHeaderError("Tree header is deeper than the alphabet")
                pending.append([])
                continue

            value = bits_in.read_bits(LEAF_VALUE_BITS)
            if value is None:
                raise CorruptHeaderError("Error in reading tree header leaf")
            if value > PSEUDO_EOF or value in seen:
                raise CorruptHeaderError(f"Bad leaf value {value} in tree header")
            seen.add(value)

            node: HuffNode = HuffLeaf(value)
            while pending:
                pending[-1].append(node)
                if len(pending[-1]) < 2:
                    break
                left, right = pending.pop()
                node = HuffInternal(left, right)
            else:
                if PSEUDO_EOF not in seen:
                    raise CorruptHeaderError("Tree header has no PSEUDO_EOF leaf")
                return node

    @staticmethod
    def leaves(root: HuffNode) -> List[int]:
        """Leaf values in preorder."""
        values = []
        stack = [root]
        while stack:
            node = stack.pop()
            if isinstance(node, HuffLeaf):
                values.append(node.value)
            else:
                stack.append(node.right)
                stack.append(node.left)
        return values


class HuffmanEncoder:
    @staticmethod
    def encode(codings: Dict[int, str], bits_in: BitInputStream, out: BitOutputStream):
        while True:
            word = bits_in.read_bits(BITS_PER_WORD)
            symbol = PSEUDO_EOF if word is None else word

            code = codings.get(symbol)
            if code is None:
                raise HuffException(f"No code for symbol {symbol}")
            if code:
                out.write_bits(len(code), int(code, 2))

            if word is None:
                break

    @staticmethod
    def decode(root: HuffNode, bits_in: BitInputStream, out: BitOutputStream) -> int:
        if isinstance(root, HuffLeaf):
            if root.value != PSEUDO_EOF:
                raise CorruptHeaderError("Single-leaf tree without PSEUDO_EOF")
            return 0

        written = 0
        current = root
        while True:
            bit = bits_in.read_bits(1)
            if bit is None:
                raise TruncatedBodyError("Bad input, no PSEUDO_EOF")

            current = current.right if bit else current.left

            if isinstance(current, HuffLeaf):
                if current.value == PSEUDO_EOF:
                    return written
                out.write_bits(BITS_PER_WORD, current.value)
                written += 1
                current = root
