"""
Main class for compressing and decompressing with a tree-header Huffman code.
"""

import io
import os
import sys
from dataclasses import dataclass
from typing import Optional

from bitio import BitInputStream, BitOutputStream
from format import HuffException, check_magic, write_magic
from huffman import HuffmanEncoder, HuffmanTree, read_for_counts


COMPRESSED_SUFFIX = '.hf'
DECOMPRESSED_SUFFIX = '.unhf'


@dataclass
class ProcessStats:
    input_path: str
    output_path: str
    input_size: int
    output_size: int

    @property
    def ratio(self) -> float:
        return (self.output_size / self.input_size * 100) if self.input_size > 0 else 0.0


class HuffProcessor:
    DEBUG_HIGH = 4
    DEBUG_LOW = 1

    def __init__(self, debug: int = 0):
        self.debug = debug

    def _debug(self, level: int, message: str):
        if self.debug >= level:
            print(message, file=sys.stderr)

    def compress(self, bits_in: BitInputStream, out: BitOutputStream):
        counts = read_for_counts(bits_in)
        self._debug(self.DEBUG_LOW, f"counted {bits_in.bits_read} bits")

        root = HuffmanTree.build(counts)
        codings = HuffmanTree.make_codings(root)
        if self.debug >= self.DEBUG_HIGH:
            for value in sorted(codings):
                self._debug(self.DEBUG_HIGH, f"encoding for {value} is {codings[value]}")

        write_magic(out)
        HuffmanTree.write_header(root, out)
        self._debug(self.DEBUG_HIGH, f"tree header ends at {out.bits_written} bits")

        bits_in.reset()
        HuffmanEncoder.encode(codings, bits_in, out)
        out.close()
        self._debug(self.DEBUG_LOW,
                    f"compressed {bits_in.bits_read} bits to {out.bits_written} bits")

    def decompress(self, bits_in: BitInputStream, out: BitOutputStream):
        check_magic(bits_in)

        root = HuffmanTree.read_header(bits_in)
        if self.debug >= self.DEBUG_HIGH:
            self._debug(self.DEBUG_HIGH, f"read tree header with {len(HuffmanTree.leaves(root))} "
                                         f"leaves in {bits_in.bits_read} bits")

        written = HuffmanEncoder.decode(root, bits_in, out)
        out.close()
        self._debug(self.DEBUG_LOW, f"decompressed {bits_in.bits_read} bits to {written} bytes")

    def compress_file(self, input_path: str, output_path: Optional[str] = None) -> ProcessStats:
        if output_path is None:
            output_path = input_path + COMPRESSED_SUFFIX

        with BitInputStream.open(input_path) as bits_in, BitOutputStream.open(output_path) as out:
            self.compress(bits_in, out)

        return ProcessStats(input_path, output_path,
                            os.path.getsize(input_path), os.path.getsize(output_path))

    def decompress_file(self, input_path: str, output_path: Optional[str] = None) -> ProcessStats:
        if output_path is None:
            if input_path.endswith(COMPRESSED_SUFFIX):
                output_path = input_path[:-len(COMPRESSED_SUFFIX)]
            else:
                output_path = input_path + DECOMPRESSED_SUFFIX

        try:
            with BitInputStream.open(input_path) as bits_in, \
                    BitOutputStream.open(output_path) as out:
                self.decompress(bits_in, out)
        except HuffException:
            if os.path.exists(output_path):
                os.remove(output_path)
            raise

        return ProcessStats(input_path, output_path,
                            os.path.getsize(input_path), os.path.getsize(output_path))


def compress_bytes(data: bytes, debug: int = 0) -> bytes:
    output = io.BytesIO()
    HuffProcessor(debug).compress(BitInputStream.from_bytes(data), BitOutputStream(output))
    return output.getvalue()


def decompress_bytes(data: bytes, debug: int = 0) -> bytes:
    output = io.BytesIO()
    HuffProcessor(debug).decompress(BitInputStream.from_bytes(data), BitOutputStream(output))
    return output.getvalue()
