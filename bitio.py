"""
Bit-level streams over byte-oriented binary files.
Bits are read and written most-significant-bit first.
"""

import io
from typing import BinaryIO, Optional


class BitInputStream:
    def __init__(self, source: BinaryIO, owns_source: bool = False):
        self.source = source
        self.owns_source = owns_source
        self.bits_read = 0
        self._buffer = 0
        self._bit_count = 0

    @staticmethod
    def from_bytes(data: bytes) -> 'BitInputStream':
        return BitInputStream(io.BytesIO(data))

    @staticmethod
    def open(path: str) -> 'BitInputStream':
        return BitInputStream(open(path, 'rb'), owns_source=True)

    def read_bits(self, howmany: int) -> Optional[int]:
        """Returns the next `howmany` bits as an int, or None if not enough remain."""
        while self._bit_count < howmany:
            byte = self.source.read(1)
            if not byte:
                return None
            self._buffer = (self._buffer << 8) | byte[0]
            self._bit_count += 8

        self._bit_count -= howmany
        value = self._buffer >> self._bit_count
        self._buffer &= (1 << self._bit_count) - 1
        self.bits_read += howmany
        return value

    def reset(self):
        if not self.source.seekable():
            raise ValueError("Input stream does not support reset")
        self.source.seek(0)
        self._buffer = 0
        self._bit_count = 0
        self.bits_read = 0

    def close(self):
        if self.owns_source:
            self.source.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class BitOutputStream:
    def __init__(self, sink: BinaryIO, owns_sink: bool = False):
        self.sink = sink
        self.owns_sink = owns_sink
        self.bits_written = 0
        self._buffer = 0
        self._bit_count = 0
        self.closed = False

    @staticmethod
    def open(path: str) -> 'BitOutputStream':
        return BitOutputStream(open(path, 'wb'), owns_sink=True)

    def write_bits(self, howmany: int, value: int):
        if howmany <= 0:
            return

        self._buffer = (self._buffer << howmany) | (value & ((1 << howmany) - 1))
        self._bit_count += howmany
        self.bits_written += howmany

        output = bytearray()
        while self._bit_count >= 8:
            self._bit_count -= 8
            output.append((self._buffer >> self._bit_count) & 0xFF)
        self._buffer &= (1 << self._bit_count) - 1

        if output:
            self.sink.write(output)

    def flush(self):
        if self._bit_count > 0:
            padding = 8 - self._bit_count
            self.sink.write(bytes([(self._buffer << padding) & 0xFF]))
            self._buffer = 0
            self._bit_count = 0
        self.sink.flush()

    def close(self):
        if self.closed:
            return
        self.flush()
        if self.owns_sink:
            self.sink.close()
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
