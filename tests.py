import unittest
import tempfile
import io
import os
import random
import shutil
import sys

from bitio import BitInputStream, BitOutputStream
from format import (
    PSEUDO_EOF, HUFF_TREE, BadMagicError, CorruptHeaderError,
    HuffException, TruncatedBodyError,
)
from huffman import HuffLeaf, HuffInternal, HuffmanTree, HuffmanEncoder, read_for_counts
from processor import HuffProcessor, compress_bytes, decompress_bytes
import main


def bits_to_bytes(bits: str) -> bytes:
    output = io.BytesIO()
    out = BitOutputStream(output)
    for bit in bits:
        out.write_bits(1, int(bit))
    out.close()
    return output.getvalue()


class UnseekableBytesIO(io.BytesIO):
    def seekable(self):
        return False


class TestBitStreams(unittest.TestCase):
    def test_write_pads_last_byte(self):
        output = io.BytesIO()
        out = BitOutputStream(output)
        out.write_bits(3, 0b101)
        out.write_bits(9, 256)
        out.close()
        self.assertEqual(output.getvalue(), b'\xb0\x00')
        self.assertEqual(out.bits_written, 12)

    def test_zero_width_write(self):
        output = io.BytesIO()
        out = BitOutputStream(output)
        out.write_bits(0, 1)
        out.close()
        self.assertEqual(output.getvalue(), b'')

    def test_read_bits(self):
        bits_in = BitInputStream.from_bytes(b'\xb0\x00')
        self.assertEqual(bits_in.read_bits(3), 5)
        self.assertEqual(bits_in.read_bits(9), 256)
        self.assertEqual(bits_in.read_bits(4), 0)
        self.assertIsNone(bits_in.read_bits(1))
        self.assertEqual(bits_in.bits_read, 16)

    def test_short_read_is_end_of_data(self):
        bits_in = BitInputStream.from_bytes(b'\xff')
        self.assertIsNone(bits_in.read_bits(9))

    def test_reset(self):
        bits_in = BitInputStream.from_bytes(b'AB')
        self.assertEqual(bits_in.read_bits(8), 65)
        self.assertEqual(bits_in.read_bits(4), 4)
        bits_in.reset()
        self.assertEqual(bits_in.bits_read, 0)
        self.assertEqual(bits_in.read_bits(8), 65)
        self.assertEqual(bits_in.read_bits(8), 66)

    def test_reset_needs_seekable_source(self):
        bits_in = BitInputStream(UnseekableBytesIO(b'A'))
        with self.assertRaises(ValueError):
            bits_in.reset()


class TestHuffmanTree(unittest.TestCase):
    def test_counts(self):
        counts = read_for_counts(BitInputStream.from_bytes(b"aab"))
        self.assertEqual(len(counts), 257)
        self.assertEqual(counts[ord('a')], 2)
        self.assertEqual(counts[ord('b')], 1)
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertEqual(sum(counts), 4)

    def test_counts_empty(self):
        counts = read_for_counts(BitInputStream.from_bytes(b""))
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertEqual(sum(counts), 1)

    def test_build_is_deterministic(self):
        counts = read_for_counts(BitInputStream.from_bytes(b"aab"))
        root = HuffmanTree.build(counts)
        expected = HuffInternal(HuffLeaf(97), HuffInternal(HuffLeaf(98), HuffLeaf(PSEUDO_EOF)))
        self.assertEqual(root, expected)
        self.assertEqual(root.weight, 4)
        self.assertEqual(HuffmanTree.make_codings(root), {97: '0', 98: '10', PSEUDO_EOF: '11'})

    def test_build_single_leaf(self):
        counts = [0] * 257
        counts[PSEUDO_EOF] = 1
        root = HuffmanTree.build(counts)
        self.assertEqual(root, HuffLeaf(PSEUDO_EOF))
        self.assertEqual(HuffmanTree.make_codings(root), {PSEUDO_EOF: ''})

    def test_build_empty_counts(self):
        with self.assertRaises(ValueError):
            HuffmanTree.build([0] * 257)

    def test_codings_are_prefix_free(self):
        random.seed(7)
        data = bytes(random.choice(b"abcdefghij \n\x00\xff") for _ in range(3000))
        root = HuffmanTree.build(read_for_counts(BitInputStream.from_bytes(data)))
        codes = list(HuffmanTree.make_codings(root).values())
        self.assertEqual(len(codes), 15)
        for i, code in enumerate(codes):
            for j, other in enumerate(codes):
                if i != j:
                    self.assertFalse(other.startswith(code), f"{code} prefixes {other}")


class TestTreeHeader(unittest.TestCase):
    def write_header(self, root) -> bytes:
        output = io.BytesIO()
        out = BitOutputStream(output)
        HuffmanTree.write_header(root, out)
        out.close()
        return output.getvalue()

    def test_header_bits(self):
        root = HuffInternal(HuffLeaf(97), HuffInternal(HuffLeaf(98), HuffLeaf(PSEUDO_EOF)))
        self.assertEqual(self.write_header(root), b'\x4c\x29\x8b\x00')

    def test_header_round_trip(self):
        data = bytes(range(256)) * 3 + b"more weight on these letters"
        root = HuffmanTree.build(read_for_counts(BitInputStream.from_bytes(data)))
        read_back = HuffmanTree.read_header(BitInputStream.from_bytes(self.write_header(root)))
        self.assertEqual(read_back, root)
        self.assertEqual(HuffmanTree.leaves(read_back), HuffmanTree.leaves(root))
        self.assertEqual(len(HuffmanTree.leaves(root)), 257)

    def test_single_leaf_header(self):
        header = self.write_header(HuffLeaf(PSEUDO_EOF))
        self.assertEqual(HuffmanTree.read_header(BitInputStream.from_bytes(header)),
                         HuffLeaf(PSEUDO_EOF))

    def test_exhausted_header(self):
        with self.assertRaises(CorruptHeaderError):
            HuffmanTree.read_header(BitInputStream.from_bytes(b'\x00'))

    def test_exhausted_leaf_value(self):
        with self.assertRaises(CorruptHeaderError):
            HuffmanTree.read_header(BitInputStream.from_bytes(b'\xff'))

    def test_leaf_value_out_of_range(self):
        header = bits_to_bytes('1' + format(300, '09b'))
        with self.assertRaises(CorruptHeaderError):
            HuffmanTree.read_header(BitInputStream.from_bytes(header))

    def test_duplicate_leaf(self):
        header = bits_to_bytes('0' + '1' + format(5, '09b') + '1' + format(5, '09b'))
        with self.assertRaises(CorruptHeaderError):
            HuffmanTree.read_header(BitInputStream.from_bytes(header))

    def test_missing_pseudo_eof(self):
        header = bits_to_bytes('0' + '1' + format(5, '09b') + '1' + format(6, '09b'))
        with self.assertRaises(CorruptHeaderError):
            HuffmanTree.read_header(BitInputStream.from_bytes(header))

    def test_too_deep(self):
        with self.assertRaises(CorruptHeaderError):
            HuffmanTree.read_header(BitInputStream.from_bytes(b'\x00' * 40))


class TestHuffmanEncoder(unittest.TestCase):
    def test_missing_code(self):
        out = BitOutputStream(io.BytesIO())
        with self.assertRaises(HuffException):
            HuffmanEncoder.encode({PSEUDO_EOF: '0'}, BitInputStream.from_bytes(b'a'), out)

    def test_decode_counts_symbols(self):
        data = b"mississippi river"
        root = HuffmanTree.build(read_for_counts(BitInputStream.from_bytes(data)))
        body = io.BytesIO()
        out = BitOutputStream(body)
        HuffmanEncoder.encode(HuffmanTree.make_codings(root), BitInputStream.from_bytes(data), out)
        out.close()

        decoded = io.BytesIO()
        decoded_out = BitOutputStream(decoded)
        written = HuffmanEncoder.decode(root, BitInputStream.from_bytes(body.getvalue()), decoded_out)
        decoded_out.close()
        self.assertEqual(written, len(data))
        self.assertEqual(decoded.getvalue(), data)

    def test_decode_single_leaf_without_eof(self):
        out = BitOutputStream(io.BytesIO())
        with self.assertRaises(CorruptHeaderError):
            HuffmanEncoder.decode(HuffLeaf(65), BitInputStream.from_bytes(b'\x00'), out)


class TestHuffProcessor(unittest.TestCase):
    def round_trip(self, data: bytes):
        compressed = compress_bytes(data)
        self.assertEqual(int.from_bytes(compressed[:4], 'big'), HUFF_TREE)
        self.assertEqual(decompress_bytes(compressed), data)

    def test_exact_output(self):
        self.assertEqual(compress_bytes(b"aab"), b'\xfa\xce\x82\x01\x4c\x29\x8b\x00\x2c')

    def test_empty(self):
        self.assertEqual(compress_bytes(b""), b'\xfa\xce\x82\x01\xc0\x00')
        self.round_trip(b"")

    def test_simple_text(self):
        self.round_trip(b"The quick brown fox jumps over the lazy dog")

    def test_single_byte(self):
        self.round_trip(b"A")

    def test_repeated_byte(self):
        data = b"A" * 1000
        self.round_trip(data)
        self.assertLess(len(compress_bytes(data)), 150)

    def test_all_byte_values(self):
        self.round_trip(bytes(range(256)) * 10)

    def test_random_data(self):
        random.seed(42)
        self.round_trip(bytes(random.randint(0, 255) for _ in range(5000)))

    def test_skewed_data_compresses(self):
        data = b"Lorem ipsum dolor sit amet " * 200
        compressed = compress_bytes(data)
        self.assertLess(len(compressed), len(data))
        self.assertEqual(decompress_bytes(compressed), data)

    def test_same_input_same_output(self):
        data = b"abracadabra" * 30
        self.assertEqual(compress_bytes(data), compress_bytes(data))

    def test_bad_magic(self):
        output = io.BytesIO()
        with self.assertRaises(BadMagicError):
            HuffProcessor().decompress(BitInputStream.from_bytes(b"not a huff file at all"),
                                       BitOutputStream(output))
        self.assertEqual(output.getvalue(), b"")

    def test_too_short_for_magic(self):
        with self.assertRaises(BadMagicError):
            decompress_bytes(b"\xfa\xce")

    def test_truncated_body(self):
        compressed = compress_bytes(b"Lorem ipsum dolor sit amet " * 200)
        with self.assertRaises(TruncatedBodyError):
            decompress_bytes(compressed[:-1])

    def test_truncated_header(self):
        compressed = compress_bytes(b"Lorem ipsum dolor sit amet " * 200)
        with self.assertRaises(CorruptHeaderError):
            decompress_bytes(compressed[:6])

    def test_errors_are_value_errors(self):
        with self.assertRaises(ValueError):
            decompress_bytes(b"")

    def test_debug_output(self):
        import contextlib
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            compressed = compress_bytes(b"aab", debug=HuffProcessor.DEBUG_HIGH)
            decompress_bytes(compressed, debug=HuffProcessor.DEBUG_LOW)
        report = stderr.getvalue()
        self.assertIn("encoding for 97 is 0", report)
        self.assertIn("compressed 24 bits to 70 bits", report)
        self.assertIn("to 3 bytes", report)


class TestFiles(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.processor = HuffProcessor()

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_compress_decompress_file(self):
        test_file = os.path.join(self.temp_dir, "test.txt")
        with open(test_file, 'wb') as f:
            f.write(b"Hello World! " * 100)

        stats = self.processor.compress_file(test_file)
        self.assertEqual(stats.output_path, test_file + ".hf")
        self.assertLess(stats.output_size, stats.input_size)

        restored = os.path.join(self.temp_dir, "restored.txt")
        stats = self.processor.decompress_file(test_file + ".hf", restored)
        self.assertEqual(stats.output_size, 1300)

        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), b"Hello World! " * 100)

    def test_default_decompressed_name(self):
        test_file = os.path.join(self.temp_dir, "plain.bin")
        with open(test_file, 'wb') as f:
            f.write(b"\x00\x01\x02" * 10)
        compressed = os.path.join(self.temp_dir, "packed")
        self.processor.compress_file(test_file, compressed)

        stats = self.processor.decompress_file(compressed)
        self.assertEqual(stats.output_path, compressed + ".unhf")

    def test_failed_decompress_removes_output(self):
        bad_file = os.path.join(self.temp_dir, "bad.txt.hf")
        with open(bad_file, 'wb') as f:
            f.write(b"garbage" * 10)

        with self.assertRaises(BadMagicError):
            self.processor.decompress_file(bad_file)
        self.assertFalse(os.path.exists(os.path.join(self.temp_dir, "bad.txt")))


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_compress_and_decompress(self):
        import contextlib
        source = os.path.join(self.temp_dir, "notes.txt")
        restored = os.path.join(self.temp_dir, "restored.txt")
        with open(source, 'wb') as f:
            f.write(b"command line round trip\n" * 40)

        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            main.main(['compress', source])
            main.main(['info', source + '.hf'])
            main.main(['decompress', source + '.hf', '-o', restored])

        self.assertIn("Compressing", stdout.getvalue())
        self.assertIn("EOF", stdout.getvalue())
        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), b"command line round trip\n" * 40)

    def test_bad_input_exits_with_error(self):
        import contextlib
        bad_file = os.path.join(self.temp_dir, "bad.hf")
        with open(bad_file, 'wb') as f:
            f.write(b"nope")

        with contextlib.redirect_stdout(io.StringIO()), \
                contextlib.redirect_stderr(io.StringIO()) as stderr:
            with self.assertRaises(SystemExit) as cm:
                main.main(['decompress', bad_file])
        self.assertEqual(cm.exception.code, 1)
        self.assertIn("Error:", stderr.getvalue())


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestBitStreams))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanTree))
    suite.addTests(loader.loadTestsFromTestCase(TestTreeHeader))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanEncoder))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffProcessor))
    suite.addTests(loader.loadTestsFromTestCase(TestFiles))
    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
