"""
Command line for the Huffman compressor.
"""

import argparse
import sys

from bitio import BitInputStream
from format import PSEUDO_EOF, check_magic
from huffman import HuffmanTree
from processor import HuffProcessor


def show_info(path: str):
    with BitInputStream.open(path) as bits_in:
        check_magic(bits_in)
        root = HuffmanTree.read_header(bits_in)
        codings = HuffmanTree.make_codings(root)

    print(f"{'Symbol':>8} {'Length':>8}  Code")
    print("-" * 40)
    for value in sorted(codings):
        label = 'EOF' if value == PSEUDO_EOF else str(value)
        print(f"{label:>8} {len(codings[value]):>8}  {codings[value]}")
    print("-" * 40)
    print(f"{len(codings)} symbols, header {bits_in.bits_read} bits")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Huffman compressor with tree header',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  huffproc compress file.txt
  huffproc decompress file.txt.hf -o restored.txt
  huffproc info file.txt.hf
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command')

    compress_parser = subparsers.add_parser('compress', help='Compress files')
    compress_parser.add_argument('files', nargs='+', help='Files to compress')
    compress_parser.add_argument('-o', '--output', help='Output path (single file only)')
    compress_parser.add_argument('-d', '--debug', type=int, default=0, help='Debug level')

    decompress_parser = subparsers.add_parser('decompress', help='Decompress files')
    decompress_parser.add_argument('files', nargs='+', help='Files to decompress')
    decompress_parser.add_argument('-o', '--output', help='Output path (single file only)')
    decompress_parser.add_argument('-d', '--debug', type=int, default=0, help='Debug level')

    info_parser = subparsers.add_parser('info', help='Show the code table of a compressed file')
    info_parser.add_argument('file', help='Compressed file')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    try:
        if args.command == 'info':
            show_info(args.file)
            return

        if args.output and len(args.files) > 1:
            parser.error('--output needs exactly one input file')

        processor = HuffProcessor(debug=args.debug)
        for path in args.files:
            print(f"{args.command.capitalize()}ing {path}...", end=" ")
            if args.command == 'compress':
                stats = processor.compress_file(path, args.output)
            else:
                stats = processor.decompress_file(path, args.output)
            print(f"OK -> {stats.output_path} "
                  f"({stats.input_size} -> {stats.output_size} bytes, {stats.ratio:.1f}%)")

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
