#!/usr/bin/env python3
"""
spectra.py

Tool for visual analysis of random data. Reads a file of ASCII digits (e.g.
TRNG/PRNG output converted to base 10) and plots it as a PNG where each digit
gets its own color, so patterns the eye picks up easily become visible.

Usage:
  python spectra.py -i random-digits.txt -o output.png -x 640 -y 480

Notes:
- The input must be one continuous run of digits: no newlines, no other
  characters. It needs at least width*height bytes.
- No image is written if the input turns out to be bad.
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import BinaryIO, Tuple

from digit_raster import (
    DEFAULT_CHUNK_SIZE,
    MAX_DIMENSION,
    MIN_DIMENSION,
    DigitStream,
    Histogram,
    SpectraError,
    check_dimension,
    rasterize,
    validate,
)
from image_writer import save_png

APPNAME = "Spectra"
VERSION = "1.3"

DEFAULT_OUTPUT = "output.png"
DEFAULT_WIDTH = 640
DEFAULT_HEIGHT = 480

DESCRIPTION = (
    "Spectra is designed to read the output from a TRNG or PRNG under "
    "examination and visualize its output by plotting data as an image file. "
    "As the human mind easily picks up on visual patterns that might otherwise "
    "be difficult to detect mathematically, Spectra enables the user to make "
    "a quick evaluation of the data's true randomness. For example, it is easy "
    "for a non-random file to appear random to a tool like ENT, but the same "
    "data could appear obviously flawed when viewed through Spectra."
)


def dimension(text: str) -> int:
    """argparse type for image sizes."""
    try:
        return check_dimension(int(text))
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid dimension {text!r} (must be an integer from {MIN_DIMENSION} to {MAX_DIMENSION})"
        )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="spectra", description=DESCRIPTION)
    p.add_argument("--input", "-i", required=True, help="Path to input file of ASCII digits")
    p.add_argument("--output", "-o", default=DEFAULT_OUTPUT, help=f"Output PNG filename (default: {DEFAULT_OUTPUT})")
    p.add_argument("--xsize", "-x", type=dimension, default=DEFAULT_WIDTH, help=f"Image width in pixels (default: {DEFAULT_WIDTH})")
    p.add_argument("--ysize", "-y", type=dimension, default=DEFAULT_HEIGHT, help=f"Image height in pixels (default: {DEFAULT_HEIGHT})")
    p.add_argument(
        "--inclusive-bounds",
        action="store_true",
        help="Scan (x+1)*(y+1) digits like Spectra 1.3 did; the extra row and column are not drawn",
    )
    p.add_argument(
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help=f"Read buffer size in bytes (default: {DEFAULT_CHUNK_SIZE})",
    )
    p.add_argument("--quiet", "-q", action="store_true", help="Only print the analysis report")
    p.add_argument("--version", action="version", version=f"{APPNAME} (v{VERSION})")
    return p.parse_args(argv)


def open_input(path: str) -> Tuple[BinaryIO, int]:
    """Open the input file in binary mode and return it with its size in bytes."""
    fp = open(path, "rb")
    try:
        size = os.fstat(fp.fileno()).st_size
    except OSError:
        fp.close()
        raise
    return fp, size


def print_report(histogram: Histogram) -> None:
    print()
    print("Image Analysis")
    print("---------------------------")
    print(f"Occurrences out of {histogram.total}:")
    for digit, count in histogram.nonzero():
        print(f"Character: {digit} - {count}")
    print()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if args.chunk_size <= 0:
        print("--chunk-size must be a positive integer", file=sys.stderr)
        return 1

    def progress(msg: str, end: str = "\n") -> None:
        if not args.quiet:
            print(msg, end=end, flush=True)

    progress(f"{APPNAME} (v{VERSION}) by MS3FGX")
    progress("---------------------------")

    progress(f"Opening input file: {args.input}...", end="")
    try:
        infile, size = open_input(args.input)
    except OSError as e:
        progress("")
        print(f"Error opening input file: {e}", file=sys.stderr)
        return 1
    progress("OK")

    with infile:
        progress("Analyzing input file...", end="")
        progress(f"OK ({size} bytes)")

        try:
            validate(args.xsize, args.ysize, size, inclusive=args.inclusive_bounds)
            progress(f"Generating {args.xsize}x{args.ysize} image...", end="")
            stream = DigitStream(infile, chunk_size=args.chunk_size)
            framebuffer, histogram = rasterize(
                stream, args.xsize, args.ysize, inclusive=args.inclusive_bounds
            )
        except SpectraError as e:
            progress("")
            print("Error!", file=sys.stderr)
            print(str(e), file=sys.stderr)
            return 1
        except OSError as e:
            progress("")
            print(f"Failed to read input: {e}", file=sys.stderr)
            return 1
        progress("Done")

    progress(f"Writing output file: {args.output}...", end="")
    try:
        save_png(framebuffer, args.output)
    except OSError as e:
        progress("")
        print(f"Error writing output file: {e}", file=sys.stderr)
        return 1
    progress("OK")

    print_report(histogram)
    progress("Done.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
