"""
digit_raster.py

Core of Spectra: turns a stream of ASCII digits into a framebuffer of palette
color identifiers plus a per-digit histogram.

- Digits '0'..'9' map to ten distinct palette colors (digit 0 is the black
  background color).
- Cells are filled in raster order: top row first, left to right.
- The input must be a continuous run of digits. A newline, any other byte, or
  running out of input aborts the whole scan with an exception; there is no
  partial result.

Scan bounds: by default the scan covers exactly width x height cells and
needs exactly that many bytes. Passing inclusive=True reproduces the
original tool's window of (width + 1) x (height + 1) cells, and the size
check then asks for that many bytes too.
"""

from __future__ import annotations

import enum
from typing import BinaryIO, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

MIN_DIMENSION = 1
MAX_DIMENSION = 3000

ASCII_ZERO = 0x30  # ord('0')
ASCII_NINE = 0x39  # ord('9')
ASCII_NEWLINE = 0x0A

DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1 MiB

# Palette in allocation order. Entry 0 is the image background.
PALETTE: Tuple[Tuple[str, Tuple[int, int, int]], ...] = (
    ("black", (0, 0, 0)),
    ("white", (255, 255, 255)),
    ("red", (255, 0, 0)),
    ("orange", (255, 100, 0)),
    ("yellow", (255, 255, 0)),
    ("green", (0, 255, 0)),
    ("blue", (0, 0, 255)),
    ("aqua", (0, 255, 255)),
    ("pink", (255, 0, 255)),
    ("purple", (128, 0, 128)),
)

BACKGROUND_COLOR = 0

# Index is the digit, value is the color identifier (index into PALETTE).
DIGIT_COLOR_MAP: Tuple[int, ...] = tuple(range(10))


# ----------------------------
# Errors
# ----------------------------

class SpectraError(Exception):
    """Base class for every failure the core can report."""


class InsufficientDataError(SpectraError):
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"The input file is not large enough for the given resolution "
            f"({available} bytes available, {required} needed).\n"
            "Either chose a lower resolution, or collect more sample data."
        )


class ScanError(SpectraError):
    """A bad element was found at raster position (x, y)."""

    reason = "Scan failed."

    def __init__(self, x: int, y: int, offset: int):
        self.x = x
        self.y = y
        self.offset = offset
        super().__init__(f"{self.reason} (pixel {x},{y}, byte offset {offset})")


class UnexpectedLineBreakError(ScanError):
    reason = (
        "Input file contains line breaks.\n"
        "File must be a continuous stream of ASCII numbers."
    )


class PrematureEOFError(ScanError):
    reason = "Reached end of file before generating image. Please check input file."


class UnsupportedCharacterError(ScanError):
    reason = "Unsupported character. Please check input file."

    def __init__(self, x: int, y: int, offset: int, byte: int):
        self.byte = byte
        super().__init__(x, y, offset)

    def __str__(self) -> str:
        return f"{super().__str__()}: 0x{self.byte:02x}"


# ----------------------------
# Digit stream
# ----------------------------

class ByteClass(enum.Enum):
    DIGIT = "digit"
    LINE_BREAK = "line-break"
    END_OF_STREAM = "end-of-stream"
    UNSUPPORTED = "unsupported"


def classify_byte(b: Optional[int]) -> Tuple[ByteClass, Optional[int]]:
    """Classify one input byte; None stands for end of stream.

    Returns (class, value) where value is the digit for DIGIT, the raw byte
    for UNSUPPORTED and None otherwise.
    """
    if b is None:
        return ByteClass.END_OF_STREAM, None
    if ASCII_ZERO <= b <= ASCII_NINE:
        return ByteClass.DIGIT, b - ASCII_ZERO
    if b == ASCII_NEWLINE:
        return ByteClass.LINE_BREAK, None
    return ByteClass.UNSUPPORTED, b


class DigitStream:
    """Lazy classified view over a binary file object.

    The file is read in chunks, but elements are handed out one at a time
    and `consumed` counts how many have been taken.
    """

    def __init__(self, fp: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be a positive integer")
        self._fp = fp
        self._chunk_size = chunk_size
        self._buf = b""
        self._pos = 0
        self._eof = False
        self.consumed = 0

    def next_element(self) -> Tuple[ByteClass, Optional[int]]:
        if self._pos >= len(self._buf) and not self._eof:
            self._buf = self._fp.read(self._chunk_size)
            self._pos = 0
            if not self._buf:
                self._eof = True
        if self._eof:
            return classify_byte(None)
        b = self._buf[self._pos]
        self._pos += 1
        self.consumed += 1
        return classify_byte(b)

    def __iter__(self) -> Iterator[Tuple[ByteClass, Optional[int]]]:
        while True:
            element = self.next_element()
            yield element
            if element[0] is ByteClass.END_OF_STREAM:
                return


# ----------------------------
# Histogram / framebuffer
# ----------------------------

class Histogram:
    """Occurrence count per digit 0..9."""

    def __init__(self, counts: Optional[Sequence[int]] = None):
        self._counts: List[int] = list(counts) if counts is not None else [0] * 10
        if len(self._counts) != 10:
            raise ValueError("Histogram needs exactly 10 buckets")

    def add(self, digit: int) -> None:
        self._counts[digit] += 1

    def __getitem__(self, digit: int) -> int:
        return self._counts[digit]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Histogram):
            return NotImplemented
        return self._counts == other._counts

    def __repr__(self) -> str:
        return f"Histogram({self._counts!r})"

    @property
    def counts(self) -> Tuple[int, ...]:
        return tuple(self._counts)

    @property
    def total(self) -> int:
        return sum(self._counts)

    def nonzero(self) -> List[Tuple[int, int]]:
        return [(d, c) for d, c in enumerate(self._counts) if c > 0]


class Framebuffer:
    """Finished raster of color identifiers, shape (height, width).

    image_width/image_height give the nominal image size, which is smaller
    than the scanned window only for inclusive scans.
    """

    def __init__(self, pixels: np.ndarray, image_width: int, image_height: int):
        pixels.setflags(write=False)
        self.pixels = pixels
        self.image_width = image_width
        self.image_height = image_height

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]


# ----------------------------
# Validator
# ----------------------------

def check_dimension(value: int) -> int:
    if not MIN_DIMENSION <= value <= MAX_DIMENSION:
        raise ValueError(f"dimension must be between {MIN_DIMENSION} and {MAX_DIMENSION}, got {value}")
    return value


def scan_shape(width: int, height: int, inclusive: bool = False) -> Tuple[int, int]:
    """Return (columns, rows) visited by the scan."""
    if inclusive:
        return width + 1, height + 1
    return width, height


def required_bytes(width: int, height: int, inclusive: bool = False) -> int:
    cols, rows = scan_shape(width, height, inclusive)
    return cols * rows


def validate(width: int, height: int, available_bytes: int, inclusive: bool = False) -> None:
    """Raise InsufficientDataError unless available_bytes covers the scan."""
    required = required_bytes(width, height, inclusive)
    if available_bytes < required:
        raise InsufficientDataError(required, available_bytes)


# ----------------------------
# Rasterizer
# ----------------------------

def check_color_map(color_map: Sequence[int]) -> None:
    if len(color_map) != 10:
        raise ValueError(f"color map needs 10 entries, got {len(color_map)}")
    if len(set(color_map)) != 10:
        raise ValueError("color map must give every digit a distinct color")
    if any(not 0 <= c < len(PALETTE) for c in color_map):
        raise ValueError("color map refers to a color outside the palette")
    if color_map[0] != BACKGROUND_COLOR:
        raise ValueError("digit 0 must map to the background color")


def rasterize(
    stream: Union[DigitStream, BinaryIO],
    width: int,
    height: int,
    color_map: Sequence[int] = DIGIT_COLOR_MAP,
    inclusive: bool = False,
) -> Tuple[Framebuffer, Histogram]:
    """Scan the stream into a framebuffer and histogram.

    Raises a ScanError subclass at the first bad element; nothing past it
    is consumed and no framebuffer is produced.
    """
    check_color_map(color_map)
    if not isinstance(stream, DigitStream):
        stream = DigitStream(stream)

    cols, rows = scan_shape(width, height, inclusive)
    pixels = np.zeros((rows, cols), dtype=np.uint8)
    histogram = Histogram()
    start = stream.consumed

    for y in range(rows):
        for x in range(cols):
            kind, value = stream.next_element()
            if kind is ByteClass.DIGIT:
                pixels[y, x] = color_map[value]
                histogram.add(value)
                continue
            offset = start + y * cols + x
            if kind is ByteClass.LINE_BREAK:
                raise UnexpectedLineBreakError(x, y, offset)
            elif kind is ByteClass.END_OF_STREAM:
                raise PrematureEOFError(x, y, offset)
            else:
                raise UnsupportedCharacterError(x, y, offset, value)

    return Framebuffer(pixels, width, height), histogram
