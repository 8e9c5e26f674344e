import io

import numpy as np
import pytest

from digit_raster import (
    BACKGROUND_COLOR,
    DIGIT_COLOR_MAP,
    PALETTE,
    ByteClass,
    DigitStream,
    Histogram,
    InsufficientDataError,
    PrematureEOFError,
    UnexpectedLineBreakError,
    UnsupportedCharacterError,
    check_color_map,
    check_dimension,
    classify_byte,
    rasterize,
    required_bytes,
    validate,
)


def digits(n: int) -> bytes:
    return (b"0123456789" * (n // 10 + 1))[:n]


def test_color_map_is_a_bijection_with_black_background():
    assert len(DIGIT_COLOR_MAP) == 10
    assert len(set(DIGIT_COLOR_MAP)) == 10
    assert DIGIT_COLOR_MAP[0] == BACKGROUND_COLOR
    assert PALETTE[BACKGROUND_COLOR][1] == (0, 0, 0)
    assert len({rgb for _name, rgb in PALETTE}) == 10
    check_color_map(DIGIT_COLOR_MAP)


@pytest.mark.parametrize("bad", [(0,) * 10, tuple(range(9)), tuple(range(1, 11)), tuple(range(1, 10)) + (0,)])
def test_check_color_map_rejects_bad_maps(bad):
    with pytest.raises(ValueError):
        check_color_map(bad)


def test_classify_byte():
    assert classify_byte(ord("7")) == (ByteClass.DIGIT, 7)
    assert classify_byte(ord("\n")) == (ByteClass.LINE_BREAK, None)
    assert classify_byte(None) == (ByteClass.END_OF_STREAM, None)
    assert classify_byte(ord("A")) == (ByteClass.UNSUPPORTED, ord("A"))
    assert classify_byte(ord("\r"))[0] is ByteClass.UNSUPPORTED


def test_digit_stream_across_chunks():
    stream = DigitStream(io.BytesIO(b"123"), chunk_size=2)
    assert list(stream) == [
        (ByteClass.DIGIT, 1),
        (ByteClass.DIGIT, 2),
        (ByteClass.DIGIT, 3),
        (ByteClass.END_OF_STREAM, None),
    ]
    assert stream.consumed == 3


@pytest.mark.parametrize("value", [0, 3001, -5])
def test_check_dimension_range(value):
    with pytest.raises(ValueError):
        check_dimension(value)


def test_check_dimension_limits():
    assert check_dimension(1) == 1
    assert check_dimension(3000) == 3000


def test_validate_boundary():
    validate(4, 3, 12)
    validate(4, 3, 100)
    with pytest.raises(InsufficientDataError) as exc:
        validate(4, 3, 11)
    assert exc.value.required == 12
    assert exc.value.available == 11


def test_validate_inclusive_uses_scan_window():
    assert required_bytes(4, 3, inclusive=True) == 20
    validate(4, 3, 20, inclusive=True)
    with pytest.raises(InsufficientDataError):
        validate(4, 3, 19, inclusive=True)


def test_rasterize_fills_in_raster_order():
    fb, hist = rasterize(io.BytesIO(b"012345"), 3, 2)
    assert (fb.width, fb.height) == (3, 2)
    assert fb.pixels.tolist() == [[0, 1, 2], [3, 4, 5]]
    assert hist.counts == (1, 1, 1, 1, 1, 1, 0, 0, 0, 0)
    assert hist.total == 6


def test_rasterize_histogram_sums_to_cells_and_colors_follow_digits():
    data = b"9381" * 50
    fb, hist = rasterize(io.BytesIO(data), 10, 20)
    assert hist.total == 200
    expected = np.array([DIGIT_COLOR_MAP[b - 48] for b in data], dtype=np.uint8).reshape(20, 10)
    assert np.array_equal(fb.pixels, expected)
    assert hist.nonzero() == [(1, 50), (3, 50), (8, 50), (9, 50)]


def test_rasterize_uses_given_color_map():
    cmap = (0, 9, 8, 7, 6, 5, 4, 3, 2, 1)
    fb, _ = rasterize(io.BytesIO(b"0019"), 2, 2, color_map=cmap)
    assert fb.pixels.tolist() == [[0, 0], [9, 1]]


def test_rasterize_rejects_map_moving_zero_off_background():
    with pytest.raises(ValueError):
        rasterize(io.BytesIO(b"0000"), 2, 2, color_map=tuple(reversed(range(10))))


def test_rasterize_leaves_trailing_input_unread():
    stream = DigitStream(io.BytesIO(digits(30)))
    rasterize(stream, 4, 5)
    assert stream.consumed == 20


def test_rasterize_inclusive_scans_extra_row_and_column():
    stream = DigitStream(io.BytesIO(digits(12)))
    fb, hist = rasterize(stream, 2, 3, inclusive=True)
    assert (fb.width, fb.height) == (3, 4)
    assert (fb.image_width, fb.image_height) == (2, 3)
    assert hist.total == 12
    assert stream.consumed == 12


def test_framebuffer_is_read_only():
    fb, _ = rasterize(io.BytesIO(b"1234"), 2, 2)
    with pytest.raises(ValueError):
        fb.pixels[0, 0] = 5


@pytest.mark.parametrize("pos", [0, 1, 2, 3])
def test_line_break_aborts_and_stops_reading(pos):
    data = bytearray(digits(8))
    data[pos] = ord("\n")
    stream = DigitStream(io.BytesIO(bytes(data)))
    with pytest.raises(UnexpectedLineBreakError) as exc:
        rasterize(stream, 2, 2)
    assert stream.consumed == pos + 1
    assert exc.value.offset == pos
    assert (exc.value.x, exc.value.y) == (pos % 2, pos // 2)


def test_one_byte_short_is_premature_eof():
    stream = DigitStream(io.BytesIO(digits(11)))
    with pytest.raises(PrematureEOFError) as exc:
        rasterize(stream, 4, 3)
    assert stream.consumed == 11
    assert (exc.value.x, exc.value.y) == (3, 2)
    assert exc.value.offset == 11


def test_empty_input_is_premature_eof():
    with pytest.raises(PrematureEOFError):
        rasterize(io.BytesIO(b""), 1, 1)


@pytest.mark.parametrize("bad", [b"A", b" ", b"\r", b"\xff", b"."])
def test_unsupported_character(bad):
    data = b"12" + bad + b"4"
    stream = DigitStream(io.BytesIO(data))
    with pytest.raises(UnsupportedCharacterError) as exc:
        rasterize(stream, 2, 2)
    assert stream.consumed == 3
    assert exc.value.offset == 2
    assert exc.value.byte == bad[0]
    assert (exc.value.x, exc.value.y) == (0, 1)
    assert "Unsupported character" in str(exc.value)


def test_rasterize_is_idempotent_on_reseeked_stream():
    fp = io.BytesIO(b"31415926535897932384")
    fb1, hist1 = rasterize(fp, 5, 4)
    fp.seek(0)
    fb2, hist2 = rasterize(fp, 5, 4)
    assert np.array_equal(fb1.pixels, fb2.pixels)
    assert fb1.pixels.tobytes() == fb2.pixels.tobytes()
    assert hist1 == hist2


def test_histogram_rejects_wrong_bucket_count():
    with pytest.raises(ValueError):
        Histogram([1, 2, 3])
