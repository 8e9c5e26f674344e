"""
Framebuffer to PNG writer.

Builds a palette ("P" mode) image from a finished framebuffer so each digit's
color identifier is stored directly as the pixel index. Palette entry 0 is
black, which doubles as the background.
"""

from typing import Sequence, Tuple

from PIL import Image
import numpy as np

from digit_raster import PALETTE, Framebuffer


def palette_bytes(palette: Sequence[Tuple[str, Tuple[int, int, int]]] = PALETTE) -> bytes:
    """Flatten a (name, rgb) table into the r,g,b,r,g,b... form Pillow wants."""
    flat = bytearray()
    for _name, rgb in palette:
        flat.extend(rgb)
    return bytes(flat)


def framebuffer_to_image(fb: Framebuffer, palette=PALETTE) -> Image.Image:
    # Inclusive scans cover one extra row and column; only the nominal
    # image area is kept.
    pixels = np.ascontiguousarray(fb.pixels[:fb.image_height, :fb.image_width])
    image = Image.frombytes("P", (fb.image_width, fb.image_height), pixels.tobytes())
    image.putpalette(palette_bytes(palette))
    return image


def save_png(fb: Framebuffer, output_file: str, palette=PALETTE) -> Image.Image:
    """Encode the framebuffer and write it to output_file as PNG."""
    image = framebuffer_to_image(fb, palette)
    image.save(output_file, "PNG", optimize=True)
    return image
