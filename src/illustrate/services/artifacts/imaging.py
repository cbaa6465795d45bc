"""Pillow and OpenCV helpers for derived media."""

import io
import os
import tempfile

import cv2
from PIL import Image

PALETTE_SIZE = 6


def resize_png(content: bytes, scale: float) -> bytes:
    """Scale an image by ``scale`` (0 < scale <= 1) and re-encode as PNG."""
    with Image.open(io.BytesIO(content)) as img:
        width = max(1, round(img.width * scale))
        height = max(1, round(img.height * scale))
        resized = img.resize((width, height), Image.Resampling.LANCZOS)
        buffer = io.BytesIO()
        resized.save(buffer, "PNG", optimize=True)
    return buffer.getvalue()


def color_palette(content: bytes, colors: int = PALETTE_SIZE) -> list[str]:
    """Dominant colors as ``#rrggbb`` strings, most frequent first."""
    with Image.open(io.BytesIO(content)) as img:
        quantized = img.convert("RGB").quantize(colors=colors)
        palette = quantized.getpalette() or []
        counts = sorted(quantized.getcolors() or [], reverse=True)

    hex_colors = []
    for _count, index in counts:
        r, g, b = palette[index * 3 : index * 3 + 3]
        hex_colors.append(f"#{r:02x}{g:02x}{b:02x}")
    return hex_colors


def first_frame_png(video: bytes) -> bytes | None:
    """First frame of a video as PNG bytes, or None if it cannot be decoded.

    OpenCV only reads from a path, so the video goes through a temp file.
    """
    fd, path = tempfile.mkstemp(suffix=".mp4")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(video)
        capture = cv2.VideoCapture(path)
        try:
            ok, frame = capture.read()
        finally:
            capture.release()
        if not ok or frame is None:
            return None
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        buffer = io.BytesIO()
        Image.fromarray(rgb).save(buffer, "PNG")
        return buffer.getvalue()
    finally:
        os.unlink(path)
