"""
image_normalizer.py

Binarizes receipt images before OCR.
Every pixel's RGB channels become pure black or pure white depending on the
plain mean of R, G and B; alpha is left as it was.
"""

import asyncio
import base64
import binascii
import os
import sys
from io import BytesIO
from typing import Union
from urllib.parse import unquote_to_bytes

import numpy as np
from PIL import Image, ImageOps

from expense_extractor.logger import get_logger
from expense_extractor.exception import CustomException
from expense_extractor.models import NormalizedImage

logger = get_logger(__name__)

DEFAULT_THRESHOLD = 128
DEFAULT_JPEG_QUALITY = 92

# Modes whose samples exceed 8 bits; Pillow clips them on convert()
HIGH_BIT_DEPTH_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N", "F")

ImageSource = Union[str, bytes, bytearray, os.PathLike, Image.Image]


# ---------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------

def _decode_data_url(data_url: str) -> bytes:
    header, _, payload = data_url.partition(",")
    if not payload:
        raise ValueError("Data URL carries no payload")
    if ";base64" in header:
        return base64.b64decode(unquote_to_bytes(payload), validate=True)
    return unquote_to_bytes(payload)


def _open(source: ImageSource) -> Image.Image:
    if isinstance(source, Image.Image):
        return source.copy()
    if isinstance(source, (bytes, bytearray)):
        return Image.open(BytesIO(bytes(source)))
    if isinstance(source, str) and source.startswith("data:"):
        return Image.open(BytesIO(_decode_data_url(source)))
    if isinstance(source, (str, os.PathLike)):
        if not source:
            raise FileNotFoundError("Image path is empty")
        with Image.open(source) as img:
            img.load()
            return img.copy()
    raise TypeError(f"Unsupported image source type: {type(source).__name__}")


def load_image(source: ImageSource) -> Image.Image:
    """
    Decode an image from a path, raw bytes, a data URL or a PIL image.
    Pixel data is fully loaded and EXIF orientation applied, so phone photos
    come back upright.
    """
    try:
        image = _open(source)
        image.load()
        return ImageOps.exif_transpose(image)
    except (OSError, ValueError, TypeError, binascii.Error) as e:
        logger.error("Failed to load image: %s", e)
        raise CustomException(e, sys)


# ---------------------------------------------------------------------
# Binarization
# ---------------------------------------------------------------------

def to_8bit(image: Image.Image) -> Image.Image:
    """Scale 16/32-bit and float greyscale samples down to 0-255."""
    if image.mode not in HIGH_BIT_DEPTH_MODES:
        return image
    values = np.asarray(image, dtype=np.float64) / 256.0
    return Image.fromarray(np.clip(values, 0, 255).astype(np.uint8))


def binarize(image: Image.Image, threshold: int = DEFAULT_THRESHOLD) -> Image.Image:
    """Return an RGBA copy whose RGB channels are all 0 or all 255 per pixel."""
    pixels = np.array(to_8bit(image).convert("RGBA"), dtype=np.uint8)

    luminance = pixels[..., :3].astype(np.float64).mean(axis=2)
    color = np.where(luminance > threshold, 255, 0).astype(np.uint8)

    pixels[..., 0] = color
    pixels[..., 1] = color
    pixels[..., 2] = color

    return Image.fromarray(pixels)


def encode_jpeg(image: Image.Image, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    # JPEG has no alpha channel
    buffer = BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def normalize_image(
    source: ImageSource,
    threshold: int = DEFAULT_THRESHOLD,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> NormalizedImage:
    image = load_image(source)
    binary = binarize(image, threshold=threshold)
    encoded = encode_jpeg(binary, quality=quality)

    logger.info(
        "Normalized %dx%d image (threshold=%d, %d bytes encoded)",
        binary.width, binary.height, threshold, len(encoded),
    )
    return NormalizedImage(
        width=binary.width,
        height=binary.height,
        mode=binary.mode,
        image=binary,
        encoded=encoded,
    )


async def normalize_image_async(
    source: ImageSource,
    threshold: int = DEFAULT_THRESHOLD,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> NormalizedImage:
    """Same as normalize_image, without blocking the event loop."""
    return await asyncio.to_thread(normalize_image, source, threshold, quality)
