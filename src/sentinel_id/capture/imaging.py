"""
Imaging Helpers
===============

JPEG encode/decode and downscaling with OpenCV.

Design Rules:
    - This is the ONLY place in the codebase that touches pixels
    - Fails fast on corrupt images
    - Images already within the size limit are returned unchanged
"""

import logging
from typing import Tuple

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised when image bytes cannot be decoded."""
    pass


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes into a BGR matrix.

    Args:
        data: Encoded image (JPEG, PNG, ...)

    Returns:
        BGR image as np.ndarray (H, W, 3), dtype=uint8

    Raises:
        ImageDecodeError: If the bytes are not a decodable image
    """
    if not data:
        raise ImageDecodeError("Empty image data")

    nparr = np.frombuffer(data, np.uint8)
    bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

    if bgr is None:
        raise ImageDecodeError("cv2.imdecode returned None")

    if len(bgr.shape) != 3 or bgr.shape[2] != 3:
        raise ImageDecodeError(f"Invalid image shape: {bgr.shape}")

    return bgr


def encode_jpeg(image: np.ndarray, quality: int = 80) -> bytes:
    """
    Encode a BGR matrix as JPEG.

    Raises:
        ImageDecodeError: If OpenCV refuses to encode the image
    """
    ok, buffer = cv2.imencode(
        ".jpg",
        image,
        [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)],
    )
    if not ok:
        raise ImageDecodeError("cv2.imencode failed")
    return buffer.tobytes()


def resize_to_width(
    data: bytes,
    max_width: int,
    quality: int = 80,
) -> Tuple[bytes, bool]:
    """
    Downscale an image so it is at most `max_width` pixels wide.

    Aspect ratio is preserved. The result is re-encoded as JPEG only when
    a resize actually happens.

    Args:
        data: Encoded image bytes
        max_width: Maximum width in pixels
        quality: JPEG quality for the re-encoded image

    Returns:
        (image bytes, resized) where `resized` is False when the input
        was returned unchanged

    Raises:
        ImageDecodeError: If the image cannot be decoded
    """
    bgr = decode_image(data)
    height, width = bgr.shape[:2]

    if width <= max_width:
        return data, False

    scale = max_width / width
    new_size = (max_width, max(1, int(round(height * scale))))
    resized = cv2.resize(bgr, new_size, interpolation=cv2.INTER_AREA)

    logger.debug(f"Resized image {width}x{height} -> {new_size[0]}x{new_size[1]}")
    return encode_jpeg(resized, quality), True
