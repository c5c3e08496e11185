"""
Decoding of base64-encoded video frames sent over HTTP.
"""

import base64
import binascii
import logging

import cv2
import numpy as np

from liptrack.services.errors import FrameDecodeError

logger = logging.getLogger(__name__)


def decode_frame(image_base64: str, max_bytes: int) -> np.ndarray:
    """
    Decode a base64 JPEG/PNG payload (optionally a data URL) into a BGR image.

    Raises:
        FrameDecodeError: If the payload is not valid base64, too large, or
            not a decodable image
    """
    if image_base64.startswith("data:"):
        _, _, image_base64 = image_base64.partition(",")

    try:
        raw = base64.b64decode(image_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FrameDecodeError(f"Invalid base64 image payload: {e}") from e

    if not raw:
        raise FrameDecodeError("Empty image payload")
    if len(raw) > max_bytes:
        raise FrameDecodeError(f"Image payload too large: {len(raw)} bytes (max {max_bytes})")

    buffer = np.frombuffer(raw, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise FrameDecodeError("Image payload could not be decoded")

    return image


def encode_frame(image: np.ndarray, quality: int = 90) -> str:
    """Encode a BGR image as base64 JPEG (used by clients and tests)."""
    ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise FrameDecodeError("Failed to encode frame")
    return base64.b64encode(buffer).decode("utf-8")
