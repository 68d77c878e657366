"""Frame decoding and YOLO input tensor preparation."""
from __future__ import annotations

import base64
import binascii

import cv2  # type: ignore
import numpy as np

from posture_nudge.core.errors import InvalidImageError


def decode_image(data: str | bytes) -> np.ndarray:
    """Decode an encoded image (base64 string, data URL, or raw bytes) to RGB uint8."""
    if isinstance(data, str):
        data = data.strip()
        payload = data.split(",", 1)[1] if data.startswith("data:") else data
        payload = "".join(payload.split())
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidImageError("image payload is not valid base64") from exc
    else:
        raw = bytes(data)
    if not raw:
        raise InvalidImageError("image payload is empty")
    bgr = cv2.imdecode(np.frombuffer(raw, dtype=np.uint8), cv2.IMREAD_COLOR)
    if bgr is None:
        raise InvalidImageError("image payload could not be decoded")
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


def validate_rgb(image: np.ndarray) -> np.ndarray:
    if not isinstance(image, np.ndarray) or image.ndim != 3 or image.shape[2] != 3:
        shape = getattr(image, "shape", None)
        raise InvalidImageError(f"expected an HxWx3 RGB image, got shape {shape}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidImageError("image has zero width or height")
    if image.dtype != np.uint8:
        raise InvalidImageError(f"expected uint8 pixels, got {image.dtype}")
    return image


def preprocess(image: np.ndarray, input_size: int = 640) -> np.ndarray:
    """Resize to the square network input and return a ``[1, 3, S, S]`` float32 tensor in [0, 1]."""
    rgb = validate_rgb(image)
    resized = cv2.resize(rgb, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    chw = resized.transpose(2, 0, 1).astype(np.float32) / 255.0
    return np.ascontiguousarray(chw[np.newaxis, ...])
