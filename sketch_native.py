"""OpenCV-backed pencil and color pencil renderer."""

from __future__ import annotations

import logging
import math
import os

import cv2
import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

DISABLE_NATIVE_ENV = "SKETCHIFY_DISABLE_NATIVE"
MIN_BLUR_KERNEL = 3
MAX_BLUR_KERNEL = 39
BILATERAL_DIAMETER = 9
EDGE_GAIN = 2.0


def native_available() -> bool:
    value = os.environ.get(DISABLE_NATIVE_ENV, "").strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return False
    return hasattr(cv2, "bilateralFilter") and hasattr(cv2, "divide")


def _odd_kernel(size: int) -> int:
    size = min(max(int(size), MIN_BLUR_KERNEL), MAX_BLUR_KERNEL)
    return size if size % 2 == 1 else size + 1


def kernel_for_detail(detail: float) -> int:
    raw = int(math.floor(9.0 + detail * 30.0 + 0.5))
    return _odd_kernel(raw)


def sigma_for_intensity(intensity: float) -> float:
    return 18.0 + intensity * 62.0


def color_strength_for_intensity(intensity: float) -> float:
    return 0.68 + intensity * 0.22


def _to_bgr(image: Image.Image) -> np.ndarray:
    rgb = np.asarray(image.convert("RGB"), dtype=np.uint8)
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)


def _sketch_layer(gray: np.ndarray, blur_kernel: int, sigma: float) -> np.ndarray:
    sigma = max(float(sigma), 1.0)
    smoothed = cv2.bilateralFilter(gray, BILATERAL_DIAMETER, sigma, sigma)
    inverted = cv2.bitwise_not(smoothed)
    blurred = cv2.GaussianBlur(inverted, (blur_kernel, blur_kernel), 0)
    dodged = cv2.divide(smoothed, cv2.bitwise_not(blurred), scale=256)

    laplacian = cv2.Laplacian(cv2.medianBlur(smoothed, 5), cv2.CV_16S, ksize=3)
    strokes = cv2.bitwise_not(cv2.convertScaleAbs(laplacian, alpha=EDGE_GAIN))
    return cv2.multiply(dodged, strokes, scale=1.0 / 255.0)


def pencil_sketch(source: Image.Image, blur_kernel: int, sigma: float) -> Image.Image | None:
    if not native_available():
        return None
    try:
        gray = cv2.cvtColor(_to_bgr(source), cv2.COLOR_BGR2GRAY)
        sketch = _sketch_layer(gray, _odd_kernel(blur_kernel), sigma)
        return Image.fromarray(cv2.cvtColor(sketch, cv2.COLOR_GRAY2RGB))
    except (cv2.error, ValueError, MemoryError) as exc:
        logger.debug("native pencil sketch failed: %s", exc)
        return None


def color_pencil_sketch(
    source: Image.Image,
    blur_kernel: int,
    sigma: float,
    color_strength: float,
) -> Image.Image | None:
    if not native_available():
        return None
    try:
        bgr = _to_bgr(source)
        gray = cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY)
        sketch = _sketch_layer(gray, _odd_kernel(blur_kernel), sigma)

        sigma = max(float(sigma), 1.0)
        strength = float(np.clip(color_strength, 0.0, 1.0))
        color = cv2.bilateralFilter(bgr, BILATERAL_DIAMETER, sigma, sigma)
        paper = np.full_like(color, 255)
        wash = cv2.addWeighted(color, strength, paper, 1.0 - strength, 0)
        shaded = cv2.multiply(wash, cv2.cvtColor(sketch, cv2.COLOR_GRAY2BGR), scale=1.0 / 255.0)
        return Image.fromarray(cv2.cvtColor(shaded, cv2.COLOR_BGR2RGB))
    except (cv2.error, ValueError, MemoryError) as exc:
        logger.debug("native color pencil sketch failed: %s", exc)
        return None
