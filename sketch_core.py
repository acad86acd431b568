"""numpy/OpenCV sketch pipeline and the bitmap boundary it works on."""

from __future__ import annotations

import io
import logging
import math

import cv2
import numpy as np
from PIL import Image, ImageOps

from sketch_presets import SketchStyle, SketchTuning

logger = logging.getLogger(__name__)

NOISE_SEED = 20240611

LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)
PAPER_CHANNEL_SCALE = np.array([1.0, 0.994, 0.972], dtype=np.float32)
WHITE = (255, 255, 255)


class DecodeFailure(ValueError):
    """The source cannot be interpreted as a pixel grid."""


def _clamp(value: float, low: float, high: float) -> float:
    value = float(value)
    if math.isnan(value):
        return low
    return min(max(value, low), high)


def clamp01(value: float) -> float:
    return _clamp(value, 0.0, 1.0)


# --- Bitmap boundary ---


def _flatten_alpha(rgb: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    return rgb * alpha + (1.0 - alpha)


def _as_rgb(image: Image.Image) -> Image.Image:
    if image.width <= 0 or image.height <= 0:
        raise DecodeFailure(f"Empty pixel grid: {image.width}x{image.height}")
    try:
        has_alpha = image.mode in ("RGBA", "LA", "PA") or (
            image.mode == "P" and "transparency" in image.info
        )
        if has_alpha:
            rgba = image.convert("RGBA")
            backdrop = Image.new("RGBA", rgba.size, WHITE + (255,))
            return Image.alpha_composite(backdrop, rgba).convert("RGB")
        if image.mode != "RGB":
            return image.convert("RGB")
        return image.copy()
    except (OSError, ValueError) as exc:
        raise DecodeFailure(f"Could not convert {image.mode} image to RGB: {exc}") from exc


def _array_to_image(array: np.ndarray) -> Image.Image:
    if array.size == 0:
        raise DecodeFailure("Empty pixel array")
    if array.ndim == 2:
        array = array[:, :, None]
    if array.ndim != 3 or array.shape[2] not in (1, 3, 4):
        raise DecodeFailure(f"Unsupported pixel array shape: {array.shape}")

    if array.dtype == np.uint8:
        work = array.astype(np.float32) / 255.0
    elif array.dtype == np.uint16:
        work = array.astype(np.float32) / 65535.0
    elif np.issubdtype(array.dtype, np.floating):
        work = array.astype(np.float32)
        if not np.isfinite(work).all():
            raise DecodeFailure("Pixel array contains non-finite values")
        work = np.clip(work, 0.0, 1.0)
    else:
        raise DecodeFailure(f"Unsupported pixel dtype: {array.dtype}")

    channels = work.shape[2]
    if channels == 1:
        rgb = np.repeat(work, 3, axis=2)
    elif channels == 3:
        rgb = work
    else:
        rgb = _flatten_alpha(work[:, :, :3], work[:, :, 3:4])
    return to_image(rgb)


def decode_bitmap(source: object) -> Image.Image:
    """Normalize a caller-supplied bitmap to an RGB Pillow image.

    Accepts Pillow images, numpy pixel arrays and encoded image bytes.
    Raises DecodeFailure for anything that is not a non-empty pixel grid.
    """
    if source is None:
        raise DecodeFailure("No source bitmap")
    if isinstance(source, Image.Image):
        return _as_rgb(source)
    if isinstance(source, np.ndarray):
        return _array_to_image(source)
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        if not data:
            raise DecodeFailure("Empty image buffer")
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
            image = ImageOps.exif_transpose(image)
        except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
            raise DecodeFailure(f"Could not decode image buffer: {exc}") from exc
        return _as_rgb(image)
    raise DecodeFailure(f"Unsupported bitmap type: {type(source).__name__}")


def to_float(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("RGB"), dtype=np.float32) / 255.0


def to_image(rgb: np.ndarray) -> Image.Image:
    data = (np.clip(rgb, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
    return Image.fromarray(data)


# --- Image primitives ---


def luminance(rgb: np.ndarray) -> np.ndarray:
    return rgb @ LUMA_WEIGHTS


def color_controls(
    image: np.ndarray,
    saturation: float = 1.0,
    brightness: float = 0.0,
    contrast: float = 1.0,
) -> np.ndarray:
    out = image
    if image.ndim == 3 and saturation != 1.0:
        luma = luminance(image)[:, :, None]
        out = luma + (image - luma) * saturation
    out = (out + brightness - 0.5) * contrast + 0.5
    return np.clip(out, 0.0, 1.0)


def invert(image: np.ndarray) -> np.ndarray:
    return 1.0 - image


def gamma_adjust(image: np.ndarray, power: float) -> np.ndarray:
    return np.power(np.clip(image, 0.0, 1.0), power)


def _as_float32(image: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(image, dtype=np.float32)


def gaussian_blur(image: np.ndarray, radius: float) -> np.ndarray:
    if radius <= 0:
        return image.copy()
    # reflected borders keep flat fields flat up to the edge
    return cv2.GaussianBlur(_as_float32(image), (0, 0), float(radius), borderType=cv2.BORDER_REFLECT)


def _line_kernel(radius: float, angle: float) -> np.ndarray:
    reach = int(math.ceil(radius))
    steps = np.linspace(-radius, radius, 2 * reach + 1)
    xs = np.rint(steps * math.cos(angle)).astype(np.intp) + reach
    ys = np.rint(steps * math.sin(angle)).astype(np.intp) + reach
    kernel = np.zeros((2 * reach + 1, 2 * reach + 1), dtype=np.float32)
    np.add.at(kernel, (ys, xs), 1.0)
    return kernel / kernel.sum()


def motion_blur(image: np.ndarray, radius: float, angle: float) -> np.ndarray:
    if radius <= 0:
        return image.copy()
    kernel = _line_kernel(radius, angle)
    return cv2.filter2D(_as_float32(image), -1, kernel, borderType=cv2.BORDER_REFLECT)


def color_dodge(base: np.ndarray, blend: np.ndarray) -> np.ndarray:
    denominator = 1.0 - blend
    out = np.ones_like(base)
    np.divide(base, denominator, out=out, where=denominator > 1e-6)
    return np.clip(np.where(base <= 0.0, 0.0, out), 0.0, 1.0)


def _alpha_channel(alpha: float | np.ndarray) -> float | np.ndarray:
    if isinstance(alpha, np.ndarray):
        alpha = np.clip(alpha, 0.0, 1.0)
        return alpha[:, :, None] if alpha.ndim == 2 else alpha
    return clamp01(alpha)


def multiply_composite(top: np.ndarray, alpha: float | np.ndarray, bottom: np.ndarray) -> np.ndarray:
    a = _alpha_channel(alpha)
    return np.clip(bottom * (1.0 - a + a * top), 0.0, 1.0)


def source_over(top: np.ndarray, alpha: float | np.ndarray, bottom: np.ndarray) -> np.ndarray:
    a = _alpha_channel(alpha)
    return top * a + bottom * (1.0 - a)


def blend_with_mask(top: np.ndarray, bottom: np.ndarray, mask: np.ndarray) -> np.ndarray:
    return source_over(top, mask, bottom)


def soft_light(top: np.ndarray, alpha: float | np.ndarray, bottom: np.ndarray) -> np.ndarray:
    s = np.clip(top, 0.0, 1.0)
    b = np.clip(bottom, 0.0, 1.0)
    d = np.where(b <= 0.25, ((16.0 * b - 12.0) * b + 4.0) * b, np.sqrt(b))
    blended = np.where(
        s <= 0.5,
        b - (1.0 - 2.0 * s) * b * (1.0 - b),
        b + (2.0 * s - 1.0) * (d - b),
    )
    return np.clip(source_over(blended, alpha, b), 0.0, 1.0)


def posterize(rgb: np.ndarray, levels: float) -> np.ndarray:
    steps = max(float(levels), 2.0) - 1.0
    return np.clip(np.round(rgb * steps) / steps, 0.0, 1.0)


def vibrance(rgb: np.ndarray, amount: float) -> np.ndarray:
    # muted pixels get most of the boost, saturated ones stay put
    spread = rgb.max(axis=2, keepdims=True) - rgb.min(axis=2, keepdims=True)
    luma = luminance(rgb)[:, :, None]
    gain = 1.0 + amount * (1.0 - spread)
    return np.clip(luma + (rgb - luma) * gain, 0.0, 1.0)


def noise_reduction(rgb: np.ndarray, level: float, sharpness: float) -> np.ndarray:
    smooth = gaussian_blur(rgb, 1.0)
    detail = rgb - smooth
    detail = np.sign(detail) * np.maximum(np.abs(detail) - max(level, 0.0), 0.0)
    out = smooth + detail
    out = out + max(sharpness, 0.0) * (out - gaussian_blur(out, 1.0))
    return np.clip(out, 0.0, 1.0)


def edge_intensity(image: np.ndarray, intensity: float) -> np.ndarray:
    gray = _as_float32(luminance(image) if image.ndim == 3 else image)
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3, borderType=cv2.BORDER_REFLECT)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3, borderType=cv2.BORDER_REFLECT)
    # a unit step yields a magnitude of 1 before the intensity gain
    magnitude = cv2.magnitude(gx, gy) * 0.25 * intensity
    return np.repeat(np.clip(magnitude, 0.0, 1.0)[:, :, None], 3, axis=2)


def hatched_screen(
    image: np.ndarray,
    center: tuple[float, float],
    angle: float,
    width: float,
    sharpness: float,
) -> np.ndarray:
    h, w = image.shape[:2]
    yy, xx = np.mgrid[0:h, 0:w].astype(np.float32)
    cx, cy = center
    across = (xx + 0.5 - cx) * -math.sin(angle) + (yy + 0.5 - cy) * math.cos(angle)
    screen = 0.5 + 0.5 * np.cos(2.0 * math.pi * across / max(width, 0.5))
    slope = 1.0 / max(1.0 - sharpness, 0.05)
    value = np.clip((luminance(image) - screen) * slope + 0.5, 0.0, 1.0)
    return np.repeat(value[:, :, None], 3, axis=2)


def tint_line(line: np.ndarray, warmth: float) -> np.ndarray:
    scale = np.array([1.0, 0.955 - warmth * 0.07, 0.9 - warmth * 0.16], dtype=np.float32)
    bias = np.array([warmth * 0.012, warmth * 0.008, warmth * 0.004], dtype=np.float32)
    return np.clip(line * scale + bias, 0.0, 1.0)


# --- Pipeline stages ---


def grayscale_base(rgb: np.ndarray, tuning: SketchTuning, intensity: float) -> np.ndarray:
    return color_controls(
        rgb,
        saturation=0.0,
        brightness=0.02 + tuning.highlight_lift * 0.03,
        contrast=tuning.tone_contrast + intensity * 0.3,
    )


def dodge_base(gray: np.ndarray, intensity: float) -> np.ndarray:
    blurred = gaussian_blur(invert(gray), 2.5 + intensity * 8.5)
    return color_dodge(gray, blurred)


def edge_line_art(gray: np.ndarray, detail: float, line_boost: float) -> np.ndarray:
    edges = edge_intensity(gray, (1.0 + detail * 2.2) * line_boost)
    lines = gamma_adjust(invert(edges), 0.84)
    return color_controls(lines, saturation=0.0, brightness=0.016, contrast=1.34 + detail * 0.62)


def hatch_texture(gray: np.ndarray, detail: float) -> np.ndarray:
    h, w = gray.shape[:2]
    center = (w / 2.0, h / 2.0)
    hatch_a = hatched_screen(gray, center, math.pi / 6.0, 3.2 - detail * 1.2, 0.9)
    hatch_b = hatched_screen(gray, center, -math.pi / 3.0, 4.2 - detail * 1.1, 0.82)
    return color_controls(hatch_a * hatch_b, saturation=0.0, brightness=0.15, contrast=1.32)


def lift_highlights(image: np.ndarray, gray: np.ndarray, boost: float) -> np.ndarray:
    """Blend paper white back in where the tone base is already bright."""
    mask = gamma_adjust(luminance(gray), _clamp(0.86 - boost * 0.22, 0.5, 0.95))
    mask = color_controls(mask, brightness=-0.18 + boost * 0.16, contrast=1.8 + boost * 0.7)
    mask = gaussian_blur(mask, 1.1)
    return blend_with_mask(np.ones_like(image), image, mask)


def paper_texture(shape: tuple[int, int], warmth: float, amount: float, seed: int) -> np.ndarray:
    h, w = shape
    rng = np.random.default_rng(seed)
    noise = gaussian_blur(rng.random((h, w, 4), dtype=np.float32), 1.0)
    fiber_a = motion_blur(noise, 18.0, 0.0)
    fiber_b = motion_blur(noise, 12.0, math.pi / 3.0)
    mixed = source_over(fiber_a[:, :, :3], fiber_a[:, :, 3], fiber_b[:, :, :3])
    paper = color_controls(mixed, saturation=0.0, brightness=0.92, contrast=0.2)
    bias = np.array(
        [0.003 + warmth * 0.014, 0.003 + warmth * 0.01, 0.002 + warmth * 0.008],
        dtype=np.float32,
    )
    paper = np.clip(paper * PAPER_CHANNEL_SCALE + bias, 0.0, 1.0)
    return color_controls(paper, brightness=amount)


def apply_grain(image: np.ndarray, amount: float, seed: int) -> np.ndarray:
    h, w = image.shape[:2]
    rng = np.random.default_rng(seed)
    grain = gaussian_blur(rng.random((h, w, 3), dtype=np.float32), 0.55)
    grain = color_controls(grain, saturation=0.0, brightness=-0.5, contrast=1.24)
    return soft_light(grain, _clamp(amount, 0.0, 0.05), image)


def pencil_sketch(
    rgb: np.ndarray,
    intensity: float,
    detail: float,
    tuning: SketchTuning,
    seed: int = NOISE_SEED,
) -> np.ndarray:
    gray = grayscale_base(rgb, tuning, intensity)
    base = dodge_base(gray, intensity)

    edges = edge_line_art(gray, detail, tuning.line_boost)
    hatch = hatch_texture(gray, detail)
    with_edges = multiply_composite(edges, tuning.line_opacity, base)
    with_hatch = multiply_composite(hatch, tuning.hatch_amount + intensity * 0.08, with_edges)

    lifted = lift_highlights(with_hatch, gray, tuning.white_boost + intensity * 0.1)
    paper = paper_texture(rgb.shape[:2], tuning.paper_warmth, 0.03 + intensity * 0.05, seed)
    with_paper = soft_light(paper, 1.0, lifted)
    return apply_grain(with_paper, tuning.grain + intensity * 0.01, seed + 1)


def color_pencil_sketch(
    rgb: np.ndarray,
    intensity: float,
    detail: float,
    tuning: SketchTuning,
    seed: int = NOISE_SEED,
) -> np.ndarray:
    softened = noise_reduction(rgb, 0.02 + intensity * 0.04, 0.28)

    color_base = posterize(softened, 5.0 + intensity * 3.0)
    color_base = vibrance(color_base, 0.02 + tuning.saturation_boost * 0.6)
    color_base = color_controls(
        color_base,
        saturation=0.98 + tuning.saturation_boost + intensity * 0.15,
        brightness=0.02 + tuning.highlight_lift * 0.04,
        contrast=tuning.tone_contrast + detail * 0.14,
    )

    gray = color_controls(softened, saturation=0.0, contrast=1.04)
    line_art = tint_line(edge_line_art(gray, detail, tuning.line_boost), tuning.color_line_warmth)
    sketched = multiply_composite(line_art, tuning.line_opacity, color_base)

    hatch = tint_line(hatch_texture(gray, detail), tuning.color_line_warmth * 0.85)
    hatched = multiply_composite(hatch, tuning.hatch_amount, sketched)

    lifted = lift_highlights(hatched, gray, tuning.white_boost + intensity * 0.07)
    paper = paper_texture(rgb.shape[:2], tuning.paper_warmth, 0.025 + intensity * 0.045, seed)
    with_paper = soft_light(paper, 1.0, lifted)
    return apply_grain(with_paper, tuning.grain + intensity * 0.012, seed + 1)


def render_primary(
    image: Image.Image,
    style: SketchStyle,
    intensity: float,
    detail: float,
    tuning: SketchTuning,
    seed: int = NOISE_SEED,
) -> Image.Image:
    intensity = clamp01(intensity)
    detail = clamp01(detail)
    rgb = to_float(image)
    logger.debug("primary %s render %dx%d", style.value, image.width, image.height)
    if style is SketchStyle.PENCIL:
        out = pencil_sketch(rgb, intensity, detail, tuning, seed)
    else:
        out = color_pencil_sketch(rgb, intensity, detail, tuning, seed)
    return to_image(out)
