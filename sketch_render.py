"""Render orchestration: backend selection, input clamping and cancellation."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Sequence

from PIL import Image

import sketch_native
from sketch_core import NOISE_SEED, DecodeFailure, clamp01, decode_bitmap, render_primary
from sketch_presets import SketchPreset, SketchStyle, SketchTuning

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderResult:
    image: Image.Image | None = None
    error: DecodeFailure | None = None
    backend: str | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.image is not None


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class SketchRenderer:
    name = "base"

    def available(self) -> bool:
        raise NotImplementedError

    def render(
        self,
        image: Image.Image,
        style: SketchStyle,
        intensity: float,
        detail: float,
        tuning: SketchTuning,
    ) -> Image.Image | None:
        raise NotImplementedError


class NativeBackend(SketchRenderer):
    name = "native"

    def available(self) -> bool:
        return sketch_native.native_available()

    def render(
        self,
        image: Image.Image,
        style: SketchStyle,
        intensity: float,
        detail: float,
        tuning: SketchTuning,
    ) -> Image.Image | None:
        kernel = sketch_native.kernel_for_detail(detail)
        sigma = sketch_native.sigma_for_intensity(intensity)
        if style is SketchStyle.PENCIL:
            return sketch_native.pencil_sketch(image, kernel, sigma)
        return sketch_native.color_pencil_sketch(
            image,
            kernel,
            sigma,
            sketch_native.color_strength_for_intensity(intensity),
        )


class PurePipeline(SketchRenderer):
    name = "primary"

    def __init__(self, seed: int = NOISE_SEED) -> None:
        self.seed = seed

    def available(self) -> bool:
        return True

    def render(
        self,
        image: Image.Image,
        style: SketchStyle,
        intensity: float,
        detail: float,
        tuning: SketchTuning,
    ) -> Image.Image | None:
        return render_primary(image, style, intensity, detail, tuning, seed=self.seed)


def default_backends(seed: int = NOISE_SEED) -> tuple[SketchRenderer, ...]:
    return (NativeBackend(), PurePipeline(seed))


def render(
    source: object,
    preset: SketchPreset,
    intensity: float | None = None,
    detail: float | None = None,
    *,
    cancel: CancelToken | None = None,
    backends: Sequence[SketchRenderer] | None = None,
    seed: int = NOISE_SEED,
) -> RenderResult:
    """Render one source bitmap with a preset.

    Intensity and detail default to the preset's slider values and are
    clamped to [0, 1]. Backends are tried in order; the primary pipeline
    always runs last if none of them produced an image. A set cancel token
    discards the output.
    """
    if intensity is None:
        intensity = preset.default_intensity
    if detail is None:
        detail = preset.default_detail
    intensity = clamp01(intensity)
    detail = clamp01(detail)

    if cancel is not None and cancel.cancelled:
        return RenderResult(cancelled=True)

    try:
        image = decode_bitmap(source)
    except DecodeFailure as exc:
        logger.warning("render skipped: %s", exc)
        return RenderResult(error=exc)

    style = preset.style
    tuning = preset.tuning
    if backends is None:
        backends = default_backends(seed)

    output: Image.Image | None = None
    used: str | None = None
    for backend in backends:
        if not backend.available():
            logger.debug("%s backend unavailable", backend.name)
            continue
        output = backend.render(image, style, intensity, detail, tuning)
        if output is not None:
            used = backend.name
            break
        logger.debug("%s backend produced no image, falling back", backend.name)

    if output is None:
        fallback = PurePipeline(seed)
        output = fallback.render(image, style, intensity, detail, tuning)
        used = fallback.name

    if cancel is not None and cancel.cancelled:
        logger.debug("discarding cancelled %s render", preset.value)
        return RenderResult(cancelled=True)
    return RenderResult(image=output, backend=used)


class PreviewSession:
    """Keeps at most one live render per preview; newer submits supersede older ones."""

    def __init__(
        self,
        on_result: Callable[[RenderResult], None],
        render_fn: Callable[..., RenderResult] = render,
    ) -> None:
        self._on_result = on_result
        self._render_fn = render_fn
        self._lock = threading.RLock()
        self._token: CancelToken | None = None
        self._workers: list[threading.Thread] = []

    def submit(
        self,
        source: object,
        preset: SketchPreset,
        intensity: float | None = None,
        detail: float | None = None,
    ) -> CancelToken:
        token = CancelToken()
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self._token = token

        def worker() -> None:
            result = self._render_fn(source, preset, intensity, detail, cancel=token)
            with self._lock:
                current = self._token is token and not token.cancelled
            # on_result runs outside the lock
            if current and not result.cancelled:
                self._on_result(result)

        thread = threading.Thread(target=worker, daemon=True)
        with self._lock:
            self._workers = [t for t in self._workers if t.is_alive()]
            self._workers.append(thread)
        thread.start()
        return token

    def cancel(self) -> None:
        with self._lock:
            if self._token is not None:
                self._token.cancel()

    def wait(self, timeout: float | None = None) -> bool:
        with self._lock:
            workers = list(self._workers)
        for thread in workers:
            thread.join(timeout)
        return not any(thread.is_alive() for thread in workers)
