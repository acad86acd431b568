from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from sketch_native import DISABLE_NATIVE_ENV


def make_photo(width: int = 96, height: int = 72) -> Image.Image:
    rng = np.random.default_rng(7)
    yy, xx = np.mgrid[0:height, 0:width].astype(np.float32)
    rgb = np.stack(
        [
            xx / width,
            yy / height,
            0.5 + 0.5 * np.sin(xx / 7.0) * np.cos(yy / 9.0),
        ],
        axis=2,
    )
    disc = (xx - 40.0) ** 2 + (yy - 30.0) ** 2 < 15.0**2
    rgb[disc] = [0.9, 0.2, 0.1]
    rgb += rng.normal(0.0, 0.03, rgb.shape)
    return Image.fromarray((np.clip(rgb, 0.0, 1.0) * 255.0).astype(np.uint8))


@pytest.fixture
def photo() -> Image.Image:
    return make_photo()


@pytest.fixture
def flat_gray() -> Image.Image:
    return Image.new("RGB", (100, 100), (128, 128, 128))


@pytest.fixture
def split_image() -> Image.Image:
    pixels = np.full((100, 100, 3), 255, dtype=np.uint8)
    pixels[:, :50] = 0
    return Image.fromarray(pixels)


@pytest.fixture
def primary_only(monkeypatch):
    monkeypatch.setenv(DISABLE_NATIVE_ENV, "1")


def gray_values(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("L"), dtype=np.float32)
