from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SketchStyle(Enum):
    PENCIL = "pencil"
    COLOR_PENCIL = "color_pencil"


@dataclass(frozen=True)
class SketchTuning:
    line_boost: float
    paper_warmth: float
    grain: float
    saturation_boost: float
    highlight_lift: float
    tone_contrast: float
    color_line_warmth: float
    white_boost: float
    line_opacity: float
    hatch_amount: float


@dataclass(frozen=True)
class PresetProfile:
    title: str
    subtitle: str
    style: SketchStyle
    default_intensity: float
    default_detail: float
    tuning: SketchTuning


# Calibrated per-preset values; these define the look of each preset.
_PRESET_PROFILES: dict[str, PresetProfile] = {
    "graphite_classic": PresetProfile(
        title="Classic Graphite",
        subtitle="Close to the store look",
        style=SketchStyle.PENCIL,
        default_intensity=0.82,
        default_detail=0.78,
        tuning=SketchTuning(
            line_boost=1.06,
            paper_warmth=0.32,
            grain=0.02,
            saturation_boost=0.0,
            highlight_lift=0.5,
            tone_contrast=1.12,
            color_line_warmth=0.0,
            white_boost=0.52,
            line_opacity=0.86,
            hatch_amount=0.15,
        ),
    ),
    "soft_pencil": PresetProfile(
        title="Soft Pencil",
        subtitle="Gentler skin tones",
        style=SketchStyle.PENCIL,
        default_intensity=0.58,
        default_detail=0.42,
        tuning=SketchTuning(
            line_boost=0.78,
            paper_warmth=0.36,
            grain=0.018,
            saturation_boost=0.0,
            highlight_lift=0.56,
            tone_contrast=1.05,
            color_line_warmth=0.0,
            white_boost=0.44,
            line_opacity=0.78,
            hatch_amount=0.1,
        ),
    ),
    "clean_line": PresetProfile(
        title="Clean Line",
        subtitle="Crisper outlines",
        style=SketchStyle.PENCIL,
        default_intensity=0.74,
        default_detail=0.9,
        tuning=SketchTuning(
            line_boost=1.46,
            paper_warmth=0.2,
            grain=0.008,
            saturation_boost=0.0,
            highlight_lift=0.44,
            tone_contrast=1.2,
            color_line_warmth=0.0,
            white_boost=0.38,
            line_opacity=1.0,
            hatch_amount=0.07,
        ),
    ),
    "color_pencil": PresetProfile(
        title="Color Pencil",
        subtitle="Natural color pencil",
        style=SketchStyle.COLOR_PENCIL,
        default_intensity=0.72,
        default_detail=0.66,
        tuning=SketchTuning(
            line_boost=0.94,
            paper_warmth=0.46,
            grain=0.016,
            saturation_boost=0.2,
            highlight_lift=0.46,
            tone_contrast=1.08,
            color_line_warmth=0.5,
            white_boost=0.42,
            line_opacity=0.82,
            hatch_amount=0.1,
        ),
    ),
    "vivid_color": PresetProfile(
        title="Vivid Color",
        subtitle="Richer color",
        style=SketchStyle.COLOR_PENCIL,
        default_intensity=0.88,
        default_detail=0.72,
        tuning=SketchTuning(
            line_boost=1.06,
            paper_warmth=0.4,
            grain=0.02,
            saturation_boost=0.38,
            highlight_lift=0.42,
            tone_contrast=1.14,
            color_line_warmth=0.45,
            white_boost=0.34,
            line_opacity=0.84,
            hatch_amount=0.12,
        ),
    ),
    "pastel_color": PresetProfile(
        title="Pastel Pencil",
        subtitle="Light wash, paper feel",
        style=SketchStyle.COLOR_PENCIL,
        default_intensity=0.55,
        default_detail=0.48,
        tuning=SketchTuning(
            line_boost=0.66,
            paper_warmth=0.58,
            grain=0.014,
            saturation_boost=0.1,
            highlight_lift=0.58,
            tone_contrast=1.02,
            color_line_warmth=0.72,
            white_boost=0.54,
            line_opacity=0.74,
            hatch_amount=0.08,
        ),
    ),
}


class SketchPreset(Enum):
    GRAPHITE_CLASSIC = "graphite_classic"
    SOFT_PENCIL = "soft_pencil"
    CLEAN_LINE = "clean_line"
    COLOR_PENCIL = "color_pencil"
    VIVID_COLOR = "vivid_color"
    PASTEL_COLOR = "pastel_color"

    @property
    def profile(self) -> PresetProfile:
        return _PRESET_PROFILES[self.value]

    @property
    def title(self) -> str:
        return self.profile.title

    @property
    def subtitle(self) -> str:
        return self.profile.subtitle

    @property
    def style(self) -> SketchStyle:
        return self.profile.style

    @property
    def default_intensity(self) -> float:
        return self.profile.default_intensity

    @property
    def default_detail(self) -> float:
        return self.profile.default_detail

    @property
    def tuning(self) -> SketchTuning:
        return self.profile.tuning


def presets() -> tuple[SketchPreset, ...]:
    return tuple(SketchPreset)


def tuning(preset: SketchPreset) -> SketchTuning:
    return preset.tuning


def style(preset: SketchPreset) -> SketchStyle:
    return preset.style


def defaults(preset: SketchPreset) -> tuple[float, float]:
    return preset.default_intensity, preset.default_detail


def preset_by_name(name: str) -> SketchPreset:
    key = name.strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return SketchPreset(key)
    except ValueError:
        raise KeyError(f"Unknown preset: {name!r}") from None
