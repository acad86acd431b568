from __future__ import annotations

import dataclasses

import pytest

from sketch_presets import (
    SketchPreset,
    SketchStyle,
    defaults,
    preset_by_name,
    presets,
    style,
    tuning,
)


def test_catalog_order_is_fixed():
    assert presets() == (
        SketchPreset.GRAPHITE_CLASSIC,
        SketchPreset.SOFT_PENCIL,
        SketchPreset.CLEAN_LINE,
        SketchPreset.COLOR_PENCIL,
        SketchPreset.VIVID_COLOR,
        SketchPreset.PASTEL_COLOR,
    )
    assert presets() == presets()


def test_every_preset_has_one_of_two_styles():
    styles = {style(preset) for preset in presets()}
    assert styles == {SketchStyle.PENCIL, SketchStyle.COLOR_PENCIL}
    assert [style(p) for p in presets()[:3]] == [SketchStyle.PENCIL] * 3
    assert [style(p) for p in presets()[3:]] == [SketchStyle.COLOR_PENCIL] * 3


@pytest.mark.parametrize("preset", list(SketchPreset))
def test_tuning_is_constant(preset):
    first = tuning(preset)
    assert tuning(preset) is first
    assert tuning(preset) == preset.tuning
    with pytest.raises(dataclasses.FrozenInstanceError):
        first.line_boost = 3.0  # type: ignore[misc]


@pytest.mark.parametrize("preset", list(SketchPreset))
def test_tuning_values_are_non_negative(preset):
    assert all(value >= 0 for value in dataclasses.astuple(tuning(preset)))


def test_graphite_classic_values():
    values = tuning(SketchPreset.GRAPHITE_CLASSIC)
    assert values.line_boost == 1.06
    assert values.tone_contrast == 1.12
    assert values.hatch_amount == 0.15
    assert defaults(SketchPreset.GRAPHITE_CLASSIC) == (0.82, 0.78)


def test_pencil_presets_carry_no_color_line_warmth():
    for preset in presets():
        if preset.style is SketchStyle.PENCIL:
            assert preset.tuning.color_line_warmth == 0
            assert preset.tuning.saturation_boost == 0
        else:
            assert preset.tuning.color_line_warmth > 0


def test_defaults_are_normalized():
    for preset in presets():
        intensity, detail = defaults(preset)
        assert 0.0 <= intensity <= 1.0
        assert 0.0 <= detail <= 1.0


def test_preset_by_name():
    assert preset_by_name("vivid_color") is SketchPreset.VIVID_COLOR
    assert preset_by_name(" Soft-Pencil ") is SketchPreset.SOFT_PENCIL
    assert preset_by_name("clean line") is SketchPreset.CLEAN_LINE
    with pytest.raises(KeyError):
        preset_by_name("charcoal")
