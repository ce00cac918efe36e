"""Tests for crop preset persistence in flipr_cropper.presets."""

import json
from copy import deepcopy

import pytest

from flipr_cropper.config import DEFAULT_PRESETS
from flipr_cropper.presets import (
    aspect_key, get_preset, load_presets, normalize_ratio, save_presets, validate_presets,
)


def _valid_preset(**overrides) -> dict:
    preset = deepcopy(DEFAULT_PRESETS[0])
    preset.update(overrides)
    return preset


class TestRatioHelpers:

    def test_normalize(self):
        assert normalize_ratio(450, 350) == (9, 7)
        assert normalize_ratio(16, 9) == (16, 9)

    def test_aspect_key(self):
        assert aspect_key(450, 350) == "9:7"
        assert aspect_key(900, 700) == "9:7"


class TestValidation:

    def test_defaults_are_valid(self):
        assert validate_presets(DEFAULT_PRESETS) == []

    def test_not_a_list(self):
        assert validate_presets({"name": "project"}) == ["Presets data must be a list"]

    def test_missing_keys(self):
        errors = validate_presets([{"name": "project"}])
        assert len(errors) == 1
        assert "missing keys" in errors[0]

    def test_bad_values(self):
        errors = validate_presets([_valid_preset(ratio_w=0, output_h=True, format="GIF", quality=1.5)])
        joined = "\n".join(errors)
        assert "ratio_w must be a positive integer" in joined
        assert "output_h must be a positive integer" in joined
        assert "format must be one of" in joined
        assert "quality must be in (0, 1]" in joined

    def test_duplicate_names(self):
        errors = validate_presets([_valid_preset(), _valid_preset()])
        assert errors == ["Preset #2: duplicate name 'project'"]


class TestLoadSave:

    def test_first_load_writes_defaults(self, temp_config_dir):
        presets = load_presets()
        assert presets == DEFAULT_PRESETS
        raw = json.loads((temp_config_dir / "presets.json").read_text(encoding="utf-8"))
        assert raw == {"version": 1, "presets": DEFAULT_PRESETS}

    def test_round_trip(self, temp_config_dir):
        custom = [_valid_preset(name="banner", ratio_w=16, ratio_h=9, output_w=1280, output_h=720)]
        save_presets(custom)
        assert load_presets() == custom

    def test_save_rejects_invalid(self, temp_config_dir):
        with pytest.raises(ValueError, match="Invalid presets data"):
            save_presets([_valid_preset(quality=0)])
        assert not (temp_config_dir / "presets.json").exists()

    def test_corrupt_file_restores_defaults(self, temp_config_dir):
        path = temp_config_dir / "presets.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_presets() == DEFAULT_PRESETS
        assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1

    def test_missing_envelope_restores_defaults(self, temp_config_dir):
        (temp_config_dir / "presets.json").write_text(json.dumps([_valid_preset()]), encoding="utf-8")
        assert load_presets() == DEFAULT_PRESETS

    def test_invalid_presets_restore_defaults(self, temp_config_dir):
        envelope = {"version": 1, "presets": [_valid_preset(output_w=-5)]}
        (temp_config_dir / "presets.json").write_text(json.dumps(envelope), encoding="utf-8")
        assert load_presets() == DEFAULT_PRESETS

    def test_loaded_presets_are_copies(self, temp_config_dir):
        load_presets()[0]["name"] = "mutated"
        assert DEFAULT_PRESETS[0]["name"] == "project"


def test_get_preset():
    assert get_preset(DEFAULT_PRESETS, "client")["output_w"] == 450
    with pytest.raises(KeyError):
        get_preset(DEFAULT_PRESETS, "banner")
