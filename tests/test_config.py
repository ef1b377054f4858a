"""Tests for court_director.config."""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from court_director.config import (
    CourtRegionConfig,
    DirectorConfig,
    TrackerConfig,
    ZoomConfig,
    build_config,
    dump_config,
    load_config,
)
from court_director.director import CameraDirector
from court_director.errors import ConfigurationError


class TestDefaults:
    def test_zoom_defaults(self, default_config: DirectorConfig):
        assert default_config.zoom.min_zoom == pytest.approx(1.0)
        assert default_config.zoom.max_zoom == pytest.approx(1.5)
        assert default_config.zoom.initial_zoom == pytest.approx(1.3)

    def test_pan_defaults(self, default_config: DirectorConfig):
        assert default_config.pan.dead_zone == pytest.approx(0.06)
        assert default_config.pan.min_streak == 8
        assert default_config.pan.max_speed == pytest.approx(0.006)

    def test_tracker_defaults(self, default_config: DirectorConfig):
        assert default_config.tracker.confirm_hits == 3
        assert default_config.tracker.max_misses == 15
        assert default_config.tracker.delete_after_misses == 90
        assert default_config.tracker.reid_similarity == pytest.approx(0.85)

    def test_court_defaults(self, default_config: DirectorConfig):
        assert default_config.court.grid_size == 20
        assert default_config.court.default_region == (0.05, 0.95, 0.10, 0.90)


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path):
        cfg = load_config(tmp_path / "nope.yaml")
        assert cfg == DirectorConfig()

    def test_overrides_from_yaml(self, sample_yaml: Path):
        cfg = load_config(sample_yaml)
        assert cfg.zoom.min_zoom == pytest.approx(1.1)
        assert cfg.zoom.max_zoom == pytest.approx(1.8)
        assert cfg.pan.dead_zone == pytest.approx(0.04)
        assert cfg.tracker.motion_model == "constant_acceleration"
        # untouched sections keep defaults
        assert cfg.timeout.majority_fraction == pytest.approx(0.6)

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == DirectorConfig()

    def test_non_mapping_rejected(self, tmp_path: Path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)

    def test_broken_yaml_rejected(self, tmp_path: Path):
        path = tmp_path / "broken.yaml"
        path.write_text("zoom: [1, 2\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_dump_round_trip(self, sample_yaml: Path):
        cfg = load_config(sample_yaml)
        again = build_config(yaml.safe_load(dump_config(cfg)))
        assert again == cfg


class TestValidators:
    def test_zoom_min_above_max(self):
        with pytest.raises(ValueError, match="min_zoom"):
            ZoomConfig(min_zoom=2.0, max_zoom=1.5, initial_zoom=1.5)

    def test_initial_zoom_outside_range(self):
        with pytest.raises(ValueError, match="initial_zoom"):
            ZoomConfig(initial_zoom=2.0)

    def test_unknown_motion_model(self):
        with pytest.raises(ValueError, match="motion_model"):
            TrackerConfig(motion_model="teleport")

    def test_delete_window_must_exceed_lost_window(self):
        with pytest.raises(ValueError, match="delete_after_misses"):
            TrackerConfig(max_misses=20, delete_after_misses=10)

    def test_band_order(self):
        with pytest.raises(ValueError, match="band_top"):
            CourtRegionConfig(band_top=0.8, band_bottom=0.5)

    def test_build_config_wraps_validation_error(self):
        with pytest.raises(ConfigurationError):
            build_config({"zoom": {"min_zoom": 2.0, "max_zoom": 1.5}})

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            build_config({"pan": {"dead_zone": -1.0}})

    def test_director_rejects_bad_mapping(self):
        with pytest.raises(ConfigurationError):
            CameraDirector({"zoom": {"min_zoom": 2.0, "max_zoom": 1.5}})
