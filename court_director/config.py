"""Configuration models and loader for the camera director."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError


class ClassifierConfig(BaseModel):
    adult_height_ratio: float = Field(1.25, gt=1.0, description="Height multiple of the median that marks an adult.")
    min_samples: int = Field(5, ge=1, description="Heights required before size classification kicks in.")
    height_buffer: int = Field(100, ge=5, description="Capacity of the rolling height buffer.")
    stripe_min_transitions: int = Field(3, ge=1, description="Light/dark torso transitions that mark a referee.")
    stripe_saturation_max: float = Field(30.0, ge=0.0, le=100.0, description="Saturation percent below which a sample is grayscale.")
    stripe_brightness_split: float = Field(130.0, ge=0.0, le=255.0, description="Brightness separating light from dark samples.")
    torso_offset: float = Field(0.25, ge=0.0, lt=1.0, description="Torso start as a fraction of box height from the top.")
    torso_height: float = Field(0.40, gt=0.0, le=1.0, description="Torso height as a fraction of box height.")
    stripe_step_px: int = Field(3, ge=1, description="Pixel step between torso samples.")
    stripe_columns: int = Field(5, ge=1, description="Vertical sample lines through the torso.")
    max_aspect: float = Field(1.2, gt=0.0, description="Boxes wider than this multiple of their height are Unknown.")


class CourtRegionConfig(BaseModel):
    grid_size: int = Field(20, ge=4, le=200)
    occupancy_threshold: float = Field(0.40, gt=0.0, lt=1.0, description="Fraction of the grid maximum a cell must exceed.")
    band_top: float = Field(0.30, ge=0.0, lt=1.0, description="Rows above this are ignored (ceiling, rafters).")
    band_bottom: float = Field(0.95, gt=0.0, le=1.0, description="Rows below this are ignored (operator's feet).")
    padding: float = Field(0.05, ge=0.0, le=0.5)
    decay: float = Field(0.95, gt=0.0, le=1.0, description="Multiplicative decay applied on every recompute.")
    recompute_interval: float = Field(3.0, gt=0.0, description="Seconds between region recomputes.")
    min_width: float = Field(0.30, gt=0.0, le=1.0)
    min_height: float = Field(0.20, gt=0.0, le=1.0)
    default_region: tuple[float, float, float, float] = Field(
        (0.05, 0.95, 0.10, 0.90), description="(min_x, max_x, min_y, max_y) used before anything is learned."
    )

    @model_validator(mode="after")
    def check_band(self) -> "CourtRegionConfig":
        if self.band_top >= self.band_bottom:
            raise ValueError("band_top must be below band_bottom")
        min_x, max_x, min_y, max_y = self.default_region
        if not (0.0 <= min_x < max_x <= 1.0 and 0.0 <= min_y < max_y <= 1.0):
            raise ValueError("default_region must be a non-empty rectangle inside [0, 1]")
        return self


class TrackerConfig(BaseModel):
    confirm_hits: int = Field(3, ge=1, description="Consecutive matches before a track is confirmed.")
    max_misses: int = Field(15, ge=1, description="Consecutive misses before a confirmed track is lost.")
    delete_after_misses: int = Field(90, ge=2, description="Consecutive misses before a lost track is deleted.")
    reid_similarity: float = Field(0.85, ge=0.0, le=1.0, description="Appearance similarity needed to revive a lost track.")
    reid_max_distance: float = Field(0.25, gt=0.0, description="Distance bound between prediction and detection on revival.")
    max_cost: float = Field(0.7, gt=0.0, description="Association cost ceiling.")
    gate_distance: float = Field(0.2, gt=0.0, description="Distance normalising the spatial part of the cost.")
    appearance_weight: float = Field(0.3, ge=0.0, le=1.0)
    appearance_alpha: float = Field(0.2, ge=0.0, le=1.0, description="EMA weight of a new signature.")
    label_mismatch_cost: float = Field(0.2, ge=0.0, description="Added to the cost when track and detection labels disagree.")
    reliability_gain: float = Field(0.2, gt=0.0, le=1.0)
    occlusion_gain: float = Field(0.2, ge=0.0, le=1.0)
    occlusion_recovery: float = Field(0.3, ge=0.0, le=1.0)
    motion_model: str = Field("constant_velocity", description="'constant_velocity' or 'constant_acceleration'.")
    region_margin: float = Field(0.1, ge=0.0, le=0.5, description="Slack around the court region when filtering detections.")
    region_fallback: float = Field(
        2.0, gt=0.0, description="Seconds without confirmed tracks before the default region gates detections."
    )
    min_confidence: float = Field(0.1, ge=0.0, le=1.0)
    max_tracks: int = Field(40, ge=1)

    @field_validator("motion_model")
    def validate_motion_model(cls, value: str) -> str:
        value = value.lower()
        if value not in {"constant_velocity", "constant_acceleration"}:
            raise ValueError("motion_model must be 'constant_velocity' or 'constant_acceleration'")
        return value

    @model_validator(mode="after")
    def check_windows(self) -> "TrackerConfig":
        if self.delete_after_misses <= self.max_misses:
            raise ValueError("delete_after_misses must exceed max_misses")
        return self


class ActionCenterConfig(BaseModel):
    proximity_gain: float = Field(1.5, ge=0.0)
    proximity_floor: float = Field(0.1, gt=0.0, le=1.0)
    momentum_gain: float = Field(3.0, ge=0.0, description="Weight boost per unit of speed (normalized units per second).")
    referee_weight: float = Field(0.3, ge=0.0, le=1.0)
    ball_weight: float = Field(0.3, ge=0.0, le=1.0, description="Share of the ball in the ball/player blend.")
    ball_min_confidence: float = Field(0.4, ge=0.0, le=1.0)
    ball_only_confidence: float = Field(0.2, ge=0.0, le=1.0)


class PanConfig(BaseModel):
    smoothing: float = Field(0.008, gt=0.0, le=1.0)
    damping: float = Field(0.75, gt=0.0, lt=1.0)
    dead_zone: float = Field(0.06, ge=0.0, le=0.5)
    max_speed: float = Field(0.006, gt=0.0, description="Maximum pan per reference frame.")
    min_streak: int = Field(8, ge=1, description="Confident updates required before a new target is taken.")
    streak_confidence: float = Field(0.3, ge=0.0, le=1.0)
    timeout_scale: float = Field(0.3, ge=0.0, le=1.0)
    position_min: float = Field(0.1, ge=0.0, lt=0.5)
    position_max: float = Field(0.9, gt=0.5, le=1.0)
    reference_fps: float = Field(30.0, gt=0.0, description="Frame rate the per-frame coefficients are tuned for.")


class ZoomConfig(BaseModel):
    min_zoom: float = Field(1.0, gt=0.0)
    max_zoom: float = Field(1.5, gt=0.0)
    initial_zoom: float = Field(1.3, gt=0.0)
    smoothing: float = Field(0.005, gt=0.0, le=1.0)
    wide_spread: float = Field(0.15, gt=0.0)
    tight_spread: float = Field(0.05, ge=0.0)
    ball_confidence: float = Field(0.3, ge=0.0, le=1.0)
    wide_zoom: float = Field(1.2, gt=0.0)
    default_zoom: float = Field(1.3, gt=0.0)
    ball_zoom: float = Field(1.4, gt=0.0)
    tight_zoom: float = Field(1.5, gt=0.0)
    recovery_zoom_out: float = Field(0.1, ge=0.0, description="Zoom subtracted while the primary track is lost.")

    @model_validator(mode="after")
    def check_range(self) -> "ZoomConfig":
        if self.min_zoom > self.max_zoom:
            raise ValueError(f"min_zoom ({self.min_zoom}) must not exceed max_zoom ({self.max_zoom})")
        if not self.min_zoom <= self.initial_zoom <= self.max_zoom:
            raise ValueError("initial_zoom must lie within [min_zoom, max_zoom]")
        if self.tight_spread >= self.wide_spread:
            raise ValueError("tight_spread must be smaller than wide_spread")
        return self


class TimeoutConfig(BaseModel):
    edge_band: float = Field(0.15, gt=0.0, lt=0.5, description="Outer fraction of frame width treated as sideline.")
    majority_fraction: float = Field(0.6, gt=0.0, lt=1.0)
    min_players: int = Field(3, ge=1)


class BallConfig(BaseModel):
    enabled: bool = Field(True, description="Run the color detector when a frame is supplied without a ball signal.")
    grid_size: int = Field(28, ge=4)
    min_cells: int = Field(2, ge=1)
    max_cells: int = Field(12, ge=1)
    ignore_top: float = Field(0.25, ge=0.0, lt=1.0, description="Top band rejected (hoop rim).")
    edge_margin: float = Field(0.05, ge=0.0, lt=0.5)
    min_confidence: float = Field(0.2, ge=0.0, le=1.0)
    hue_min: float = Field(5.0, ge=0.0, le=360.0, description="Degrees.")
    hue_max: float = Field(25.0, ge=0.0, le=360.0, description="Degrees.")
    sat_min: float = Field(0.4, ge=0.0, le=1.0)
    sat_max: float = Field(1.0, ge=0.0, le=1.0)
    val_min: float = Field(0.3, ge=0.0, le=1.0)
    val_max: float = Field(1.0, ge=0.0, le=1.0)
    max_misses: int = Field(10, ge=0)

    @model_validator(mode="after")
    def check_ranges(self) -> "BallConfig":
        if self.min_cells > self.max_cells:
            raise ValueError("min_cells must not exceed max_cells")
        if self.hue_min > self.hue_max or self.sat_min > self.sat_max or self.val_min > self.val_max:
            raise ValueError("ball HSV thresholds must be ordered min <= max")
        return self


class LeadConfig(BaseModel):
    enabled: bool = Field(True)
    window: float = Field(0.5, gt=0.0, description="Seconds of focal history used for the fit.")
    horizon: float = Field(0.4, ge=0.0, description="Seconds to extrapolate ahead.")
    activity_samples: int = Field(30, ge=1)
    high_activity_speed: float = Field(0.05, gt=0.0)
    proximity_damping: bool = Field(True)


class WorkerConfig(BaseModel):
    queue_size: int = Field(2, ge=1)


class DirectorConfig(BaseModel):
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    court: CourtRegionConfig = Field(default_factory=CourtRegionConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    action: ActionCenterConfig = Field(default_factory=ActionCenterConfig)
    pan: PanConfig = Field(default_factory=PanConfig)
    zoom: ZoomConfig = Field(default_factory=ZoomConfig)
    timeout: TimeoutConfig = Field(default_factory=TimeoutConfig)
    ball: BallConfig = Field(default_factory=BallConfig)
    lead: LeadConfig = Field(default_factory=LeadConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)


def build_config(data: Optional[Mapping[str, Any]] = None) -> DirectorConfig:
    """Validate a mapping into a :class:`DirectorConfig`."""

    try:
        return DirectorConfig.model_validate(dict(data or {}))
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


def load_config(path: Path | str) -> DirectorConfig:
    """Load configuration from YAML, falling back to defaults when missing."""

    cfg_path = Path(path)
    if not cfg_path.exists():
        return DirectorConfig()
    try:
        data = yaml.safe_load(cfg_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"{cfg_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{cfg_path}: top level must be a mapping")
    return build_config(data)


def dump_config(config: DirectorConfig) -> str:
    return yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False)
