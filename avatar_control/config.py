"""
Configuration management for avatar tracking.

This module holds the tuning constants of the animation pipeline and
provides configuration file loading and saving, supporting YAML and JSON
formats.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .camera import CameraModel

logger = logging.getLogger(__name__)

# Default config file locations
DEFAULT_CONFIG_PATHS = [
    Path("avatar_config.yaml"),
    Path("avatar_config.json"),
    Path.home() / ".config" / "avatar_control" / "config.yaml",
    Path.home() / ".config" / "avatar_control" / "config.json",
]


@dataclass
class TrackingConfig:
    """Configuration for the avatar tracking pipeline.

    Attributes:
        smoothing_coefficient: Per-tick lerp/slerp blend factor (0, 1]
        lean_coefficient: Chest lean per unit of lateral head offset
        emotion_threshold: Top emotion score must exceed this to be used
        blink_interval_min: Shortest gap between blinks in seconds
        blink_interval_max: Longest gap between blinks in seconds
        blink_slope: Steepness of the triangular blink pulse (1/s)
        expression_weight: Weight given to the selected expression channel
        mouth_scale: Lip-gap gain for the mouth-open weight
        mouth_offset: Lip-gap bias for the mouth-open weight
        camera_fov: Vertical field of view in degrees
        camera_aspect: Width / height
        camera_near: Near clip distance
        camera_far: Far clip distance
        camera_position: Camera world position
        camera_target: World point the camera looks at
        target_fps: Tick rate cap, None to run as fast as the detector allows
        face_timeout: Seconds without a face before easing back to neutral,
            None to hold the last target indefinitely
        seed: Seed for the blink interval generator, None for OS entropy
    """
    smoothing_coefficient: float = 0.2
    lean_coefficient: float = 1.0
    emotion_threshold: float = 0.7
    blink_interval_min: float = 3.0
    blink_interval_max: float = 7.0
    blink_slope: float = 15.0
    expression_weight: float = 0.7
    mouth_scale: float = 100.0
    mouth_offset: float = -1.0

    camera_fov: float = 30.0
    camera_aspect: float = 16.0 / 9.0
    camera_near: float = 0.1
    camera_far: float = 100.0
    camera_position: Tuple[float, float, float] = (0.0, 1.45, -0.77)
    camera_target: Tuple[float, float, float] = (0.0, 1.45, 0.0)

    target_fps: Optional[float] = 60.0
    face_timeout: Optional[float] = None
    seed: Optional[int] = None

    def __post_init__(self):
        if not (0 < self.smoothing_coefficient <= 1):
            raise ValueError(
                f"smoothing_coefficient must be in range (0, 1], got {self.smoothing_coefficient}"
            )
        if not (0 < self.blink_interval_min < self.blink_interval_max):
            raise ValueError(
                "blink interval must satisfy 0 < min < max, "
                f"got [{self.blink_interval_min}, {self.blink_interval_max})"
            )
        if self.blink_slope <= 0:
            raise ValueError(f"blink_slope must be > 0, got {self.blink_slope}")
        if not (0 <= self.expression_weight <= 1):
            raise ValueError(
                f"expression_weight must be in range [0, 1], got {self.expression_weight}"
            )
        if self.target_fps is not None and self.target_fps <= 0:
            raise ValueError(f"target_fps must be > 0, got {self.target_fps}")
        if self.face_timeout is not None and self.face_timeout < 0:
            raise ValueError(f"face_timeout must be >= 0, got {self.face_timeout}")

        self.camera_position = tuple(float(v) for v in self.camera_position)
        self.camera_target = tuple(float(v) for v in self.camera_target)

    def camera_model(self) -> CameraModel:
        """Build the read-only camera model described by this config."""
        return CameraModel(
            fov=self.camera_fov,
            aspect=self.camera_aspect,
            near=self.camera_near,
            far=self.camera_far,
            position=self.camera_position,
            target=self.camera_target,
        )


def load_config(
    config_path: Optional[Union[str, Path]] = None
) -> TrackingConfig:
    """
    Load tracking configuration from file.

    Supports YAML and JSON formats. If no path is specified, searches
    default locations.

    Args:
        config_path: Path to config file, or None to search defaults

    Returns:
        TrackingConfig instance

    Raises:
        FileNotFoundError: If the given config file does not exist
        ValueError: If config file is invalid
    """
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        path = None
        for default_path in DEFAULT_CONFIG_PATHS:
            if default_path.exists():
                path = default_path
                break

        if path is None:
            logger.info("No config file found, using defaults")
            return TrackingConfig()

    logger.info(f"Loading config from {path}")

    try:
        with open(path, 'r') as f:
            if path.suffix in ('.yaml', '.yml'):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to parse config file: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping, got {type(data).__name__}")

    return _dict_to_config(data)


def save_config(
    config: TrackingConfig,
    config_path: Union[str, Path],
    format: str = "auto"
) -> None:
    """
    Save tracking configuration to file.

    Args:
        config: Configuration to save
        config_path: Output file path
        format: "yaml", "json", or "auto" (detect from extension)
    """
    path = Path(config_path)

    if format == "auto":
        if path.suffix in ('.yaml', '.yml'):
            format = "yaml"
        else:
            format = "json"

    data = _config_to_dict(config)

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        if format == "yaml":
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)

    logger.info(f"Saved config to {path}")


def _dict_to_config(data: Dict[str, Any]) -> TrackingConfig:
    """Convert dictionary to TrackingConfig."""
    known = {f.name for f in fields(TrackingConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {unknown}")

    return TrackingConfig(**data)


def _config_to_dict(config: TrackingConfig) -> Dict[str, Any]:
    """Convert TrackingConfig to dictionary."""
    data = asdict(config)
    data['camera_position'] = list(config.camera_position)
    data['camera_target'] = list(config.camera_target)
    return data


def create_default_config(output_path: Union[str, Path]) -> None:
    """
    Create a default configuration file with comments.

    Args:
        output_path: Path to write the config file
    """
    path = Path(output_path)

    if path.suffix in ('.yaml', '.yml'):
        content = """# Avatar Tracking Configuration
# =============================

# Per-tick easing factor (0, 1]
# Lower values = smoother but slower response
smoothing_coefficient: 0.2

# Chest lean per unit of lateral head offset
lean_coefficient: 1.0

# The top emotion must score strictly above this to drive the expression
emotion_threshold: 0.7

# Seconds between blinks are drawn uniformly from [min, max)
blink_interval_min: 3.0
blink_interval_max: 7.0

# Blink pulse steepness; the pulse lasts 2 / slope seconds
blink_slope: 15.0

# Weight of the selected expression blend shape
expression_weight: 0.7

# mouth = clamp(scale * lip_gap + offset, 0, 1)
mouth_scale: 100.0
mouth_offset: -1.0

# Renderer camera, used to place the avatar from the face box
camera_fov: 30.0
camera_aspect: 1.7777777777777777
camera_near: 0.1
camera_far: 100.0
camera_position: [0.0, 1.45, -0.77]
camera_target: [0.0, 1.45, 0.0]

# Tick rate cap (null = as fast as the detector allows)
target_fps: 60.0

# Seconds without a face before easing back to neutral (null = hold forever)
face_timeout: null

# Blink timing seed (null = random)
seed: null
"""
    else:
        content = json.dumps(_config_to_dict(TrackingConfig()), indent=2)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        f.write(content)

    logger.info(f"Created default config at {path}")
