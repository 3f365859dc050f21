# lightcrawl/config.py
"""Simulation configuration.

All tunable numbers live in one immutable :class:`SimulationConfig` record.
Defaults reproduce the shipped game; ``config/config.yaml`` mirrors them and
:func:`load_config` overlays a YAML file on top of the defaults.

The YAML file groups keys into sections.  A key ``width`` inside the
``dungeon`` section sets the ``dungeon_width`` field; top-level scalars set the
field of the same name.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, NamedTuple

import structlog
import yaml

log = structlog.get_logger()

SECTIONS = ("dungeon", "player", "light", "orb")
ORB_SIZE_NAMES = ("small", "medium", "large")
INT_FIELDS = (
    "dungeon_width",
    "dungeon_height",
    "dungeon_max_rooms",
    "dungeon_min_room_size",
    "dungeon_max_room_size",
    "player_discovery_radius",
    "minimap_view_radius",
)


class ConfigError(ValueError):
    """Raised for missing, malformed or out-of-range configuration values."""


class OrbSizeSpec(NamedTuple):
    radius: float
    light_value: float


DEFAULT_TILE_SIZE = 5.0
DEFAULT_PLAYER_HEIGHT = 1.7

DEFAULT_ORB_SIZES: Mapping[str, OrbSizeSpec] = MappingProxyType(
    {
        "small": OrbSizeSpec(radius=0.15, light_value=15.0),
        "medium": OrbSizeSpec(radius=0.25, light_value=30.0),
        "large": OrbSizeSpec(radius=0.35, light_value=50.0),
    }
)


@dataclass(frozen=True)
class SimulationConfig:
    tile_size: float = DEFAULT_TILE_SIZE
    seed: int | None = None

    # Dungeon generation
    dungeon_width: int = 30
    dungeon_height: int = 30
    dungeon_max_rooms: int = 15
    dungeon_min_room_size: int = 4
    dungeon_max_room_size: int = 8

    # Player body and controls
    player_height: float = DEFAULT_PLAYER_HEIGHT
    player_radius: float = 0.3
    player_move_speed: float = 3.5
    player_rotation_speed: float = math.pi / 3
    player_discovery_radius: int = 2

    # Light budget
    light_max_duration: float = 100.0
    light_initial_duration: float = 100.0
    light_decay_rate: float = 0.5
    light_min_intensity: float = 0.0
    light_max_intensity: float = 3.5
    light_min_distance: float = 0.0
    light_max_distance: float = 7.0 * DEFAULT_TILE_SIZE

    # Orbs
    orb_probability: float = 0.15
    orb_spawn_height: float = DEFAULT_PLAYER_HEIGHT * 0.7
    orb_collection_distance: float = 1.5
    orb_base_intensity: float = 0.8
    orb_pulse_amount: float = 0.3
    orb_pulse_speed: float = 1.5
    orb_hover_speed: float = 0.4
    orb_hover_amount: float = 0.1
    orb_sizes: Mapping[str, OrbSizeSpec] = field(default_factory=lambda: DEFAULT_ORB_SIZES)

    # Lifecycle
    game_over_delay: float = 3.0
    minimap_view_radius: int = 5
    win_when_all_orbs_collected: bool = False

    def __post_init__(self) -> None:
        sizes = {
            name: spec if isinstance(spec, OrbSizeSpec) else _parse_orb_size(name, spec)
            for name, spec in self.orb_sizes.items()
        }
        object.__setattr__(self, "orb_sizes", MappingProxyType(sizes))
        self._validate()

    def _validate(self) -> None:
        for name in INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
        if self.seed is not None and (
            isinstance(self.seed, bool) or not isinstance(self.seed, int)
        ):
            raise ConfigError(f"seed must be an integer or null, got {self.seed!r}")
        if self.tile_size <= 0:
            raise ConfigError("tile_size must be positive")
        if self.dungeon_width < 3 or self.dungeon_height < 3:
            raise ConfigError("dungeon must be at least 3x3 tiles")
        if self.dungeon_max_rooms < 0:
            raise ConfigError("dungeon_max_rooms must not be negative")
        if not 1 <= self.dungeon_min_room_size <= self.dungeon_max_room_size:
            raise ConfigError(
                "room size bounds must satisfy 1 <= min_room_size <= max_room_size"
            )
        if self.player_radius <= 0 or self.player_radius >= self.tile_size / 2:
            raise ConfigError("player_radius must be in (0, tile_size / 2)")
        if self.player_move_speed < 0 or self.player_rotation_speed < 0:
            raise ConfigError("player speeds must not be negative")
        if self.player_discovery_radius < 0 or self.minimap_view_radius < 0:
            raise ConfigError("radii must not be negative")
        if self.light_max_duration <= 0:
            raise ConfigError("light_max_duration must be positive")
        if not 0 <= self.light_initial_duration <= self.light_max_duration:
            raise ConfigError("light_initial_duration must be in [0, light_max_duration]")
        if self.light_decay_rate < 0:
            raise ConfigError("light_decay_rate must not be negative")
        if self.light_min_intensity > self.light_max_intensity:
            raise ConfigError("light_min_intensity exceeds light_max_intensity")
        if self.light_min_distance > self.light_max_distance:
            raise ConfigError("light_min_distance exceeds light_max_distance")
        if not 0.0 <= self.orb_probability <= 1.0:
            raise ConfigError("orb_probability must be in [0, 1]")
        if self.orb_collection_distance <= 0:
            raise ConfigError("orb_collection_distance must be positive")
        if set(self.orb_sizes) != set(ORB_SIZE_NAMES):
            raise ConfigError(f"orb sizes must be exactly {', '.join(ORB_SIZE_NAMES)}")
        if any(spec.radius <= 0 or spec.light_value < 0 for spec in self.orb_sizes.values()):
            raise ConfigError("orb radius must be positive and light value non-negative")
        if self.game_over_delay < 0:
            raise ConfigError("game_over_delay must not be negative")

    def with_overrides(self, **overrides: Any) -> "SimulationConfig":
        """Return a copy with ``overrides`` applied (validated again)."""
        return replace(self, **overrides)


def _parse_orb_size(name: str, raw: Any) -> OrbSizeSpec:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"orb size '{name}' must be a mapping")
    try:
        return OrbSizeSpec(
            radius=float(raw["radius"]), light_value=float(raw["light_value"])
        )
    except KeyError as e:
        raise ConfigError(f"orb size '{name}' is missing {e.args[0]!r}") from e
    except (TypeError, ValueError) as e:
        raise ConfigError(f"orb size '{name}' has a non-numeric value") from e


def _flatten(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Map the sectioned YAML layout onto flat field names."""
    known = {f.name for f in fields(SimulationConfig)}
    flat: Dict[str, Any] = {}
    for key, value in raw.items():
        if key in SECTIONS and isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                name = f"{key}_{sub_key}"
                if name not in known:
                    raise ConfigError(f"Unknown config key '{key}.{sub_key}'")
                flat[name] = sub_value
        elif key in known:
            flat[key] = value
        else:
            raise ConfigError(f"Unknown config key '{key}'")
    return flat


def config_from_dict(raw: Mapping[str, Any] | None) -> SimulationConfig:
    """Build a config from an already-parsed mapping."""
    if raw is None:
        return SimulationConfig()
    if not isinstance(raw, Mapping):
        raise ConfigError("Configuration root must be a mapping")
    try:
        return SimulationConfig(**_flatten(raw))
    except TypeError as e:
        raise ConfigError(str(e)) from e


def load_config(config_path: Path | str) -> SimulationConfig:
    """Loads the simulation configuration from a YAML file."""
    config_path = Path(config_path)
    if not config_path.is_file():
        log.error("Config file not found", path=str(config_path))
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    try:
        with config_path.open("r") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        log.error("Error parsing YAML config", path=str(config_path), error=str(e))
        raise ConfigError(f"Invalid YAML in {config_path}") from e
    if raw is None:
        log.warning("Config file is empty, using defaults", path=str(config_path))
    config = config_from_dict(raw)
    log.info("Config loaded", path=str(config_path), seed=config.seed)
    return config


__all__ = [
    "ConfigError",
    "DEFAULT_ORB_SIZES",
    "OrbSizeSpec",
    "SimulationConfig",
    "config_from_dict",
    "load_config",
]
