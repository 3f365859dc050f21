"""Light budget rules.

The player's light is a scalar budget in ``[0, light_max_duration]``.  Moving
burns it, collecting orbs refills it, and the visible light (intensity and
reach) follows the budget through an ease-in curve, so the light holds up for
a while and then collapses quickly near the end.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from lightcrawl.config import SimulationConfig

EASING_EXPONENT = 1.5


@dataclass(frozen=True)
class LightProperties:
    intensity: float
    distance: float
    ratio: float


def clamp_light(duration: float, max_duration: float) -> float:
    return max(0.0, min(max_duration, duration))


def decay_light(
    duration: float, distance_moved: float, decay_rate: float, max_duration: float
) -> float:
    """Budget left after moving ``distance_moved`` world units."""
    return clamp_light(duration - distance_moved * decay_rate, max_duration)


def replenish_light(duration: float, light_value: float, max_duration: float) -> float:
    """Budget after collecting an orb worth ``light_value``."""
    return clamp_light(duration + light_value, max_duration)


def _lerp(start: float, end: float, t: float) -> float:
    return start + (end - start) * t


def calculate_light_properties(
    duration: float, config: SimulationConfig
) -> LightProperties:
    ratio = clamp_light(duration, config.light_max_duration) / config.light_max_duration
    eased = ratio**EASING_EXPONENT
    return LightProperties(
        intensity=_lerp(config.light_min_intensity, config.light_max_intensity, eased),
        distance=_lerp(config.light_min_distance, config.light_max_distance, eased),
        ratio=ratio,
    )


def is_light_contributing(intensity: float, config: SimulationConfig) -> bool:
    """Whether the player's light currently reveals anything.

    At the intensity floor orbs are dimmed regardless of distance.
    """
    return intensity > config.light_min_intensity


def is_depleted(duration: float) -> bool:
    return duration <= 0.0
