"""Light orbs: placement, collection and animation.

Orbs are static collectibles placed on walkable cells when a level is built.
Walking close to one collects it, refilling the light budget by an amount
that depends on its size.  Hover and pulse animation are computed from the
elapsed time and the orb id alone, so they can be evaluated at any moment.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from lightcrawl.rng import GameRNG
from lightcrawl.systems.light_system import is_light_contributing
from lightcrawl.world.dungeon_map import DungeonMap, grid_to_world, world_to_grid

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from lightcrawl.config import SimulationConfig

log = structlog.get_logger()

EMISSIVE_LIT = 0.5
EMISSIVE_DIMMED = 0.05


class OrbSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


@dataclass
class Orb:
    id: int
    x: float
    y: float
    z: float
    size: OrbSize
    used: bool = False

    @property
    def position(self) -> Tuple[float, float, float]:
        return self.x, self.y, self.z

    def cell(self, tile_size: float) -> Tuple[int, int]:
        return world_to_grid(self.x, tile_size), world_to_grid(self.z, tile_size)


@dataclass(frozen=True)
class CollectedOrb:
    id: int
    light_value: float


@dataclass(frozen=True)
class OrbAnimation:
    hover_y: float
    intensity: float


def light_value(size: OrbSize, config: SimulationConfig) -> float:
    return config.orb_sizes[size.value].light_value


def orb_radius(size: OrbSize, config: SimulationConfig) -> float:
    return config.orb_sizes[size.value].radius


def spawn_orbs(
    dungeon_map: DungeonMap, rng: GameRNG, config: SimulationConfig
) -> List[Orb]:
    """Scatter orbs over the floor and corridor cells of ``dungeon_map``.

    Each walkable cell independently receives an orb with probability
    ``config.orb_probability``; cells are visited in row-major order and ids
    are assigned in that order starting from zero.
    """
    sizes = list(OrbSize)
    orbs: List[Orb] = []
    for x, z in dungeon_map.walkable_cells():
        if not rng.chance(config.orb_probability):
            continue
        orbs.append(
            Orb(
                id=len(orbs),
                x=grid_to_world(x, config.tile_size),
                y=config.orb_spawn_height,
                z=grid_to_world(z, config.tile_size),
                size=rng.choice(sizes),
            )
        )
    log.info("Orbs spawned", count=len(orbs), seed=rng.initial_seed)
    return orbs


def try_collect(
    player_x: float,
    player_z: float,
    orbs: Sequence[Orb],
    config: SimulationConfig,
) -> Optional[CollectedOrb]:
    """Collect at most one live orb within reach of the player.

    Orbs are checked in id order and the first one closer than
    ``config.orb_collection_distance`` (measured on the ground plane) is
    marked used.  A used orb is never considered again.
    Height is ignored, so the reach is the same for every orb regardless of
    its spawn height or hover offset.
    """
    for orb in sorted(orbs, key=lambda o: o.id):
        if orb.used:
            continue
        if math.hypot(orb.x - player_x, orb.z - player_z) < config.orb_collection_distance:
            orb.used = True
            value = light_value(orb.size, config)
            log.debug("Orb collected", orb_id=orb.id, size=orb.size.value, value=value)
            return CollectedOrb(id=orb.id, light_value=value)
    return None


def orb_animation(orb: Orb, elapsed: float, config: SimulationConfig) -> OrbAnimation:
    return OrbAnimation(
        hover_y=orb.y
        + math.sin(elapsed * config.orb_hover_speed + orb.id * 0.5) * config.orb_hover_amount,
        intensity=config.orb_base_intensity
        + math.sin(elapsed * config.orb_pulse_speed + orb.id) * config.orb_pulse_amount,
    )


def animate_orbs(
    orbs: Iterable[Orb], elapsed: float, config: SimulationConfig
) -> Dict[int, OrbAnimation]:
    """Animation state of every live orb at ``elapsed`` seconds."""
    return {orb.id: orb_animation(orb, elapsed, config) for orb in orbs if not orb.used}


def orb_emissive(player_light_intensity: float, config: SimulationConfig) -> float:
    """Glow of orb meshes; orbs dim once the player's light is out."""
    if is_light_contributing(player_light_intensity, config):
        return EMISSIVE_LIT
    return EMISSIVE_DIMMED


def all_collected(orbs: Sequence[Orb]) -> bool:
    return bool(orbs) and all(orb.used for orb in orbs)
