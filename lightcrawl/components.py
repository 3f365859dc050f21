from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Tuple

from lightcrawl.world.dungeon_map import grid_to_world, world_to_grid


class Position(NamedTuple):
    x: float
    z: float


@dataclass(frozen=True)
class PlayerState:
    """Continuous player position on the ground plane plus facing angle.

    ``rotation`` is in radians around the vertical axis and is left unbounded;
    it is only ever used through ``sin``/``cos``.
    """

    x: float
    z: float
    rotation: float = 0.0

    @classmethod
    def at_cell(cls, cell: Tuple[int, int], tile_size: float) -> "PlayerState":
        return cls(grid_to_world(cell[0], tile_size), grid_to_world(cell[1], tile_size))

    @property
    def position(self) -> Position:
        return Position(self.x, self.z)

    def cell(self, tile_size: float) -> Tuple[int, int]:
        return world_to_grid(self.x, tile_size), world_to_grid(self.z, tile_size)
