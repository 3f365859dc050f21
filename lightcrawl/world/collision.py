"""Collision checks between the player's square footprint and wall tiles.

The player is a square of half-width ``player_radius`` centered on its
continuous ``(x, z)`` position.  A position is rejected if the footprint
leaves the map or overlaps the footprint of any wall cell around it.
"""

from __future__ import annotations

import math
from typing import NamedTuple

from lightcrawl.world.dungeon_map import DungeonMap, Tile, world_to_grid

_SAMPLE_OFFSETS = (-1, 0, 1)


class MoveResult(NamedTuple):
    x: float
    z: float
    distance: float
    blocked_x: bool
    blocked_z: bool


def _overlaps_cell(
    x: float, z: float, cell_x: int, cell_z: int, player_radius: float, tile_size: float
) -> bool:
    half = tile_size / 2
    wall_min_x, wall_max_x = cell_x * tile_size - half, cell_x * tile_size + half
    wall_min_z, wall_max_z = cell_z * tile_size - half, cell_z * tile_size + half
    return (
        x + player_radius > wall_min_x
        and x - player_radius < wall_max_x
        and z + player_radius > wall_min_z
        and z - player_radius < wall_max_z
    )


def is_valid_position(
    x: float, z: float, dungeon_map: DungeonMap, player_radius: float, tile_size: float
) -> bool:
    """Return ``True`` if the player can stand at ``(x, z)``.

    The corners, edge midpoints and center of the footprint are rounded to
    grid cells.  Any sampled cell outside the map invalidates the position;
    a sampled wall cell invalidates it when the two squares overlap.
    """
    for dz in _SAMPLE_OFFSETS:
        for dx in _SAMPLE_OFFSETS:
            cell_x = world_to_grid(x + dx * player_radius, tile_size)
            cell_z = world_to_grid(z + dz * player_radius, tile_size)
            if not dungeon_map.in_bounds(cell_x, cell_z):
                return False
            if dungeon_map.tile_at(cell_x, cell_z) == Tile.WALL and _overlaps_cell(
                x, z, cell_x, cell_z, player_radius, tile_size
            ):
                return False
    return True


def resolve_movement(
    x: float,
    z: float,
    dx: float,
    dz: float,
    dungeon_map: DungeonMap,
    player_radius: float,
    tile_size: float,
) -> MoveResult:
    """Apply a displacement with wall sliding.

    The full move is tried first.  If it is blocked, the X component is tried
    from the current position, then the Z component from wherever that left
    the player, so a diagonal push into a wall keeps the free axis.
    Trying Z from the X result, rather than from the starting position,
    means the two accepted axes never combine into a blocked diagonal.
    ``distance`` is the length of the displacement actually applied.
    """
    if dx == 0 and dz == 0:
        return MoveResult(x, z, 0.0, False, False)

    if is_valid_position(x + dx, z + dz, dungeon_map, player_radius, tile_size):
        return MoveResult(x + dx, z + dz, math.hypot(dx, dz), False, False)

    new_x, new_z = x, z
    blocked_x = blocked_z = False
    if dx != 0:
        if is_valid_position(x + dx, z, dungeon_map, player_radius, tile_size):
            new_x = x + dx
        else:
            blocked_x = True
    if dz != 0:
        if is_valid_position(new_x, z + dz, dungeon_map, player_radius, tile_size):
            new_z = z + dz
        else:
            blocked_z = True
    return MoveResult(
        new_x, new_z, math.hypot(new_x - x, new_z - z), blocked_x, blocked_z
    )
