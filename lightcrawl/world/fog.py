"""Fog-of-war bookkeeping.

The discovered set holds ``(x, z)`` keys of every cell the player has come
within discovery range of.  It only ever grows during a level.
"""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Tuple

import numpy as np

from lightcrawl.world.dungeon_map import TILE_TYPES, DungeonMap, Tile

TileKey = Tuple[int, int]

UNDISCOVERED = "U"
PLAYER_MARKER = "P"
ORB_MARKER = "O"


def tile_key(x: int, z: int) -> TileKey:
    return (x, z)


def discover_nearby(
    grid_x: int, grid_z: int, radius: int, discovered: AbstractSet[TileKey]
) -> List[TileKey]:
    """Keys in the ``(2 * radius + 1)`` square around the cell not yet discovered.

    ``discovered`` is not modified; the caller merges the result.
    """
    new_keys: List[TileKey] = []
    for dz in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            key = tile_key(grid_x + dx, grid_z + dz)
            if key not in discovered:
                new_keys.append(key)
    return new_keys


def minimap_view(
    dungeon_map: DungeonMap,
    player_cell: Tuple[int, int],
    view_radius: int,
    discovered: AbstractSet[TileKey],
    orb_cells: Iterable[TileKey] = (),
) -> np.ndarray:
    """Character grid of the area around the player, masked by fog of war.

    Row ``0`` is the northernmost row (lowest ``z``).  Undiscovered cells are
    ``U``; discovered cells outside the map read as walls; discovered cells
    holding a live orb are ``O``; the center is always the player.
    """
    size = view_radius * 2 + 1
    view = np.full((size, size), UNDISCOVERED, dtype="<U1")
    orbs = set(orb_cells)
    px, pz = player_cell
    for row in range(size):
        for col in range(size):
            key = tile_key(px - view_radius + col, pz - view_radius + row)
            if key not in discovered:
                continue
            if not dungeon_map.in_bounds(*key):
                view[row, col] = TILE_TYPES[Tile.WALL].glyph
            elif key in orbs:
                view[row, col] = ORB_MARKER
            else:
                view[row, col] = TILE_TYPES[dungeon_map.tile_at(*key)].glyph
    view[view_radius, view_radius] = PLAYER_MARKER
    return view
