# lightcrawl/world/dungeon_map.py
from enum import IntEnum
from typing import Final, Iterator, NamedTuple, Tuple

import math
import numpy as np
import structlog

log = structlog.get_logger()


class Tile(IntEnum):
    FLOOR = 0
    WALL = 1
    CORRIDOR = 2


class TileType(NamedTuple):
    walkable: bool
    glyph: str


TILE_TYPES: Final[dict[Tile, TileType]] = {
    Tile.FLOOR: TileType(walkable=True, glyph="."),
    Tile.WALL: TileType(walkable=False, glyph="#"),
    Tile.CORRIDOR: TileType(walkable=True, glyph=","),
}

GLYPH_TO_TILE: Final[dict[str, Tile]] = {t.glyph: tile for tile, t in TILE_TYPES.items()}


def world_to_grid(coord: float, tile_size: float) -> int:
    """Round a continuous world coordinate to the index of its grid cell.

    Cell ``n`` covers ``[n * tile_size - tile_size / 2, n * tile_size + tile_size / 2)``.
    """
    return math.floor(coord / tile_size + 0.5)


def grid_to_world(index: int, tile_size: float) -> float:
    """World coordinate of the center of cell ``index``."""
    return index * tile_size


class DungeonMap:
    """An immutable ``height x width`` grid of :class:`Tile` values.

    Tiles are indexed ``tiles[z, x]``.  The array is made read-only on
    construction; a new level gets a new map instead of edits to this one.
    ``start`` is the spawn cell chosen by the generator as ``(x, z)``.
    """

    def __init__(self, tiles: np.ndarray, start: Tuple[int, int] | None = None):
        if tiles.ndim != 2 or tiles.shape[0] <= 0 or tiles.shape[1] <= 0:
            log.error("Invalid map array", shape=tiles.shape)
            raise ValueError("Map tiles must be a non-empty 2D array.")
        self._tiles = np.array(tiles, dtype=np.uint8, order="C", copy=True)
        self._tiles.flags.writeable = False
        self._height, self._width = self._tiles.shape
        if start is None:
            start = self._first_walkable()
        self.start: Tuple[int, int] = start
        log.debug("DungeonMap created", width=self._width, height=self._height, start=start)

    @classmethod
    def from_strings(cls, rows: list[str], start: Tuple[int, int] | None = None) -> "DungeonMap":
        """Build a map from rows of tile glyphs (``#``, ``.``, ``,``)."""
        if not rows or any(len(row) != len(rows[0]) for row in rows):
            raise ValueError("All rows must have the same, non-zero length.")
        try:
            tiles = np.array(
                [[GLYPH_TO_TILE[ch] for ch in row] for row in rows], dtype=np.uint8
            )
        except KeyError as e:
            raise ValueError(f"Unknown tile glyph {e.args[0]!r}") from e
        return cls(tiles, start)

    @property
    def tiles(self) -> np.ndarray:
        return self._tiles

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def in_bounds(self, x: int, z: int) -> bool:
        """Checks if the given coordinates are within the map boundaries."""
        return 0 <= x < self._width and 0 <= z < self._height

    def tile_at(self, x: int, z: int) -> Tile:
        """Tile at ``(x, z)``; anything outside the map reads as a wall."""
        if not self.in_bounds(x, z):
            return Tile.WALL
        return Tile(int(self._tiles[z, x]))

    def is_walkable(self, x: int, z: int) -> bool:
        return TILE_TYPES[self.tile_at(x, z)].walkable

    def walkable_cells(self) -> Iterator[Tuple[int, int]]:
        """Yield ``(x, z)`` of every walkable cell in row-major order."""
        mask = np.isin(self._tiles, [Tile.FLOOR, Tile.CORRIDOR])
        for z, x in np.argwhere(mask):
            yield int(x), int(z)

    def count(self, tile: Tile) -> int:
        return int(np.count_nonzero(self._tiles == tile))

    def _first_walkable(self) -> Tuple[int, int]:
        for cell in self.walkable_cells():
            return cell
        return self._width // 2, self._height // 2

    def render_ascii(self, marker: Tuple[int, int] | None = None) -> str:
        """Text rendering of the whole map; ``marker`` is drawn as ``@``."""
        lines = []
        for z in range(self._height):
            row = []
            for x in range(self._width):
                if marker is not None and (x, z) == marker:
                    row.append("@")
                else:
                    row.append(TILE_TYPES[Tile(int(self._tiles[z, x]))].glyph)
            lines.append("".join(row))
        return "\n".join(lines)
