# lightcrawl/world/procgen.py
"""Rooms-and-corridors dungeon generation.

Rooms are dropped at random positions and rejected if they overlap an earlier
room.  Each accepted room is linked to the previously accepted one by an
L-shaped corridor, so the level is a chain of rooms.  Rooms rejected for
overlap are simply dropped; corridors may cross other rooms but never turn
room floor into corridor.
"""

from typing import List, NamedTuple, Tuple

import numpy as np
import structlog

from lightcrawl.rng import GameRNG
from lightcrawl.world.dungeon_map import DungeonMap, Tile

log = structlog.get_logger()


class Room(NamedTuple):
    """Axis-aligned room rectangle, top-left corner plus size."""
    x: int
    y: int
    width: int
    height: int

    @property
    def center(self) -> Tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2

    def intersects(self, other: "Room") -> bool:
        """Inclusive overlap test; rooms that only share an edge also count."""
        return (
            self.x <= other.x + other.width
            and self.x + self.width >= other.x
            and self.y <= other.y + other.height
            and self.y + self.height >= other.y
        )


def _is_interior(tiles: np.ndarray, x: int, y: int) -> bool:
    height, width = tiles.shape
    return 0 < x < width - 1 and 0 < y < height - 1


def _carve_room(tiles: np.ndarray, room: Room) -> None:
    """Carve the room to floor, never touching the outer border."""
    height, width = tiles.shape
    y_start, y_end = max(1, room.y), min(height - 1, room.y + room.height)
    x_start, x_end = max(1, room.x), min(width - 1, room.x + room.width)
    if y_start < y_end and x_start < x_end:
        tiles[y_start:y_end, x_start:x_end] = Tile.FLOOR
        log.debug("Carved room", room=room)
    else:
        log.warning("Attempted to carve zero-size room", room=room)


def _carve_h_tunnel(tiles: np.ndarray, x1: int, x2: int, y: int) -> None:
    for x in range(min(x1, x2), max(x1, x2) + 1):
        if _is_interior(tiles, x, y) and tiles[y, x] == Tile.WALL:
            tiles[y, x] = Tile.CORRIDOR


def _carve_v_tunnel(tiles: np.ndarray, y1: int, y2: int, x: int) -> None:
    for y in range(min(y1, y2), max(y1, y2) + 1):
        if _is_interior(tiles, x, y) and tiles[y, x] == Tile.WALL:
            tiles[y, x] = Tile.CORRIDOR


def _connect_rooms(tiles: np.ndarray, prev_room: Room, new_room: Room, rng: GameRNG) -> None:
    """Carve an L-shaped corridor between the two room centers."""
    (px, py), (nx, ny) = prev_room.center, new_room.center
    if rng.coin_flip() == "heads":
        _carve_h_tunnel(tiles, px, nx, py)
        _carve_v_tunnel(tiles, py, ny, nx)
        bend = "horizontal_first"
    else:
        _carve_v_tunnel(tiles, py, ny, px)
        _carve_h_tunnel(tiles, px, nx, ny)
        bend = "vertical_first"
    log.debug("Connected rooms", start=(px, py), end=(nx, ny), bend=bend)


def _random_room(
    width: int, height: int, min_room_size: int, max_room_size: int, rng: GameRNG
) -> Room | None:
    room_w = rng.get_int(min_room_size, max_room_size)
    room_h = rng.get_int(min_room_size, max_room_size)
    # Top-left range keeps the room off the outer border
    max_x, max_y = width - room_w - 1, height - room_h - 1
    if max_x < 1 or max_y < 1:
        log.debug("Room does not fit inside border", w=room_w, h=room_h)
        return None
    return Room(rng.get_int(1, max_x), rng.get_int(1, max_y), room_w, room_h)


def place_rooms(
    tiles: np.ndarray,
    max_rooms: int,
    min_room_size: int,
    max_room_size: int,
    rng: GameRNG,
) -> List[Room]:
    """Place up to ``max_rooms`` rooms onto ``tiles`` and return the accepted ones."""
    height, width = tiles.shape
    rooms: List[Room] = []
    rejected = 0
    for _ in range(max_rooms):
        new_room = _random_room(width, height, min_room_size, max_room_size, rng)
        if new_room is None:
            rejected += 1
            continue
        if any(new_room.intersects(room) for room in rooms):
            rejected += 1
            continue
        _carve_room(tiles, new_room)
        if rooms:
            _connect_rooms(tiles, rooms[-1], new_room, rng)
        rooms.append(new_room)
    log.info("Room placement finished", accepted=len(rooms), rejected=rejected)
    return rooms


def generate_dungeon(
    width: int,
    height: int,
    max_rooms: int,
    min_room_size: int,
    max_room_size: int,
    rng: GameRNG,
) -> DungeonMap:
    """Generate a new level.

    The spawn cell (``DungeonMap.start``) is the center of the first accepted
    room.  If no room could be placed the center of the grid is opened up
    instead, so every level has at least one floor cell.
    """
    if width < 3 or height < 3:
        log.error("Invalid map dimensions", width=width, height=height)
        raise ValueError("Map width and height must be at least 3.")
    if max_rooms < 0:
        raise ValueError("max_rooms must not be negative.")
    if not 1 <= min_room_size <= max_room_size:
        raise ValueError("Room size bounds must satisfy 1 <= min <= max.")

    log.info(
        "Starting dungeon generation",
        width=width,
        height=height,
        max_rooms=max_rooms,
        seed=rng.initial_seed,
    )
    tiles = np.full((height, width), fill_value=Tile.WALL, dtype=np.uint8)
    rooms = place_rooms(tiles, max_rooms, min_room_size, max_room_size, rng)

    if rooms:
        start_x, start_z = rooms[0].center
    else:
        start_x, start_z = width // 2, height // 2
        log.warning("No rooms placed, opening grid center", pos=(start_x, start_z))
    tiles[start_z, start_x] = Tile.FLOOR

    dungeon_map = DungeonMap(tiles, start=(start_x, start_z))
    log.info(
        "Dungeon generation complete",
        rooms=len(rooms),
        floor=dungeon_map.count(Tile.FLOOR),
        corridor=dungeon_map.count(Tile.CORRIDOR),
        start=dungeon_map.start,
    )
    return dungeon_map
