from collections import deque

import numpy as np
import pytest

from lightcrawl.components import PlayerState
from lightcrawl.rng import GameRNG
from lightcrawl.world.dungeon_map import Tile
from lightcrawl.world.procgen import Room, generate_dungeon, place_rooms

SEEDS = range(25)


def _border_mask(height: int, width: int) -> np.ndarray:
    mask = np.zeros((height, width), dtype=bool)
    mask[0, :] = mask[-1, :] = True
    mask[:, 0] = mask[:, -1] = True
    return mask


def _placed_rooms(seed: int, width: int = 30, height: int = 30):
    tiles = np.full((height, width), Tile.WALL, dtype=np.uint8)
    rooms = place_rooms(tiles, 15, 4, 8, GameRNG(seed=seed))
    return tiles, rooms


def test_room_intersects_is_inclusive():
    room = Room(1, 1, 3, 3)
    assert room.intersects(Room(2, 2, 3, 3))
    # Sharing an edge still counts as overlapping
    assert room.intersects(Room(4, 1, 3, 3))
    assert not room.intersects(Room(5, 1, 3, 3))
    assert not room.intersects(Room(1, 5, 3, 3))


def test_room_center_rounds_down():
    assert Room(1, 1, 4, 5).center == (3, 3)
    assert Room(2, 6, 3, 3).center == (3, 7)


@pytest.mark.parametrize("seed", SEEDS)
def test_room_interiors_are_floor(seed):
    tiles, rooms = _placed_rooms(seed)
    assert rooms
    for room in rooms:
        area = tiles[room.y : room.y + room.height, room.x : room.x + room.width]
        assert np.all(area == Tile.FLOOR)


@pytest.mark.parametrize("seed", SEEDS)
def test_accepted_rooms_never_overlap(seed):
    _, rooms = _placed_rooms(seed)
    for i, first in enumerate(rooms):
        for second in rooms[i + 1 :]:
            assert not first.intersects(second)


@pytest.mark.parametrize("seed", SEEDS)
def test_corridors_never_replace_floor(seed):
    tiles, rooms = _placed_rooms(seed)
    assert np.count_nonzero(tiles == Tile.FLOOR) == sum(r.width * r.height for r in rooms)


@pytest.mark.parametrize("seed", SEEDS)
def test_generated_border_stays_solid(seed):
    dungeon_map = generate_dungeon(30, 30, 15, 4, 8, GameRNG(seed=seed))
    border = _border_mask(30, 30)
    assert np.all(dungeon_map.tiles[border] == Tile.WALL)
    assert dungeon_map.count(Tile.FLOOR) >= 1


@pytest.mark.parametrize("seed", SEEDS)
def test_start_cell_is_floor(seed):
    dungeon_map = generate_dungeon(30, 30, 15, 4, 8, GameRNG(seed=seed))
    assert dungeon_map.tile_at(*dungeon_map.start) == Tile.FLOOR


def _reachable(tiles: np.ndarray, start):
    seen = {start}
    queue = deque([start])
    while queue:
        x, y = queue.popleft()
        for nx, ny in ((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)):
            if (nx, ny) not in seen and tiles[ny, nx] != Tile.WALL:
                seen.add((nx, ny))
                queue.append((nx, ny))
    return seen


@pytest.mark.parametrize("seed", SEEDS)
def test_accepted_rooms_are_chained_by_corridors(seed):
    tiles, rooms = _placed_rooms(seed)
    reachable = _reachable(tiles, rooms[0].center)
    assert all(room.center in reachable for room in rooms)


def test_same_seed_same_dungeon():
    first = generate_dungeon(30, 30, 15, 4, 8, GameRNG(seed=1234))
    second = generate_dungeon(30, 30, 15, 4, 8, GameRNG(seed=1234))
    assert np.array_equal(first.tiles, second.tiles)
    assert first.start == second.start


def test_no_rooms_falls_back_to_center_floor():
    dungeon_map = generate_dungeon(10, 10, 0, 4, 8, GameRNG(seed=7))
    assert dungeon_map.count(Tile.FLOOR) == 1
    assert dungeon_map.count(Tile.CORRIDOR) == 0
    assert dungeon_map.tile_at(5, 5) == Tile.FLOOR
    assert dungeon_map.start == (5, 5)

    player = PlayerState.at_cell(dungeon_map.start, tile_size=5.0)
    assert dungeon_map.tile_at(*player.cell(5.0)) == Tile.FLOOR


def test_rooms_too_large_to_fit_are_skipped():
    # A 9x9 room cannot fit inside the border of a 10x10 grid
    dungeon_map = generate_dungeon(10, 10, 5, 9, 9, GameRNG(seed=3))
    assert dungeon_map.count(Tile.FLOOR) == 1
    assert dungeon_map.start == (5, 5)


@pytest.mark.parametrize(
    "args",
    [
        (2, 10, 5, 4, 8),
        (10, 0, 5, 4, 8),
        (10, 10, -1, 4, 8),
        (10, 10, 5, 6, 4),
        (10, 10, 5, 0, 4),
    ],
)
def test_invalid_arguments_raise(args):
    with pytest.raises(ValueError):
        generate_dungeon(*args, GameRNG(seed=0))


def test_generated_map_is_read_only():
    dungeon_map = generate_dungeon(20, 20, 5, 3, 5, GameRNG(seed=11))
    with pytest.raises(ValueError):
        dungeon_map.tiles[1, 1] = Tile.WALL
