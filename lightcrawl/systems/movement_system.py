"""Player movement from the pressed-key set.

``w``/``s`` move along the facing direction, ``a``/``d`` strafe and the arrow
keys turn.  Everything scales with the frame ``delta`` so the result does not
depend on frame rate.  The proposed displacement goes through
:func:`lightcrawl.world.collision.resolve_movement`, which decides how much
of it is actually applied.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import TYPE_CHECKING, AbstractSet, NamedTuple, Tuple

from lightcrawl.components import PlayerState
from lightcrawl.world.collision import MoveResult, resolve_movement

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from lightcrawl.config import SimulationConfig
    from lightcrawl.world.dungeon_map import DungeonMap

KEY_FORWARD = "w"
KEY_BACKWARD = "s"
KEY_STRAFE_LEFT = "a"
KEY_STRAFE_RIGHT = "d"
KEY_TURN_LEFT = "arrowleft"
KEY_TURN_RIGHT = "arrowright"
KEY_START = "enter"
KEY_QUIT = "escape"

RECOGNIZED_KEYS = frozenset(
    {
        KEY_FORWARD,
        KEY_BACKWARD,
        KEY_STRAFE_LEFT,
        KEY_STRAFE_RIGHT,
        KEY_TURN_LEFT,
        KEY_TURN_RIGHT,
        KEY_START,
        KEY_QUIT,
    }
)


class PlayerUpdate(NamedTuple):
    player: PlayerState
    move: MoveResult


def facing_vectors(rotation: float) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """Unit forward and right vectors on the ``(x, z)`` plane.

    At rotation ``0`` the player faces negative ``z``; positive rotation
    turns left.
    """
    forward = (-math.sin(rotation), -math.cos(rotation))
    right = (math.cos(rotation), -math.sin(rotation))
    return forward, right


def turn(rotation: float, keys: AbstractSet[str], delta: float, speed: float) -> float:
    step = speed * delta
    if KEY_TURN_LEFT in keys:
        rotation += step
    if KEY_TURN_RIGHT in keys:
        rotation -= step
    return rotation


def proposed_displacement(
    rotation: float, keys: AbstractSet[str], delta: float, speed: float
) -> Tuple[float, float]:
    """Displacement requested by the movement keys for one frame.

    Opposing keys cancel out and diagonal input is normalised, so the
    player never moves faster than ``speed``.
    """
    forward_axis = (KEY_FORWARD in keys) - (KEY_BACKWARD in keys)
    strafe_axis = (KEY_STRAFE_RIGHT in keys) - (KEY_STRAFE_LEFT in keys)
    if forward_axis == 0 and strafe_axis == 0:
        return 0.0, 0.0
    (fx, fz), (rx, rz) = facing_vectors(rotation)
    dx = fx * forward_axis + rx * strafe_axis
    dz = fz * forward_axis + rz * strafe_axis
    length = math.hypot(dx, dz)
    step = speed * delta
    return dx / length * step, dz / length * step


def update_player(
    player: PlayerState,
    keys: AbstractSet[str],
    delta: float,
    dungeon_map: DungeonMap,
    config: SimulationConfig,
) -> PlayerUpdate:
    """Move and turn the player for one frame.

    Movement uses the facing at the start of the frame; the turn is applied
    afterwards.  ``move.distance`` is the committed distance, zero on any
    axis that was blocked by a wall.
    """
    dx, dz = proposed_displacement(player.rotation, keys, delta, config.player_move_speed)
    move = resolve_movement(
        player.x, player.z, dx, dz, dungeon_map, config.player_radius, config.tile_size
    )
    rotation = turn(player.rotation, keys, delta, config.player_rotation_speed)
    return PlayerUpdate(replace(player, x=move.x, z=move.z, rotation=rotation), move)
