# lightcrawl/main_loop.py
"""Per-frame simulation loop.

:class:`Simulation` is the single gateway to the game state.  A frame
scheduler owned by the rendering side calls :meth:`Simulation.tick` once per
frame with the elapsed time; the input side reports key changes through
:meth:`Simulation.set_key`, possibly from another thread.  Every tick returns
an immutable :class:`Snapshot` for the renderer to read.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Protocol, Self, Tuple

import structlog

from lightcrawl.config import SimulationConfig
from lightcrawl.events import GameEvent
from lightcrawl.game_state import GameState, Level, Phase
from lightcrawl.systems.light_system import (
    LightProperties,
    calculate_light_properties,
    is_light_contributing,
)
from lightcrawl.systems.movement_system import (
    KEY_QUIT,
    KEY_START,
    RECOGNIZED_KEYS,
    update_player,
)
from lightcrawl.systems.orb_system import (
    Orb,
    OrbSize,
    all_collected,
    animate_orbs,
    orb_emissive,
    orb_radius,
    try_collect,
)
from lightcrawl.world.dungeon_map import DungeonMap
from lightcrawl.world.fog import TileKey

log = structlog.get_logger()

TickCallback = Callable[[float], object]


class FrameScheduler(Protocol):
    def register(self, callback: TickCallback) -> int: ...

    def unregister(self, handle: int) -> None: ...


class InputState:
    """Pressed/released flags for the recognised keys.

    Writes may come from an input thread; the simulation reads one consistent
    copy per tick.
    """

    def __init__(self) -> None:
        self._pressed: set[str] = set()
        self._lock = threading.Lock()

    def set_key(self, key: str, pressed: bool) -> None:
        key = key.lower()
        if key not in RECOGNIZED_KEYS:
            log.debug("Ignoring unrecognised key", key=key)
            return
        with self._lock:
            if pressed:
                self._pressed.add(key)
            else:
                self._pressed.discard(key)

    def clear(self) -> None:
        with self._lock:
            self._pressed.clear()

    def snapshot(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._pressed)


@dataclass(frozen=True)
class OrbView:
    """Render state of one orb.

    ``visible`` and ``intensity`` describe the orb's own light, which is off
    once the orb is used or the player's light no longer contributes.
    """

    id: int
    position: Tuple[float, float, float]
    cell: Tuple[int, int]
    size: OrbSize
    radius: float
    used: bool
    visible: bool
    hover_y: float
    intensity: float
    emissive: float


@dataclass(frozen=True)
class Snapshot:
    phase: Phase
    position: Tuple[float, float]
    rotation: float
    grid_cell: Tuple[int, int]
    light_duration: float
    light: LightProperties
    orbs: Tuple[OrbView, ...]
    discovered: FrozenSet[TileKey]
    orbs_collected: int
    elapsed: float
    dungeon_map: DungeonMap | None
    events: Tuple[GameEvent, ...]


class Simulation:
    """Coordinates one tick: input, movement, light, orbs, phase and fog."""

    def __init__(self: Self, config: SimulationConfig, rng_seed: int | None = None):
        self.config = config
        self.game_state = GameState(config, rng_seed=rng_seed)
        self.input = InputState()
        self._lock = threading.RLock()
        self._previous_keys: FrozenSet[str] = frozenset()
        self._pending_level: Level | None = None
        self._scheduler: FrameScheduler | None = None
        self._handle: int | None = None
        self._stopped: bool = False
        self.latest_snapshot: Snapshot = self._build_snapshot()
        log.info("Simulation initialized", seed=self.game_state.rng_instance.initial_seed)

    # --- Scheduling ---
    def start(self: Self, scheduler: FrameScheduler) -> None:
        """Register :meth:`tick` with the frame scheduler."""
        with self._lock:
            if self._handle is not None:
                log.warning("Simulation already started")
                return
            self._scheduler = scheduler
            self._handle = scheduler.register(self.tick)
            self._stopped = False
            log.info("Simulation started", handle=self._handle)

    def stop(self: Self) -> None:
        """Deregister from the scheduler; later ticks are ignored."""
        with self._lock:
            if self._scheduler is not None and self._handle is not None:
                self._scheduler.unregister(self._handle)
                log.info("Simulation stopped", handle=self._handle)
            self._scheduler = None
            self._handle = None
            self._stopped = True
            self.input.clear()

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._stopped

    # --- Inputs from collaborators ---
    def set_key(self: Self, key: str, pressed: bool) -> None:
        self.input.set_key(key, pressed)

    def request_new_level(
        self: Self, dungeon_map: DungeonMap | None = None, orbs: List[Orb] | None = None
    ) -> None:
        """Build a new level now and swap it in at the start of the next tick.

        Also moves the game into ``PLAYING`` on that tick.
        """
        with self._lock:
            self._pending_level = self.game_state.build_level(dungeon_map, orbs)

    # --- Tick ---
    def tick(self: Self, delta: float) -> Snapshot:
        if delta < 0:
            raise ValueError("delta must not be negative")
        with self._lock:
            if self._stopped:
                log.warning("Tick after stop ignored")
                return self.latest_snapshot
            gs = self.game_state
            gs.events = []
            gs.clock += delta

            keys = self.input.snapshot()
            pressed_now = keys - self._previous_keys
            self._previous_keys = keys

            gs.process_timed_events()
            self._handle_lifecycle_keys(pressed_now)
            self._swap_pending_level()

            if gs.phase is Phase.PLAYING and gs.level is not None:
                self._advance_play(keys, delta)

            self.latest_snapshot = self._build_snapshot()
            return self.latest_snapshot

    def _handle_lifecycle_keys(self: Self, pressed_now: FrozenSet[str]) -> None:
        gs = self.game_state
        if KEY_START in pressed_now and gs.phase in (Phase.INTRO, Phase.WIN):
            self._pending_level = gs.build_level()
        elif KEY_QUIT in pressed_now and gs.phase in (Phase.PLAYING, Phase.GAME_OVER):
            gs.set_phase(Phase.INTRO)

    def _swap_pending_level(self: Self) -> None:
        if self._pending_level is None:
            return
        gs = self.game_state
        if gs.phase is Phase.GAME_OVER:
            # Wait for the scheduled return to the intro screen
            return
        gs.start_level(self._pending_level)
        self._pending_level = None
        if gs.phase is not Phase.PLAYING:
            gs.set_phase(Phase.PLAYING)

    def _advance_play(self: Self, keys: FrozenSet[str], delta: float) -> None:
        gs = self.game_state
        level = gs.level
        update = update_player(gs.player, keys, delta, level.dungeon_map, self.config)
        gs.player = update.player
        if update.move.distance > 0:
            gs.apply_light_decay(update.move.distance)

        collected = try_collect(gs.player.x, gs.player.z, level.orbs, self.config)
        if collected is not None:
            gs.apply_orb(collected)

        if not gs.check_darkness():
            if self.config.win_when_all_orbs_collected and all_collected(level.orbs):
                gs.set_phase(Phase.WIN)

        gs.update_discovery()

    # --- Output ---
    def _build_snapshot(self: Self) -> Snapshot:
        gs = self.game_state
        cfg = self.config
        light = calculate_light_properties(gs.light_duration, cfg)
        orb_views: Tuple[OrbView, ...] = ()
        discovered: FrozenSet[TileKey] = frozenset()
        dungeon_map = None
        if gs.level is not None:
            animations = animate_orbs(gs.level.orbs, gs.clock, cfg)
            emissive = orb_emissive(light.intensity, cfg)
            lit = is_light_contributing(light.intensity, cfg)
            orb_views = tuple(
                OrbView(
                    id=orb.id,
                    position=orb.position,
                    cell=orb.cell(cfg.tile_size),
                    size=orb.size,
                    radius=orb_radius(orb.size, cfg),
                    used=orb.used,
                    visible=lit and not orb.used,
                    hover_y=animations[orb.id].hover_y if not orb.used else orb.y,
                    intensity=animations[orb.id].intensity if lit and not orb.used else 0.0,
                    emissive=emissive,
                )
                for orb in gs.level.orbs
            )
            discovered = frozenset(gs.level.discovered)
            dungeon_map = gs.level.dungeon_map
        return Snapshot(
            phase=gs.phase,
            position=gs.player.position,
            rotation=gs.player.rotation,
            grid_cell=gs.player.cell(cfg.tile_size),
            light_duration=gs.light_duration,
            light=light,
            orbs=orb_views,
            discovered=discovered,
            orbs_collected=gs.orbs_collected,
            elapsed=gs.clock,
            dungeon_map=dungeon_map,
            events=tuple(gs.events),
        )


class FixedStepScheduler:
    """Headless frame scheduler that advances registered callbacks by a fixed step."""

    def __init__(self, delta: float = 1.0 / 60.0):
        if delta <= 0:
            raise ValueError("delta must be positive")
        self.delta = delta
        self._callbacks: Dict[int, TickCallback] = {}
        self._next_handle = 0

    def register(self, callback: TickCallback) -> int:
        handle = self._next_handle
        self._callbacks[handle] = callback
        self._next_handle += 1
        return handle

    def unregister(self, handle: int) -> None:
        self._callbacks.pop(handle, None)

    @property
    def active(self) -> int:
        return len(self._callbacks)

    def run(self, frames: int, before_frame: Callable[[int], None] | None = None) -> int:
        """Run up to ``frames`` frames; stops early once nothing is registered."""
        ran = 0
        for frame in range(frames):
            if not self._callbacks:
                break
            if before_frame is not None:
                before_frame(frame)
                if not self._callbacks:
                    break
            for callback in list(self._callbacks.values()):
                callback(self.delta)
            ran += 1
        return ran
