# lightcrawl/game_state.py
import heapq
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Set, Tuple

import structlog

from lightcrawl.components import PlayerState
from lightcrawl.config import SimulationConfig
from lightcrawl.events import GameEvent, LightDepleted, OrbCollected, PhaseChanged
from lightcrawl.rng import GameRNG
from lightcrawl.systems.light_system import decay_light, is_depleted, replenish_light
from lightcrawl.systems.orb_system import CollectedOrb, Orb, spawn_orbs
from lightcrawl.world.dungeon_map import DungeonMap
from lightcrawl.world.fog import TileKey, discover_nearby
from lightcrawl.world.procgen import generate_dungeon

log = structlog.get_logger()


class Phase(str, Enum):
    INTRO = "intro"
    PLAYING = "playing"
    GAME_OVER = "gameover"
    WIN = "win"


ALLOWED_TRANSITIONS: dict[Phase, frozenset[Phase]] = {
    Phase.INTRO: frozenset({Phase.PLAYING}),
    Phase.PLAYING: frozenset({Phase.GAME_OVER, Phase.WIN, Phase.INTRO}),
    Phase.GAME_OVER: frozenset({Phase.INTRO}),
    Phase.WIN: frozenset({Phase.INTRO, Phase.PLAYING}),
}


@dataclass
class Level:
    """Everything that is replaced together when a new dungeon is built."""

    dungeon_map: DungeonMap
    orbs: List[Orb]
    seed: int | None = None
    discovered: Set[TileKey] = field(default_factory=set)


class GameState:
    """Central container for mutable simulation data.

    Only :class:`lightcrawl.main_loop.Simulation` is expected to call the
    mutating methods, once per tick, so there is exactly one writer.
    """

    def __init__(self, config: SimulationConfig, rng_seed: int | None = None):
        log.info("Initializing GameState...")
        self.config: SimulationConfig = config
        self.rng_instance: GameRNG = GameRNG(seed=rng_seed if rng_seed is not None else config.seed)
        log.debug("GameRNG initialized", seed=self.rng_instance.initial_seed)

        self.phase: Phase = Phase.INTRO
        self.level: Level | None = None
        self.player: PlayerState = PlayerState(0.0, 0.0)
        self.light_duration: float = config.light_initial_duration
        self.orbs_collected: int = 0
        self.last_cell: Tuple[int, int] | None = None
        self.clock: float = 0.0
        self.events: List[GameEvent] = []
        self.timed_events: list[tuple[float, int, Callable[["GameState"], None]]] = []
        self._next_timed_event_id: int = 0

    # --- Level lifecycle ---
    def build_level(
        self, dungeon_map: DungeonMap | None = None, orbs: List[Orb] | None = None
    ) -> Level:
        """Generate (or wrap) a complete level without touching current state."""
        cfg = self.config
        level_rng = self.rng_instance.spawn()
        if dungeon_map is None:
            dungeon_map = generate_dungeon(
                cfg.dungeon_width,
                cfg.dungeon_height,
                cfg.dungeon_max_rooms,
                cfg.dungeon_min_room_size,
                cfg.dungeon_max_room_size,
                level_rng,
            )
        if orbs is None:
            orbs = spawn_orbs(dungeon_map, level_rng, cfg)
        return Level(dungeon_map=dungeon_map, orbs=orbs, seed=level_rng.initial_seed)

    def start_level(self, level: Level) -> None:
        """Swap in ``level`` and reset the per-level player state."""
        self.level = level
        self.player = PlayerState.at_cell(level.dungeon_map.start, self.config.tile_size)
        self.light_duration = self.config.light_initial_duration
        self.orbs_collected = 0
        self.last_cell = None
        self.timed_events.clear()
        self.update_discovery()
        log.info(
            "Level started",
            seed=level.seed,
            start=level.dungeon_map.start,
            orbs=len(level.orbs),
        )

    # --- Phase ---
    def set_phase(self, new_phase: Phase) -> bool:
        """Move to ``new_phase``; disallowed transitions are ignored."""
        if new_phase not in ALLOWED_TRANSITIONS[self.phase]:
            log.debug("Ignoring phase transition", current=self.phase.value, requested=new_phase.value)
            return False
        previous = self.phase
        self.phase = new_phase
        self.events.append(PhaseChanged(to=new_phase, previous=previous))
        log.info("Phase changed", previous=previous.value, to=new_phase.value)
        return True

    # --- Light ---
    def apply_light_decay(self, distance_moved: float) -> None:
        cfg = self.config
        self.light_duration = decay_light(
            self.light_duration, distance_moved, cfg.light_decay_rate, cfg.light_max_duration
        )

    def apply_orb(self, collected: CollectedOrb) -> None:
        self.light_duration = replenish_light(
            self.light_duration, collected.light_value, self.config.light_max_duration
        )
        self.orbs_collected += 1
        self.events.append(
            OrbCollected(
                orb_id=collected.id,
                light_value=collected.light_value,
                new_total=self.light_duration,
            )
        )
        log.info(
            "Light orb collected",
            orb_id=collected.id,
            value=collected.light_value,
            light=round(self.light_duration, 1),
        )

    def check_darkness(self) -> bool:
        """Enter game over if the light ran out while playing."""
        if self.phase is not Phase.PLAYING or not is_depleted(self.light_duration):
            return False
        self.set_phase(Phase.GAME_OVER)
        self.events.append(LightDepleted())
        self.schedule_timed_event(self.config.game_over_delay, _return_to_intro)
        log.info("Engulfed by darkness", delay=self.config.game_over_delay)
        return True

    # --- Fog of war ---
    def update_discovery(self) -> List[TileKey]:
        """Discover the cells around the player if their grid cell changed."""
        if self.level is None:
            return []
        cell = self.player.cell(self.config.tile_size)
        if cell == self.last_cell:
            return []
        self.last_cell = cell
        new_keys = discover_nearby(
            cell[0], cell[1], self.config.player_discovery_radius, self.level.discovered
        )
        self.level.discovered.update(new_keys)
        if new_keys:
            log.debug("Tiles discovered", cell=cell, count=len(new_keys))
        return new_keys

    # --- Timed events ---
    def schedule_timed_event(
        self, delay: float, callback: Callable[["GameState"], None]
    ) -> None:
        """Schedule ``callback`` to run ``delay`` simulation seconds from now."""
        trigger_time = self.clock + max(0.0, delay)
        heapq.heappush(
            self.timed_events,
            (trigger_time, self._next_timed_event_id, callback),
        )
        self._next_timed_event_id += 1

    def process_timed_events(self) -> None:
        while self.timed_events and self.timed_events[0][0] <= self.clock:
            _, _, cb = heapq.heappop(self.timed_events)
            try:
                cb(self)
            except Exception as err:
                log.error("Timed event callback failed", error=str(err))


def _return_to_intro(gs: GameState) -> None:
    if gs.phase is Phase.GAME_OVER:
        gs.set_phase(Phase.INTRO)
