# main.py
"""Headless driver for the lightcrawl simulation.

Loads the configuration, starts a :class:`~lightcrawl.main_loop.Simulation`
on a fixed-step scheduler and lets a simple autopilot wander the dungeon until
the light runs out or the frame budget is spent.
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict

import structlog

from lightcrawl.config import ConfigError, SimulationConfig, load_config
from lightcrawl.game_state import Phase
from lightcrawl.logging_utils import parse_level, setup_logging
from lightcrawl.main_loop import FixedStepScheduler, Simulation
from lightcrawl.world.dungeon_map import DungeonMap
from lightcrawl.world.fog import minimap_view

# --- Paths relative to this script's location ---
SCRIPT_DIR = Path(__file__).parent.resolve()
CONFIG_FILE = SCRIPT_DIR / "config" / "config.yaml"

log = structlog.get_logger()

TURN_FRAMES = 20


def print_map_section(dungeon_map: DungeonMap, center_x: int, center_z: int, radius: int = 5) -> None:
    """Prints a section of the map centered around (x, z) to the console."""
    z_min = max(0, center_z - radius)
    z_max = min(dungeon_map.height, center_z + radius + 1)
    x_min = max(0, center_x - radius)
    x_max = min(dungeon_map.width, center_x + radius + 1)
    print(f"\n--- Map Section around ({center_x},{center_z}) ---")
    lines = dungeon_map.render_ascii(marker=(center_x, center_z)).splitlines()
    for z in range(z_min, z_max):
        print(f"{z:<3}|{lines[z][x_min:x_max]}")
    print("------------------------------------\n")


class Autopilot:
    """Walks forward and turns left for a while whenever it gets stuck."""

    def __init__(self, sim: Simulation):
        self.sim = sim
        self.turning = 0
        self.last_position: tuple[float, float] | None = None

    def __call__(self, frame: int) -> None:
        snap = self.sim.latest_snapshot
        if frame == 0:
            self.sim.set_key("enter", True)
            return
        if frame == 1:
            self.sim.set_key("enter", False)
            self.sim.set_key("w", True)
        if snap.phase is not Phase.PLAYING:
            return
        if self.turning > 0:
            self.turning -= 1
            if self.turning == 0:
                self.sim.set_key("arrowleft", False)
        elif snap.position == self.last_position:
            self.turning = TURN_FRAMES
            self.sim.set_key("arrowleft", True)
        self.last_position = snap.position


def summarize(sim: Simulation) -> Dict[str, Any]:
    snap = sim.latest_snapshot
    return {
        "phase": snap.phase.value,
        "elapsed": round(snap.elapsed, 2),
        "light": round(snap.light_duration, 2),
        "intensity": round(snap.light.intensity, 3),
        "orbs_collected": snap.orbs_collected,
        "orbs_total": len(snap.orbs),
        "discovered": len(snap.discovered),
        "cell": snap.grid_cell,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the lightcrawl simulation headless.")
    parser.add_argument("--config", type=Path, default=CONFIG_FILE, help="YAML config file")
    parser.add_argument("--seed", type=int, default=None, help="override the RNG seed")
    parser.add_argument("--frames", type=int, default=3600, help="maximum frames to run")
    parser.add_argument("--fps", type=float, default=60.0, help="frames per simulated second")
    parser.add_argument("--log-level", default="info", help="debug, info, warning, ...")
    parser.add_argument("--json-logs", action="store_true", help="emit JSON log lines")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)
    try:
        setup_logging(parse_level(args.log_level), json=args.json_logs)
    except ValueError as e:
        print(e, file=sys.stderr)
        return 2
    log.info("Application starting...", config=str(args.config))

    try:
        config = load_config(args.config) if args.config.is_file() else SimulationConfig()
        if args.seed is not None:
            config = config.with_overrides(seed=args.seed)
    except ConfigError as e:
        log.critical("Invalid configuration", error=str(e))
        return 1

    sim = Simulation(config)
    scheduler = FixedStepScheduler(delta=1.0 / args.fps)
    sim.start(scheduler)
    autopilot = Autopilot(sim)

    def before_frame(frame: int) -> None:
        autopilot(frame)
        snap = sim.latest_snapshot
        if frame > 1 and snap.phase is not Phase.PLAYING:
            sim.stop()

    frames = scheduler.run(args.frames, before_frame=before_frame)
    if sim.running:
        sim.stop()

    snap = sim.latest_snapshot
    if snap.dungeon_map is not None:
        cx, cz = snap.grid_cell
        print_map_section(snap.dungeon_map, cx, cz, radius=10)
        view = minimap_view(
            snap.dungeon_map,
            snap.grid_cell,
            config.minimap_view_radius,
            snap.discovered,
            [o.cell for o in snap.orbs if not o.used],
        )
        print("\n".join("".join(row) for row in view))
    log.info("Run finished", frames=frames, **summarize(sim))
    return 0


if __name__ == "__main__":
    sys.exit(main())
