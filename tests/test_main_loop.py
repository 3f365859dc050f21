import threading

import pytest
from structlog.testing import capture_logs

from lightcrawl.config import SimulationConfig
from lightcrawl.events import LightDepleted, OrbCollected, PhaseChanged
from lightcrawl.game_state import Phase
from lightcrawl.main_loop import FixedStepScheduler, Simulation
from lightcrawl.systems.orb_system import Orb, OrbSize
from lightcrawl.world.dungeon_map import DungeonMap


def open_map(size=20, start=(10, 10)):
    rows = ["#" * size] + ["#" + "." * (size - 2) + "#"] * (size - 2) + ["#" * size]
    return DungeonMap.from_strings(rows, start=start)


def orb_ahead(distance=5.0, size=OrbSize.MEDIUM):
    # The player starts at (50, 50) facing negative z
    return Orb(id=0, x=50.0, y=1.19, z=50.0 - distance, size=size)


def playing_sim(orbs=None, **overrides):
    sim = Simulation(SimulationConfig(seed=3).with_overrides(**overrides))
    sim.request_new_level(open_map(), orbs=orbs if orbs is not None else [])
    sim.tick(0.0)
    assert sim.latest_snapshot.phase is Phase.PLAYING
    return sim


def test_initial_snapshot():
    sim = Simulation(SimulationConfig(seed=3))
    snap = sim.latest_snapshot
    assert snap.phase is Phase.INTRO
    assert snap.dungeon_map is None
    assert snap.orbs == ()
    assert snap.events == ()
    assert snap.light.intensity == pytest.approx(3.5)


def test_enter_starts_a_generated_level():
    sim = Simulation(SimulationConfig(seed=3))
    sim.set_key("Enter", True)
    snap = sim.tick(0.1)
    assert snap.phase is Phase.PLAYING
    assert PhaseChanged(to=Phase.PLAYING, previous=Phase.INTRO) in snap.events
    assert snap.dungeon_map is not None
    assert snap.dungeon_map.is_walkable(*snap.grid_cell)
    assert len(snap.discovered) == 25


def test_lifecycle_keys_are_edge_triggered():
    sim = Simulation(SimulationConfig(seed=3))
    sim.set_key("enter", True)
    assert sim.tick(0.1).phase is Phase.PLAYING

    sim.set_key("escape", True)
    assert sim.tick(0.1).phase is Phase.INTRO
    # Enter is still held from before, so it does not restart the game
    assert sim.tick(0.1).phase is Phase.INTRO

    sim.set_key("enter", False)
    sim.tick(0.1)
    sim.set_key("enter", True)
    assert sim.tick(0.1).phase is Phase.PLAYING


def test_unrecognised_keys_are_ignored():
    sim = Simulation(SimulationConfig(seed=3))
    sim.set_key("q", True)
    sim.set_key("W", True)
    assert sim.input.snapshot() == frozenset({"w"})


def test_walking_burns_light():
    sim = playing_sim()
    sim.set_key("w", True)
    snap = sim.tick(1.0)
    assert snap.position == pytest.approx((50.0, 46.5))
    assert snap.light_duration == pytest.approx(100.0 - 3.5 * 0.5)


def test_turning_in_place_costs_nothing():
    sim = playing_sim()
    sim.set_key("arrowleft", True)
    snap = sim.tick(1.0)
    assert snap.light_duration == 100.0
    assert snap.rotation == pytest.approx(sim.config.player_rotation_speed)


def test_darkness_then_return_to_intro():
    sim = playing_sim(player_move_speed=30.0, light_initial_duration=10.0)
    sim.set_key("w", True)
    snap = sim.tick(1.0)
    assert snap.light_duration == 0.0
    assert snap.phase is Phase.GAME_OVER
    assert LightDepleted() in snap.events
    assert PhaseChanged(to=Phase.GAME_OVER, previous=Phase.PLAYING) in snap.events
    position = snap.position

    assert sim.tick(1.0).phase is Phase.GAME_OVER
    # No movement while the run is over
    assert sim.latest_snapshot.position == position
    assert sim.tick(1.0).phase is Phase.GAME_OVER
    snap = sim.tick(1.0)
    assert snap.phase is Phase.INTRO
    assert PhaseChanged(to=Phase.INTRO, previous=Phase.GAME_OVER) in snap.events


def test_escape_during_game_over():
    sim = playing_sim(player_move_speed=30.0, light_initial_duration=10.0)
    sim.set_key("w", True)
    sim.tick(1.0)
    sim.set_key("escape", True)
    assert sim.tick(0.1).phase is Phase.INTRO


def test_collecting_an_orb():
    sim = playing_sim(orbs=[orb_ahead()], player_move_speed=5.0, light_initial_duration=60.0)
    sim.set_key("w", True)
    snap = sim.tick(1.0)
    assert snap.orbs_collected == 1
    assert snap.light_duration == pytest.approx(60.0 - 2.5 + 30.0)
    assert OrbCollected(orb_id=0, light_value=30.0, new_total=snap.light_duration) in snap.events
    view = snap.orbs[0]
    assert view.used and not view.visible
    assert snap.phase is Phase.PLAYING


def test_collecting_all_orbs_wins_when_enabled():
    sim = playing_sim(
        orbs=[orb_ahead()], player_move_speed=5.0, win_when_all_orbs_collected=True
    )
    sim.set_key("w", True)
    snap = sim.tick(1.0)
    assert snap.phase is Phase.WIN
    assert PhaseChanged(to=Phase.WIN, previous=Phase.PLAYING) in snap.events

    sim.set_key("w", False)
    sim.set_key("enter", True)
    assert sim.tick(0.1).phase is Phase.PLAYING


def test_orb_views_carry_animation():
    sim = playing_sim(orbs=[orb_ahead(distance=20.0)])
    snap = sim.tick(0.5)
    view = snap.orbs[0]
    assert view.visible
    assert view.cell == (10, 6)
    assert view.hover_y != view.position[1]
    assert view.emissive == 0.5
    assert view.radius == 0.25


def test_orbs_are_hidden_when_light_is_out():
    sim = Simulation(SimulationConfig(seed=3).with_overrides(light_initial_duration=0.0))
    sim.request_new_level(open_map(), orbs=[orb_ahead(distance=20.0)])
    snap = sim.tick(0.5)
    assert snap.light.intensity == 0.0
    view = snap.orbs[0]
    assert not view.used
    assert view.visible is False
    assert view.intensity == 0.0
    assert view.emissive == 0.05


def test_request_new_level_swaps_on_next_tick():
    sim = playing_sim()
    sim.set_key("w", True)
    sim.tick(1.0)
    old_map = sim.game_state.level.dungeon_map
    new_map = open_map(size=12, start=(3, 3))

    sim.request_new_level(new_map, orbs=[])
    assert sim.game_state.level.dungeon_map is old_map

    sim.set_key("w", False)
    snap = sim.tick(0.1)
    assert snap.dungeon_map is new_map
    assert snap.grid_cell == (3, 3)
    assert snap.light_duration == 100.0
    assert snap.phase is Phase.PLAYING


def test_new_level_waits_while_game_over():
    sim = playing_sim(player_move_speed=30.0, light_initial_duration=10.0)
    sim.set_key("w", True)
    sim.tick(1.0)
    old_map = sim.game_state.level.dungeon_map
    sim.request_new_level(open_map(size=12), orbs=[])
    snap = sim.tick(0.5)
    assert snap.phase is Phase.GAME_OVER
    assert snap.dungeon_map is old_map


def test_negative_delta_rejected():
    sim = Simulation(SimulationConfig(seed=3))
    with pytest.raises(ValueError):
        sim.tick(-0.1)


def test_snapshot_is_frozen():
    snap = playing_sim().latest_snapshot
    with pytest.raises(AttributeError):
        snap.light_duration = 5.0


def test_events_are_per_tick():
    sim = playing_sim(orbs=[orb_ahead()], player_move_speed=5.0)
    sim.set_key("w", True)
    assert sim.tick(1.0).events
    sim.set_key("w", False)
    assert sim.tick(1.0).events == ()


def test_scheduler_drives_ticks_until_stopped():
    sim = Simulation(SimulationConfig(seed=3))
    scheduler = FixedStepScheduler(delta=0.1)
    sim.start(scheduler)
    assert sim.running
    assert scheduler.active == 1

    assert scheduler.run(5) == 5
    assert sim.latest_snapshot.elapsed == pytest.approx(0.5)

    sim.stop()
    assert not sim.running
    assert scheduler.active == 0
    assert scheduler.run(5) == 0


def test_stop_from_before_frame_hook():
    sim = Simulation(SimulationConfig(seed=3))
    scheduler = FixedStepScheduler(delta=0.1)
    sim.start(scheduler)

    def before_frame(frame):
        if frame == 3:
            sim.stop()

    assert scheduler.run(10, before_frame=before_frame) == 3


def test_tick_after_stop_is_ignored():
    sim = playing_sim()
    sim.stop()
    last = sim.latest_snapshot
    with capture_logs() as logs:
        assert sim.tick(1.0) is last
    assert {"event": "Tick after stop ignored", "log_level": "warning"} in logs


def test_stop_clears_held_keys():
    sim = playing_sim()
    sim.set_key("w", True)
    sim.stop()
    assert sim.input.snapshot() == frozenset()


def test_scheduler_rejects_bad_delta():
    with pytest.raises(ValueError):
        FixedStepScheduler(delta=0.0)


def test_input_from_another_thread():
    sim = playing_sim()
    done = threading.Event()

    def press_keys():
        for i in range(500):
            sim.set_key("arrowleft", i % 2 == 0)
        done.set()

    worker = threading.Thread(target=press_keys)
    worker.start()
    while not done.is_set():
        sim.tick(0.01)
    worker.join()
    snap = sim.tick(0.01)
    assert snap.phase is Phase.PLAYING
    assert snap.light_duration == 100.0
