"""
Nutso Test Suite — Stage 2: MEDIUM

Moderate complexity — collision rules, the per-tick report, moving
geometry and the level session state machine.

Tests:
    - Ground bounce, backboard, obstacle, target entry and terminal outcomes
    - Scored latch (one SCORED per projectile)
    - Oscillator ping-pong and arena construction
    - Session flow: shots budget, cooldown, win/lose, rollback, handoff
    - Boss rounds ending early
    - Scheduler ordering and cancellation
"""

import math
from dataclasses import replace

import numpy as np
import pytest

from conftest import miss_shot, park_target, play_round, score_shot, shoot
from nutso_engine.aim import LaunchCommand
from nutso_engine.ballistics import Contact, ProjectileSimulator, TerminalOutcome, TickReport
from nutso_engine.collision import Arena, Backboard, Obstacle, Oscillator, TargetZone, build_arena
from nutso_engine.config import ModeConfig
from nutso_engine.levels import generate_level
from nutso_engine.scheduler import Scheduler
from nutso_engine.scoring import Classification, ScoreRecord
from nutso_engine.session import (
    LaunchEvent,
    LevelHandoff,
    LevelSession,
    RoundOutcome,
    RoundOver,
    ShotResolved,
    Status,
)


def _sim(config, arena, mode=None):
    return ProjectileSimulator(config.world, config.physics, mode or config.normal, arena)


# ============================================================
# 1. Collisions
# ============================================================

class TestGroundAndBounds:
    """Ground plane and screen bounds."""

    def test_ground_bounce(self, simulator):
        """Hitting the ground flips vy and scales it by the bounce factor."""
        simulator.launch((100.0, 650.0), (0.0, 100.0))
        report = simulator.step(1 / 60)
        assert Contact.GROUND_BOUNCE in report.events
        assert report.terminal is None
        assert simulator.projectile.velocity[1] < 0
        assert simulator.projectile.position[1] == pytest.approx(660 - 12)

    def test_ground_bounce_does_not_deflect(self, simulator):
        simulator.launch((100.0, 650.0), (0.0, 100.0))
        assert simulator.step(1 / 60).deflected is False

    def test_off_screen_is_miss(self, simulator):
        """Leaving the screen by more than the margin is a miss."""
        simulator.launch((1305.0, 300.0), (600.0, 0.0))
        report = simulator.step(1 / 60)
        assert report.terminal is TerminalOutcome.MISS
        assert not simulator.active

    def test_off_left_edge_is_miss(self, simulator):
        simulator.launch((-25.0, 300.0), (-600.0, 0.0))
        assert simulator.step(1 / 60).terminal is TerminalOutcome.MISS

    def test_slow_near_ground_settles(self, simulator):
        """A nearly stopped nut low on the screen has settled."""
        simulator.launch((300.0, 640.0), (0.0, 0.0))
        report = simulator.step(1 / 60)
        assert report.terminal is TerminalOutcome.SETTLED

    def test_slow_high_does_not_settle(self, simulator):
        """Slow at the apex is not settled."""
        simulator.launch((300.0, 200.0), (1.0, 0.0))
        assert simulator.step(1 / 60).terminal is None

    def test_max_flight_time(self, config, static_target):
        """A nut that never resolves is settled after the flight time limit."""
        physics = replace(config.physics, max_flight_time=0.05)
        sim = ProjectileSimulator(config.world, physics, ModeConfig(drag=1e6), Arena(target=static_target))
        sim.launch((900.0, 500.0), (0.0, 0.0))
        outcomes = [sim.step(1 / 60).terminal for _ in range(5)]
        assert TerminalOutcome.SETTLED in outcomes
        assert not sim.active

    def test_drag_never_reverses(self, config, static_target):
        """Drag can stop the nut but never push it backward."""
        sim = _sim(config, Arena(target=static_target), ModeConfig(drag=1e6))
        sim.launch((600.0, 500.0), (300.0, 0.0))
        sim.step(1 / 60)
        assert np.allclose(sim.projectile.velocity, 0.0)


class TestTargetEntry:
    """Scoring zone rules."""

    def test_downward_entry_scores(self, simulator):
        simulator.launch((600.0, 260.0), (0.0, 50.0))
        report = simulator.step(1 / 60)
        assert report.scored
        assert report.has_scored

    def test_scored_nut_is_captured(self, simulator):
        """Normal mode stops the nut in the basket."""
        simulator.launch((600.0, 260.0), (0.0, 50.0))
        report = simulator.step(1 / 60)
        assert report.terminal is TerminalOutcome.CAPTURED
        assert not simulator.active

    def test_upward_entry_rejected(self, simulator):
        """Rising through the basket does not count."""
        simulator.launch((600.0, 340.0), (0.0, -300.0))
        report = simulator.step(1 / 60)
        assert not report.scored
        assert report.terminal is None

    def test_boss_accepts_any_direction(self, config, static_target):
        static_target.requires_downward = config.boss_mode.requires_downward_entry
        sim = _sim(config, Arena(target=static_target), config.boss_mode)
        sim.launch((600.0, 340.0), (0.0, -300.0))
        assert sim.step(1 / 60).scored

    def test_scored_latch(self, config, static_target):
        """A nut lingering in the zone scores exactly once."""
        sim = _sim(config, Arena(target=static_target), ModeConfig(capture_on_score=False))
        sim.launch((600.0, 260.0), (0.0, 50.0))
        reports = [sim.step(1 / 60) for _ in range(30)]
        assert sum(r.events.count(Contact.SCORED) for r in reports) == 1
        assert all(r.has_scored for r in reports)

    def test_outside_zone_no_score(self, simulator):
        simulator.launch((300.0, 260.0), (0.0, 50.0))
        assert not simulator.step(1 / 60).scored


class TestBackboard:
    """Bank shots."""

    @pytest.fixture
    def banked(self, config):
        target = TargetZone(anchor_x=600.0, anchor_y=100.0, width=100.0, height=100.0)
        backboard = Backboard(target=target, offset_x=60.0, offset_y=200.0,
                              width=12.0, height=200.0, bounce=0.75)
        return _sim(config, Arena(target=target, backboard=backboard))

    def test_backboard_reflects(self, banked):
        """Horizontal velocity reverses and is damped."""
        banked.launch((640.0, 300.0), (300.0, 0.0))
        report = banked.step(1 / 60)
        assert Contact.BACKBOARD_HIT in report.events
        vx = banked.projectile.velocity[0]
        assert vx < 0
        assert abs(vx) < 300 * 0.76

    def test_backboard_marks_deflected(self, banked):
        banked.launch((640.0, 300.0), (300.0, 0.0))
        assert banked.step(1 / 60).deflected is True

    def test_deflected_persists(self, banked):
        """Once banked, later reports stay deflected."""
        banked.launch((640.0, 300.0), (300.0, 0.0))
        banked.step(1 / 60)
        assert banked.step(1 / 60).deflected is True

    def test_backboard_moves_with_target(self):
        target = TargetZone(anchor_x=600.0, anchor_y=300.0, width=100.0, height=60.0,
                            motion=Oscillator(300.0, 60.0, 150.0, 600.0))
        backboard = Backboard(target, 65.0, -80.0, 12.0, 200.0, 0.75)
        before = backboard.rect
        target.motion.step(0.5)
        after = backboard.rect
        assert after[1] == pytest.approx(before[1] + 30.0)
        assert after[0] == before[0]


class TestObstacles:
    """Patrolling obstacles push the nut away."""

    def _obstacle(self, marks_deflected):
        return Obstacle(y=300.0, width=100.0, height=15.0, speed=1.0,
                        motion=Oscillator(600.0, 0.0, 540.0, 660.0),
                        marks_deflected=marks_deflected)

    def _arena(self, obstacle):
        return Arena(target=TargetZone(1000.0, 100.0, 50.0, 50.0), obstacles=[obstacle])

    def test_radial_push(self, config):
        """Push is away from the obstacle center, plus lift."""
        sim = _sim(config, self._arena(self._obstacle(True)))
        sim.launch((600.0, 285.0), (0.0, 100.0))
        report = sim.step(1 / 60)
        assert Contact.OBSTACLE_DEFLECT in report.events
        vx, vy = sim.projectile.velocity
        assert vx == pytest.approx(0.0, abs=1e-6)
        assert vy == pytest.approx(-(200 + 50) - 100)

    def test_obstacle_disqualifies_swoosh(self, config):
        sim = _sim(config, self._arena(self._obstacle(True)))
        sim.launch((600.0, 285.0), (0.0, 100.0))
        assert sim.step(1 / 60).deflected is True

    def test_unflagged_obstacle_keeps_clean(self, config):
        sim = _sim(config, self._arena(self._obstacle(False)))
        sim.launch((600.0, 285.0), (0.0, 100.0))
        report = sim.step(1 / 60)
        assert Contact.OBSTACLE_DEFLECT in report.events
        assert report.deflected is False


class TestSimulatorLifecycle:
    def test_single_projectile(self, simulator):
        simulator.launch((200.0, 590.0), (100.0, -100.0))
        with pytest.raises(RuntimeError):
            simulator.launch((200.0, 590.0), (100.0, -100.0))

    def test_idle_step_is_empty(self, simulator):
        assert simulator.step(1 / 60) == TickReport()

    def test_impulse_inside_radius(self, simulator):
        """Blast push is (radius - dist) * strength away from the origin."""
        simulator.launch((150.0, 600.0), (0.0, 0.0))
        assert simulator.apply_impulse((100.0, 600.0), 100.0, 5.0) is True
        assert simulator.projectile.velocity[0] == pytest.approx(250.0)

    def test_impulse_outside_radius(self, simulator):
        simulator.launch((150.0, 600.0), (0.0, 0.0))
        assert simulator.apply_impulse((400.0, 600.0), 100.0, 5.0) is False
        assert np.allclose(simulator.projectile.velocity, 0.0)


# ============================================================
# 2. Moving Geometry
# ============================================================

class TestOscillator:
    def test_ping_pong(self):
        osc = Oscillator(position=0.0, speed=10.0, low=0.0, high=5.0)
        assert osc.step(1.0) == 5.0
        assert osc.direction == -1
        assert osc.step(1.0) == 0.0
        assert osc.direction == 1

    def test_stays_in_bounds(self):
        osc = Oscillator(position=300.0, speed=210.0, low=150.0, high=600.0)
        for _ in range(1000):
            assert 150.0 <= osc.step(1 / 60) <= 600.0

    def test_start_clamped(self):
        assert Oscillator(position=900.0, speed=1.0, low=0.0, high=100.0).position == 100.0

    def test_still(self):
        osc = Oscillator(position=50.0, speed=0.0, low=0.0, high=100.0)
        osc.step(10.0)
        assert osc.position == 50.0

    def test_inverted_bounds(self):
        with pytest.raises(ValueError):
            Oscillator(position=0.0, speed=1.0, low=10.0, high=0.0)


class TestArenaBuilder:
    def test_normal_layout(self, config):
        arena = build_arena(generate_level(1), config)
        assert arena.target.anchor[0] == pytest.approx(1280 - 0.12 * 1280)
        assert arena.target.requires_downward is True
        assert arena.backboard is not None
        assert arena.obstacles == []

    def test_difficulty_sizes_basket(self, config):
        easy = build_arena(generate_level(1), config, "easy").target
        hard = build_arena(generate_level(1), config, "hard").target
        assert easy.width == 210.0
        assert hard.width == 70.0

    def test_obstacles_flagged(self, config):
        arena = build_arena(generate_level(16), config)
        assert len(arena.obstacles) == 2
        assert all(o.marks_deflected for o in arena.obstacles)

    def test_boss_layout(self, config):
        arena = build_arena(generate_level(10), config)
        assert arena.backboard is None
        assert arena.target.axis == "x"
        assert arena.target.requires_downward is False
        assert arena.target.width == 60.0

    def test_basket_bobs(self, config):
        arena = build_arena(generate_level(12), config)
        start = arena.target.anchor[1]
        arena.advance(0.1)
        assert arena.target.anchor[1] != start


# ============================================================
# 3. Level Session
# ============================================================

class TestSessionFlow:
    """AIMING → SHOT_IN_FLIGHT → AIMING/ROUND_OVER."""

    def test_initial_state(self, level_one):
        assert level_one.status is Status.AIMING
        assert level_one.state.shots_remaining == 20
        assert level_one.state.hits_required == 5
        assert level_one.can_launch

    def test_launch_enters_flight(self, level_one):
        level_one.pointer_down(200, 590)
        assert level_one.pointer_up(200, 650) is True
        assert level_one.status is Status.SHOT_IN_FLIGHT
        assert level_one.state.shots_remaining == 19
        assert isinstance(level_one.history[0], LaunchEvent)

    def test_clean_score(self, level_one):
        """A straight drop into the basket is a 110-point swoosh."""
        park_target(level_one)
        score_shot(level_one)
        records = [e for e in level_one.history if isinstance(e, ScoreRecord)]
        assert len(records) == 1
        assert records[0].classification is Classification.SWOOSH
        assert records[0].points == 110
        assert level_one.state.cumulative_points == 110
        resolved = level_one.history[-1]
        assert isinstance(resolved, ShotResolved)
        assert resolved.scored
        assert resolved.outcome is TerminalOutcome.CAPTURED

    def test_miss_consumes_one_shot(self, level_one):
        park_target(level_one)
        miss_shot(level_one)
        assert level_one.state.shots_remaining == 19
        assert level_one.state.hits_scored == 0
        assert level_one.status is Status.AIMING

    def test_cancelled_gesture_is_free(self, level_one):
        """A too-short drag launches nothing."""
        assert shoot(level_one, (5.0, 5.0)) is False
        assert level_one.state.shots_remaining == 20
        assert level_one.history == []

    def test_cooldown_blocks_launch(self, level_one):
        park_target(level_one)
        level_one.pointer_down(200, 590)
        level_one.pointer_up(200, 650)
        level_one.run_until_resolved()
        assert not level_one.can_launch
        assert level_one.pointer_down(200, 590) is False
        assert level_one.wait_until_ready() is True

    def test_launch_ignored_in_flight(self, level_one):
        level_one.pointer_down(200, 590)
        level_one.pointer_up(200, 650)
        command = LaunchCommand(velocity=(0.0, -400.0), power=400.0, angle=-math.pi / 2)
        assert level_one.launch(command) is False
        assert level_one.state.shots_remaining == 19

    def test_shots_never_negative(self, level_one):
        play_round(level_one, 0)
        assert level_one.state.shots_remaining == 0
        assert level_one.launch(LaunchCommand((0.0, -400.0), 400.0, -math.pi / 2)) is False
        assert level_one.state.shots_remaining == 0


class TestRoundOutcome:
    def test_win_keeps_points(self, level_one):
        play_round(level_one, 5)
        assert level_one.is_over
        assert level_one.state.outcome is RoundOutcome.WIN
        assert level_one.state.cumulative_points == 550

    def test_win_hands_off_next_level(self, level_one):
        play_round(level_one, 5)
        handoff = level_one.handoff()
        assert handoff.next_level == 2
        assert handoff.cumulative_points == 550

    def test_lose_rolls_back(self, config):
        """Points from a failed attempt are discarded."""
        session = LevelSession(1, cumulative_points=300, config=config)
        play_round(session, 4)
        assert session.state.outcome is RoundOutcome.LOSE
        assert session.state.cumulative_points == 300
        handoff = session.handoff()
        assert handoff.next_level == 1
        assert handoff.cumulative_points == 300

    def test_handoff_before_end(self, level_one):
        with pytest.raises(RuntimeError):
            level_one.handoff()

    def test_empty_shot_budget_loses(self, config):
        """With no shots to fire the round is over from the start."""
        empty = replace(config, session=replace(config.session, shots=0))
        session = LevelSession(1, cumulative_points=200, config=empty)
        assert session.is_over
        assert session.state.outcome is RoundOutcome.LOSE
        assert not session.can_launch
        assert session.handoff() == LevelHandoff(next_level=1, cumulative_points=200)
        for _ in range(40):
            session.tick()
        over = [e for e in session.history if isinstance(e, RoundOver)]
        assert len(over) == 1
        assert over[0].outcome is RoundOutcome.LOSE

    def test_round_over_is_deferred(self, level_one):
        """The round-over notice arrives after the result delay."""
        play_round(level_one, 5)
        assert not any(isinstance(e, RoundOver) for e in level_one.history)
        for _ in range(40):
            level_one.tick()
        over = [e for e in level_one.history if isinstance(e, RoundOver)]
        assert len(over) == 1
        assert over[0].outcome is RoundOutcome.WIN
        assert over[0].points_this_level == 550
        assert over[0].stars == 1

    def test_nine_ninety_nine_leads_to_boss(self, config):
        session = LevelSession(99, config=config)
        play_round(session, 5)
        assert session.handoff().next_level == 100

    def test_listener_receives_events(self, config):
        events = []
        session = LevelSession(1, config=config, listener=events.append)
        park_target(session)
        score_shot(session)
        assert [type(e) for e in events] == [LaunchEvent, ScoreRecord, ShotResolved]


class TestBossRound:
    def test_boss_thresholds(self, boss_session):
        assert boss_session.state.mode == "boss"
        assert boss_session.state.hits_required == 15
        assert boss_session.boss_attack is not None
        assert boss_session.boss_attack.running

    def test_boss_ends_early_on_threshold(self, boss_session):
        """Fifteen hits end a boss round with shots to spare."""
        play_round(boss_session, 15)
        assert boss_session.is_over
        assert boss_session.state.outcome is RoundOutcome.WIN
        assert boss_session.state.shots_remaining == 5
        assert boss_session.state.cumulative_points == 1500

    def test_boss_hits_are_standard(self, boss_session):
        park_target(boss_session)
        score_shot(boss_session)
        record = next(e for e in boss_session.history if isinstance(e, ScoreRecord))
        assert record.classification is Classification.STANDARD
        assert record.points == 100

    def test_boss_loss(self, boss_session):
        play_round(boss_session, 14)
        assert boss_session.state.outcome is RoundOutcome.LOSE
        assert boss_session.state.cumulative_points == 0
        assert boss_session.handoff().next_level == 10

    def test_boss_win_advances(self, boss_session):
        play_round(boss_session, 15)
        assert boss_session.handoff().next_level == 11

    def test_last_level_caps(self, config):
        session = LevelSession(100, config=config)
        play_round(session, 15)
        assert session.handoff().next_level == 100


# ============================================================
# 4. Scheduler
# ============================================================

class TestScheduler:
    def test_call_later_fires_once(self):
        sched, fired = Scheduler(), []
        sched.call_later(0.3, lambda: fired.append("a"))
        assert sched.advance(0.2) == 0
        assert sched.advance(0.2) == 1
        assert sched.advance(1.0) == 0
        assert fired == ["a"]

    def test_time_order(self):
        sched, fired = Scheduler(), []
        sched.call_later(0.5, lambda: fired.append("late"))
        sched.call_later(0.1, lambda: fired.append("early"))
        sched.call_later(0.1, lambda: fired.append("early-2"))
        sched.advance(1.0)
        assert fired == ["early", "early-2", "late"]

    def test_call_every_repeats(self):
        sched, fired = Scheduler(), []
        sched.call_every(1.0, lambda: fired.append(sched.now))
        sched.advance(3.5)
        assert fired == [1.0, 2.0, 3.0]

    def test_cancel(self):
        sched, fired = Scheduler(), []
        handle = sched.call_every(1.0, lambda: fired.append(1))
        sched.advance(1.5)
        handle.cancel()
        sched.advance(5.0)
        assert fired == [1]
        assert handle.cancelled
        assert len(sched) == 0

    def test_bad_interval(self):
        with pytest.raises(ValueError):
            Scheduler().call_every(0, lambda: None)
