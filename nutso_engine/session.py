"""
Nutso Engine — Level Session

State machine for one attempt at one level, shared by normal and boss
encounters:

    AIMING --launch--> SHOT_IN_FLIGHT --terminal outcome--> AIMING
                                     \\--shots exhausted--> ROUND_OVER(WIN|LOSE)

One call to `tick()` advances timers, moving geometry, the projectile, scoring
and state transitions synchronously.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

import numpy as np

from nutso_engine.aim import AimController, LaunchCommand, PointerUp
from nutso_engine.ballistics import ProjectileSimulator, TerminalOutcome, TickReport, TrajectoryPreview
from nutso_engine.boss import BossAttack
from nutso_engine.collision import Arena, build_arena
from nutso_engine.config import BOSS, GameConfig, load_config
from nutso_engine.levels import LevelConfig, clamp_level, generate_level
from nutso_engine.scheduler import Scheduler
from nutso_engine.scoring import ScoreRecord, ScoreResolver

logger = logging.getLogger(__name__)


class Status(Enum):
    AIMING = "aiming"
    SHOT_IN_FLIGHT = "shot_in_flight"
    ROUND_OVER = "round_over"


class RoundOutcome(Enum):
    WIN = "win"
    LOSE = "lose"


# ---------- Events ----------
@dataclass(frozen=True)
class LaunchEvent:
    shot_number: int
    velocity: Tuple[float, float]


@dataclass(frozen=True)
class ShotResolved:
    shot_number: int
    outcome: TerminalOutcome
    scored: bool
    deflected: bool


@dataclass(frozen=True)
class RoundOver:
    outcome: RoundOutcome
    hits_scored: int
    hits_required: int
    points_this_level: int
    cumulative_points: int
    stars: int


@dataclass(frozen=True)
class LevelHandoff:
    next_level: int
    cumulative_points: int


# ---------- State ----------
@dataclass
class SessionState:
    level: int
    mode: str
    shots_remaining: int
    hits_required: int
    cumulative_points: int = 0
    entry_points: int = 0
    hits_scored: int = 0
    shots_fired: int = 0
    points_this_level: int = 0
    status: Status = Status.AIMING
    outcome: Optional[RoundOutcome] = None

    def rollback(self) -> None:
        """Discard this attempt's points; cumulative returns to its entry value."""
        self.points_this_level = 0
        self.cumulative_points = self.entry_points


def star_rating(hits: int, hits_required: int) -> int:
    """0 for a loss, otherwise 1-3 stars (10+ hits = 2, 15+ = 3)."""
    if hits < hits_required:
        return 0
    if hits >= 15:
        return 3
    if hits >= 10:
        return 2
    return 1


# ---------- Session ----------
class LevelSession:
    """One attempt at one level."""

    def __init__(
        self,
        level: int,
        cumulative_points: int = 0,
        config: GameConfig = None,
        difficulty: str = None,
        listener: Callable[[object], None] = None,
        rng: np.random.Generator = None,
    ):
        self.config = config or load_config()
        level = clamp_level(level, self.config.world.max_level)
        self.level_config: LevelConfig = generate_level(level)
        self.mode_name = self.level_config.mode
        self.mode = self.config.mode(self.mode_name)
        self.listener = listener
        self.history: List[object] = []

        self.state = SessionState(
            level=level,
            mode=self.mode_name,
            shots_remaining=self.config.session.shots,
            hits_required=self.mode.hits_required,
            cumulative_points=int(cumulative_points),
            entry_points=int(cumulative_points),
        )

        self.arena: Arena = build_arena(self.level_config, self.config, difficulty)
        self.simulator = ProjectileSimulator(
            self.config.world, self.config.physics, self.mode, self.arena,
        )
        self.aim = AimController(self.config.aim, self.config.world, self.config.physics)
        self.resolver = ScoreResolver(self.mode_name, self.mode)
        self.scheduler = Scheduler()
        self._cooling_down = False
        self._finalized = False

        self.boss_attack: Optional[BossAttack] = None
        if self.mode_name == BOSS:
            self.boss_attack = BossAttack(
                level, self.config.boss, self.config.world, self.arena.target,
                self.simulator, self.scheduler, rng,
            )
            self.boss_attack.start()

        # An empty budget has nothing to fly
        if self.state.shots_remaining <= 0:
            self._finish_round()

        logger.debug(
            "Level %d (%s): %d shots, %d hits required, %d pts carried in",
            level, self.mode_name, self.state.shots_remaining,
            self.state.hits_required, self.state.cumulative_points,
        )

    # ---------- Properties ----------
    @property
    def level(self) -> int:
        return self.state.level

    @property
    def status(self) -> Status:
        return self.state.status

    @property
    def is_over(self) -> bool:
        return self.state.status is Status.ROUND_OVER

    @property
    def can_launch(self) -> bool:
        return (
            self.state.status is Status.AIMING
            and not self._cooling_down
            and not self.simulator.active
            and self.state.shots_remaining > 0
        )

    def _emit(self, event) -> None:
        self.history.append(event)
        if self.listener is not None:
            self.listener(event)

    # ---------- Input ----------
    def pointer_down(self, x: float, y: float) -> bool:
        return self.aim.pointer_down(x, y, can_launch=self.can_launch)

    def pointer_move(self, x: float, y: float) -> None:
        self.aim.pointer_move(x, y)

    def pointer_up(self, x: float = None, y: float = None) -> bool:
        """Release the drag; launches if the gesture was long enough."""
        command = self.aim.pointer_up(x, y)
        if command is None:
            return False
        return self.launch(command)

    def handle(self, event) -> object:
        """Feed a normalized PointerDown/Move/Up event."""
        if isinstance(event, PointerUp):
            return self.pointer_up(event.x, event.y)
        return self.aim.handle(event, can_launch=self.can_launch)

    def preview(self) -> TrajectoryPreview:
        return self.aim.preview()

    # ---------- Transitions ----------
    def launch(self, command: LaunchCommand) -> bool:
        """AIMING -> SHOT_IN_FLIGHT. Ignored while launches are locked out."""
        if not self.can_launch:
            logger.debug("Launch ignored: status=%s cooling_down=%s", self.state.status.value, self._cooling_down)
            return False
        self.state.shots_remaining -= 1
        self.state.shots_fired += 1
        self.state.status = Status.SHOT_IN_FLIGHT
        self.simulator.launch(self.config.world.launch_point, command.velocity)
        self._emit(LaunchEvent(shot_number=self.state.shots_fired, velocity=tuple(command.velocity)))
        return True

    def _end_cooldown(self) -> None:
        self._cooling_down = False

    def _on_terminal(self, report: TickReport) -> None:
        self._emit(ShotResolved(
            shot_number=self.state.shots_fired,
            outcome=report.terminal,
            scored=report.has_scored,
            deflected=report.deflected,
        ))
        self._cooling_down = True
        self.scheduler.call_later(self.config.session.launch_cooldown, self._end_cooldown)

        threshold_met = self.state.hits_scored >= self.state.hits_required
        if self.state.shots_remaining <= 0 or (self.mode.ends_on_threshold and threshold_met):
            self._finish_round()
        else:
            self.state.status = Status.AIMING

    def _finish_round(self) -> None:
        if self._finalized:
            return
        self._finalized = True
        state = self.state
        won = state.hits_scored >= state.hits_required
        state.outcome = RoundOutcome.WIN if won else RoundOutcome.LOSE
        state.status = Status.ROUND_OVER
        if self.boss_attack is not None:
            self.boss_attack.stop()

        # Points from a failed attempt do not count
        earned = state.points_this_level
        if not won:
            state.rollback()

        event = RoundOver(
            outcome=state.outcome,
            hits_scored=state.hits_scored,
            hits_required=state.hits_required,
            points_this_level=earned,
            cumulative_points=state.cumulative_points,
            stars=star_rating(state.hits_scored, state.hits_required),
        )
        logger.info(
            "Level %d %s: %d/%d hits, total %d pts",
            state.level, state.outcome.value, state.hits_scored,
            state.hits_required, state.cumulative_points,
        )
        self.scheduler.call_later(self.config.session.result_delay, lambda: self._emit(event))

    # ---------- Tick ----------
    def tick(self, dt: float = None) -> TickReport:
        """Advance one frame."""
        dt = self.config.world.tick_dt if dt is None else dt
        self.scheduler.advance(dt)
        self.arena.advance(dt)
        if self.is_over:
            return TickReport()

        if self.boss_attack is not None:
            self.boss_attack.advance(dt)

        report = self.simulator.step(dt)
        if report.scored:
            record: ScoreRecord = self.resolver.resolve(self.state, report.deflected)
            self._emit(record)
        if report.terminal is not None:
            self._on_terminal(report)
        return report

    def run_until_resolved(self, max_ticks: int = 10000) -> Optional[ShotResolved]:
        """Tick until the shot in flight resolves (headless helper)."""
        for _ in range(max_ticks):
            if not self.simulator.active:
                break
            self.tick()
        for event in reversed(self.history):
            if isinstance(event, ShotResolved):
                return event
        return None

    def wait_until_ready(self, max_ticks: int = 10000) -> bool:
        """Tick through the launch cooldown. False if the round is over."""
        for _ in range(max_ticks):
            if self.can_launch or self.is_over:
                break
            self.tick()
        return self.can_launch

    def handoff(self) -> LevelHandoff:
        """Where the campaign goes next: level+1 on a win, the same level on a loss."""
        if not self.is_over:
            raise RuntimeError("Session is still in progress")
        max_level = self.config.world.max_level
        if self.state.outcome is RoundOutcome.WIN:
            next_level = min(self.state.level + 1, max_level)
        else:
            next_level = self.state.level
        return LevelHandoff(next_level=next_level, cumulative_points=self.state.cumulative_points)
