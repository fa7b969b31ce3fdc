"""
Nutso Agents — Preview-Based Aim Solver

Scripted player. Ranks a grid of drag vectors by how close their drag-free
preview arc passes to the target, then replays the best few through a copy
of the live arena (drag, bounces, moving basket) and keeps the first one
that scores. Clean entries beat banked ones.
"""

import copy
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from nutso_engine.aim import velocity_from_drag
from nutso_engine.ballistics import ProjectileSimulator, TrajectoryPreview
from nutso_engine.session import LevelSession


@dataclass(frozen=True)
class AimPlan:
    drag: Tuple[float, float]          # anchor minus pointer
    velocity: Tuple[float, float]
    preview_miss: float                # closest preview approach to the target, px
    verified: bool = False             # full simulation scored
    deflected: bool = False

    def pointer(self, anchor: Tuple[float, float]) -> Tuple[float, float]:
        """Where to release the pointer to produce this drag."""
        return (anchor[0] - self.drag[0], anchor[1] - self.drag[1])


class AimSolver:
    """Grid search over drag angle and length."""

    def __init__(
        self,
        angle_range: Tuple[float, float] = (-85.0, -5.0),
        n_angles: int = 33,
        n_powers: int = 12,
        n_verify: int = 10,
        max_ticks: int = 900,
    ):
        self.angles = np.radians(np.linspace(angle_range[0], angle_range[1], n_angles))
        self.n_powers = n_powers
        self.n_verify = n_verify
        self.max_ticks = max_ticks

    def candidates(self, session: LevelSession) -> List[Tuple[float, float]]:
        aim = session.config.aim
        lengths = np.linspace(aim.min_launch_threshold + 1.0, aim.max_drag_distance, self.n_powers)
        return [
            (float(np.cos(a) * r), float(np.sin(a) * r))
            for a in self.angles
            for r in lengths
        ]

    def preview_miss(self, session: LevelSession, velocity: Tuple[float, float]) -> float:
        """Closest approach of the drag-free arc to the target center (px)."""
        world = session.config.world
        tx, ty, _, _ = session.arena.target.rect
        arc = TrajectoryPreview(
            origin=world.launch_point,
            velocity=velocity,
            gravity=session.config.physics.gravity,
            ground_y=world.ground_y,
            reach=world.width,
            step=session.config.aim.preview_step,
            horizon=4.0,
        )
        points = np.array(list(arc))
        if len(points) == 0:
            return math.inf
        return float(np.min(np.hypot(points[:, 0] - tx, points[:, 1] - ty)))

    def simulate(self, session: LevelSession, velocity: Tuple[float, float]) -> Tuple[bool, bool]:
        """Replay a shot against a copy of the arena. Returns (scored, deflected)."""
        arena = copy.deepcopy(session.arena)
        sim = ProjectileSimulator(session.config.world, session.config.physics, session.mode, arena)
        sim.launch(session.config.world.launch_point, velocity)
        dt = session.config.world.tick_dt
        report = None
        for _ in range(self.max_ticks):
            arena.advance(dt)
            report = sim.step(dt)
            if report.terminal is not None:
                break
        if report is None:
            return False, False
        return report.has_scored, report.deflected

    def solve(self, session: LevelSession) -> AimPlan:
        aim = session.config.aim
        ranked = []
        for drag in self.candidates(session):
            velocity = velocity_from_drag(drag[0], drag[1], aim)
            ranked.append(AimPlan(drag, velocity, self.preview_miss(session, velocity)))
        ranked.sort(key=lambda plan: plan.preview_miss)

        fallback: Optional[AimPlan] = None
        for plan in ranked[:self.n_verify]:
            scored, deflected = self.simulate(session, plan.velocity)
            if not scored:
                continue
            verified = AimPlan(plan.drag, plan.velocity, plan.preview_miss, True, deflected)
            if not deflected:
                return verified
            fallback = fallback or verified
        return fallback or ranked[0]


def random_plan(session: LevelSession, rng: np.random.Generator) -> AimPlan:
    """Uniformly random drag above the launch threshold, aimed up and right."""
    aim = session.config.aim
    angle = rng.uniform(-np.pi / 2, 0.0)
    length = rng.uniform(aim.min_launch_threshold + 1.0, aim.max_drag_distance)
    drag = (float(np.cos(angle) * length), float(np.sin(angle) * length))
    return AimPlan(drag, velocity_from_drag(drag[0], drag[1], aim), math.inf)


def play_shot(session: LevelSession, plan: AimPlan) -> bool:
    """Perform the drag gesture for `plan` and fly the shot to its outcome."""
    anchor = session.config.world.launch_point
    if not session.pointer_down(*anchor):
        return False
    if not session.pointer_up(*plan.pointer(anchor)):
        return False
    session.run_until_resolved()
    session.wait_until_ready()
    return True
