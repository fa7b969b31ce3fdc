"""
Nutso Engine — Projectile Flight

Tick-driven simulation of the single in-flight nut: gravity, drag, ground
bounce, backboard bank shots, obstacle deflections and target entry.
Each tick returns one immutable TickReport describing what happened.

Coordinate system: screen pixels, x right, y DOWN (gravity is +y).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple

import numpy as np

from nutso_engine.collision import Arena
from nutso_engine.config import ModeConfig, PhysicsConfig, WorldConfig


# ---------- Outcomes ----------
class Contact(Enum):
    GROUND_BOUNCE = "ground_bounce"
    BACKBOARD_HIT = "backboard_hit"
    OBSTACLE_DEFLECT = "obstacle_deflect"
    SCORED = "scored"


class TerminalOutcome(Enum):
    MISS = "miss"
    SETTLED = "settled"
    CAPTURED = "captured"


@dataclass(frozen=True)
class TickReport:
    """What one tick did to the projectile. Empty events means nothing touched."""
    events: Tuple[Contact, ...] = ()
    terminal: Optional[TerminalOutcome] = None
    position: Optional[Tuple[float, float]] = None
    deflected: bool = False
    has_scored: bool = False   # latch, may have been set on an earlier tick

    @property
    def scored(self) -> bool:
        return Contact.SCORED in self.events


# ---------- Data Classes ----------
@dataclass
class Projectile:
    position: np.ndarray
    velocity: np.ndarray
    active: bool = True
    scored: bool = False
    deflected: bool = False
    age: float = 0.0

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.velocity))


# ---------- Simulator ----------
class ProjectileSimulator:
    """Advances at most one projectile per tick and reports its fate."""

    def __init__(
        self,
        world: WorldConfig,
        physics: PhysicsConfig,
        mode: ModeConfig,
        arena: Arena,
    ):
        self.world = world
        self.physics = physics
        self.mode = mode
        self.arena = arena
        self.projectile: Optional[Projectile] = None

    @property
    def active(self) -> bool:
        return self.projectile is not None and self.projectile.active

    def launch(self, origin, velocity) -> Projectile:
        """Spawn the projectile. Only one may be in flight."""
        if self.active:
            raise RuntimeError("A projectile is already in flight")
        self.projectile = Projectile(
            position=np.array(origin, dtype=np.float64),
            velocity=np.array(velocity, dtype=np.float64),
        )
        return self.projectile

    def apply_impulse(self, origin, radius: float, strength: float) -> bool:
        """Blast push: adds (radius - dist) * strength away from origin."""
        if not self.active:
            return False
        p = self.projectile
        offset = p.position - np.asarray(origin, dtype=np.float64)
        dist = float(np.linalg.norm(offset))
        if dist >= radius:
            return False
        angle = np.arctan2(offset[1], offset[0])
        force = (radius - dist) * strength
        p.velocity = p.velocity + np.array([np.cos(angle), np.sin(angle)]) * force
        return True

    def _integrate(self, p: Projectile, dt: float) -> None:
        p.velocity[1] += self.physics.gravity * dt

        # Drag slows the body along its direction of travel, never reversing it
        speed = np.linalg.norm(p.velocity)
        if speed > 1e-8:
            new_speed = max(speed - self.mode.drag * dt, 0.0)
            p.velocity = p.velocity * (new_speed / speed)

        p.position = p.position + p.velocity * dt
        p.age += dt

    def _resolve_collisions(self, p: Projectile) -> list:
        events = []
        r = self.physics.projectile_radius

        # 1. Ground
        ground = self.world.ground_y
        if p.position[1] + r >= ground and p.velocity[1] > 0:
            p.position[1] = ground - r
            p.velocity[1] = -p.velocity[1] * self.mode.bounce
            events.append(Contact.GROUND_BOUNCE)

        # 2. Backboard
        backboard = self.arena.backboard
        if backboard is not None and backboard.resolve(p.position, p.velocity, r):
            p.deflected = True
            events.append(Contact.BACKBOARD_HIT)

        # 3. Obstacles
        for obstacle in self.arena.obstacles:
            touched = obstacle.push(
                p.position, p.velocity, r,
                self.physics.obstacle_push_base,
                self.physics.obstacle_push_per_speed,
                self.physics.obstacle_push_lift,
            )
            if touched:
                if obstacle.marks_deflected:
                    p.deflected = True
                events.append(Contact.OBSTACLE_DEFLECT)

        # 4. Target entry, latched
        if not p.scored and self.arena.target.accepts(p.position, p.velocity, r):
            p.scored = True
            events.append(Contact.SCORED)

        return events

    def _terminal(self, p: Projectile, scored_now: bool) -> Optional[TerminalOutcome]:
        margin = self.physics.out_of_bounds_margin
        x, y = p.position
        if x < -margin or x > self.world.width + margin or y > self.world.height + margin:
            return TerminalOutcome.MISS
        near_ground = self.world.height - self.physics.near_ground_offset
        if p.speed < self.physics.settle_speed and y > near_ground:
            return TerminalOutcome.SETTLED
        if scored_now and self.mode.capture_on_score:
            return TerminalOutcome.CAPTURED
        if p.age >= self.physics.max_flight_time:
            return TerminalOutcome.SETTLED
        return None

    def step(self, dt: float) -> TickReport:
        """Advance the projectile by one tick."""
        if not self.active:
            return TickReport()

        p = self.projectile
        self._integrate(p, dt)
        events = self._resolve_collisions(p)
        terminal = self._terminal(p, Contact.SCORED in events)

        report = TickReport(
            events=tuple(events),
            terminal=terminal,
            position=(float(p.position[0]), float(p.position[1])),
            deflected=p.deflected,
            has_scored=p.scored,
        )
        if terminal is not None:
            p.active = False
            self.projectile = None
        return report


# ---------- Preview ----------
class TrajectoryPreview:
    """Restartable, side-effect free sampling of the drag-free launch parabola.

    Iterating yields (x, y) points every `step` seconds until the path drops
    below the ground line, strays further than `reach` horizontally, or the
    time horizon runs out.
    """

    def __init__(
        self,
        origin: Tuple[float, float],
        velocity: Tuple[float, float],
        gravity: float,
        ground_y: float,
        reach: float,
        step: float = 0.05,
        horizon: float = 1.5,
    ):
        self.origin = (float(origin[0]), float(origin[1]))
        self.velocity = (float(velocity[0]), float(velocity[1]))
        self.gravity = gravity
        self.ground_y = ground_y
        self.reach = reach
        self.step = step
        self.horizon = horizon

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        x0, y0 = self.origin
        vx, vy = self.velocity
        n_steps = int(round(self.horizon / self.step))
        for i in range(n_steps):
            t = i * self.step
            x = x0 + vx * t
            y = y0 + vy * t + 0.5 * self.gravity * t * t
            if y > self.ground_y:
                break
            if abs(x - x0) > self.reach:
                break
            yield (x, y)


# ---------- Smoke Test ----------
if __name__ == "__main__":
    from rich.console import Console
    from rich.table import Table

    from nutso_engine.collision import build_arena
    from nutso_engine.config import load_config
    from nutso_engine.levels import generate_level

    console = Console()
    console.print("\n[bold cyan]═══ Nutso Ballistics Smoke Test ═══[/bold cyan]\n")

    config = load_config()
    level = generate_level(1)
    arena = build_arena(level, config)
    sim = ProjectileSimulator(config.world, config.physics, config.normal, arena)
    sim.launch(config.world.launch_point, (600.0, -500.0))

    table = Table(title="Flight (every 15 ticks)")
    table.add_column("Tick", style="cyan")
    table.add_column("Position", style="green")
    table.add_column("Events", style="yellow")

    tick = 0
    while sim.active:
        report = sim.step(config.world.tick_dt)
        if tick % 15 == 0 or report.events or report.terminal:
            x, y = report.position
            table.add_row(str(tick), f"({x:.0f}, {y:.0f})",
                          ", ".join(e.value for e in report.events) or "-")
        tick += 1
    console.print(table)
    console.print(f"  Terminal outcome: [bold]{report.terminal.value}[/bold] after {tick} ticks\n")
