"""
Nutso Engine — Collision Geometry

Target zone, backboard and obstacles, plus the one-dimensional ping-pong
oscillator that drives every moving piece (bobbing basket, patrolling
obstacles, the boss owl).
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from nutso_engine.config import GameConfig
from nutso_engine.levels import LevelConfig, boss_speed, obstacle_speed, target_speed


# ---------- Motion ----------
@dataclass
class Oscillator:
    """Bounded ping-pong motion along one axis.

    Moves at a constant speed (px/s) and reverses direction when it reaches
    either bound. Position is clamped to [low, high] at all times.
    """
    position: float
    speed: float
    low: float
    high: float
    direction: int = 1

    def __post_init__(self) -> None:
        if self.low > self.high:
            raise ValueError(f"Oscillator bounds inverted: {self.low} > {self.high}")
        self.position = float(np.clip(self.position, self.low, self.high))

    @property
    def velocity(self) -> float:
        return self.speed * self.direction

    def step(self, dt: float) -> float:
        if self.speed <= 0:
            return self.position
        self.position += self.speed * self.direction * dt
        if self.position <= self.low:
            self.position = self.low
            self.direction = 1
        elif self.position >= self.high:
            self.position = self.high
            self.direction = -1
        return self.position


# ---------- Geometry ----------
def circle_overlaps_rect(
    center: np.ndarray,
    radius: float,
    rect: Tuple[float, float, float, float],
) -> bool:
    """Circle vs axis-aligned rect given as (cx, cy, width, height)."""
    cx, cy, w, h = rect
    closest_x = np.clip(center[0], cx - w / 2, cx + w / 2)
    closest_y = np.clip(center[1], cy - h / 2, cy + h / 2)
    dx = center[0] - closest_x
    dy = center[1] - closest_y
    return dx * dx + dy * dy <= radius * radius


@dataclass
class TargetZone:
    """Scoring zone of the basket (or the owl's belly).

    `anchor_x`/`anchor_y` is the resting position of the body that carries the
    zone; `motion` (if any) overrides the coordinate on `axis`.
    """
    anchor_x: float
    anchor_y: float
    width: float
    height: float
    offset_y: float = 0.0
    requires_downward: bool = True
    motion: Optional[Oscillator] = None
    axis: str = "y"

    @property
    def anchor(self) -> Tuple[float, float]:
        if self.motion is None:
            return (self.anchor_x, self.anchor_y)
        if self.axis == "x":
            return (self.motion.position, self.anchor_y)
        return (self.anchor_x, self.motion.position)

    @property
    def rect(self) -> Tuple[float, float, float, float]:
        x, y = self.anchor
        return (x, y + self.offset_y, self.width, self.height)

    def accepts(self, position: np.ndarray, velocity: np.ndarray, radius: float) -> bool:
        """True when the projectile overlaps the zone from an allowed direction."""
        if not circle_overlaps_rect(position, radius, self.rect):
            return False
        if self.requires_downward and velocity[1] <= 0:
            return False
        return True


@dataclass
class Backboard:
    """Vertical bank-shot surface carried by the target."""
    target: TargetZone
    offset_x: float
    offset_y: float
    width: float
    height: float
    bounce: float

    @property
    def rect(self) -> Tuple[float, float, float, float]:
        x, y = self.target.anchor
        return (x + self.offset_x, y + self.offset_y, self.width, self.height)

    def resolve(self, position: np.ndarray, velocity: np.ndarray, radius: float) -> bool:
        """Reflect horizontal velocity on contact. Returns True if touched."""
        if not circle_overlaps_rect(position, radius, self.rect):
            return False
        cx, _, w, _ = self.rect
        if position[0] < cx:
            position[0] = cx - w / 2 - radius
            velocity[0] = -abs(velocity[0]) * self.bounce
        else:
            position[0] = cx + w / 2 + radius
            velocity[0] = abs(velocity[0]) * self.bounce
        return True


@dataclass
class Obstacle:
    """A patrolling bar that shoves the projectile away on contact."""
    y: float
    width: float
    height: float
    speed: float                  # px/frame, scales the push
    motion: Oscillator
    marks_deflected: bool = False

    @property
    def center(self) -> Tuple[float, float]:
        return (self.motion.position, self.y)

    @property
    def rect(self) -> Tuple[float, float, float, float]:
        return (self.motion.position, self.y, self.width, self.height)

    def push(
        self,
        position: np.ndarray,
        velocity: np.ndarray,
        radius: float,
        base: float,
        per_speed: float,
        lift: float,
    ) -> bool:
        """Radial deflection away from the obstacle center. Returns True if touched."""
        if not circle_overlaps_rect(position, radius, self.rect):
            return False
        cx, cy = self.center
        angle = np.arctan2(position[1] - cy, position[0] - cx)
        force = base + self.speed * per_speed
        velocity[0] = np.cos(angle) * force
        velocity[1] = np.sin(angle) * force - lift
        return True


@dataclass
class Arena:
    """All collision geometry for one level attempt."""
    target: TargetZone
    backboard: Optional[Backboard] = None
    obstacles: List[Obstacle] = field(default_factory=list)

    def advance(self, dt: float) -> None:
        """Move every oscillating piece by one tick."""
        if self.target.motion is not None:
            self.target.motion.step(dt)
        for obstacle in self.obstacles:
            obstacle.motion.step(dt)


# ---------- Construction ----------
def _target_anchor(level_config: LevelConfig, config: GameConfig) -> Tuple[float, float]:
    world = config.world
    x = world.width - level_config.target_x * world.width
    y = world.playable_offset + level_config.target_y * world.playable_height
    return x, y


def build_arena(level_config: LevelConfig, config: GameConfig, difficulty: str = None) -> Arena:
    """Lay out the target, backboard and obstacles for a level."""
    world, physics = config.world, config.physics
    mode = config.mode(level_config.mode)
    anchor_x, anchor_y = _target_anchor(level_config, config)

    if level_config.is_boss:
        boss = config.boss
        motion = Oscillator(
            position=anchor_x,
            speed=boss_speed(level_config.level) * world.frame_rate,
            low=world.width * boss.patrol_min_fraction,
            high=world.width - boss.patrol_max_offset,
        )
        target = TargetZone(
            anchor_x=anchor_x,
            anchor_y=anchor_y,
            width=boss.belly_size,
            height=boss.belly_size,
            offset_y=boss.belly_offset_y,
            requires_downward=mode.requires_downward_entry,
            motion=motion,
            axis="x",
        )
        return Arena(target=target)

    basket_w, basket_h = config.basket_size(difficulty)
    motion = Oscillator(
        position=anchor_y,
        speed=target_speed(level_config.level) * world.frame_rate,
        low=physics.target_min_y,
        high=world.height - physics.target_max_y_offset,
    )
    target = TargetZone(
        anchor_x=anchor_x,
        anchor_y=anchor_y,
        width=basket_w + 10,
        height=basket_h / 2 + 20,
        offset_y=-basket_h / 4,
        requires_downward=mode.requires_downward_entry,
        motion=motion,
        axis="y",
    )
    backboard = Backboard(
        target=target,
        offset_x=basket_w / 2 + physics.backboard_gap,
        offset_y=-basket_h,
        width=physics.backboard_width,
        height=basket_h * 2.5,
        bounce=mode.backboard_bounce,
    )

    speed = obstacle_speed(level_config.level)
    obstacles = []
    for spec in level_config.obstacles:
        x = spec.x * world.width
        obstacles.append(Obstacle(
            y=world.playable_offset + spec.y * world.playable_height,
            width=spec.width,
            height=physics.obstacle_height,
            speed=speed,
            motion=Oscillator(
                position=x,
                speed=speed * world.frame_rate,
                low=x - physics.obstacle_patrol,
                high=x + physics.obstacle_patrol,
            ),
            marks_deflected=mode.obstacles_mark_deflected,
        ))

    return Arena(target=target, backboard=backboard, obstacles=obstacles)
