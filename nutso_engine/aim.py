"""
Nutso Engine — Aim Controller

Turns a slingshot-style drag gesture into a launch velocity and a trajectory
preview. Consumes normalized pointer events; drawing is someone else's job.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from nutso_engine.ballistics import TrajectoryPreview
from nutso_engine.config import AimConfig, PhysicsConfig, WorldConfig


class AimState(Enum):
    IDLE = "idle"
    AIMING = "aiming"
    RELEASED = "released"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PointerDown:
    x: float
    y: float


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(frozen=True)
class PointerUp:
    x: float
    y: float


@dataclass(frozen=True)
class LaunchCommand:
    velocity: Tuple[float, float]
    power: float
    angle: float


class AimController:
    """Idle -> Aiming -> {Released, Cancelled} -> Idle."""

    def __init__(self, aim: AimConfig, world: WorldConfig, physics: PhysicsConfig):
        self.aim = aim
        self.world = world
        self.physics = physics
        self.state = AimState.IDLE
        self.anchor: Tuple[float, float] = world.launch_point
        self.pointer: Tuple[float, float] = self.anchor
        self.last_result: Optional[AimState] = None

    @property
    def aiming(self) -> bool:
        return self.state is AimState.AIMING

    def in_activation_region(self, x: float, y: float) -> bool:
        dist = math.hypot(x - self.world.actor_x, y - self.world.actor_y)
        return dist < self.aim.activation_radius or x < self.world.width * self.aim.activation_left_fraction

    # ---------- Input ----------
    def pointer_down(self, x: float, y: float, can_launch: bool = True) -> bool:
        """Start aiming. Returns True if the gesture was accepted."""
        if not can_launch or self.aiming:
            return False
        if not self.in_activation_region(x, y):
            return False
        self.state = AimState.AIMING
        self.anchor = self.world.launch_point
        self.pointer = (float(x), float(y))
        return True

    def pointer_move(self, x: float, y: float) -> None:
        if self.aiming:
            self.pointer = (float(x), float(y))

    def pointer_up(self, x: float = None, y: float = None) -> Optional[LaunchCommand]:
        """Finish the gesture. Returns a launch command, or None if too short."""
        if not self.aiming:
            return None
        if x is not None and y is not None:
            self.pointer = (float(x), float(y))

        if self.drag_magnitude() > self.aim.min_launch_threshold:
            command = self.launch_command()
            self.last_result = AimState.RELEASED
        else:
            command = None
            self.last_result = AimState.CANCELLED
        self.state = AimState.IDLE
        return command

    def cancel(self) -> None:
        """Abort the gesture with no side effects."""
        if self.aiming:
            self.last_result = AimState.CANCELLED
        self.state = AimState.IDLE

    def handle(self, event, can_launch: bool = True):
        """Dispatch a PointerDown/PointerMove/PointerUp event."""
        if isinstance(event, PointerDown):
            return self.pointer_down(event.x, event.y, can_launch)
        if isinstance(event, PointerMove):
            return self.pointer_move(event.x, event.y)
        if isinstance(event, PointerUp):
            return self.pointer_up(event.x, event.y)
        raise TypeError(f"Unsupported input event: {event!r}")

    # ---------- Derived values ----------
    def drag_vector(self) -> Tuple[float, float]:
        return (self.anchor[0] - self.pointer[0], self.anchor[1] - self.pointer[1])

    def drag_magnitude(self) -> float:
        return math.hypot(*self.drag_vector())

    def power(self) -> float:
        clamped = min(self.drag_magnitude(), self.aim.max_drag_distance)
        return clamped / self.aim.max_drag_distance * self.aim.max_power

    def angle(self) -> float:
        dx, dy = self.drag_vector()
        return math.atan2(dy, dx)

    def launch_velocity(self) -> Tuple[float, float]:
        power, angle = self.power(), self.angle()
        return (math.cos(angle) * power, math.sin(angle) * power)

    def launch_command(self) -> LaunchCommand:
        return LaunchCommand(velocity=self.launch_velocity(), power=self.power(), angle=self.angle())

    def preview(self) -> TrajectoryPreview:
        """Preview points for the current drag (empty-motion if not aiming)."""
        velocity = self.launch_velocity() if self.aiming else (0.0, 0.0)
        return TrajectoryPreview(
            origin=self.anchor,
            velocity=velocity,
            gravity=self.physics.gravity,
            ground_y=self.world.ground_y,
            reach=self.world.width * self.aim.preview_reach_fraction,
            step=self.aim.preview_step,
            horizon=self.aim.preview_horizon,
        )


def velocity_from_drag(dx: float, dy: float, aim: AimConfig) -> Tuple[float, float]:
    """Launch velocity for a raw drag vector (anchor minus pointer)."""
    magnitude = min(math.hypot(dx, dy), aim.max_drag_distance)
    power = magnitude / aim.max_drag_distance * aim.max_power
    angle = math.atan2(dy, dx)
    return (math.cos(angle) * power, math.sin(angle) * power)
