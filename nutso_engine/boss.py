"""
Nutso Engine — Boss Attacks

The owl drops bombs on a timer. A bomb falls toward the squirrel's side of
the field and, when it lands, blasts any nut that is still in flight.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from nutso_engine.ballistics import ProjectileSimulator
from nutso_engine.collision import TargetZone
from nutso_engine.config import BossConfig, WorldConfig
from nutso_engine.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


@dataclass
class Bomb:
    start: Tuple[float, float]
    end: Tuple[float, float]
    fall_time: float
    elapsed: float = 0.0

    @property
    def landed(self) -> bool:
        return self.elapsed >= self.fall_time

    @property
    def position(self) -> Tuple[float, float]:
        """Quadratic ease-in from start to end."""
        progress = min(self.elapsed / self.fall_time, 1.0) if self.fall_time > 0 else 1.0
        eased = progress * progress
        return (
            self.start[0] + (self.end[0] - self.start[0]) * eased,
            self.start[1] + (self.end[1] - self.start[1]) * eased,
        )


def bomb_interval(level: int, boss: BossConfig) -> float:
    boss_number = level / 10
    return max(boss.bomb_base_delay - boss_number * boss.bomb_delay_step, boss.bomb_min_delay)


class BossAttack:
    """Bomb loop for one boss attempt."""

    def __init__(
        self,
        level: int,
        boss: BossConfig,
        world: WorldConfig,
        owl: TargetZone,
        simulator: ProjectileSimulator,
        scheduler: Scheduler,
        rng: np.random.Generator = None,
    ):
        self.level = level
        self.boss = boss
        self.world = world
        self.owl = owl
        self.simulator = simulator
        self.scheduler = scheduler
        self.rng = rng if rng is not None else np.random.default_rng(level)
        self.bombs: List[Bomb] = []
        self.blasts = 0
        self._timer: Optional[TimerHandle] = None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.cancelled

    def start(self) -> None:
        if self.running:
            return
        interval = bomb_interval(self.level, self.boss)
        logger.debug("Boss level %d: bombs every %.2fs", self.level, interval)
        self._timer = self.scheduler.call_every(interval, self.throw_bomb)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self.bombs.clear()

    def throw_bomb(self) -> Bomb:
        owl_x, owl_y = self.owl.anchor
        low, high = self.boss.bomb_drop_x
        bomb = Bomb(
            start=(owl_x, owl_y + 30),
            end=(float(self.rng.uniform(low, high)), self.world.height - self.boss.bomb_ground_offset),
            fall_time=self.boss.bomb_fall_time,
        )
        self.bombs.append(bomb)
        return bomb

    def advance(self, dt: float) -> int:
        """Move falling bombs; detonate the ones that landed. Returns blasts that hit the nut."""
        hits = 0
        for bomb in list(self.bombs):
            bomb.elapsed += dt
            if not bomb.landed:
                continue
            self.bombs.remove(bomb)
            if self.simulator.apply_impulse(bomb.end, self.boss.blast_radius, self.boss.blast_strength):
                hits += 1
        self.blasts += hits
        return hits
