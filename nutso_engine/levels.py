"""
Nutso Engine — Level Parameter Generator

Maps a level index to its geometry: basket position, obstacle layout and the
boss flag. The whole config is a pure function of the level index; obstacle
jitter is drawn from an RNG seeded with the level.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from nutso_engine.config import BOSS, NORMAL, GameConfig

BOSS_INTERVAL = 10
MAX_OBSTACLES = 5
TARGET_Y_RANGE = (0.1, 0.9)


@dataclass(frozen=True)
class ObstacleSpec:
    """An obstacle in normalized play coordinates (width in pixels)."""
    x: float
    y: float
    width: float


@dataclass(frozen=True)
class LevelConfig:
    level: int
    target_y: float                       # 0-1 of playable height
    target_x: float                       # 0-1 of width, from the right edge
    obstacles: Tuple[ObstacleSpec, ...]
    is_boss: bool

    @property
    def mode(self) -> str:
        return BOSS if self.is_boss else NORMAL


def _check_level(level: int) -> None:
    if isinstance(level, bool) or not isinstance(level, (int, np.integer)) or level < 1:
        raise ValueError(f"Level must be a positive integer, got {level!r}")


def is_boss_level(level: int) -> bool:
    return level % BOSS_INTERVAL == 0


def clamp_level(level: int, max_level: int = 100) -> int:
    """Clamp a requested level into [1, max_level]."""
    return max(1, min(int(level), int(max_level)))


def hits_required(level: int, config: GameConfig) -> int:
    return config.mode(BOSS if is_boss_level(level) else NORMAL).hits_required


def target_speed(level: int) -> float:
    """Basket bob speed in px/frame. The first level's basket stands still."""
    if level <= 1:
        return 0.0
    return 0.5 + (level - 2) * 0.3


def obstacle_speed(level: int) -> float:
    """Obstacle patrol speed in px/frame."""
    return 1.0 + max(level - 5, 0) * 0.15


def boss_speed(level: int) -> float:
    """Owl patrol speed in px/frame; later bosses move faster."""
    return 0.5 + (level / BOSS_INTERVAL) * 0.3


def generate_level(level: int) -> LevelConfig:
    """Build the configuration for a level.

    Boss levels (every 10th) use a fixed target and no obstacles. Regular
    levels scale a sinusoidal basket height with difficulty and add one
    obstacle per eight levels, up to five.
    """
    _check_level(level)
    level = int(level)

    if is_boss_level(level):
        return LevelConfig(level=level, target_y=0.5, target_x=0.15, obstacles=(), is_boss=True)

    difficulty = min(level / 100.0, 1.0)
    target_y = 0.3 + math.sin(level * 0.5) * 0.2 * difficulty
    target_y = float(np.clip(target_y, *TARGET_Y_RANGE))
    target_x = 0.1 + (level % 5) * 0.02

    num_obstacles = min(level // 8, MAX_OBSTACLES)
    rng = np.random.default_rng(level)

    obstacles = []
    for i in range(num_obstacles):
        # Spread evenly across the middle of the play area
        base_x = 0.3 + (i / max(num_obstacles - 1, 1)) * 0.4
        base_y = 0.3 + ((i % 3) / 3) * 0.4
        width = 80.0 + rng.random() * 60.0
        obstacles.append(ObstacleSpec(
            x=float(base_x + (rng.random() - 0.5) * 0.1),
            y=float(base_y + (rng.random() - 0.5) * 0.1),
            width=float(width),
        ))

    return LevelConfig(
        level=level,
        target_y=target_y,
        target_x=target_x,
        obstacles=tuple(obstacles),
        is_boss=False,
    )


# ---------- Smoke Test ----------
if __name__ == "__main__":
    from rich.console import Console
    from rich.table import Table

    console = Console()
    console.print("\n[bold cyan]═══ Nutso Level Generator Smoke Test ═══[/bold cyan]\n")

    table = Table(title="Levels")
    table.add_column("Level", style="cyan")
    table.add_column("Mode")
    table.add_column("Target (x, y)", style="green")
    table.add_column("Obstacles", justify="right")
    table.add_column("Basket speed", justify="right")

    for lv in (1, 2, 5, 8, 10, 16, 25, 40, 50, 99, 100):
        cfg = generate_level(lv)
        table.add_row(
            str(lv),
            cfg.mode,
            f"({cfg.target_x:.2f}, {cfg.target_y:.3f})",
            str(len(cfg.obstacles)),
            f"{boss_speed(lv) if cfg.is_boss else target_speed(lv):.2f}",
        )
    console.print(table)
    console.print()
