"""
Nutso Agents — Toss Gymnasium Environment

Wraps one LevelSession. One step is one shot; the episode ends when the
round is over (shots exhausted, or a boss beaten early).

Observation space (8 floats):
    target pos (2, normalized to the screen) + target vel (2, px/s over the
    screen size) + shots remaining ratio (1) + hits/threshold ratio (1) +
    is_boss (1) + obstacle count / 5 (1)

Action space (2 floats):
    drag_angle [-1,1] → [-85°, -5°] (up and to the right)
    drag_length [-1,1] → [min launch threshold, max drag distance]
"""

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from nutso_engine.config import GameConfig, load_config
from nutso_engine.levels import MAX_OBSTACLES
from nutso_engine.scoring import ScoreRecord
from nutso_engine.session import LevelSession, RoundOutcome, ShotResolved

ANGLE_RANGE = (np.radians(-85.0), np.radians(-5.0))


class TossEnv(gym.Env):
    """Single-level toss environment."""

    metadata = {"render_modes": []}

    def __init__(
        self,
        level: int = 1,
        config: GameConfig = None,
        difficulty: str = None,
        render_mode: str = None,
    ):
        super().__init__()
        self.level = level
        self.game_config = config or load_config()
        self.difficulty = difficulty
        self.render_mode = render_mode

        self.observation_space = spaces.Box(
            low=-np.inf, high=np.inf, shape=(8,), dtype=np.float32
        )
        self.action_space = spaces.Box(
            low=-1.0, high=1.0, shape=(2,), dtype=np.float32
        )

        self.session: LevelSession = None

        # Stats tracking
        self.episode_count: int = 0
        self.win_count: int = 0

    def action_to_drag(self, action: np.ndarray) -> tuple:
        """Map a normalized action to a drag vector (anchor minus pointer)."""
        action = np.clip(np.asarray(action, dtype=np.float64), -1.0, 1.0)
        aim = self.game_config.aim
        lo, hi = ANGLE_RANGE
        angle = lo + (action[0] + 1.0) / 2.0 * (hi - lo)
        min_len = aim.min_launch_threshold + 1.0
        length = min_len + (action[1] + 1.0) / 2.0 * (aim.max_drag_distance - min_len)
        return (float(np.cos(angle) * length), float(np.sin(angle) * length))

    def _get_observation(self) -> np.ndarray:
        world = self.game_config.world
        state = self.session.state
        target = self.session.arena.target
        x, y = target.anchor
        vx = vy = 0.0
        if target.motion is not None:
            if target.axis == "x":
                vx = target.motion.velocity
            else:
                vy = target.motion.velocity

        obs = np.array([
            x / world.width,
            y / world.height,
            vx / world.width,
            vy / world.height,
            state.shots_remaining / max(self.game_config.session.shots, 1),
            state.hits_scored / max(state.hits_required, 1),
            float(self.session.level_config.is_boss),
            len(self.session.arena.obstacles) / MAX_OBSTACLES,
        ], dtype=np.float32)

        # Safety net: clamp NaN/inf
        return np.nan_to_num(obs, nan=0.0, posinf=10.0, neginf=-10.0)

    def _info(self) -> dict:
        state = self.session.state
        return {
            "level": state.level,
            "mode": state.mode,
            "shots_remaining": state.shots_remaining,
            "hits_scored": state.hits_scored,
            "hits_required": state.hits_required,
            "points_this_level": state.points_this_level,
            "outcome": state.outcome.value if state.outcome else None,
        }

    def reset(self, seed=None, options=None):
        """Start a fresh attempt at the configured level."""
        super().reset(seed=seed)
        level = (options or {}).get("level", self.level)
        self.session = LevelSession(
            level,
            config=self.game_config,
            difficulty=self.difficulty,
            rng=self.np_random,
        )
        return self._get_observation(), self._info()

    def step(self, action: np.ndarray):
        """Take one shot and fly it to its outcome."""
        if self.session is None or self.session.is_over:
            raise RuntimeError("Call reset() before step()")

        drag = self.action_to_drag(action)
        anchor = self.game_config.world.launch_point
        seen = len(self.session.history)

        self.session.pointer_down(*anchor)
        self.session.pointer_up(anchor[0] - drag[0], anchor[1] - drag[1])
        self.session.run_until_resolved()
        self.session.wait_until_ready()

        new_events = self.session.history[seen:]
        reward = float(sum(e.points for e in new_events if isinstance(e, ScoreRecord)))
        resolved = [e for e in new_events if isinstance(e, ShotResolved)]

        terminated = self.session.is_over
        if terminated:
            self.episode_count += 1
            if self.session.state.outcome is RoundOutcome.WIN:
                self.win_count += 1

        info = self._info()
        info["scored"] = bool(resolved and resolved[-1].scored)
        info["deflected"] = bool(resolved and resolved[-1].deflected)
        info["terminal"] = resolved[-1].outcome.value if resolved else None
        return self._get_observation(), reward, terminated, False, info

    @property
    def win_rate(self) -> float:
        if self.episode_count == 0:
            return 0.0
        return self.win_count / self.episode_count


# ---------- Smoke Test ----------
if __name__ == "__main__":
    from rich.console import Console

    console = Console()
    console.print("\n[bold cyan]═══ Nutso Toss Environment Smoke Test ═══[/bold cyan]\n")

    env = TossEnv(level=3)
    obs, info = env.reset(seed=7)
    console.print(f"  Observation space: {env.observation_space}")
    console.print(f"  Action space: {env.action_space}")
    console.print(f"  Initial obs: {obs}")

    total = 0.0
    terminated = False
    while not terminated:
        obs, reward, terminated, _, info = env.step(env.action_space.sample())
        total += reward
    console.print(f"  Random round: {info['hits_scored']}/{info['hits_required']} hits, "
                  f"{total:.0f} pts, outcome={info['outcome']}")
    console.print("  ✅ Environment ran a full round\n")
