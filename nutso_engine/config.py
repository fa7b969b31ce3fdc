"""
Nutso Engine — Game Configuration

Tuning constants for the world, aiming, physics, both encounter modes and the
session. Defaults ship in configs/default.yaml; a user YAML can override any
subset of keys.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

CONFIGS_DIR = Path(__file__).resolve().parent / "configs"
DEFAULT_CONFIG_PATH = CONFIGS_DIR / "default.yaml"

NORMAL = "normal"
BOSS = "boss"
DIFFICULTIES = ("easy", "medium", "hard")


class ConfigError(ValueError):
    """Raised when a configuration file is malformed or has unknown keys."""


# ---------- Data Classes ----------
@dataclass(frozen=True)
class WorldConfig:
    width: float = 1280
    height: float = 720
    ground_y: float = 660
    playable_offset: float = 80
    playable_height: float = 600
    tick_dt: float = 1.0 / 60.0
    frame_rate: float = 60
    max_level: int = 100
    actor_x: float = 200
    actor_y: float = 620
    launch_offset_y: float = 30

    @property
    def launch_point(self) -> Tuple[float, float]:
        """Where projectiles spawn and where the drag anchor sits."""
        return (self.actor_x, self.actor_y - self.launch_offset_y)


@dataclass(frozen=True)
class AimConfig:
    activation_radius: float = 150
    activation_left_fraction: float = 0.35
    max_drag_distance: float = 120
    max_power: float = 800
    min_launch_threshold: float = 20
    preview_step: float = 0.05
    preview_horizon: float = 1.5
    preview_reach_fraction: float = 0.5


@dataclass(frozen=True)
class PhysicsConfig:
    gravity: float = 400
    projectile_radius: float = 12
    out_of_bounds_margin: float = 30
    settle_speed: float = 10
    near_ground_offset: float = 100
    max_flight_time: float = 20.0
    obstacle_height: float = 15
    obstacle_patrol: float = 60
    obstacle_push_base: float = 200
    obstacle_push_per_speed: float = 50
    obstacle_push_lift: float = 100
    target_min_y: float = 150
    target_max_y_offset: float = 120
    backboard_width: float = 12
    backboard_gap: float = 15


@dataclass(frozen=True)
class ModeConfig:
    """Per-encounter rules. One instance for normal levels, one for bosses."""
    bounce: float = 0.75
    drag: float = 45
    backboard_bounce: float = 0.75
    base_points: int = 100
    swoosh_bonus: int = 10
    hits_required: int = 5
    obstacles_mark_deflected: bool = True
    requires_downward_entry: bool = True
    capture_on_score: bool = True
    ends_on_threshold: bool = False


@dataclass(frozen=True)
class BossConfig:
    owl_offset_x: float = 200
    patrol_min_fraction: float = 0.5
    patrol_max_offset: float = 100
    belly_size: float = 60
    belly_offset_y: float = 15
    bomb_base_delay: float = 3.0
    bomb_delay_step: float = 0.2
    bomb_min_delay: float = 1.0
    bomb_fall_time: float = 1.5
    bomb_drop_x: Tuple[float, float] = (100, 400)
    bomb_ground_offset: float = 80
    blast_radius: float = 100
    blast_strength: float = 5


@dataclass(frozen=True)
class SessionConfig:
    shots: int = 20
    launch_cooldown: float = 0.3
    result_delay: float = 0.5
    difficulty: str = "medium"


@dataclass(frozen=True)
class GameConfig:
    world: WorldConfig = field(default_factory=WorldConfig)
    aim: AimConfig = field(default_factory=AimConfig)
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    normal: ModeConfig = field(default_factory=ModeConfig)
    boss_mode: ModeConfig = field(default_factory=lambda: ModeConfig(
        bounce=0.6, drag=30, backboard_bounce=0.0, swoosh_bonus=0,
        hits_required=15, obstacles_mark_deflected=False,
        requires_downward_entry=False, ends_on_threshold=True,
    ))
    boss: BossConfig = field(default_factory=BossConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    difficulty_multipliers: Dict[str, float] = field(
        default_factory=lambda: {"easy": 10, "medium": 5, "hard": 3}
    )

    def mode(self, name: str) -> ModeConfig:
        """Rules for the 'normal' or 'boss' encounter mode."""
        if name == NORMAL:
            return self.normal
        if name == BOSS:
            return self.boss_mode
        raise ValueError(f"Unknown mode: {name!r}")

    def basket_size(self, difficulty: Optional[str] = None) -> Tuple[float, float]:
        """(width, height) of the basket for a difficulty setting."""
        difficulty = difficulty or self.session.difficulty
        if difficulty not in self.difficulty_multipliers:
            raise ValueError(f"Unknown difficulty: {difficulty!r}")
        width = 20.0 * self.difficulty_multipliers[difficulty]
        return width, width * 0.8


# ---------- Loading ----------
def _deep_merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _build(cls, section: str, raw) -> object:
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"[{section}] expected a mapping, got {type(raw).__name__}")
    known = {f.name: f for f in fields(cls)}
    unknown = set(raw) - set(known)
    if unknown:
        raise ConfigError(f"[{section}] unknown keys: {sorted(unknown)}")
    kwargs = {}
    for key, value in raw.items():
        if isinstance(value, list):
            value = tuple(value)
        kwargs[key] = value
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise ConfigError(f"[{section}] {e}") from e


def config_from_dict(data: dict) -> GameConfig:
    """Build a GameConfig from a parsed YAML mapping."""
    if not isinstance(data, dict):
        raise ConfigError("Top-level config must be a mapping")
    allowed = {"world", "aim", "physics", "modes", "boss", "session", "difficulty_multipliers"}
    unknown = set(data) - allowed
    if unknown:
        raise ConfigError(f"Unknown config sections: {sorted(unknown)}")

    modes = data.get("modes") or {}
    if set(modes) - {NORMAL, BOSS}:
        raise ConfigError(f"[modes] unknown modes: {sorted(set(modes) - {NORMAL, BOSS})}")

    multipliers = data.get("difficulty_multipliers") or {"easy": 10, "medium": 5, "hard": 3}
    if not isinstance(multipliers, dict) or not multipliers:
        raise ConfigError("[difficulty_multipliers] expected a non-empty mapping")

    defaults = GameConfig()
    config = GameConfig(
        world=_build(WorldConfig, "world", data.get("world")),
        aim=_build(AimConfig, "aim", data.get("aim")),
        physics=_build(PhysicsConfig, "physics", data.get("physics")),
        normal=_build(ModeConfig, "modes.normal", modes.get(NORMAL)),
        boss_mode=(
            _build(ModeConfig, "modes.boss", modes[BOSS])
            if modes.get(BOSS) is not None else defaults.boss_mode
        ),
        boss=_build(BossConfig, "boss", data.get("boss")),
        session=_build(SessionConfig, "session", data.get("session")),
        difficulty_multipliers={str(k): float(v) for k, v in multipliers.items()},
    )
    if config.session.difficulty not in config.difficulty_multipliers:
        raise ConfigError(f"[session] unknown difficulty: {config.session.difficulty!r}")
    if config.session.shots < 0:
        raise ConfigError("[session] shots must be >= 0")
    return config


def load_config(config_path: Path = None) -> GameConfig:
    """Load the default config, deep-merging an optional override file on top."""
    with open(DEFAULT_CONFIG_PATH, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if config_path is not None:
        config_path = Path(config_path)
        try:
            with open(config_path, encoding="utf-8") as f:
                override = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{config_path.name}: invalid YAML: {e}") from e
        if not isinstance(override, dict):
            raise ConfigError(f"{config_path.name}: expected a mapping at top level")
        logger.info("Applying config overrides from %s", config_path)
        data = _deep_merge(data, override)

    return config_from_dict(data)
