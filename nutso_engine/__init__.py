"""
Nutso Engine
Headless game logic for a slingshot arcade toss: levels, aiming, projectile
flight, scoring, session flow and the high score table.
"""

from nutso_engine.aim import AimController, LaunchCommand, PointerDown, PointerMove, PointerUp
from nutso_engine.ballistics import (
    Contact,
    ProjectileSimulator,
    TerminalOutcome,
    TickReport,
    TrajectoryPreview,
)
from nutso_engine.campaign import Campaign, LevelEntry
from nutso_engine.config import ConfigError, GameConfig, load_config
from nutso_engine.highscores import (
    NOT_RANKED,
    HighScoreEntry,
    HighScoreLedger,
    InitialsEntry,
)
from nutso_engine.levels import LevelConfig, generate_level, is_boss_level
from nutso_engine.scoring import Classification, ScoreRecord
from nutso_engine.session import LevelHandoff, LevelSession, RoundOutcome, RoundOver, Status
from nutso_engine.storage import JsonFileStore, MemoryStore

__all__ = [
    "AimController",
    "LaunchCommand",
    "PointerDown",
    "PointerMove",
    "PointerUp",
    "Contact",
    "ProjectileSimulator",
    "TerminalOutcome",
    "TickReport",
    "TrajectoryPreview",
    "Campaign",
    "LevelEntry",
    "ConfigError",
    "GameConfig",
    "load_config",
    "NOT_RANKED",
    "HighScoreEntry",
    "HighScoreLedger",
    "InitialsEntry",
    "LevelConfig",
    "generate_level",
    "is_boss_level",
    "Classification",
    "ScoreRecord",
    "LevelHandoff",
    "LevelSession",
    "RoundOutcome",
    "RoundOver",
    "Status",
    "JsonFileStore",
    "MemoryStore",
]
