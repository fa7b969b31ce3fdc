"""
Nutso Test Suite — Shared Fixtures

Provides reusable pytest fixtures and shot helpers for all test stages.
"""

import json
import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from nutso_engine.ballistics import ProjectileSimulator
from nutso_engine.collision import Arena, TargetZone
from nutso_engine.config import load_config
from nutso_engine.highscores import STORAGE_KEY, HighScoreLedger
from nutso_engine.session import LevelSession
from nutso_engine.storage import MemoryStore


# ---------- Shot Helpers ----------
# Straight-up shots land back on the launch column, so parking the target
# above the launch point makes a guaranteed clean score.
TARGET_OVER_LAUNCH = (200.0, 450.0)
SCORE_DRAG = (0.0, -60.0)      # drag vector, anchor minus pointer
MISS_DRAG = (-100.0, -20.0)    # flies off the left edge


def park_target(session: LevelSession, x: float = TARGET_OVER_LAUNCH[0], y: float = TARGET_OVER_LAUNCH[1]):
    """Freeze the session's target at (x, y) and clear the lane to it."""
    target = session.arena.target
    target.motion = None
    target.anchor_x = x
    target.anchor_y = y
    session.arena.obstacles.clear()
    if session.boss_attack is not None:
        session.boss_attack.stop()
    return target


def shoot(session: LevelSession, drag) -> bool:
    """Drag from the launch point, release, and fly the shot to its outcome."""
    ax, ay = session.config.world.launch_point
    if not session.pointer_down(ax, ay):
        return False
    launched = session.pointer_up(ax - drag[0], ay - drag[1])
    session.run_until_resolved()
    session.wait_until_ready()
    return launched


def score_shot(session: LevelSession) -> bool:
    return shoot(session, SCORE_DRAG)


def miss_shot(session: LevelSession) -> bool:
    return shoot(session, MISS_DRAG)


def play_round(session: LevelSession, hits: int) -> None:
    """Score `hits` times, then miss until the round ends."""
    park_target(session)
    for _ in range(hits):
        score_shot(session)
    while not session.is_over:
        miss_shot(session)


def ledger_json(rows) -> str:
    """Serialize (initials, score, level) rows the way the ledger stores them."""
    return json.dumps([
        {"initials": i, "score": s, "level": lv, "date": "2024-01-01"}
        for i, s, lv in rows
    ])


# ---------- Config Fixtures ----------
@pytest.fixture
def config():
    """Default game tuning."""
    return load_config()


@pytest.fixture
def seeded_rng():
    """Seeded numpy RNG for determinism."""
    return np.random.default_rng(seed=42)


# ---------- Simulator Fixtures ----------
@pytest.fixture
def static_target():
    """A 100x100 zone high in the middle of the screen."""
    return TargetZone(anchor_x=600.0, anchor_y=300.0, width=100.0, height=100.0)


@pytest.fixture
def simulator(config, static_target):
    """Normal-mode simulator with a bare static target."""
    return ProjectileSimulator(config.world, config.physics, config.normal, Arena(target=static_target))


# ---------- Session Fixtures ----------
@pytest.fixture
def level_one(config):
    """Level 1 session (static basket, no obstacles)."""
    return LevelSession(1, config=config)


@pytest.fixture
def boss_session(config, seeded_rng):
    """First boss level."""
    return LevelSession(10, config=config, rng=seeded_rng)


# ---------- Ledger Fixtures ----------
@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def ledger(memory_store):
    """Fresh ledger seeded with the default table."""
    return HighScoreLedger(memory_store)


@pytest.fixture
def full_ledger():
    """Ten entries, lowest score 100."""
    rows = [(f"A{chr(ord('A') + i)}A", 1000 - i * 100, 10 - i) for i in range(10)]
    return HighScoreLedger(MemoryStore({STORAGE_KEY: ledger_json(rows)}))
