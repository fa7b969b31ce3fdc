"""
Nutso Engine — Campaign

Threads cumulative points from level to level: a win advances, a loss
retries the same level with the points it started with. At game over the
final score goes to the high score ledger if it qualifies.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date as date_cls
from typing import Callable, List, Optional

from nutso_engine.config import BOSS, NORMAL, GameConfig, load_config
from nutso_engine.highscores import NOT_RANKED, HighScoreEntry, HighScoreLedger, validate_initials
from nutso_engine.levels import clamp_level, is_boss_level
from nutso_engine.session import LevelHandoff, LevelSession, RoundOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LevelEntry:
    """Inbound handoff for a level session."""
    level: int
    mode: str
    cumulative_points: int
    dev_skip: Optional[int] = None

    @classmethod
    def from_dict(cls, raw: dict) -> "LevelEntry":
        """Parse a `{level, mode, cumulative_points, dev_skip?}` handoff."""
        return cls(
            level=int(raw["level"]),
            mode=raw.get("mode") or (BOSS if is_boss_level(int(raw["level"])) else NORMAL),
            cumulative_points=int(raw.get("cumulative_points", 0)),
            dev_skip=int(raw["dev_skip"]) if raw.get("dev_skip") is not None else None,
        )

    def to_dict(self) -> dict:
        return asdict(self)


class Campaign:
    """Drives consecutive level sessions for one player."""

    def __init__(
        self,
        config: GameConfig = None,
        ledger: HighScoreLedger = None,
        start_level: int = 1,
        cumulative_points: int = 0,
        difficulty: str = None,
        listener: Callable[[object], None] = None,
    ):
        self.config = config or load_config()
        self.ledger = ledger if ledger is not None else HighScoreLedger()
        self.difficulty = difficulty
        self.listener = listener
        self.level = clamp_level(start_level, self.max_level)
        self.cumulative_points = int(cumulative_points)
        self.highest_level = self.level
        self.completed = False
        self.finished = False
        self.attempts: List[LevelHandoff] = []
        self.session: Optional[LevelSession] = None

    @property
    def max_level(self) -> int:
        return self.config.world.max_level

    def entry(self, dev_skip: int = None) -> LevelEntry:
        level = self.level if dev_skip is None else clamp_level(self.level + dev_skip, self.max_level)
        return LevelEntry(
            level=level,
            mode=BOSS if is_boss_level(level) else NORMAL,
            cumulative_points=self.cumulative_points,
            dev_skip=dev_skip,
        )

    def new_session(self) -> LevelSession:
        """Open a fresh session at the current level."""
        if self.finished:
            raise RuntimeError("Campaign is over")
        self.session = LevelSession(
            self.level,
            cumulative_points=self.cumulative_points,
            config=self.config,
            difficulty=self.difficulty,
            listener=self.listener,
        )
        return self.session

    def skip(self, levels: int) -> LevelEntry:
        """Developer shortcut: jump ahead keeping current points. Clamped to the ceiling."""
        entry = self.entry(dev_skip=levels)
        logger.info("Skipping from level %d to %d", self.level, entry.level)
        self.level = entry.level
        self.highest_level = max(self.highest_level, self.level)
        self.session = None
        return entry

    def complete_level(self) -> LevelHandoff:
        """Apply the finished session's handoff and move on."""
        if self.session is None or not self.session.is_over:
            raise RuntimeError("No finished session to hand off")
        handoff = self.session.handoff()
        won = self.session.state.outcome is RoundOutcome.WIN
        if won and self.session.level >= self.max_level:
            self.completed = True
        self.level = handoff.next_level
        self.cumulative_points = handoff.cumulative_points
        self.highest_level = max(self.highest_level, self.level)
        self.attempts.append(handoff)
        self.session = None
        return handoff

    def qualifies(self) -> bool:
        return self.ledger.qualifies(self.cumulative_points)

    def finish(self, initials: str = None, on: date_cls = None) -> int:
        """Game over. Records the score when it qualifies; returns rank or NOT_RANKED."""
        if initials is not None:
            initials = validate_initials(initials)
        self.finished = True
        self.session = None
        if initials is None or not self.qualifies():
            return NOT_RANKED
        entry = HighScoreEntry.create(initials, self.cumulative_points, self.highest_level, on)
        rank = self.ledger.record(entry)
        logger.info("%s scored %d (level %d): rank %s", entry.initials, entry.score, entry.level, rank)
        return rank

    @classmethod
    def resume(
        cls,
        entry: dict,
        config: GameConfig = None,
        ledger: HighScoreLedger = None,
        difficulty: str = None,
        listener: Callable[[object], None] = None,
    ) -> "Campaign":
        """Pick up a campaign from an inbound handoff dict, honoring `dev_skip`."""
        parsed = LevelEntry.from_dict(entry)
        campaign = cls(
            config=config,
            ledger=ledger,
            start_level=parsed.level,
            cumulative_points=parsed.cumulative_points,
            difficulty=difficulty,
            listener=listener,
        )
        if parsed.dev_skip:
            campaign.skip(parsed.dev_skip)
        return campaign
