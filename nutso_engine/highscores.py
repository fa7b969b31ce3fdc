"""
Nutso Engine — High Score Ledger

Pinball-style top-10 table with 3-letter initials. Persisted as a JSON list
through a KeyValueStore; any read/write problem degrades to the default
table or a skipped save.
"""

import json
import logging
import re
from dataclasses import asdict, dataclass
from datetime import date as date_cls
from typing import List, Optional

from nutso_engine.storage import KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "nutso_highscores"
MAX_ENTRIES = 10
NOT_RANKED = -1

_INITIALS_RE = re.compile(r"^[A-Z]{3}$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_initials(initials: str) -> str:
    """Normalize to upper case; raise ValueError unless exactly 3 letters."""
    if not isinstance(initials, str):
        raise ValueError(f"Initials must be a string, got {type(initials).__name__}")
    normalized = initials.strip().upper()
    if not _INITIALS_RE.match(normalized):
        raise ValueError(f"Initials must be exactly 3 letters A-Z, got {initials!r}")
    return normalized


@dataclass(frozen=True)
class HighScoreEntry:
    initials: str
    score: int
    level: int
    date: str

    @classmethod
    def create(cls, initials: str, score: int, level: int, on: date_cls = None) -> "HighScoreEntry":
        """Validated constructor; `on` defaults to today."""
        return cls(
            initials=validate_initials(initials),
            score=int(score),
            level=int(level),
            date=(on or date_cls.today()).isoformat(),
        )

    @classmethod
    def from_dict(cls, raw: dict) -> "HighScoreEntry":
        if not isinstance(raw, dict):
            raise ValueError(f"Expected an object, got {type(raw).__name__}")
        score, level, when = raw["score"], raw["level"], raw["date"]
        if isinstance(score, bool) or not isinstance(score, int):
            raise ValueError(f"Bad score: {score!r}")
        if isinstance(level, bool) or not isinstance(level, int):
            raise ValueError(f"Bad level: {level!r}")
        if not isinstance(when, str) or not _ISO_DATE_RE.match(when):
            raise ValueError(f"Bad date: {when!r}")
        return cls(initials=validate_initials(raw["initials"]), score=score, level=level, date=when)

    def to_dict(self) -> dict:
        return asdict(self)


def default_high_scores() -> List[HighScoreEntry]:
    return [
        HighScoreEntry("NUT", 5000, 50, "2024-01-01"),
        HighScoreEntry("ACE", 4000, 40, "2024-01-01"),
        HighScoreEntry("PRO", 3000, 30, "2024-01-01"),
        HighScoreEntry("FUN", 2000, 20, "2024-01-01"),
        HighScoreEntry("NEW", 1000, 10, "2024-01-01"),
    ]


def _rank_sorted(entries: List[HighScoreEntry]) -> List[HighScoreEntry]:
    # sorted() is stable, so ties keep insertion order
    return sorted(entries, key=lambda e: e.score, reverse=True)[:MAX_ENTRIES]


class HighScoreLedger:
    """Ranked top-10 table backed by a KeyValueStore."""

    def __init__(self, store: KeyValueStore = None, key: str = STORAGE_KEY):
        self._store = store if store is not None else MemoryStore()
        self._key = key
        self._entries = self._load()

    def ranked(self) -> List[HighScoreEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def qualifies(self, score: int) -> bool:
        if len(self._entries) < MAX_ENTRIES:
            return True
        return score > self._entries[-1].score

    def record(self, entry: HighScoreEntry) -> int:
        """Insert, re-rank, truncate and persist. Returns the 1-based rank or NOT_RANKED."""
        if validate_initials(entry.initials) != entry.initials:
            raise ValueError(f"Initials must be upper case: {entry.initials!r}")
        candidates = self._entries + [entry]
        self._entries = _rank_sorted(candidates)
        self._save()
        for i, kept in enumerate(self._entries):
            if kept is entry:
                return i + 1
        return NOT_RANKED

    def reset(self) -> None:
        """Restore the default table."""
        self._entries = _rank_sorted(default_high_scores())
        self._save()

    def _load(self) -> List[HighScoreEntry]:
        try:
            stored = self._store.get(self._key)
        except OSError as e:
            logger.warning("Could not read high scores: %s", e)
            stored = None
        if stored is None:
            return _rank_sorted(default_high_scores())
        try:
            payload = json.loads(stored)
            if not isinstance(payload, list):
                raise ValueError("expected a JSON list")
            entries = [HighScoreEntry.from_dict(item) for item in payload]
        except (json.JSONDecodeError, TypeError, ValueError, KeyError) as e:
            logger.warning("Ignoring malformed high scores: %s", e)
            return _rank_sorted(default_high_scores())
        return _rank_sorted(entries)

    def _save(self) -> bool:
        payload = json.dumps([e.to_dict() for e in self._entries])
        try:
            saved = self._store.set(self._key, payload)
        except OSError as e:
            logger.warning("Could not save high scores: %s", e)
            return False
        if not saved:
            logger.warning("High score save was rejected by the store")
        return bool(saved)


class InitialsEntry:
    """Three-slot initials editor: cycle letters, move the cursor, or type."""

    SLOTS = 3

    def __init__(self, initial: str = "AAA"):
        self.letters = list(validate_initials(initial))
        self.position = 0

    @property
    def initials(self) -> str:
        return "".join(self.letters)

    def select(self, position: int) -> None:
        self.position = position % self.SLOTS

    def move(self, step: int) -> None:
        self.select(self.position + step)

    def change_letter(self, delta: int) -> str:
        """Cycle the current slot, wrapping Z->A and A->Z."""
        offset = (ord(self.letters[self.position]) - ord("A") + delta) % 26
        self.letters[self.position] = chr(ord("A") + offset)
        return self.letters[self.position]

    def type(self, key: str) -> bool:
        """Set the current slot from a typed key; non-letters are rejected."""
        if not isinstance(key, str) or len(key) != 1 or not ("a" <= key.lower() <= "z"):
            return False
        self.letters[self.position] = key.upper()
        self.move(1)
        return True

    def handle_key(self, key: str) -> Optional[str]:
        """Keyboard mapping. Returns the initials when Enter submits."""
        if key == "ArrowUp":
            self.change_letter(1)
        elif key == "ArrowDown":
            self.change_letter(-1)
        elif key == "ArrowRight":
            self.move(1)
        elif key == "ArrowLeft":
            self.move(-1)
        elif key == "Enter":
            return self.initials
        else:
            self.type(key)
        return None
