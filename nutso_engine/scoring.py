"""
Nutso Engine — Score Resolution

Classifies a target entry (clean swoosh vs. banked/deflected) and converts it
into points for the running session.
"""

from dataclasses import dataclass
from enum import Enum

from nutso_engine.config import BOSS, ModeConfig


class Classification(Enum):
    STANDARD = "standard"
    SWOOSH = "swoosh"


@dataclass(frozen=True)
class ScoreRecord:
    """Immutable record of one hit, handed to the renderer."""
    hit_index: int
    classification: Classification
    points: int


class ScoreResolver:
    def __init__(self, mode_name: str, mode: ModeConfig):
        self.mode_name = mode_name
        self.mode = mode

    def classify(self, deflected: bool) -> Classification:
        if self.mode_name == BOSS:
            return Classification.STANDARD
        return Classification.STANDARD if deflected else Classification.SWOOSH

    def points_for(self, classification: Classification) -> int:
        if classification is Classification.SWOOSH:
            return self.mode.base_points + self.mode.swoosh_bonus
        return self.mode.base_points

    def resolve(self, state, deflected: bool) -> ScoreRecord:
        """Award a hit to `state` and return its record."""
        classification = self.classify(deflected)
        points = self.points_for(classification)
        state.hits_scored += 1
        state.points_this_level += points
        state.cumulative_points += points
        return ScoreRecord(
            hit_index=state.hits_scored,
            classification=classification,
            points=points,
        )
