# File: src/processing/score_quantizer.py
"""Thumbs up/down voting over discrete score levels"""
from dataclasses import dataclass
from enum import Enum

from core.models import Article, USER_AGENT

SCORE_LEVELS = (-10, -7, -4, 0, 4, 7, 10)

class Direction(Enum):
    UP = "up"
    DOWN = "down"

@dataclass(frozen=True)
class ScoreChange:
    score: int
    agent: str = USER_AGENT

    def as_changes(self):
        return {'score': self.score, 'agent': self.agent}


def nearest_level(score: int) -> int:
    """Closest defined level; ties resolve to the lower level"""
    closest = SCORE_LEVELS[0]
    for level in SCORE_LEVELS[1:]:
        if abs(level - score) < abs(closest - score):
            closest = level
    return closest


def next_score(current: int, direction: Direction) -> int:
    """Score after one vote in the given direction"""
    step = True
    if current in SCORE_LEVELS:
        index = SCORE_LEVELS.index(current)
    else:
        closest = nearest_level(current)
        index = SCORE_LEVELS.index(closest)
        # re-homing already moved the score in the requested direction
        if closest > current and direction is Direction.UP:
            step = False
        elif closest < current and direction is Direction.DOWN:
            step = False

    if step:
        if direction is Direction.UP:
            index = min(index + 1, len(SCORE_LEVELS) - 1)
        else:
            index = max(index - 1, 0)

    return SCORE_LEVELS[index]


def vote(article: Article, direction: Direction) -> ScoreChange:
    """Score change produced by a manual vote on an article"""
    return ScoreChange(score=next_score(article.score, direction))
