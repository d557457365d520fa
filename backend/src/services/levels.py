from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class LevelDefinition:
    min: int
    max: float
    title: str


@dataclass
class LevelProgress:
    title: str
    level_number: int
    progress: int
    next_threshold: int
    is_max: bool


LEVELS: List[LevelDefinition] = [
    LevelDefinition(1, 5, "Latte Learner"),
    LevelDefinition(6, 20, "Desk Devotee"),
    LevelDefinition(21, 50, "Earphone Explorer"),
    LevelDefinition(51, 100, "Backpack Nomad"),
    LevelDefinition(101, math.inf, "Ocean Pathfinder"),
]

VISITED_LEVELS: List[LevelDefinition] = [
    LevelDefinition(1, 5, "Latte Explorer"),
    LevelDefinition(6, 20, "Urban Voyager"),
    LevelDefinition(21, 50, "Skyline Navigator"),
    LevelDefinition(51, 100, "Orbit Runner"),
    LevelDefinition(101, math.inf, "Cosmic Pathfinder"),
]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def level_for(count: int, levels: List[LevelDefinition]) -> LevelProgress:
    index = next((i for i, lvl in enumerate(levels) if lvl.min <= count <= lvl.max), 0)
    level = levels[index]
    next_threshold = levels[index + 1].min if index + 1 < len(levels) else level.min
    span = max(next_threshold - level.min, 1)
    if math.isinf(level.max):
        raw = 100.0
    else:
        raw = (count - level.min) / span * 100
    progress = min(100, max(0, _round_half_up(raw)))
    return LevelProgress(
        title=level.title,
        level_number=index + 1,
        progress=progress,
        next_threshold=next_threshold,
        is_max=math.isinf(level.max),
    )


def get_level(count: int) -> LevelProgress:
    """Contribution level for the number of approved submissions."""
    return level_for(count, LEVELS)


def get_visited_level(count: int) -> LevelProgress:
    return level_for(count, VISITED_LEVELS)
