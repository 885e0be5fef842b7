"""Experience → level rules."""
from __future__ import annotations

EXPERIENCE_PER_LEVEL = 100
COINS_PER_LEVEL = 10


def level_for_experience(experience: int) -> int:
    """Level is a pure function of accumulated experience: floor(xp / 100) + 1."""
    return max(0, int(experience)) // EXPERIENCE_PER_LEVEL + 1


def level_up_reward(new_level: int) -> int:
    return new_level * COINS_PER_LEVEL
