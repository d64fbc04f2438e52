# ============================================================================
# Level Curve
# ============================================================================
from math import isqrt
from learnquest.schemas.gamification import LevelInfo

# Titles for the first levels; anything beyond keeps the last title
LEVEL_TITLES = [
    "Curious Beginner",
    "Eager Learner",
    "Knowledge Seeker",
    "Rising Coder",
    "Dedicated Student",
    "Problem Solver",
    "Skilled Practitioner",
    "Code Crafter",
    "Distinguished Scholar",
    "Master Mind",
    "Algorithm Champion",
    "Wisdom Seeker",
    "Grand Architect",
    "Community Mentor",
    "LearnQuest Legend",
]

class LevelCurve:
    """
    Level n starts at `base * n * (n - 1) / 2` XP, so with the default base of
    100 the thresholds are 0, 100, 300, 600, 1000, 1500, ...

    Every non-negative XP total maps to exactly one level and the mapping is
    non-decreasing.
    """

    def __init__(self, base_xp: int = 100):
        if base_xp <= 0:
            raise ValueError("base_xp must be positive")
        self.base_xp = base_xp

    def threshold(self, level: int) -> int:
        """XP required to reach `level`"""
        if level < 1:
            raise ValueError("levels start at 1")
        return self.base_xp * level * (level - 1) // 2

    def level_for(self, total_xp: int) -> int:
        if total_xp < 0:
            raise ValueError("total_xp must be non-negative")
        # largest n with n(n-1) <= 2 * total_xp / base
        k = (2 * total_xp) // self.base_xp
        level = (1 + isqrt(1 + 4 * k)) // 2
        # guard the integer-division edge when base does not divide 2 * xp
        while self.threshold(level + 1) <= total_xp:
            level += 1
        while level > 1 and self.threshold(level) > total_xp:
            level -= 1
        return level

    def is_level_up(self, old_total: int, new_total: int) -> bool:
        return self.level_for(new_total) > self.level_for(old_total)

    @staticmethod
    def title_for(level: int) -> str:
        index = min(max(level, 1), len(LEVEL_TITLES)) - 1
        return LEVEL_TITLES[index]

    def get_level_info(self, total_xp: int) -> LevelInfo:
        """Get detailed level information"""
        level = self.level_for(total_xp)
        current_threshold = self.threshold(level)
        next_threshold = self.threshold(level + 1)

        xp_in_level = total_xp - current_threshold
        xp_for_next = next_threshold - current_threshold
        progress_percent = xp_in_level / xp_for_next * 100

        return LevelInfo(
            level=level,
            title=self.title_for(level),
            total_xp=total_xp,
            level_start_xp=current_threshold,
            next_level_xp=next_threshold,
            xp_in_level=xp_in_level,
            xp_for_next_level=xp_for_next,
            xp_to_next_level=next_threshold - total_xp,
            progress_percent=round(progress_percent, 1),
        )
