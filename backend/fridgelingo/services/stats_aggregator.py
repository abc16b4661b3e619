"""
FridgeLingo Backend — Stats Aggregator
=======================================

What:  XP, title ladder and freshness bucket counts for the profile screen.
How:   Pure computation over the fridge listing; no database access.

XP:
    total_xp = 50 per item + 20 per proficiency level
"""

from typing import NamedTuple, Sequence

from fridgelingo.schemas.fridge import FridgeItem, Stats
from fridgelingo.schemas.vocabulary import Freshness

XP_PER_ITEM = 50
XP_PER_LEVEL = 20


class Tier(NamedTuple):
    threshold: int
    title: str


# Lowest first
TITLE_LADDER = (
    Tier(0, "🥚 Dorm Student"),
    Tier(200, "🍳 Home Cook"),
    Tier(1000, "👨‍🍳 Master Chef"),
)

# Shown as the "next" title at the top tier; never reachable
BEYOND_TOP_TITLE = "👑 Legend"


def total_xp(items: Sequence[FridgeItem]) -> int:
    return len(items) * XP_PER_ITEM + sum(item.proficiency_level * XP_PER_LEVEL for item in items)


class StatsAggregator:
    """Derives Stats from the full fridge listing."""

    def __init__(self, ladder: Sequence[Tier] = TITLE_LADDER):
        self.ladder = tuple(sorted(ladder, key=lambda tier: tier.threshold))

    def compute_stats(self, items: Sequence[FridgeItem]) -> Stats:
        xp = total_xp(items)

        index = 0
        for i, tier in enumerate(self.ladder):
            if tier.threshold <= xp:
                index = i

        current = self.ladder[index]
        if index + 1 < len(self.ladder):
            upcoming = self.ladder[index + 1]
            next_title, next_level_xp = upcoming.title, upcoming.threshold
        else:
            # Top tier: progress saturates against its own threshold
            next_title, next_level_xp = BEYOND_TOP_TITLE, current.threshold

        if next_level_xp > 0:
            progress = min(1.0, xp / next_level_xp)
        else:
            progress = 1.0

        return Stats(
            current_title=current.title,
            next_title=next_title,
            total_xp=xp,
            next_level_xp=next_level_xp,
            progress_percentage=progress,
            total_items=len(items),
            fresh_count=sum(1 for item in items if item.freshness == Freshness.FRESH),
            warning_count=sum(1 for item in items if item.freshness == Freshness.WARNING),
            rotten_count=sum(1 for item in items if item.freshness == Freshness.ROTTEN),
        )
