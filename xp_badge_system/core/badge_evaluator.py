"""
Badge Evaluator

Maps an XP value to every badge earned at that XP. Badges are cumulative:
a learner holds each tier whose threshold is at or below their XP, listed
from the lowest tier up.

Example:
    >>> evaluate_badges(100)
    ['first_steps', 'rising_star', 'dedicated_learner']
"""

from typing import Any, Dict, List, Optional

from xp_badge_system.core.catalog import CLASSIC_CATALOG, BadgeCatalog, BadgeTier
from xp_badge_system.core.levels import level_for_xp, progress_to_next_level, validate_xp


def evaluate_badges(xp: int, catalog: BadgeCatalog = CLASSIC_CATALOG) -> List[str]:
    """
    Return the identifiers of all badges earned at the given XP.

    Args:
        xp: Non-negative experience points
        catalog: Threshold table to evaluate against

    Returns:
        Badge identifiers in ascending threshold order (empty if none earned)

    Raises:
        InvalidArgumentError: If xp is not a non-negative integer
    """
    validate_xp(xp)

    badges = []
    for tier in catalog:
        if xp >= tier.threshold:
            badges.append(tier.badge_id)
    return badges


class BadgeEvaluator:
    """
    Badge Evaluator bound to one catalog, with progress helpers used by the
    profile and leaderboard views.
    """

    def __init__(self, catalog: BadgeCatalog = CLASSIC_CATALOG):
        self.catalog = catalog

    def evaluate(self, xp: int) -> List[str]:
        return evaluate_badges(xp, self.catalog)

    def earned_tiers(self, xp: int) -> List[BadgeTier]:
        validate_xp(xp)
        return [tier for tier in self.catalog if xp >= tier.threshold]

    def next_badge(self, xp: int) -> Optional[BadgeTier]:
        """Lowest tier not yet earned, or None when the catalog is complete."""
        validate_xp(xp)
        for tier in self.catalog:
            if tier.threshold > xp:
                return tier
        return None

    def xp_to_next_badge(self, xp: int) -> Optional[int]:
        tier = self.next_badge(xp)
        return tier.threshold - xp if tier else None

    def newly_earned(self, previous_xp: int, current_xp: int) -> List[str]:
        """Badges earned between two XP readings, in catalog order."""
        before = set(self.evaluate(previous_xp))
        return [badge_id for badge_id in self.evaluate(current_xp) if badge_id not in before]

    def summarize(self, xp: int) -> Dict[str, Any]:
        badges = self.evaluate(xp)
        next_tier = self.next_badge(xp)

        return {
            "xp": xp,
            "level": level_for_xp(xp),
            "progress_to_next_level": progress_to_next_level(xp),
            "badges": badges,
            "earned_count": len(badges),
            "total_count": len(self.catalog),
            "next_badge": next_tier.badge_id if next_tier else None,
            "xp_to_next_badge": next_tier.threshold - xp if next_tier else None,
            "catalog": self.catalog.name
        }
