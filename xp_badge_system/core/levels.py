"""Learner level derived from XP: one level per 100 XP, starting at level 1."""

from typing import Any, Dict

from xp_badge_system.exceptions import InvalidArgumentError

LEVEL_XP_STEP = 100


def validate_xp(xp: Any) -> int:
    """Return xp unchanged if it is a non-negative int, otherwise raise InvalidArgumentError."""
    if isinstance(xp, bool) or not isinstance(xp, int):
        raise InvalidArgumentError("xp", xp, "must be an integer")
    if xp < 0:
        raise InvalidArgumentError("xp", xp, "must be non-negative")
    return xp


def level_for_xp(xp: int) -> int:
    return validate_xp(xp) // LEVEL_XP_STEP + 1


def progress_to_next_level(xp: int) -> int:
    """Percent of the current level completed (0-99)."""
    xp_into_level = validate_xp(xp) % LEVEL_XP_STEP
    return min(100, round(xp_into_level * 100 / LEVEL_XP_STEP))


def level_info(xp: int) -> Dict[str, Any]:
    validate_xp(xp)
    return {
        "level": level_for_xp(xp),
        "xp_into_level": xp % LEVEL_XP_STEP,
        "xp_for_level": LEVEL_XP_STEP,
        "progress_percent": progress_to_next_level(xp)
    }
