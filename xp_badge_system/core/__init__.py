"""Core badge evaluation components"""

from .badge_allocator import BadgeAllocator
from .badge_evaluator import BadgeEvaluator, evaluate_badges
from .catalog import (
    BUILTIN_CATALOGS,
    CLASSIC_CATALOG,
    EXTENDED_CATALOG,
    BadgeCatalog,
    BadgeTier,
    get_catalog,
    load_catalog_file,
)
from .levels import level_for_xp, level_info, progress_to_next_level

__all__ = [
    "BadgeAllocator", "BadgeEvaluator", "evaluate_badges",
    "BadgeCatalog", "BadgeTier", "CLASSIC_CATALOG", "EXTENDED_CATALOG",
    "BUILTIN_CATALOGS", "get_catalog", "load_catalog_file",
    "level_for_xp", "level_info", "progress_to_next_level",
]
