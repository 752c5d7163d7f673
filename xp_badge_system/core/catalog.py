"""
Badge Catalogs

A catalog is the fixed, ordered table of XP thresholds and the badge each
threshold unlocks. Two catalogs are built in; a deployment may also load its
own table from a JSON file.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from xp_badge_system.exceptions import CatalogError

logger = logging.getLogger(__name__)


def _default_title(badge_id: str) -> str:
    return badge_id.replace("_", " ").title()


def _default_label_key(badge_id: str) -> str:
    head, *rest = badge_id.split("_")
    return "badge." + head + "".join(part.capitalize() for part in rest)


@dataclass(frozen=True)
class BadgeTier:
    """A badge and the minimum XP required to earn it"""
    badge_id: str
    threshold: int
    title: str = ""
    label_key: str = ""

    def __post_init__(self):
        # frozen dataclass: fill display defaults through object.__setattr__
        if not isinstance(self.badge_id, str):
            return
        if not self.title:
            object.__setattr__(self, "title", _default_title(self.badge_id))
        if not self.label_key:
            object.__setattr__(self, "label_key", _default_label_key(self.badge_id))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "badge_id": self.badge_id,
            "threshold": self.threshold,
            "title": self.title,
            "label_key": self.label_key
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BadgeTier":
        if not isinstance(data, dict):
            raise CatalogError(f"Tier entry must be an object, got {type(data).__name__}")

        badge_id = data.get("badge_id", data.get("id"))
        if "threshold" not in data:
            raise CatalogError(f"Tier {badge_id!r} is missing 'threshold'")

        return cls(
            badge_id=badge_id,
            threshold=data["threshold"],
            title=data.get("title", ""),
            label_key=data.get("label_key", "")
        )


class BadgeCatalog:
    """
    Immutable, ordered table of badge tiers.

    Thresholds must be non-negative integers in strictly increasing order and
    badge identifiers must be unique.
    """

    def __init__(self, name: str, tiers: Iterable[BadgeTier]):
        self.name = name
        self._tiers: Tuple[BadgeTier, ...] = tuple(tiers)
        self._validate()

    def _validate(self):
        seen = set()
        previous = None

        for tier in self._tiers:
            if not isinstance(tier.badge_id, str) or not tier.badge_id:
                raise CatalogError(f"Badge identifier must be a non-empty string, got {tier.badge_id!r}", self.name)

            if isinstance(tier.threshold, bool) or not isinstance(tier.threshold, int):
                raise CatalogError(f"Threshold for {tier.badge_id!r} must be an integer, got {tier.threshold!r}", self.name)

            if tier.threshold < 0:
                raise CatalogError(f"Threshold for {tier.badge_id!r} must be non-negative, got {tier.threshold}", self.name)

            if tier.badge_id in seen:
                raise CatalogError(f"Duplicate badge identifier {tier.badge_id!r}", self.name)

            if previous is not None and tier.threshold <= previous.threshold:
                raise CatalogError(
                    f"Thresholds must be strictly increasing: {tier.badge_id!r} ({tier.threshold}) "
                    f"follows {previous.badge_id!r} ({previous.threshold})",
                    self.name
                )

            seen.add(tier.badge_id)
            previous = tier

    @property
    def tiers(self) -> Tuple[BadgeTier, ...]:
        return self._tiers

    @property
    def badge_ids(self) -> List[str]:
        return [tier.badge_id for tier in self._tiers]

    @property
    def thresholds(self) -> List[int]:
        return [tier.threshold for tier in self._tiers]

    @property
    def lowest_threshold(self) -> Optional[int]:
        return self._tiers[0].threshold if self._tiers else None

    @property
    def highest_threshold(self) -> Optional[int]:
        return self._tiers[-1].threshold if self._tiers else None

    def get(self, badge_id: str) -> Optional[BadgeTier]:
        for tier in self._tiers:
            if tier.badge_id == badge_id:
                return tier
        return None

    def position(self, badge_id: str) -> int:
        """Index of a badge in catalog order; unknown badges sort last."""
        for index, tier in enumerate(self._tiers):
            if tier.badge_id == badge_id:
                return index
        return len(self._tiers)

    def __iter__(self) -> Iterator[BadgeTier]:
        return iter(self._tiers)

    def __len__(self) -> int:
        return len(self._tiers)

    def __eq__(self, other) -> bool:
        if not isinstance(other, BadgeCatalog):
            return NotImplemented
        return self.name == other.name and self._tiers == other._tiers

    def __hash__(self) -> int:
        return hash((self.name, self._tiers))

    def __repr__(self) -> str:
        return f"BadgeCatalog(name={self.name!r}, tiers={len(self._tiers)})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tiers": [tier.to_dict() for tier in self._tiers]
        }

    @classmethod
    def from_dict(cls, data: Union[Dict[str, Any], List[Dict[str, Any]]], name: str = "custom") -> "BadgeCatalog":
        """Build a catalog from either a list of tiers or {"name": ..., "tiers": [...]}."""
        if isinstance(data, dict):
            name = data.get("name", name)
            raw_tiers = data.get("tiers")
        else:
            raw_tiers = data

        if not isinstance(raw_tiers, list):
            raise CatalogError("Catalog must define a list of tiers", name)

        return cls(name, [BadgeTier.from_dict(item) for item in raw_tiers])


CLASSIC_CATALOG = BadgeCatalog("classic", [
    BadgeTier("first_steps", 10, "First Steps"),
    BadgeTier("rising_star", 50, "Rising Star"),
    BadgeTier("dedicated_learner", 100, "Dedicated Learner"),
    BadgeTier("quiz_master", 250, "Quiz Master"),
    BadgeTier("expert", 500, "Expert"),
    BadgeTier("legend", 1000, "Legend"),
])

EXTENDED_CATALOG = BadgeCatalog("extended", [
    BadgeTier("first_steps", 10, "First Steps"),
    BadgeTier("rising_star", 50, "Rising Star"),
    BadgeTier("dedicated_learner", 100, "Dedicated Learner"),
    BadgeTier("bookworm", 200, "Bookworm"),
    BadgeTier("quiz_master", 350, "Quiz Master"),
    BadgeTier("scholar", 500, "Scholar"),
    BadgeTier("expert", 750, "Expert"),
    BadgeTier("guru", 1000, "Guru"),
    BadgeTier("legend", 1500, "Legend"),
])

BUILTIN_CATALOGS: Dict[str, BadgeCatalog] = {
    CLASSIC_CATALOG.name: CLASSIC_CATALOG,
    EXTENDED_CATALOG.name: EXTENDED_CATALOG,
}


def get_catalog(name: str) -> BadgeCatalog:
    """Look up a built-in catalog by name (case-insensitive)."""
    key = (name or "").strip().lower()
    if key not in BUILTIN_CATALOGS:
        raise CatalogError(
            f"Unknown catalog {name!r}; available: {', '.join(sorted(BUILTIN_CATALOGS))}",
            name
        )
    return BUILTIN_CATALOGS[key]


def load_catalog_file(path: Union[str, Path]) -> BadgeCatalog:
    """Load a catalog from a JSON file."""
    catalog_path = Path(path)
    try:
        with open(catalog_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise CatalogError(f"Catalog file not found: {catalog_path}", str(catalog_path))
    except json.JSONDecodeError as e:
        raise CatalogError(f"Catalog file {catalog_path} is not valid JSON: {e}", str(catalog_path))

    catalog = BadgeCatalog.from_dict(data, name=catalog_path.stem)
    logger.info(f"📚 Loaded catalog '{catalog.name}' with {len(catalog)} tiers from {catalog_path}")
    return catalog


def resolve_catalog(settings) -> BadgeCatalog:
    """Pick the catalog configured for this deployment."""
    if settings.badge_catalog_file:
        return load_catalog_file(settings.badge_catalog_file)
    return get_catalog(settings.badge_catalog)
