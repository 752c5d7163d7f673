#!/usr/bin/env python3
"""
Badge Allocation with MongoDB Persistence

Evaluates a learner's XP against the configured catalog and records every
newly earned badge in the learner_badges collection. Also builds the XP
leaderboard shown in the learner app.

Usage:
    python -m xp_badge_system.core.badge_allocator --learner_id <id> [--xp <xp>]
    python -m xp_badge_system.core.badge_allocator --leaderboard [--limit 20]
"""

import argparse
import asyncio
import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import DuplicateKeyError

from xp_badge_system.config import Settings, configure_logging
from xp_badge_system.core.badge_evaluator import BadgeEvaluator
from xp_badge_system.core.catalog import CLASSIC_CATALOG, BadgeCatalog, resolve_catalog
from xp_badge_system.core.levels import level_for_xp
from xp_badge_system.exceptions import DBError

logger = logging.getLogger(__name__)

DEFAULT_LEADERBOARD_LIMIT = 50
MAX_LEADERBOARD_LIMIT = 100


def normalize_limit(limit: Any, default: int = DEFAULT_LEADERBOARD_LIMIT) -> int:
    """Clamp a requested leaderboard size to 1..100; unparsable or zero values use the default."""
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return default
    if value == 0:
        return default
    return max(1, min(value, MAX_LEADERBOARD_LIMIT))


class BadgeAllocator:
    """
    Badge Allocator class to award XP badges to learners and keep the
    learner_badges collection in step with their XP.
    """

    users_collection = "users"
    badges_collection = "learner_badges"

    def __init__(self, mongo_uri: str, db_name: str, catalog: BadgeCatalog = CLASSIC_CATALOG,
                 shared_db_client: Optional[AsyncIOMotorClient] = None, shared_db=None):
        """
        Initialize the Badge Allocator with database configuration.

        Args:
            mongo_uri: MongoDB connection URI
            db_name: Database name
            catalog: Badge catalog used for evaluation
        """
        self.mongo_uri = mongo_uri
        self.db_name = db_name
        self.catalog = catalog
        self.evaluator = BadgeEvaluator(catalog)

        # Use shared connection if provided, otherwise create own
        if shared_db is not None:
            self.client = shared_db_client
            self.db = shared_db
            self._owns_connection = False  # Don't close shared connection
            logger.debug("Badge Allocator using shared MongoDB connection")
        else:
            self.client = None
            self.db = None
            self._owns_connection = True

    ############################################################################
                # Methods for connecting and disconnecting from MongoDB
    ############################################################################

    async def connect_to_db(self):
        """Establish connection to MongoDB using Motor (only if not using shared connection)."""
        if not self._owns_connection:
            return

        try:
            self.client = AsyncIOMotorClient(self.mongo_uri)
            self.db = self.client[self.db_name]
            logger.info("✅ Badge Allocator connected to MongoDB")
        except Exception as e:
            logger.error(f"❌ Error connecting to database: {e}")
            raise

    def disconnect_from_db(self):
        """Close MongoDB connection (only if we own the connection)."""
        if not self._owns_connection:
            return

        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("🔌 Badge Allocator disconnected from MongoDB")

    ############################################################################
                    # Context manager for async operations
    ############################################################################

    async def __aenter__(self):
        if self._owns_connection:
            await self.connect_to_db()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.warning("⚠️  Exception caught in async context manager:")
            logger.warning(f"  Type: {exc_type.__name__}")
            logger.warning(f"  Message: {exc_val}")
            tb_lines = traceback.format_exception(exc_type, exc_val, exc_tb)
            logger.debug("🔍 Traceback:\n" + ''.join(tb_lines))

        if self._owns_connection:
            self.disconnect_from_db()

    async def ensure_indexes(self):
        """One award per learner and badge."""
        await self.db[self.badges_collection].create_index(
            [("learner_id", 1), ("badge_id", 1)],
            unique=True
        )
        await self.db[self.badges_collection].create_index("awarded_at")

    ############################################################################
                        # Learner XP and stored awards
    ############################################################################

    def _coerce_xp(self, learner_id: str, raw_xp: Any) -> int:
        if isinstance(raw_xp, bool) or not isinstance(raw_xp, int) or raw_xp < 0:
            if raw_xp is not None:
                logger.warning(f"⚠️  Learner {learner_id} has unusable xp {raw_xp!r}; treating as 0")
            return 0
        return raw_xp

    async def get_learner_xp(self, learner_id: str) -> int:
        """
        Read a learner's current XP from the users collection.

        Raises:
            DBError: If the learner does not exist
        """
        user_doc = await self.db[self.users_collection].find_one(
            {"_id": learner_id},
            {"xp": 1}
        )

        if not user_doc:
            raise DBError(
                status=404,
                reason="Learner not found",
                collection=self.users_collection,
                message=f"Learner {learner_id} not found in database"
            )

        return self._coerce_xp(learner_id, user_doc.get("xp"))

    async def get_awarded_badges(self, learner_id: str) -> List[str]:
        """Badge identifiers already stored for a learner, in catalog order."""
        cursor = self.db[self.badges_collection].find(
            {"learner_id": learner_id},
            {"badge_id": 1}
        )
        docs = await cursor.to_list(length=None)
        badge_ids = [doc["badge_id"] for doc in docs if doc.get("badge_id")]
        return sorted(set(badge_ids), key=self.catalog.position)

    ############################################################################
                            # Core allocation
    ############################################################################

    async def allocate_badges(self, learner_id: str, xp: Optional[int] = None) -> Dict[str, Any]:
        """
        Evaluate a learner and store any badge not yet awarded.

        Args:
            learner_id: Learner identifier
            xp: XP to evaluate; read from the users collection when omitted

        Returns:
            Dictionary with the evaluated badges and the ones newly awarded

        Raises:
            InvalidArgumentError: If xp is given but not a non-negative integer
            DBError: If xp is omitted and the learner does not exist
        """
        if xp is None:
            xp = await self.get_learner_xp(learner_id)

        badges = self.evaluator.evaluate(xp)
        already_awarded = set(await self.get_awarded_badges(learner_id))

        newly_awarded = []
        now = datetime.now(timezone.utc)

        for badge_id in badges:
            if badge_id in already_awarded:
                continue

            tier = self.catalog.get(badge_id)
            try:
                await self.db[self.badges_collection].insert_one({
                    "learner_id": learner_id,
                    "badge_id": badge_id,
                    "threshold": tier.threshold,
                    "catalog": self.catalog.name,
                    "xp_at_award": xp,
                    "awarded_at": now
                })
                newly_awarded.append(badge_id)
            except DuplicateKeyError:
                # another worker awarded it first
                logger.debug(f"Badge {badge_id} already stored for learner {learner_id}")

        if newly_awarded:
            logger.info(f"🏆 Learner {learner_id} earned {', '.join(newly_awarded)} at {xp} XP")
        else:
            logger.debug(f"No new badges for learner {learner_id} at {xp} XP")

        # Awards are never revoked, so stored badges above the current XP stay listed
        awarded_badges = sorted(already_awarded.union(badges), key=self.catalog.position)

        return {
            "learner_id": learner_id,
            "xp": xp,
            "level": level_for_xp(xp),
            "badges": badges,
            "newly_awarded": newly_awarded,
            "awarded_badges": awarded_badges,
            "catalog": self.catalog.name
        }

    async def get_leaderboard(self, limit: Any = DEFAULT_LEADERBOARD_LIMIT) -> List[Dict[str, Any]]:
        """
        Top learners by XP with their rank, level and badges.

        Args:
            limit: Number of learners to return (clamped to 1..100)
        """
        limit = normalize_limit(limit)

        cursor = (
            self.db[self.users_collection]
            .find({}, {"name": 1, "xp": 1})
            .sort("xp", -1)
            .limit(limit)
        )
        users = await cursor.to_list(length=limit)

        leaderboard = []
        for rank, user in enumerate(users, start=1):
            learner_id = str(user.get("_id"))
            xp = self._coerce_xp(learner_id, user.get("xp"))
            leaderboard.append({
                "learner_id": learner_id,
                "name": user.get("name", ""),
                "xp": xp,
                "rank": rank,
                "level": level_for_xp(xp),
                "badges": self.evaluator.evaluate(xp)
            })

        return leaderboard


async def main():
    """Main function to run the script."""
    parser = argparse.ArgumentParser(description="Allocate XP badges to a learner")
    parser.add_argument("--learner_id", help="Learner ID to evaluate")
    parser.add_argument("--xp", type=int, help="XP override (otherwise read from users)")
    parser.add_argument("--leaderboard", action="store_true", help="Print the XP leaderboard")
    parser.add_argument("--limit", type=int, default=None, help="Leaderboard size")
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    if not args.learner_id and not args.leaderboard:
        parser.error("either --learner_id or --leaderboard is required")

    allocator = BadgeAllocator(
        mongo_uri=settings.mongo_uri,
        db_name=settings.mongo_db_name,
        catalog=resolve_catalog(settings)
    )

    async with allocator:
        if args.leaderboard:
            result = await allocator.get_leaderboard(args.limit or settings.leaderboard_limit)
        else:
            await allocator.ensure_indexes()
            result = await allocator.allocate_badges(args.learner_id, xp=args.xp)

    print(json.dumps(result, indent=2, default=str))


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
