#!/usr/bin/env python3
"""
Nightly Batch Badge Evaluation System
Collects learner XP changes during the day and re-evaluates badges once at night
"""

import asyncio
import logging
import signal
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import schedule
from motor.motor_asyncio import AsyncIOMotorClient
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn

from xp_badge_system.config import Settings, configure_logging
from xp_badge_system.core.badge_allocator import BadgeAllocator
from xp_badge_system.core.catalog import BadgeCatalog, resolve_catalog
from xp_badge_system.exceptions import DBError, InvalidArgumentError

logger = logging.getLogger(__name__)

console = Console()

DEFAULT_NIGHTLY_HOUR = 2
DEFAULT_NIGHTLY_MINUTE = 0


@asynccontextmanager
async def progress_tracker(total: int, description: str = "Processing..."):
    """
    Progress bar context manager

    Yields:
        update_progress: Function to call when an item is completed
    """
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TextColumn("({task.completed}/{task.total})"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:

        task_id = progress.add_task(description, total=total)
        completed = 0

        def update_progress():
            nonlocal completed
            completed += 1
            progress.update(task_id, completed=completed)

        yield update_progress


@dataclass
class PendingEvaluationEntry:
    """Represents a learner waiting for badge re-evaluation"""
    learner_id: str
    triggered_by: List[str] = field(default_factory=list)  # What changes triggered this
    priority: int = 2
    first_triggered: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    change_count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'learner_id': self.learner_id,
            'triggered_by': self.triggered_by,
            'priority': self.priority,
            'first_triggered': self.first_triggered,
            'last_updated': self.last_updated,
            'change_count': self.change_count
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PendingEvaluationEntry':
        return cls(
            learner_id=str(data['learner_id']),
            triggered_by=data.get('triggered_by', []),
            priority=data.get('priority', 2),
            first_triggered=data.get('first_triggered', datetime.now(timezone.utc)),
            last_updated=data.get('last_updated', datetime.now(timezone.utc)),
            change_count=data.get('change_count', 1)
        )

    @property
    def key(self) -> str:
        return self.learner_id


class PendingEvaluationsManager:
    """Manages the MongoDB collection of pending badge evaluations"""

    collection_name = "pending_badge_evaluations"

    def __init__(self, mongo_uri: str = None, db_name: str = None, shared_db=None):
        settings = Settings.from_env()
        self.mongo_uri = mongo_uri or settings.mongo_uri
        self.db_name = db_name or settings.mongo_db_name

        self.client = None
        self.db = shared_db
        self.collection = shared_db[self.collection_name] if shared_db is not None else None
        self._owns_connection = shared_db is None

        self.stats = {
            'entries_added': 0,
            'entries_updated': 0,
            'entries_processed': 0,
            'entries_failed': 0,
            'last_batch_run': None,
            'last_batch_size': 0
        }

    @property
    def connected(self) -> bool:
        return self.collection is not None

    async def connect(self):
        """Connect to MongoDB"""
        try:
            if self._owns_connection:
                self.client = AsyncIOMotorClient(self.mongo_uri)
                self.db = self.client[self.db_name]
                self.collection = self.db[self.collection_name]

            await self.collection.create_index("learner_id", unique=True)
            await self.collection.create_index("last_updated")
            await self.collection.create_index("priority")

            logger.info("Connected to MongoDB for pending evaluations")

        except Exception as e:
            logger.error(f"Error connecting to MongoDB: {e}")
            raise

    async def disconnect(self):
        """Disconnect from MongoDB"""
        if self._owns_connection and self.client:
            self.client.close()
            self.client = None
            self.db = None
            self.collection = None
            logger.info("Disconnected from MongoDB")

    async def add_pending_evaluation(self, learner_id: str, triggered_by: str = None,
                                     priority: int = 2) -> bool:
        """
        Add or update a pending evaluation entry

        Args:
            learner_id: Learner identifier
            triggered_by: What triggered this evaluation (e.g., 'users.xp:update')
            priority: Evaluation priority (lower runs first)

        Returns:
            bool: True if entry was added/updated successfully
        """
        try:
            now = datetime.now(timezone.utc)
            learner_id = str(learner_id)

            existing = await self.collection.find_one({"learner_id": learner_id})

            if existing:
                update = {
                    "$set": {"last_updated": now},
                    "$inc": {"change_count": 1}
                }

                if triggered_by and triggered_by not in existing.get('triggered_by', []):
                    update["$addToSet"] = {"triggered_by": triggered_by}

                # Keep the most urgent priority (lowest number)
                if priority < existing.get('priority', 999):
                    update["$set"]["priority"] = priority

                await self.collection.update_one({"learner_id": learner_id}, update)

                self.stats['entries_updated'] += 1
                logger.debug(f"Updated pending evaluation: {learner_id}")

            else:
                entry = PendingEvaluationEntry(
                    learner_id=learner_id,
                    triggered_by=[triggered_by] if triggered_by else [],
                    priority=priority,
                    first_triggered=now,
                    last_updated=now
                )

                await self.collection.insert_one(entry.to_dict())
                self.stats['entries_added'] += 1
                logger.info(f"Added pending evaluation: {learner_id}")

            return True

        except Exception as e:
            logger.error(f"Error adding pending evaluation: {e}")
            return False

    async def get_pending_evaluations(self, limit: int = None,
                                      priority_threshold: int = None) -> List[PendingEvaluationEntry]:
        """
        Get pending evaluations ordered by priority, then age

        Args:
            limit: Maximum number of entries to return
            priority_threshold: Only return entries with priority <= threshold
        """
        query = {}
        if priority_threshold is not None:
            query["priority"] = {"$lte": priority_threshold}

        cursor = self.collection.find(query).sort([
            ("priority", 1),
            ("first_triggered", 1)
        ])

        if limit:
            cursor = cursor.limit(limit)

        entries = []
        async for doc in cursor:
            entries.append(PendingEvaluationEntry.from_dict(doc))

        return entries

    async def remove_pending_evaluation(self, learner_id: str) -> bool:
        """Remove a pending evaluation entry"""
        try:
            result = await self.collection.delete_one({"learner_id": str(learner_id)})

            if result.deleted_count > 0:
                logger.debug(f"Removed pending evaluation: {learner_id}")
                return True
            return False

        except Exception as e:
            logger.error(f"Error removing pending evaluation: {e}")
            return False

    async def clear_all_pending(self) -> int:
        """Clear all pending evaluations (use with caution)"""
        result = await self.collection.delete_many({})
        logger.info(f"Cleared {result.deleted_count} pending evaluations")
        return result.deleted_count

    async def get_stats(self) -> Dict[str, Any]:
        """Get statistics about pending evaluations"""
        try:
            total_pending = await self.collection.count_documents({})

            priority_pipeline = [
                {"$group": {"_id": "$priority", "count": {"$sum": 1}}},
                {"$sort": {"_id": 1}}
            ]

            priority_dist = {}
            async for doc in self.collection.aggregate(priority_pipeline):
                priority_dist[doc["_id"]] = doc["count"]

            oldest_doc = await self.collection.find_one({}, sort=[("first_triggered", 1)])
            oldest_pending = oldest_doc.get("first_triggered") if oldest_doc else None

            return {
                **self.stats,
                'total_pending': total_pending,
                'priority_distribution': priority_dist,
                'oldest_pending': oldest_pending
            }

        except Exception as e:
            logger.error(f"Error getting stats: {e}")
            return {**self.stats, 'total_pending': None}


class NightlyBatchProcessor:
    """Processes pending badge evaluations in nightly batches"""

    def __init__(self, pending_manager: PendingEvaluationsManager = None,
                 settings: Optional[Settings] = None, catalog: Optional[BadgeCatalog] = None,
                 show_progress: bool = False):
        self.settings = settings or Settings.from_env()
        self.pending_manager = pending_manager or PendingEvaluationsManager(
            self.settings.mongo_uri, self.settings.mongo_db_name
        )
        self.catalog = catalog or resolve_catalog(self.settings)
        self.show_progress = show_progress

        self.batch_size = self.settings.nightly_batch_size
        self.max_concurrent = self.settings.nightly_max_concurrent
        self.nightly_time = self.settings.nightly_processing_time

        self.stats = {
            'last_run': None,
            'last_run_duration': None,
            'total_processed': 0,
            'total_succeeded': 0,
            'total_failed': 0,
            'total_badges_awarded': 0,
            'runs_completed': 0
        }

    def _empty_result(self, **extra) -> Dict[str, Any]:
        return {
            'processed': 0,
            'succeeded': 0,
            'failed': 0,
            'badges_awarded': 0,
            'duration_seconds': 0,
            'errors': [],
            **extra
        }

    async def process_nightly_batch(self, max_entries: int = None,
                                    priority_threshold: int = None) -> Dict[str, Any]:
        """
        Process all pending evaluations in a nightly batch

        The pending manager is connected on the event loop this runs in, so a
        scheduler thread never borrows a client bound to another loop.

        Args:
            max_entries: Maximum number of entries to process (None = all)
            priority_threshold: Only process entries with priority <= threshold

        Returns:
            Dictionary with processing results
        """
        start_time = datetime.now(timezone.utc)
        logger.info("🌙 Starting nightly badge evaluation batch...")

        try:
            await self.pending_manager.connect()

            pending_entries = await self.pending_manager.get_pending_evaluations(
                limit=max_entries,
                priority_threshold=priority_threshold
            )

            if not pending_entries:
                logger.info("No pending evaluations to process")
                return self._empty_result(message='No pending evaluations')

            logger.info(f"Processing {len(pending_entries)} pending evaluations...")

            allocator = BadgeAllocator(
                mongo_uri=self.pending_manager.mongo_uri,
                db_name=self.pending_manager.db_name,
                catalog=self.catalog,
                shared_db_client=self.pending_manager.client,
                shared_db=self.pending_manager.db
            )
            await allocator.ensure_indexes()

            results = self._empty_result()

            if self.show_progress:
                async with progress_tracker(len(pending_entries), "🌙 Evaluating learners") as update_progress:
                    await self._process_all(allocator, pending_entries, results, update_progress)
            else:
                await self._process_all(allocator, pending_entries, results)

            duration = datetime.now(timezone.utc) - start_time

            self.stats.update({
                'last_run': start_time,
                'last_run_duration': duration.total_seconds(),
                'total_processed': self.stats['total_processed'] + results['processed'],
                'total_succeeded': self.stats['total_succeeded'] + results['succeeded'],
                'total_failed': self.stats['total_failed'] + results['failed'],
                'total_badges_awarded': self.stats['total_badges_awarded'] + results['badges_awarded'],
                'runs_completed': self.stats['runs_completed'] + 1
            })

            self.pending_manager.stats.update({
                'last_batch_run': start_time,
                'last_batch_size': results['processed'],
                'entries_processed': self.pending_manager.stats['entries_processed'] + results['succeeded'],
                'entries_failed': self.pending_manager.stats['entries_failed'] + results['failed']
            })

            results['duration_seconds'] = duration.total_seconds()

            logger.info(f"🎉 Nightly batch completed in {duration.total_seconds():.1f}s: "
                        f"{results['succeeded']} succeeded, {results['failed']} failed, "
                        f"{results['badges_awarded']} badges awarded")

            return results

        except Exception as e:
            logger.error(f"❌ Error in nightly batch processing: {e}")
            return self._empty_result(error=str(e))

        finally:
            await self.pending_manager.disconnect()

    async def _process_all(self, allocator: BadgeAllocator, entries: List[PendingEvaluationEntry],
                           results: Dict[str, Any], update_progress=None):
        for i in range(0, len(entries), self.batch_size):
            batch = entries[i:i + self.batch_size]
            batch_results = await self._process_batch(allocator, batch, update_progress)

            for key in ('processed', 'succeeded', 'failed', 'badges_awarded'):
                results[key] += batch_results[key]
            results['errors'].extend(batch_results['errors'])

            logger.info(f"Processed batch {i // self.batch_size + 1}: "
                        f"{batch_results['succeeded']} succeeded, "
                        f"{batch_results['failed']} failed")

    async def _process_batch(self, allocator: BadgeAllocator, entries: List[PendingEvaluationEntry],
                             update_progress=None) -> Dict[str, Any]:
        """Process a batch of pending evaluations"""
        semaphore = asyncio.Semaphore(self.max_concurrent)

        tasks = [
            self._process_single_entry(allocator, entry, semaphore, update_progress)
            for entry in entries
        ]

        results = await asyncio.gather(*tasks, return_exceptions=True)

        batch_results = {
            'processed': len(entries),
            'succeeded': 0,
            'failed': 0,
            'badges_awarded': 0,
            'errors': []
        }

        for entry, result in zip(entries, results):
            if isinstance(result, Exception):
                batch_results['failed'] += 1
                batch_results['errors'].append(f"{entry.key}: {result}")
                logger.error(f"Failed to process {entry.key}: {result}")

                # Learner no longer exists: retrying tomorrow cannot succeed
                if isinstance(result, DBError) and result.status == 404:
                    await self.pending_manager.remove_pending_evaluation(entry.learner_id)
            else:
                batch_results['succeeded'] += 1
                batch_results['badges_awarded'] += len(result.get('newly_awarded', []))
                await self.pending_manager.remove_pending_evaluation(entry.learner_id)

        return batch_results

    async def _process_single_entry(self, allocator: BadgeAllocator, entry: PendingEvaluationEntry,
                                    semaphore: asyncio.Semaphore, update_progress=None) -> Dict[str, Any]:
        """Re-evaluate one learner from their current XP"""
        async with semaphore:
            try:
                result = await allocator.allocate_badges(entry.learner_id)
                if result['newly_awarded']:
                    logger.debug(f"✅ {entry.key}: awarded {', '.join(result['newly_awarded'])}")
                return result
            except DBError as e:
                e.log_db_error()
                raise
            except InvalidArgumentError as e:
                logger.warning(f"❌ {entry.key}: {e}")
                raise
            finally:
                if update_progress:
                    update_progress()


class XpChangeMonitor:
    """Watches the users collection and queues a pending evaluation whenever a learner's XP changes"""

    users_collection = "users"

    def __init__(self, pending_manager: PendingEvaluationsManager = None, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()
        self.pending_manager = pending_manager or PendingEvaluationsManager(
            self.settings.mongo_uri, self.settings.mongo_db_name
        )

        self.client = None
        self.db = None
        self.running = False
        self.watch_task = None
        self.retry_delay = 5

        self.stats = {
            'total_changes_processed': 0,
            'evaluations_added': 0,
            'errors': 0
        }

    @staticmethod
    def build_pipeline() -> List[Dict[str, Any]]:
        """Inserts and updates that touch the xp field"""
        return [{
            "$match": {
                "$or": [
                    {"operationType": {"$in": ["insert", "replace"]}},
                    {
                        "operationType": "update",
                        "updateDescription.updatedFields.xp": {"$exists": True}
                    }
                ]
            }
        }]

    async def connect(self):
        """Connect to MongoDB"""
        try:
            self.client = AsyncIOMotorClient(self.settings.mongo_uri)
            self.db = self.client[self.settings.mongo_db_name]
            if not self.pending_manager.connected:
                await self.pending_manager.connect()
            logger.info("Connected to MongoDB for XP change monitoring")
        except Exception as e:
            logger.error(f"Error connecting to MongoDB: {e}")
            raise

    async def disconnect(self):
        """Disconnect from MongoDB"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
        logger.info("Disconnected from MongoDB")

    async def start_monitoring(self):
        """Start monitoring the users collection"""
        await self.connect()
        self.running = True
        self.watch_task = asyncio.create_task(self._watch_users())
        logger.info("Started monitoring learner XP changes")

        try:
            await self.watch_task
        except asyncio.CancelledError:
            logger.info("XP change monitoring cancelled")
        finally:
            await self.stop_monitoring()

    async def stop_monitoring(self):
        """Stop monitoring"""
        self.running = False

        if self.watch_task and not self.watch_task.done():
            self.watch_task.cancel()
            try:
                await self.watch_task
            except asyncio.CancelledError:
                pass
        self.watch_task = None

        await self.disconnect()
        logger.info("Stopped MongoDB change monitoring")

    async def _watch_users(self):
        collection = self.db[self.users_collection]

        while self.running:
            try:
                async with collection.watch(self.build_pipeline(), full_document='updateLookup') as stream:
                    async for change in stream:
                        if not self.running:
                            break
                        await self.process_change(change)

            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in change stream for {self.users_collection}: {e}")
                self.stats['errors'] += 1
                if self.running:
                    logger.info(f"Retrying change stream in {self.retry_delay} seconds...")
                    await asyncio.sleep(self.retry_delay)

    async def process_change(self, change: Dict[str, Any]) -> bool:
        """Queue a pending evaluation for the learner behind a change event"""
        operation_type = change.get('operationType')
        document_key = change.get('documentKey') or {}
        learner_id = document_key.get('_id')

        if learner_id is None:
            logger.warning(f"Could not extract learner id from {operation_type} change")
            self.stats['errors'] += 1
            return False

        triggered_by = f"{self.users_collection}.xp:{operation_type}"
        success = await self.pending_manager.add_pending_evaluation(
            learner_id=str(learner_id),
            triggered_by=triggered_by
        )

        self.stats['total_changes_processed'] += 1
        if success:
            self.stats['evaluations_added'] += 1
            logger.info(f"🔄 Added pending evaluation: {learner_id} (triggered by {triggered_by})")
        else:
            self.stats['errors'] += 1

        return success


class NightlyScheduler:
    """Handles scheduling of nightly batch processing"""

    def __init__(self, processor: NightlyBatchProcessor):
        self.processor = processor
        self.scheduler_thread = None
        self.running = False
        self.nightly_hour, self.nightly_minute = self.parse_nightly_time(processor.nightly_time)

    @staticmethod
    def parse_nightly_time(value: str):
        """Parse HH:MM; anything else falls back to 02:00."""
        try:
            hour_text, minute_text = value.split(':')
            hour, minute = int(hour_text), int(minute_text)
            if not (0 <= hour < 24 and 0 <= minute < 60):
                raise ValueError(value)
            return hour, minute
        except (AttributeError, ValueError):
            logger.warning(f"Invalid nightly time format {value!r}, using 02:00")
            return DEFAULT_NIGHTLY_HOUR, DEFAULT_NIGHTLY_MINUTE

    @property
    def nightly_time(self) -> str:
        return f"{self.nightly_hour:02d}:{self.nightly_minute:02d}"

    def start_scheduler(self):
        """Start the nightly scheduler"""
        self.running = True

        schedule.every().day.at(self.nightly_time).do(self._run_nightly_job)
        logger.info(f"📅 Scheduled nightly processing at {self.nightly_time}")

        self.scheduler_thread = threading.Thread(target=self._scheduler_loop, daemon=True)
        self.scheduler_thread.start()

    def stop_scheduler(self):
        """Stop the nightly scheduler"""
        self.running = False
        schedule.clear()
        logger.info("Stopped nightly scheduler")

    def _scheduler_loop(self):
        """Background scheduler loop"""
        while self.running:
            schedule.run_pending()
            time.sleep(60)

    def _run_nightly_job(self):
        """Run the nightly batch job"""
        logger.info("🌙 Nightly job triggered by scheduler")

        # Fresh event loop: this runs in the scheduler thread
        def run_async():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            try:
                result = loop.run_until_complete(self.processor.process_nightly_batch())
                logger.info(f"🎉 Nightly job completed: {result}")
            except Exception as e:
                logger.error(f"❌ Nightly job failed: {e}")
            finally:
                loop.close()

        with ThreadPoolExecutor(max_workers=1) as executor:
            executor.submit(run_async)


class CompleteBatchSystem:
    """Complete system combining XP change monitoring with nightly batch processing"""

    def __init__(self, settings: Optional[Settings] = None, show_progress: bool = False):
        self.settings = settings or Settings.from_env()

        # Separate managers: the monitor lives on the main loop, scheduled batches on their own loop
        self.pending_manager = PendingEvaluationsManager(self.settings.mongo_uri, self.settings.mongo_db_name)
        self.change_monitor = XpChangeMonitor(self.pending_manager, self.settings)
        self.batch_processor = NightlyBatchProcessor(
            PendingEvaluationsManager(self.settings.mongo_uri, self.settings.mongo_db_name),
            self.settings,
            show_progress=show_progress
        )
        self.scheduler = NightlyScheduler(self.batch_processor)

        self.running = False

    async def start(self):
        """Start the complete batch system"""
        logger.info("🚀 Starting Complete Nightly Batch Badge System...")

        self.running = True
        self.scheduler.start_scheduler()

        try:
            await self.change_monitor.start_monitoring()
        finally:
            await self.stop()

    async def stop(self):
        """Stop the complete batch system"""
        logger.info("🛑 Stopping Complete Nightly Batch Badge System...")

        self.running = False
        self.scheduler.stop_scheduler()
        await self.change_monitor.stop_monitoring()
        await self.pending_manager.disconnect()

        logger.info("✅ Complete Nightly Batch Badge System stopped")

    async def run_manual_batch(self, max_entries: int = None, priority_threshold: int = None) -> Dict[str, Any]:
        """Manually trigger a batch processing run"""
        logger.info("🔧 Running manual batch processing...")
        return await self.batch_processor.process_nightly_batch(max_entries, priority_threshold)

    async def get_system_stats(self) -> Dict[str, Any]:
        """Get comprehensive system statistics"""
        connected_here = not self.pending_manager.connected
        if connected_here:
            await self.pending_manager.connect()
        try:
            pending_stats = await self.pending_manager.get_stats()
        finally:
            if connected_here:
                await self.pending_manager.disconnect()

        return {
            'pending_evaluations': pending_stats,
            'change_monitor': self.change_monitor.stats,
            'batch_processor': self.batch_processor.stats,
            'system': {
                'running': self.running,
                'nightly_time': self.scheduler.nightly_time
            }
        }


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(description='Nightly Batch Badge Evaluation System')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('start', help='Start the complete system')

    batch_parser = subparsers.add_parser('batch', help='Run manual batch processing')
    batch_parser.add_argument('--max-entries', type=int, help='Maximum entries to process')
    batch_parser.add_argument('--max-priority', type=int, help='Only process entries with priority <= this value')

    subparsers.add_parser('stats', help='Show system statistics')

    pending_parser = subparsers.add_parser('pending', help='Manage pending evaluations')
    pending_subparsers = pending_parser.add_subparsers(dest='pending_action')

    list_parser = pending_subparsers.add_parser('list', help='List pending evaluations')
    list_parser.add_argument('--limit', type=int, default=20, help='Limit results')

    add_parser = pending_subparsers.add_parser('add', help='Add pending evaluation')
    add_parser.add_argument('learner_id', help='Learner ID')
    add_parser.add_argument('--priority', type=int, default=2, help='Priority')

    clear_parser = pending_subparsers.add_parser('clear', help='Clear all pending')
    clear_parser.add_argument('--confirm', action='store_true', help='Confirm clearing')

    return parser


async def run_cli(args):
    settings = Settings.from_env()
    system = CompleteBatchSystem(settings, show_progress=True)

    if args.command == 'start':
        loop = asyncio.get_running_loop()
        monitor_task = asyncio.create_task(system.start())

        def request_shutdown():
            logger.info("Received shutdown signal")
            monitor_task.cancel()

        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, request_shutdown)

        try:
            await monitor_task
        except asyncio.CancelledError:
            pass

    elif args.command == 'batch':
        result = await system.run_manual_batch(args.max_entries, args.max_priority)
        console.print(result)

    elif args.command == 'stats':
        stats = await system.get_system_stats()
        console.print("=== System Statistics ===")
        console.print(f"Pending evaluations: {stats['pending_evaluations']['total_pending']}")
        console.print(f"Last batch run: {stats['batch_processor']['last_run']}")
        console.print(f"Nightly time: {stats['system']['nightly_time']}")

    elif args.command == 'pending':
        pending_manager = system.pending_manager
        await pending_manager.connect()

        try:
            if args.pending_action == 'list':
                entries = await pending_manager.get_pending_evaluations(limit=args.limit)
                console.print(f"=== {len(entries)} Pending Evaluations ===")
                for entry in entries:
                    console.print(f"{entry.learner_id} - Priority: {entry.priority}, "
                                  f"Changes: {entry.change_count}, "
                                  f"Triggered by: {', '.join(entry.triggered_by)}")

            elif args.pending_action == 'add':
                success = await pending_manager.add_pending_evaluation(
                    learner_id=args.learner_id,
                    triggered_by='manual',
                    priority=args.priority
                )
                console.print(f"Added pending evaluation: {success}")

            elif args.pending_action == 'clear':
                if args.confirm:
                    count = await pending_manager.clear_all_pending()
                    console.print(f"Cleared {count} pending evaluations")
                else:
                    console.print("Use --confirm to actually clear all pending evaluations")

        finally:
            await pending_manager.disconnect()


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging()

    if not args.command:
        parser.print_help()
        return

    asyncio.run(run_cli(args))


if __name__ == "__main__":
    main()
