#!/usr/bin/env python3
"""
AWS Lambda Function for Processing XP Badge Evaluations

Handles three kinds of invocation:
  - a direct event carrying an "xp" value, evaluated without any database;
  - an SQS batch whose records name learners to re-evaluate;
  - any other event (e.g. a scheduled rule), which drains pending requests
    from the badge_evaluation_queue collection.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from xp_badge_system.client.http_client import HttpClient
from xp_badge_system.config import Settings
from xp_badge_system.core.badge_allocator import BadgeAllocator
from xp_badge_system.core.badge_evaluator import BadgeEvaluator
from xp_badge_system.core.catalog import get_catalog, resolve_catalog
from xp_badge_system.exceptions import DBError, HTTPRequestError, InvalidArgumentError

logger = logging.getLogger(__name__)

XP_SOURCES = ("mongo", "api")


class LambdaBadgeProcessor:
    """
    Lambda Badge Processor for learner badge evaluation requests.
    """

    queue_collection = "badge_evaluation_queue"

    def __init__(self, settings: Optional[Settings] = None,
                 shared_db_client: Optional[AsyncIOMotorClient] = None,
                 shared_db=None):
        """Initialize the processor with configuration."""
        self.settings = settings or Settings.from_env()

        self.mongo_uri = self.settings.mongo_uri
        self.db_name = self.settings.mongo_db_name
        self.xp_source = self.settings.xp_source
        self.max_concurrent_groups = self.settings.max_concurrent_groups
        self.timeout_per_learner = self.settings.timeout_per_learner

        if self.xp_source not in XP_SOURCES:
            raise ValueError(f"XP_SOURCE must be one of {XP_SOURCES}, got {self.xp_source!r}")
        if self.xp_source == "api" and not self.settings.progress_api_url:
            raise ValueError("Missing required environment variable PROGRESS_API_URL for XP_SOURCE=api")

        self.catalog = resolve_catalog(self.settings)

        # Initialize database connections
        if shared_db_client is not None and shared_db is not None:
            self.client = shared_db_client
            self.db = shared_db
            self._owns_connection = False
            logger.info("✅ Using shared MongoDB connection")
        else:
            self.client = None
            self.db = None
            self._owns_connection = True

        self.http_client = None
        self.allocator = None

    async def connect_to_db(self):
        """Establish connection to MongoDB and initialize components."""
        try:
            if self._owns_connection:
                logger.info("🔌 Connecting to MongoDB...")
                self.client = AsyncIOMotorClient(
                    self.mongo_uri,
                    maxPoolSize=10,
                    minPoolSize=1,
                    maxIdleTimeMS=30000,
                    serverSelectionTimeoutMS=5000
                )
                self.db = self.client[self.db_name]
                await self.db.command("ping")
                logger.info("✅ Connected to MongoDB")

            if self.xp_source == "api":
                self.http_client = HttpClient(
                    base_url=self.settings.progress_api_url,
                    token=self.settings.progress_api_token,
                    timeout=self.settings.http_timeout
                )

            self.allocator = BadgeAllocator(
                mongo_uri=self.mongo_uri,
                db_name=self.db_name,
                catalog=self.catalog,
                shared_db_client=self.client,
                shared_db=self.db
            )

            logger.info(f"✅ All components initialized (catalog={self.catalog.name}, xp_source={self.xp_source})")

        except Exception as e:
            logger.error(f"❌ Error connecting to database: {e}")
            raise

    def disconnect_from_db(self):
        """Close MongoDB connection."""
        if self._owns_connection and self.client:
            self.client.close()
            self.client = None
            self.db = None
        logger.info("🔌 Disconnected from MongoDB")

    async def close(self):
        """Close the HTTP session and the database connection."""
        if self.http_client:
            await self.http_client.close()
            self.http_client = None
        self.disconnect_from_db()

    ############################################################################
                            # Single learner evaluation
    ############################################################################

    async def resolve_xp(self, learner_id: str, xp: Optional[int] = None) -> int:
        """Explicit XP wins; otherwise read it from the configured source."""
        if xp is not None:
            return xp
        if self.xp_source == "api":
            return await self.http_client.get_learner_xp(learner_id)
        return await self.allocator.get_learner_xp(learner_id)

    async def update_status(self, learner_id: str, status: str, message_id: Optional[str] = None,
                            result: Optional[Dict[str, Any]] = None, error: Optional[str] = None):
        """Record the evaluation status of a learner in the queue collection."""
        now = datetime.now(timezone.utc)

        fields = {"status": status, "updated_at": now}
        if message_id:
            fields["sqs_message_id"] = message_id
        if result is not None:
            fields["evaluation_result"] = result
        if error is not None:
            fields["error"] = error
        if status in ("completed", "failed"):
            fields["completed_at"] = now

        try:
            await self.db[self.queue_collection].update_one(
                {"learner_id": learner_id},
                {
                    "$set": fields,
                    "$setOnInsert": {"created_at": now},
                    "$push": {"processing_history": {"status": status, "at": now, "message_id": message_id}}
                },
                upsert=True
            )
        except Exception as e:
            logger.warning(f"⚠️  Could not update status for learner {learner_id}: {e}")

    async def process_badge_evaluation(self, learner_id: str, xp: Optional[int] = None,
                                       message_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Evaluate one learner and persist the result.

        Per-learner failures are reported in the returned dictionary rather
        than raised, so a batch keeps going.
        """
        start_time = time.time()
        retryable = True

        logger.info(f"🔄 Processing badges for learner {learner_id}")
        await self.update_status(learner_id, "processing", message_id)

        try:
            resolved_xp = await asyncio.wait_for(
                self.resolve_xp(learner_id, xp),
                timeout=self.timeout_per_learner
            )
            result = await self.allocator.allocate_badges(learner_id, xp=resolved_xp)
            await self.update_status(learner_id, "completed", message_id, result=result)

            return {
                "success": True,
                "message_id": message_id,
                "duration": time.time() - start_time,
                **result
            }

        except asyncio.TimeoutError:
            error = f"Timed out reading XP after {self.timeout_per_learner}s"
        except InvalidArgumentError as e:
            error = str(e)
            retryable = False
        except DBError as e:
            e.log_db_error()
            error = e.message
            retryable = e.status != 404
        except HTTPRequestError as e:
            e.log_http_error()
            error = str(e)
            retryable = e.status >= 500
        except Exception as e:
            logger.exception(f"❌ Unexpected error evaluating learner {learner_id}")
            error = str(e)

        # Retryable failures go back to pending so the queue drain picks them up again
        status = "pending" if retryable else "failed"
        logger.warning(f"❌ Badge evaluation failed for learner {learner_id} ({status}): {error}")
        await self.update_status(learner_id, status, message_id, error=error)

        return {
            "success": False,
            "learner_id": learner_id,
            "message_id": message_id,
            "error": error,
            "retryable": retryable,
            "status": status,
            "duration": time.time() - start_time
        }

    ############################################################################
                                # SQS records
    ############################################################################

    @staticmethod
    def parse_sqs_record(record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Extract learner_id and optional xp from an SQS record body.

        Raises:
            InvalidArgumentError: If the body is not a JSON object naming a learner
        """
        try:
            body = json.loads(record.get("body") or "")
        except json.JSONDecodeError as e:
            raise InvalidArgumentError("body", record.get("body"), f"not valid JSON ({e.msg})")

        if not isinstance(body, dict):
            raise InvalidArgumentError("body", body, "must be a JSON object")

        learner_id = body.get("learner_id")
        if learner_id is None or str(learner_id).strip() == "":
            raise InvalidArgumentError("learner_id", learner_id, "is required")

        return {"learner_id": str(learner_id), "xp": body.get("xp")}

    async def process_sqs_records(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        results = []

        for record in records:
            message_id = record.get("messageId")
            try:
                request = self.parse_sqs_record(record)
            except InvalidArgumentError as e:
                logger.warning(f"⚠️  Skipping malformed record {message_id}: {e}")
                results.append({
                    "success": False,
                    "message_id": message_id,
                    "error": str(e),
                    "retryable": False
                })
                continue

            results.append(await self.process_badge_evaluation(
                learner_id=request["learner_id"],
                xp=request["xp"],
                message_id=message_id
            ))

        return results

    ############################################################################
                            # MongoDB queue draining
    ############################################################################

    async def fetch_pending_evaluations(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Fetch pending evaluation requests, most urgent then oldest first"""
        logger.info("🔍 Fetching pending badge evaluations...")

        cursor = self.db[self.queue_collection].find({"status": "pending"}).sort([
            ("priority", 1),
            ("created_at", 1)
        ])
        if limit:
            cursor = cursor.limit(limit)

        evaluations = await cursor.to_list(length=None)
        logger.info(f"📋 Found {len(evaluations)} pending evaluations")
        return evaluations

    async def mark_evaluations_completed(self, evaluation_ids: List[Any]):
        """Mark queue documents as completed"""
        if not evaluation_ids:
            return
        try:
            result = await self.db[self.queue_collection].update_many(
                {"_id": {"$in": evaluation_ids}},
                {"$set": {"status": "completed", "completed_at": datetime.now(timezone.utc)}}
            )
            logger.info(f"📝 Marked {result.modified_count} evaluations as completed")
        except Exception as e:
            logger.warning(f"⚠️  Error marking evaluations completed: {e}")

    def _max_groups(self, context=None) -> int:
        get_remaining = getattr(context, "get_remaining_time_in_millis", None)
        if callable(get_remaining):
            remaining_time = get_remaining()
            return min(self.max_concurrent_groups, max(1, (remaining_time - 60000) // 30000))
        return self.max_concurrent_groups

    async def process_badge_reevaluation_queue(self, context=None) -> Dict[str, Any]:
        """Drain pending requests from the queue collection, one learner at a time"""
        start_time = time.time()
        logger.info("🎯 Starting badge re-evaluation from queue...")

        max_groups = self._max_groups(context)
        pending_evaluations = await self.fetch_pending_evaluations(limit=max_groups * 10)

        if not pending_evaluations:
            return {
                "success": True,
                "message": "No pending evaluations found",
                "processed_learners": 0,
                "execution_time": time.time() - start_time
            }

        # Group by learner; the newest request with an xp value wins
        learner_groups: Dict[str, Dict[str, Any]] = {}
        for evaluation in pending_evaluations:
            learner_id = str(evaluation.get("learner_id"))
            group = learner_groups.setdefault(learner_id, {
                "learner_id": learner_id,
                "xp": None,
                "evaluation_ids": []
            })
            if evaluation.get("xp") is not None:
                group["xp"] = evaluation["xp"]
            group["evaluation_ids"].append(evaluation.get("_id"))

        groups_to_process = list(learner_groups.values())[:max_groups]
        logger.info(f"🎯 Processing {len(groups_to_process)} learners")

        results = []
        for group in groups_to_process:
            result = await self.process_badge_evaluation(
                learner_id=group["learner_id"],
                xp=group["xp"]
            )
            if result.get("success"):
                await self.mark_evaluations_completed(group["evaluation_ids"])
            results.append(result)

        successful = sum(1 for r in results if r.get("success"))
        failed = len(results) - successful

        return {
            "success": failed == 0,
            "processed_learners": len(groups_to_process),
            "total_pending_evaluations": len(pending_evaluations),
            "successful_learners": successful,
            "failed_learners": failed,
            "total_badges_awarded": sum(len(r.get("newly_awarded", [])) for r in results),
            "execution_time": time.time() - start_time,
            "results": results
        }


############################################################################
                            # Lambda entry points
############################################################################

# Global processor instance (reused across Lambda invocations)
processor = None


def _response(status_code: int, body: Dict[str, Any], **extra) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "body": json.dumps(body, default=str),
        **extra
    }


def _run(coro):
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def evaluate_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """Stateless evaluation of an event of the form {"xp": 120, "catalog": "extended"}"""
    try:
        if event.get("catalog"):
            catalog = get_catalog(event["catalog"])
        else:
            catalog = resolve_catalog(Settings.from_env())

        summary = BadgeEvaluator(catalog).summarize(event.get("xp"))
        return _response(200, {"success": True, "result": summary})

    except InvalidArgumentError as e:
        logger.warning(f"⚠️  Rejected direct evaluation: {e}")
        return _response(400, {"success": False, "error": str(e)})


async def process_records_async(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    await processor.connect_to_db()
    try:
        return await processor.process_sqs_records(records)
    finally:
        await processor.close()


async def process_queue_async(context):
    """Process badge re-evaluation queue asynchronously"""
    await processor.connect_to_db()
    try:
        return await processor.process_badge_reevaluation_queue(context=context)
    finally:
        await processor.close()


def process_sqs_event(event, context):
    records = event.get("Records") or []
    logger.info(f"📨 Processing {len(records)} SQS records")

    if not records:
        return _response(200, {"message": "No records to process", "results": []})

    try:
        results = _run(process_records_async(records))
    except Exception as e:
        # Without a failure list Lambda would delete the whole batch
        logger.exception(f"❌ SQS batch could not be processed: {e}")
        return _response(
            500,
            {"error": str(e)},
            batchItemFailures=[
                {"itemIdentifier": record["messageId"]}
                for record in records
                if record.get("messageId")
            ]
        )

    # Partial batch response: only retryable failures go back to the queue
    failures = [
        {"itemIdentifier": r["message_id"]}
        for r in results
        if not r.get("success") and r.get("retryable") and r.get("message_id")
    ]

    return _response(
        200,
        {"message": "Badge evaluation completed", "results": results},
        batchItemFailures=failures
    )


def process_badge_queue(event, context):
    """Process badge re-evaluation queue"""
    logger.info("🔄 Processing badge re-evaluation queue...")
    result = _run(process_queue_async(context))
    return _response(200, {"message": "Badge re-evaluation completed", "result": result})


def lambda_function(event, context):
    """
    AWS Lambda handler for XP badge evaluation.
    """
    global processor

    try:
        event = event or {}

        if "xp" in event and "Records" not in event:
            return evaluate_event(event)

        if processor is None:
            logger.info("🔌 Initializing LambdaBadgeProcessor...")
            processor = LambdaBadgeProcessor()

        if "Records" in event:
            return process_sqs_event(event, context)

        return process_badge_queue(event, context)

    except Exception as e:
        logger.exception(f"❌ Unexpected error in lambda_function: {e}")
        return _response(500, {"error": str(e)})
