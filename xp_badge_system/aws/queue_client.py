#!/usr/bin/env python3
"""
AWS SQS Queue Client

A client script to interact with the AWS SQS badge evaluation queue.
This script allows you to send learner badge evaluation requests and check
their status.

Usage:
    python -m xp_badge_system.aws.queue_client --command send --learner_id u1 [--xp 120]
    python -m xp_badge_system.aws.queue_client --command status --learner_id u1
    python -m xp_badge_system.aws.queue_client --command stats
    python -m xp_badge_system.aws.queue_client --command list --limit 10
"""

import argparse
import asyncio
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import boto3
from motor.motor_asyncio import AsyncIOMotorClient

from xp_badge_system.config import Settings, configure_logging
from xp_badge_system.core.levels import validate_xp

logger = logging.getLogger(__name__)

QUEUE_STATUSES = ("pending", "processing", "completed", "failed")


class AWSBadgeQueueClient:
    """
    AWS Badge Queue Client to interact with SQS and MongoDB.
    """

    queue_collection = "badge_evaluation_queue"

    def __init__(self, queue_url: str, region_name: str = "us-east-1",
                 mongo_uri: Optional[str] = None, db_name: Optional[str] = None,
                 shared_db_client: Optional[AsyncIOMotorClient] = None, shared_db=None,
                 sqs_client=None):
        """
        Initialize the AWS Badge Queue Client.

        Args:
            queue_url: URL of the SQS queue
            region_name: AWS region name
            mongo_uri: MongoDB URI used for status tracking
            db_name: MongoDB database name
        """
        settings = Settings.from_env()

        self.queue_url = queue_url
        self.region_name = region_name
        self.sqs = sqs_client or boto3.client('sqs', region_name=region_name)

        # MongoDB connection for status tracking using motor
        self.mongo_uri = mongo_uri or settings.mongo_uri
        self.db_name = db_name or settings.mongo_db_name

        if shared_db_client is not None and shared_db is not None:
            self.client = shared_db_client
            self.db = shared_db
            self._owns_connection = False
        else:
            self.client = None
            self.db = None
            self._owns_connection = True

        logger.info(f"✅ Using SQS queue: {queue_url}")

    async def connect_to_db(self):
        """Establish connection to MongoDB using Motor (only if not using shared connection)."""
        if not self._owns_connection:
            return

        try:
            self.client = AsyncIOMotorClient(self.mongo_uri)
            self.db = self.client[self.db_name]
            logger.info("✅ Queue client connected to MongoDB")
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
            logger.info("🔌 Queue client disconnected from MongoDB")

    async def __aenter__(self):
        if self._owns_connection:
            await self.connect_to_db()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.warning("⚠️ Exception caught in queue client async context manager:")
            logger.warning(f"  Type: {exc_type.__name__}")
            logger.warning(f"  Message: {exc_val}")
            logger.debug("🔍 Traceback:\n" + ''.join(traceback.format_exception(exc_type, exc_val, exc_tb)))
        if self._owns_connection:
            self.disconnect_from_db()

    async def send_badge_evaluation_request(self, learner_id: str, xp: Optional[int] = None,
                                            priority: int = 1, metadata: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Send a badge evaluation request to the SQS queue and record it as
        pending in MongoDB.

        The pending document is what the Lambda queue drain picks up when a
        request is not consumed straight from SQS; lower priority values are
        drained first.

        Raises:
            InvalidArgumentError: If xp is given but is not a non-negative integer
        """
        if xp is not None:
            validate_xp(xp)

        learner_id = str(learner_id)
        created_at = datetime.now(timezone.utc)
        message_body = {
            "learner_id": learner_id,
            "xp": xp,
            "priority": priority,
            "metadata": metadata or {},
            "created_at": created_at.isoformat()
        }

        try:
            response = self.sqs.send_message(
                QueueUrl=self.queue_url,
                MessageBody=json.dumps(message_body),
                MessageAttributes={
                    'Priority': {
                        'DataType': 'Number',
                        'StringValue': str(priority)
                    },
                    'LearnerId': {
                        'DataType': 'String',
                        'StringValue': learner_id
                    }
                }
            )
        except Exception as e:
            logger.error(f"❌ Error sending to queue: {e}")
            return {
                "success": False,
                "error": str(e)
            }

        message_id = response.get('MessageId')
        logger.info(f"✅ Sent to queue: learner {learner_id}")

        await self.db[self.queue_collection].update_one(
            {"learner_id": learner_id},
            {
                "$set": {
                    "status": "pending",
                    "xp": xp,
                    "priority": priority,
                    "metadata": metadata or {},
                    "sqs_message_id": message_id,
                    "updated_at": created_at
                },
                "$setOnInsert": {"created_at": created_at},
                "$push": {"processing_history": {"status": "pending", "at": created_at, "message_id": message_id}}
            },
            upsert=True
        )

        return {
            "success": True,
            "message_id": message_id,
            "status": "pending"
        }

    async def get_status(self, learner_id: str) -> Dict[str, Any]:
        """
        Get a learner's badge evaluation status from MongoDB.
        """
        document = await self.db[self.queue_collection].find_one({"learner_id": str(learner_id)})

        if not document:
            return {
                "found": False,
                "status": "not_found"
            }

        return {
            "found": True,
            "learner_id": document.get("learner_id"),
            "status": document.get("status"),
            "xp": document.get("xp"),
            "priority": document.get("priority"),
            "metadata": document.get("metadata", {}),
            "sqs_message_id": document.get("sqs_message_id"),
            "created_at": document.get("created_at"),
            "updated_at": document.get("updated_at"),
            "completed_at": document.get("completed_at"),
            "processing_history": document.get("processing_history", []),
            "evaluation_result": document.get("evaluation_result"),
            "error": document.get("error")
        }

    async def get_queue_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the queue from both SQS and MongoDB.
        """
        sqs_response = self.sqs.get_queue_attributes(
            QueueUrl=self.queue_url,
            AttributeNames=['All']
        )
        sqs_attributes = sqs_response.get('Attributes', {})

        mongodb_stats = {}
        for status in QUEUE_STATUSES:
            mongodb_stats[status] = await self.db[self.queue_collection].count_documents({"status": status})
        mongodb_stats["total"] = sum(mongodb_stats.values())

        return {
            "sqs_stats": {
                "approximate_messages": int(sqs_attributes.get('ApproximateNumberOfMessages', 0)),
                "approximate_messages_not_visible": int(sqs_attributes.get('ApproximateNumberOfMessagesNotVisible', 0)),
                "approximate_messages_delayed": int(sqs_attributes.get('ApproximateNumberOfMessagesDelayed', 0))
            },
            "mongodb_stats": mongodb_stats
        }

    async def list_recent_evaluations(self, limit: int = 10) -> List[Dict[str, Any]]:
        """
        List recent badge evaluations from MongoDB.
        """
        cursor = self.db[self.queue_collection].find().sort("updated_at", -1).limit(limit)

        evaluations = []
        async for doc in cursor:
            doc["_id"] = str(doc["_id"])
            evaluations.append(doc)

        return evaluations


async def main():
    """Main function to run the script."""
    parser = argparse.ArgumentParser(description="AWS SQS Badge Queue Client")

    parser.add_argument("--command", choices=["send", "status", "stats", "list"],
                        required=True, help="Command to execute")
    parser.add_argument("--learner_id", help="Learner ID")
    parser.add_argument("--xp", type=int, help="XP to evaluate (optional, read from source otherwise)")
    parser.add_argument("--priority", type=int, default=1, help="Priority for send command")
    parser.add_argument("--limit", type=int, default=10, help="Limit for list command")

    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    if not settings.sqs_queue_url:
        logger.error("❌ Missing SQS_QUEUE_URL environment variable")
        sys.exit(1)

    if args.command in ("send", "status") and not args.learner_id:
        logger.error(f"❌ Missing --learner_id for {args.command} command")
        sys.exit(1)

    client = AWSBadgeQueueClient(
        queue_url=settings.sqs_queue_url,
        region_name=settings.aws_region
    )

    async with client:
        if args.command == "send":
            result = await client.send_badge_evaluation_request(
                learner_id=args.learner_id,
                xp=args.xp,
                priority=args.priority
            )
            print("\n📋 Send Result:")
        elif args.command == "status":
            result = await client.get_status(args.learner_id)
            print("\n📋 Status Result:")
        elif args.command == "stats":
            result = await client.get_queue_stats()
            print("\n📊 Queue Statistics:")
        else:
            result = await client.list_recent_evaluations(limit=args.limit)
            print(f"\n📋 Recent {len(result)} Evaluations:")

        print(json.dumps(result, indent=2, default=str))


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
