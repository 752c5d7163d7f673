import json
from unittest.mock import MagicMock

import pytest

from tests.conftest import FakeCursor
from xp_badge_system.aws.lambda_processor import LambdaBadgeProcessor
from xp_badge_system.aws.queue_client import AWSBadgeQueueClient
from xp_badge_system.config import Settings
from xp_badge_system.exceptions import InvalidArgumentError

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/badge-queue"


@pytest.fixture
def sqs():
    client = MagicMock()
    client.send_message.return_value = {"MessageId": "msg-1"}
    client.get_queue_attributes.return_value = {
        "Attributes": {"ApproximateNumberOfMessages": "4", "ApproximateNumberOfMessagesNotVisible": "1"}
    }
    return client


@pytest.fixture
def queue_client(sqs, fake_db):
    return AWSBadgeQueueClient(QUEUE_URL, sqs_client=sqs, shared_db_client=MagicMock(), shared_db=fake_db)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_send_request(queue_client, sqs, fake_db):
    result = await queue_client.send_badge_evaluation_request("u1", xp=120, priority=2, metadata={"source": "quiz"})

    assert result == {"success": True, "message_id": "msg-1", "status": "pending"}
    kwargs = sqs.send_message.call_args.kwargs
    body = json.loads(kwargs["MessageBody"])
    assert kwargs["QueueUrl"] == QUEUE_URL
    assert body["learner_id"] == "u1"
    assert body["xp"] == 120
    assert body["metadata"] == {"source": "quiz"}
    assert kwargs["MessageAttributes"]["LearnerId"]["StringValue"] == "u1"

    query, update = fake_db.collections["badge_evaluation_queue"].update_one.call_args.args
    assert query == {"learner_id": "u1"}
    assert update["$set"]["status"] == "pending"
    assert update["$set"]["priority"] == 2
    assert update["$set"]["sqs_message_id"] == "msg-1"
    assert "created_at" in update["$setOnInsert"]
    assert fake_db.collections["badge_evaluation_queue"].update_one.call_args.kwargs == {"upsert": True}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_send_rejects_invalid_xp(queue_client, sqs, fake_db):
    with pytest.raises(InvalidArgumentError):
        await queue_client.send_badge_evaluation_request("u1", xp=-1)
    sqs.send_message.assert_not_called()
    fake_db.collections["badge_evaluation_queue"].update_one.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_send_failure_is_reported(queue_client, sqs, fake_db):
    sqs.send_message.side_effect = RuntimeError("throttled")

    result = await queue_client.send_badge_evaluation_request("u1")

    assert result["success"] is False
    assert "throttled" in result["error"]
    fake_db.collections["badge_evaluation_queue"].update_one.assert_not_awaited()


@pytest.mark.integration
@pytest.mark.mocked
@pytest.mark.asyncio
async def test_sent_request_is_visible_and_drained(queue_client, fake_db):
    queue = fake_db.collections["badge_evaluation_queue"]
    await queue_client.send_badge_evaluation_request("u1", xp=60, priority=1)

    # What the producer wrote is what the status reader and the Lambda drain see
    _, update = queue.update_one.call_args.args
    stored = {"_id": "q1", "learner_id": "u1", **update["$setOnInsert"], **update["$set"]}
    queue.find_one.return_value = stored
    queue.find.return_value = FakeCursor([stored])

    status = await queue_client.get_status("u1")
    assert status["found"] is True
    assert status["status"] == "pending"
    assert status["xp"] == 60

    processor = LambdaBadgeProcessor(settings=Settings(), shared_db_client=MagicMock(), shared_db=fake_db)
    await processor.connect_to_db()
    result = await processor.process_badge_reevaluation_queue()

    assert queue.find.call_args.args[0] == {"status": "pending"}
    assert result["processed_learners"] == 1
    assert result["successful_learners"] == 1
    assert result["results"][0]["newly_awarded"] == ["first_steps", "rising_star"]
    assert queue.update_many.call_args.args[0] == {"_id": {"$in": ["q1"]}}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_status_not_found(queue_client):
    assert await queue_client.get_status("u1") == {"found": False, "status": "not_found"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_status_found(queue_client, fake_db):
    fake_db.collections["badge_evaluation_queue"].find_one.return_value = {
        "learner_id": "u1", "status": "completed", "evaluation_result": {"badges": ["first_steps"]}
    }

    status = await queue_client.get_status("u1")

    assert status["found"] is True
    assert status["status"] == "completed"
    assert status["processing_history"] == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_queue_stats(queue_client, fake_db):
    fake_db.collections["badge_evaluation_queue"].count_documents.return_value = 2

    stats = await queue_client.get_queue_stats()

    assert stats["sqs_stats"]["approximate_messages"] == 4
    assert stats["sqs_stats"]["approximate_messages_delayed"] == 0
    assert stats["mongodb_stats"]["total"] == 8


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_recent(queue_client, fake_db):
    fake_db.collections["badge_evaluation_queue"].find.return_value = FakeCursor([
        {"_id": 1, "learner_id": "u1"},
        {"_id": 2, "learner_id": "u2"},
    ])

    evaluations = await queue_client.list_recent_evaluations(limit=1)

    assert evaluations == [{"_id": "1", "learner_id": "u1"}]
