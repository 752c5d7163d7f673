"""
AWS Lambda Handler - XP Badge System
Main entry point for AWS Lambda deployment
"""

import json
import logging

from xp_badge_system.aws.lambda_processor import lambda_function
from xp_badge_system.config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)


def lambda_handler(event, context):
    """
    AWS Lambda entry point for XP badge evaluation.

    Args:
        event: AWS Lambda event object
        context: AWS Lambda context object

    Returns:
        dict: Lambda response with statusCode and body
    """
    try:
        if context is not None:
            logger.info(f"Lambda invoked: {getattr(context, 'function_name', 'local')}")
            logger.info(f"Request ID: {getattr(context, 'aws_request_id', '-')}")

        result = lambda_function(event, context)

        # Ensure result has proper Lambda response format
        if not isinstance(result, dict) or ('statusCode' not in result and 'batchItemFailures' not in result):
            return {
                "statusCode": 200,
                "body": json.dumps({
                    "success": True,
                    "message": "Badge evaluation completed",
                    "result": result
                }, default=str)
            }

        return result

    except Exception as e:
        logger.exception(f"Lambda handler error: {e}")

        return {
            "statusCode": 500,
            "body": json.dumps({
                "success": False,
                "error": str(e),
                "message": "Badge evaluation failed"
            })
        }
