"""
XP Badge System

Turns a learner's experience points into milestone badges, levels and
leaderboard entries, and keeps awarded badges stored in MongoDB.
"""

__version__ = "0.1.0"

# Core classes
from .core import BadgeAllocator, BadgeCatalog, BadgeEvaluator, evaluate_badges

# AWS integration
from .aws import LambdaBadgeProcessor, AWSBadgeQueueClient

# Client and utilities
from .client import HttpClient
from .exceptions import CatalogError, DBError, HTTPRequestError, InvalidArgumentError

__all__ = [
    "BadgeAllocator", "BadgeCatalog", "BadgeEvaluator", "evaluate_badges",
    "LambdaBadgeProcessor", "AWSBadgeQueueClient",
    "HttpClient", "CatalogError", "DBError", "HTTPRequestError", "InvalidArgumentError"
]
