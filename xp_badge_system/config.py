"""
Runtime configuration

Settings are read from the process environment, with a local .env file
loaded first when present.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


@dataclass
class Settings:
    """Configuration for badge allocation services"""

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "elearn"

    # Catalog selection (file path wins over name)
    badge_catalog: str = "classic"
    badge_catalog_file: Optional[str] = None

    # Where learner XP is read from: "mongo" or "api"
    xp_source: str = "mongo"
    progress_api_url: Optional[str] = None
    progress_api_token: str = ""
    http_timeout: int = 30

    # AWS
    sqs_queue_url: Optional[str] = None
    aws_region: str = "us-east-1"
    max_concurrent_groups: int = 3
    timeout_per_learner: int = 30

    leaderboard_limit: int = 50

    # Nightly batch
    nightly_batch_size: int = 50
    nightly_max_concurrent: int = 5
    nightly_processing_time: str = "02:00"

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables"""
        return cls(
            mongo_uri=os.getenv("MONGO_URI", cls.mongo_uri),
            mongo_db_name=os.getenv("MONGO_DB_NAME", cls.mongo_db_name),
            badge_catalog=os.getenv("BADGE_CATALOG", cls.badge_catalog),
            badge_catalog_file=os.getenv("BADGE_CATALOG_FILE") or None,
            xp_source=os.getenv("XP_SOURCE", cls.xp_source).strip().lower(),
            progress_api_url=os.getenv("PROGRESS_API_URL") or None,
            progress_api_token=os.getenv("PROGRESS_API_TOKEN", ""),
            http_timeout=_env_int("HTTP_TIMEOUT", cls.http_timeout),
            sqs_queue_url=os.getenv("SQS_QUEUE_URL") or None,
            aws_region=os.getenv("AWS_REGION", cls.aws_region),
            max_concurrent_groups=_env_int("MAX_CONCURRENT_GROUPS", cls.max_concurrent_groups),
            timeout_per_learner=_env_int("TIMEOUT_PER_LEARNER", cls.timeout_per_learner),
            leaderboard_limit=_env_int("LEADERBOARD_LIMIT", cls.leaderboard_limit),
            nightly_batch_size=_env_int("NIGHTLY_BATCH_SIZE", cls.nightly_batch_size),
            nightly_max_concurrent=_env_int("NIGHTLY_MAX_CONCURRENT", cls.nightly_max_concurrent),
            nightly_processing_time=os.getenv("NIGHTLY_PROCESSING_TIME", cls.nightly_processing_time),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


def configure_logging(level: Optional[str] = None):
    """Apply the shared log format; used by the Lambda entry point and CLIs."""
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format=LOG_FORMAT
    )
