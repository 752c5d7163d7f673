import os
from unittest.mock import patch

import pytest

from xp_badge_system.config import Settings


@pytest.mark.unit
def test_defaults():
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings.from_env()

    assert settings.mongo_uri == "mongodb://localhost:27017"
    assert settings.mongo_db_name == "elearn"
    assert settings.badge_catalog == "classic"
    assert settings.badge_catalog_file is None
    assert settings.xp_source == "mongo"
    assert settings.leaderboard_limit == 50
    assert settings.nightly_processing_time == "02:00"
    assert settings.log_level == "INFO"


@pytest.mark.unit
def test_reads_environment():
    env = {
        "MONGO_URI": "mongodb://db:27017",
        "MONGO_DB_NAME": "school",
        "BADGE_CATALOG": "extended",
        "XP_SOURCE": " API ",
        "PROGRESS_API_URL": "https://api.example.com",
        "HTTP_TIMEOUT": "10",
        "MAX_CONCURRENT_GROUPS": "7",
        "LOG_LEVEL": "debug",
    }
    with patch.dict(os.environ, env, clear=True):
        settings = Settings.from_env()

    assert settings.mongo_uri == "mongodb://db:27017"
    assert settings.mongo_db_name == "school"
    assert settings.badge_catalog == "extended"
    assert settings.xp_source == "api"
    assert settings.progress_api_url == "https://api.example.com"
    assert settings.http_timeout == 10
    assert settings.max_concurrent_groups == 7
    assert settings.log_level == "DEBUG"


@pytest.mark.unit
def test_blank_integer_uses_default():
    with patch.dict(os.environ, {"NIGHTLY_BATCH_SIZE": "  "}, clear=True):
        assert Settings.from_env().nightly_batch_size == 50


@pytest.mark.unit
def test_bad_integer_raises():
    with patch.dict(os.environ, {"TIMEOUT_PER_LEARNER": "soon"}, clear=True):
        with pytest.raises(ValueError, match="TIMEOUT_PER_LEARNER"):
            Settings.from_env()
