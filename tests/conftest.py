import os
import tempfile

# Must be set before tics_review.logger configures its file sink.
os.environ.setdefault("APP_LOG_DIR", tempfile.mkdtemp(prefix="tics-review-logs-"))

import pytest
from loguru import logger

from tics_review.config import GitHubSettings, Settings, TicsSettings
from tics_review.models.tics import Annotation


def make_annotation(**overrides) -> Annotation:
    data = {
        "fullPath": "HIE://project/main/src/a.ts",
        "line": 5,
        "rule": "R1",
        "level": "1",
        "category": "C",
        "type": "CS",
        "msg": "x",
        "count": 1,
    }
    data.update(overrides)
    return Annotation.model_validate(data)


def make_settings(**tics_overrides) -> Settings:
    tics = {
        "project_name": "project",
        "branch_name": "main",
        "tics_configuration": "http://tics.local:42506/tiobeweb/TICS/api/cfg?name=default",
    }
    tics.update(tics_overrides)
    return Settings(
        github=GitHubSettings(
            repository="owner/repo",
            pull_request_number=7,
            token="token",
            commit_sha="abc123",
        ),
        tics=TicsSettings(**tics),
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def log_records():
    records = []
    sink_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(sink_id)
