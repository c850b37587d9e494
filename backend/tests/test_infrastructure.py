"""
Tests for settings, logging helpers and error payloads.
"""

import json
import logging

import pytest

from trestle.config import Settings
from trestle.exceptions import CycleDetectedError, NotFoundError, trestle_exception_handler
from trestle.logging_config import JsonFormatter, get_logger
from trestle.models import Project


class TestSettings:

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("TRESTLE_DATABASE_URL", "sqlite+aiosqlite:///./site.db")
        monkeypatch.setenv("TRESTLE_LOG_JSON", "true")

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite+aiosqlite:///./site.db"
        assert settings.log_json is True
        assert settings.app_name == "Trestle"


class TestLogging:

    def test_logger_names_are_namespaced(self):
        assert get_logger("services.graph").name == "trestle.services.graph"
        assert get_logger("trestle.store.sql").name == "trestle.store.sql"

    def test_json_formatter(self):
        record = logging.LogRecord(
            "trestle.test", logging.WARNING, __file__, 1, "Cycle detected: %s", ("a -> b",), None
        )

        payload = json.loads(JsonFormatter().format(record))

        assert payload["level"] == "WARNING"
        assert payload["logger"] == "trestle.test"
        assert payload["message"] == "Cycle detected: a -> b"


class TestErrorPayloads:

    @pytest.mark.asyncio
    async def test_handler_body(self):
        response = await trestle_exception_handler(None, CycleDetectedError(["a", "b", "a"]))

        assert response.status_code == 400
        body = json.loads(response.body)
        assert body["error"] == "cycle_detected"
        assert body["details"][0]["msg"] == "Cycle: a -> b -> a"

    def test_not_found_message(self):
        exc = NotFoundError("Project", "42")

        assert exc.status_code == 404
        assert "42" in exc.message
        assert exc.snapshot is None


class TestTimestamps:

    def test_model_timestamps_are_timezone_aware(self):
        project = Project(name="Maple St. Duplex")

        assert project.created_at.tzinfo is not None
        assert project.created_at.utcoffset().total_seconds() == 0
        assert Project.__table__.c.created_at.type.timezone is True
