"""Settings, logging setup and the app shell."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from core.config import DEFAULT_GITHUB_API_URL, Settings, get_settings
from core.log import DailyFileHandler, JsonLineFormatter, log_file_path
from main import create_app


class TestSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/portfolio")
        monkeypatch.setenv("GITHUB_MAX_PAGES", "4")
        monkeypatch.setenv("GITHUB_PER_PAGE", "not-a-number")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
        monkeypatch.setenv("LOG_TO_FILE", "true")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.delenv("GITHUB_API_URL", raising=False)

        settings = Settings.from_env()

        assert settings.database_url == "postgresql://u:p@db/portfolio"
        assert settings.github_max_pages == 4
        assert settings.github_per_page == 100
        assert settings.cors_origins == ("https://a.example", "https://b.example")
        assert settings.log_to_file is True
        assert settings.log_level == "DEBUG"
        assert settings.github_api_url == DEFAULT_GITHUB_API_URL
        assert settings.access_token_expire_minutes == 7 * 24 * 60

    def test_github_configured(self, settings):
        assert settings.github_configured
        assert not Settings().github_configured


class TestLogging:
    def test_log_file_is_per_day(self):
        path = log_file_path("/var/log/portfolio", now=datetime(2024, 3, 9, 23, 0, tzinfo=timezone.utc))

        assert str(path) == "/var/log/portfolio/app-2024-03-09.log"

    def test_json_line_format(self):
        record = logging.LogRecord("repos.sync", logging.INFO, __file__, 1, "sync_complete provider=%s", ("github",), None)

        entry = json.loads(JsonLineFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "repos.sync"
        assert entry["message"] == "sync_complete provider=github"

    def test_file_follows_the_record_day(self, tmp_path):
        handler = DailyFileHandler(str(tmp_path))
        handler.setFormatter(JsonLineFormatter())

        for day, message in ((9, "before_midnight"), (10, "after_midnight")):
            record = logging.LogRecord("main", logging.INFO, __file__, 1, message, None, None)
            record.created = datetime(2024, 3, day, 23, 59, tzinfo=timezone.utc).timestamp()
            handler.handle(record)
        handler.close()

        first = (tmp_path / "app-2024-03-09.log").read_text(encoding="utf-8")
        second = (tmp_path / "app-2024-03-10.log").read_text(encoding="utf-8")
        assert "before_midnight" in first and "after_midnight" not in first
        assert "after_midnight" in second


class TestAppShell:
    def test_health_and_banner(self, settings):
        client = TestClient(create_app(settings))

        assert client.get("/health").json() == {"status": "ok"}
        banner = client.get("/").json()
        assert banner["github_configured"] is True
        assert "/api/blog" in banner["endpoints"].values()

    def test_settings_dependency_requires_startup(self):
        app = FastAPI()

        @app.get("/probe")
        def probe(request_settings: Settings = Depends(get_settings)) -> dict:
            return {"ok": True}

        with pytest.raises(RuntimeError):
            TestClient(app).get("/probe")

    def test_failed_requests_are_logged_as_warnings(self, settings, caplog):
        client = TestClient(create_app(settings))

        with caplog.at_level(logging.INFO, logger="portfolio_api"):
            client.get("/no-such-route")

        warnings = [r for r in caplog.records if r.name == "portfolio_api" and r.levelno == logging.WARNING]
        assert warnings
        assert "status=404" in warnings[0].getMessage()
