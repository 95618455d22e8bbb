"""Tests for configuration validation."""

from __future__ import annotations

import pytest

from smartcal.config import SmartCalConfig
from smartcal.const import DEFAULT_DATABASE, DEFAULT_POLL_INTERVAL_SECONDS
from smartcal.exceptions import ConfigError


class TestFromDict:
    def test_minimal(self):
        config = SmartCalConfig.from_dict({"api_key": "k", "project_id": "p"})
        assert config.database == DEFAULT_DATABASE
        assert config.poll_interval == DEFAULT_POLL_INTERVAL_SECONDS
        assert config.gemini_api_key is None
        assert config.documents_url == (
            "https://firestore.googleapis.com/v1/projects/p/databases/(default)/documents"
        )
        assert config.signin_url.endswith("/accounts:signInWithPassword")

    def test_missing_project(self):
        with pytest.raises(ConfigError):
            SmartCalConfig.from_dict({"api_key": "k"})

    def test_empty_api_key(self):
        with pytest.raises(ConfigError):
            SmartCalConfig.from_dict({"api_key": "", "project_id": "p"})

    def test_poll_interval_coerced_and_bounded(self):
        config = SmartCalConfig.from_dict({"api_key": "k", "project_id": "p", "poll_interval": "5"})
        assert config.poll_interval == 5.0
        with pytest.raises(ConfigError):
            SmartCalConfig.from_dict({"api_key": "k", "project_id": "p", "poll_interval": 0})

    def test_emulator_urls_trailing_slash_stripped(self):
        config = SmartCalConfig.from_dict(
            {"api_key": "k", "project_id": "p", "firestore_url": "http://localhost:8080/v1/"}
        )
        assert config.documents_url.startswith("http://localhost:8080/v1/projects/p/")

    def test_bad_url(self):
        with pytest.raises(ConfigError):
            SmartCalConfig.from_dict({"api_key": "k", "project_id": "p", "auth_url": "localhost"})

    def test_unknown_key(self):
        with pytest.raises(ConfigError):
            SmartCalConfig.from_dict({"api_key": "k", "project_id": "p", "colour": "red"})


class TestFromEnv:
    def test_reads_prefixed_variables(self):
        config = SmartCalConfig.from_env(
            {
                "SMARTCAL_API_KEY": "k",
                "SMARTCAL_PROJECT_ID": "p",
                "SMARTCAL_GEMINI_API_KEY": "g",
                "SMARTCAL_GEMINI_MODEL": "",
                "HOME": "/root",
            }
        )
        assert config.api_key == "k"
        assert config.gemini_api_key == "g"
        assert config.gemini_model == "gemini-2.5-flash"
        assert config.generate_content_url.endswith("/models/gemini-2.5-flash:generateContent")

    def test_missing(self):
        with pytest.raises(ConfigError):
            SmartCalConfig.from_env({})

    def test_unrelated_prefixed_variables_ignored(self):
        config = SmartCalConfig.from_env(
            {
                "SMARTCAL_API_KEY": "k",
                "SMARTCAL_PROJECT_ID": "p",
                "SMARTCAL_LOG_LEVEL": "debug",
                "SMARTCAL_HOME": "/opt/smartcal",
            }
        )
        assert config.project_id == "p"
