"""Tests for the config module."""

import importlib

import pytest

from recipe_basket import config


@pytest.fixture
def reload_config(monkeypatch):
    """Reload the config module after changing the environment."""

    def _reload():
        monkeypatch.setattr("dotenv.load_dotenv", lambda *args, **kwargs: False)
        return importlib.reload(config)

    yield _reload
    monkeypatch.undo()
    importlib.reload(config)


class TestGetApiKey:
    """Tests for get_api_key function."""

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        assert config.get_api_key() == "sk-test"

    def test_missing(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        assert config.get_api_key() is None

    def test_blank_is_missing(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "")

        assert config.get_api_key() is None


class TestEnsureConfigDir:
    """Tests for ensure_config_dir function."""

    def test_creates_directory(self, tmp_path, monkeypatch):
        target = tmp_path / "nested" / ".recipe-basket"
        monkeypatch.setattr("recipe_basket.config.CONFIG_DIR", target)

        assert config.ensure_config_dir() == target
        assert target.is_dir()

    def test_existing_directory(self, tmp_path, monkeypatch):
        monkeypatch.setattr("recipe_basket.config.CONFIG_DIR", tmp_path)

        assert config.ensure_config_dir() == tmp_path


class TestEnvironmentOverrides:
    """Tests for settings read from the environment."""

    def test_home_override(self, tmp_path, monkeypatch, reload_config):
        monkeypatch.setenv("RECIPE_BASKET_HOME", str(tmp_path))

        reloaded = reload_config()

        assert reloaded.CONFIG_DIR == tmp_path
        assert reloaded.DATABASE_FILE == tmp_path / "recipes.db"
        assert reloaded.CATEGORIES_FILE == tmp_path / "categories.json"

    def test_service_settings(self, monkeypatch, reload_config):
        monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:8080/v1")
        monkeypatch.setenv("TRANSLATION_MODEL", "local-model")
        monkeypatch.setenv("RECIPE_BASKET_HTTP_TIMEOUT", "5")

        reloaded = reload_config()

        assert reloaded.OPENAI_BASE_URL == "http://localhost:8080/v1"
        assert reloaded.TRANSLATION_MODEL == "local-model"
        assert reloaded.HTTP_TIMEOUT == 5.0

    def test_defaults(self, monkeypatch, reload_config):
        for name in ("OPENAI_BASE_URL", "TRANSLATION_MODEL", "RECIPE_BASKET_HTTP_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)

        reloaded = reload_config()

        assert reloaded.OPENAI_BASE_URL == "https://api.openai.com/v1"
        assert reloaded.TRANSLATION_MODEL == "gpt-4o-mini"
        assert reloaded.HTTP_TIMEOUT == 30.0
        assert reloaded.DEFAULT_TARGET_LANGUAGE == "French"
