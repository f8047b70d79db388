"""Tests for configuration loading and saving."""

import json
import os
import pytest
from unittest.mock import patch


@pytest.fixture
def no_dotenv():
    with patch("notegram.common.config.load_dotenv"):
        yield


class TestDefaults:
    def test_ai_config_defaults(self):
        from notegram.common.config import AIConfig
        cfg = AIConfig()
        assert cfg.provider == "openai"
        assert cfg.max_attempts == 3
        assert cfg.base_delay == 1.0
        assert cfg.timeout == 30.0
        assert cfg.openai.model == "gpt-4o-mini"
        assert cfg.openai.temperature == 0.7
        assert cfg.openai.max_tokens == 2000
        assert cfg.claude.model == "claude-3-5-sonnet-20241022"
        assert cfg.gemini.model == "gemini-1.5-flash"

    def test_settings_for_unknown_provider(self):
        from notegram.common.config import AIConfig
        assert AIConfig().settings_for("mistral") is None

    def test_custom_parameters_default_to_title(self):
        from notegram.common.config import NotegramConfig, TITLE_PARAMETER_PROMPT
        cfg = NotegramConfig()
        assert cfg.custom_parameters == {"title": TITLE_PARAMETER_PROMPT}

    def test_media_group_defaults(self):
        from notegram.common.config import MediaGroupConfig
        cfg = MediaGroupConfig()
        assert cfg.tick_interval == 0.5
        assert cfg.inactivity_window == 2.0


class TestLoadConfig:
    def test_load_config_from_file(self, tmp_path, no_dotenv):
        from notegram.common.config import load_config
        config_data = {
            "ai": {
                "provider": "claude",
                "claude": {"api_key": "sk-ant-file", "max_tokens": 1000},
                "max_attempts": 5,
            },
            "prompts": {"text": "Summarize this", "general": ""},
            "processing": {"video": False},
            "categories": {
                "default_category_id": "cat_1",
                "categories": [{"id": "cat_1", "name": "Inbox"}],
                "rules": [{"id": "rule_1", "category_id": "cat_1", "condition": "todo", "priority": 3}],
            },
            "custom_parameters": {"topic": "Main topic in one word"},
        }
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps(config_data))

        with patch("notegram.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {}, clear=True):
            cfg = load_config()

        assert cfg.ai.provider == "claude"
        assert cfg.ai.claude.api_key == "sk-ant-file"
        assert cfg.ai.claude.max_tokens == 1000
        assert cfg.ai.claude.model == "claude-3-5-sonnet-20241022"
        assert cfg.ai.max_attempts == 5
        assert cfg.prompts.text == "Summarize this"
        assert cfg.prompts.general == ""
        assert cfg.processing.video is False
        assert cfg.processing.text is True
        assert cfg.categories.default_category_id == "cat_1"
        assert cfg.categories.categories[0].name == "Inbox"
        assert cfg.categories.rules[0].priority == 3
        assert cfg.custom_parameters == {"topic": "Main topic in one word"}

    def test_invalid_json_falls_back_to_defaults(self, tmp_path, no_dotenv, caplog):
        import logging
        from notegram.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")

        with patch("notegram.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {}, clear=True), \
             caplog.at_level(logging.WARNING, logger="notegram.common.config"):
            cfg = load_config()

        assert cfg.ai.provider == "openai"
        assert "Failed to load config file" in caplog.text

    def test_env_var_overrides(self, tmp_path, no_dotenv):
        from notegram.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{}")

        env = {
            "GEMINI_API_KEY": "gm-env",
            "NOTEGRAM_AI_PROVIDER": "Gemini",
            "NOTEGRAM_AI_TIMEOUT": "12.5",
            "NOTEGRAM_AI_MAX_ATTEMPTS": "4",
        }
        with patch("notegram.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, env, clear=True):
            cfg = load_config()

        assert cfg.ai.provider == "gemini"
        assert cfg.ai.gemini.api_key == "gm-env"
        assert cfg.ai.timeout == 12.5
        assert cfg.ai.max_attempts == 4
        assert "gemini.api_key" in cfg._env_sourced_keys

    def test_anthropic_key_wins_over_claude_key(self, tmp_path, no_dotenv):
        from notegram.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{}")

        env = {"CLAUDE_API_KEY": "old", "ANTHROPIC_API_KEY": "new"}
        with patch("notegram.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, env, clear=True):
            cfg = load_config()

        assert cfg.ai.claude.api_key == "new"


class TestSaveConfig:
    def test_save_config_omits_env_keys(self, tmp_path, no_dotenv):
        from notegram.common.config import load_config, save_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"ai": {"claude": {"api_key": "sk-file"}}}))

        env = {"OPENAI_API_KEY": "sk-from-env"}
        with patch("notegram.common.config.CONFIG_PATH", config_file), \
             patch("notegram.common.config.CONFIG_DIR", tmp_path), \
             patch.dict(os.environ, env, clear=True):
            cfg = load_config()
            save_config(cfg)

        saved = json.loads(config_file.read_text())
        assert saved["ai"]["openai"]["api_key"] == ""
        assert saved["ai"]["claude"]["api_key"] == "sk-file"
        assert oct(config_file.stat().st_mode & 0o777) == "0o600"

    def test_save_config_round_trips_categories(self, tmp_path, no_dotenv):
        from notegram.common.config import NotegramConfig, load_config, save_config
        from notegram.common.schemas.category import Category, CategorizationRule, RuleType

        cfg = NotegramConfig()
        cfg.categories.categories = [Category(id="cat_work", name="Work", keywords=["meeting"])]
        cfg.categories.rules = [
            CategorizationRule(id="r1", category_id="cat_work", type=RuleType.AI_CLASSIFICATION, priority=2)
        ]
        config_file = tmp_path / "config.json"

        with patch("notegram.common.config.CONFIG_PATH", config_file), \
             patch("notegram.common.config.CONFIG_DIR", tmp_path), \
             patch.dict(os.environ, {}, clear=True):
            save_config(cfg)
            loaded = load_config()

        assert loaded.categories.categories[0].keywords == ["meeting"]
        assert loaded.categories.rules[0].type is RuleType.AI_CLASSIFICATION
        saved = json.loads(config_file.read_text())
        assert saved["categories"]["rules"][0]["type"] == "ai"
