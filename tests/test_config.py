"""Tests for config/config_loader.py."""

from pathlib import Path

import pytest
import yaml

from config.config_loader import AppConfig, ModelConfig, PromptsConfig, load_config

_SETTINGS = Path(__file__).parent.parent / "config" / "settings.yaml"


def test_load_config_returns_app_config():
    config = load_config()
    assert isinstance(config, AppConfig)
    assert isinstance(config.defaults.output_dir, Path)


def test_load_config_models():
    config = load_config()
    assert set(config.models) == {"claude", "chatgpt"}
    assert isinstance(config.models["claude"], ModelConfig)
    assert config.models["claude"].api_key_env == "ANTHROPIC_API_KEY"
    assert config.models["chatgpt"].api_key_env == "OPENAI_API_KEY"
    assert config.models["claude"].timeout_sec is None


def test_load_config_agent_settings():
    config = load_config()
    assert config.agents.builder.temperature == 0.7
    assert config.agents.judge.temperature == 0.5
    assert config.agents.builder.max_tokens == 2000
    assert config.agents.summary_threshold == 0.8
    assert config.agents.summary_temperature == 0.3
    assert config.agents.summary_max_tokens == 500


def test_load_config_debate_defaults():
    config = load_config()
    assert config.debate.agent_a == "claude"
    assert config.debate.agent_b == "chatgpt"
    assert config.debate.max_turns == 4
    assert config.debate.allowed_max_turns == [2, 4, 6, 8]


def test_load_config_token_limits():
    config = load_config()
    assert config.tokens.default_limit == 8000
    assert config.tokens.limits["gpt-4o"] == 128000
    assert config.tokens.limits["claude-3-opus"] == 200000


def test_load_config_prompts_have_placeholders():
    config = load_config()
    assert isinstance(config.prompts, PromptsConfig)
    assert "{requirements}" in config.prompts.builder
    assert "{builder_response}" in config.prompts.judge
    assert "{topic}" in config.prompts.debate_opening
    assert "{history}" in config.prompts.debate_middle


def test_load_config_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_load_config_missing_section(tmp_path: Path):
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump({"models": {}}), encoding="utf-8")
    with pytest.raises(KeyError):
        load_config(path)


def test_load_config_optional_timeout(tmp_path: Path):
    raw = yaml.safe_load(_SETTINGS.read_text(encoding="utf-8"))
    raw["models"]["claude"]["timeout_sec"] = 45
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(raw, allow_unicode=True), encoding="utf-8")
    config = load_config(path)
    assert config.models["claude"].timeout_sec == 45.0
    assert config.models["chatgpt"].timeout_sec is None
