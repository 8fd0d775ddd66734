# FILE: tests/test_model_selector.py
"""
Tests for config/models.py
Model selector parsing.
"""

import pytest

from config import DEFAULT_MODELS, DEFAULT_PROVIDER, parse_model_selector


class TestParseModelSelector:

    def test_empty_uses_default_provider(self):
        provider, model = parse_model_selector(None)
        assert provider == DEFAULT_PROVIDER
        assert model == DEFAULT_MODELS[DEFAULT_PROVIDER]
        assert parse_model_selector("  ") == (provider, model)

    def test_provider_only(self):
        assert parse_model_selector("openai") == ("openai", DEFAULT_MODELS["openai"])

    def test_provider_and_model(self):
        assert parse_model_selector("gemini:gemini-2.0-flash") == ("gemini", "gemini-2.0-flash")

    def test_aliases_and_case(self):
        assert parse_model_selector("Google")[0] == "gemini"
        assert parse_model_selector("CLAUDE:claude-x") == ("anthropic", "claude-x")

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            parse_model_selector("mystery:model")
