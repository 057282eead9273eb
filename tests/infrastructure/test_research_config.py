"""Tests for run configuration and the JSON loader."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from deep_research.infrastructure.config import (
    ConfigBundle,
    LLMSettings,
    ResearchConfig,
    load_config_file,
    load_config_from_json,
)


class TestResearchConfig:

    def test_defaults(self) -> None:
        config = ResearchConfig()
        config.validate()
        assert config.top_k == 5
        assert config.max_depth == 2
        assert config.search_modes == ("semantic", "keyword")
        assert config.max_verification_attempts == 1
        assert config.max_compaction_attempts == 3
        assert config.min_hits_for_compaction == 4

    def test_search_modes_coerced_to_tuple(self) -> None:
        assert ResearchConfig(search_modes=["hybrid"]).search_modes == ("hybrid",)
        assert ResearchConfig(search_modes="keyword").search_modes == ("keyword",)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"top_k": 0},
            {"max_depth": -1},
            {"search_modes": ()},
            {"search_modes": ("vector",)},
            {"max_workers": 0},
            {"evidence_limit": 0},
            {"compaction_delay_seconds": -1.0},
            {"min_hits_for_compaction": 0},
            {"llm_timeout": 0},
            {"max_verification_attempts": -1},
            {"max_verification_attempts": 2},
            {"max_compaction_attempts": 4},
        ],
    )
    def test_validate_rejects(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            ResearchConfig(**kwargs).validate()

    def test_frozen(self) -> None:
        config = ResearchConfig()
        with pytest.raises(AttributeError):
            config.top_k = 9  # type: ignore[misc]

    def test_dict_round_trip_ignores_unknown_keys(self) -> None:
        data = ResearchConfig(collection="acme", search_modes=("hybrid",)).to_dict()
        assert data["search_modes"] == ["hybrid"]
        data["unknown"] = 1
        restored = ResearchConfig.from_dict(data)
        assert restored == ResearchConfig(collection="acme", search_modes=("hybrid",))

    def test_from_dict_validates(self) -> None:
        with pytest.raises(ValueError):
            ResearchConfig.from_dict({"top_k": 0})


class TestLLMSettings:

    def test_rejects_unknown_provider(self) -> None:
        with pytest.raises(ValueError):
            LLMSettings(provider="nope").validate()

    def test_rejects_temperature(self) -> None:
        with pytest.raises(ValueError):
            LLMSettings(temperature=3.0).validate()


class TestLoadConfig:

    def test_sections(self) -> None:
        bundle = load_config_from_json(
            json.dumps(
                {
                    "research": {"collection": "acme", "max_depth": 3},
                    "llm": {"provider": "openai"},
                    "notes": {"owner": "platform"},
                }
            )
        )
        assert isinstance(bundle, ConfigBundle)
        assert bundle.research.collection == "acme"
        assert bundle.research.max_depth == 3
        assert bundle.llm.provider == "openai"
        assert bundle.extra == {"notes": {"owner": "platform"}}

    def test_missing_sections_use_defaults(self) -> None:
        bundle = load_config_from_json("{}")
        assert bundle.research == ResearchConfig()
        assert bundle.llm == LLMSettings()

    def test_rejects_non_object(self) -> None:
        with pytest.raises(ValueError):
            load_config_from_json("[1, 2]")

    def test_rejects_non_object_section(self) -> None:
        with pytest.raises(ValueError):
            load_config_from_json('{"research": 5}')

    def test_load_file(self, tmp_path: Path) -> None:
        path = tmp_path / "research.json"
        path.write_text('{"research": {"top_k": 8}}', encoding="utf-8")
        assert load_config_file(path).research.top_k == 8
