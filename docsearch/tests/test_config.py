"""Tests for configuration loading, env overrides and saving."""

import json
import os
import stat
import pytest
from unittest.mock import patch


@pytest.fixture
def clean_env():
    """Environment without any DOCSEARCH_* variables."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("DOCSEARCH_")}
    with patch.dict(os.environ, env, clear=True):
        yield


class TestDefaults:
    def test_retrieval_defaults(self):
        from docsearch.common.config import RetrievalConfig
        cfg = RetrievalConfig()
        assert cfg.top_n == 10
        assert cfg.min_similarity == 0.25
        assert cfg.max_clusters == 5
        assert cfg.max_context_tokens == 4096

    def test_reranking_disabled_by_default(self):
        from docsearch.common.config import DocSearchConfig
        cfg = DocSearchConfig()
        assert cfg.reranker.enabled is False
        assert cfg.collection == "default"

    def test_missing_file_uses_defaults(self, tmp_path, clean_env):
        from docsearch.common.config import load_config

        with patch("docsearch.common.config.CONFIG_PATH", tmp_path / "missing.json"):
            cfg = load_config()

        assert cfg.retrieval.top_n == 10
        assert cfg.splitter.chunk_size == 1000


class TestLoadConfig:
    def test_load_from_file(self, tmp_path, clean_env):
        from docsearch.common.config import load_config
        config_data = {
            "embedding": {"model": "BAAI/bge-base-en-v1.5"},
            "reranker": {"enabled": True, "endpoint": "http://localhost:8080/rerank"},
            "retrieval": {"top_n": 3, "min_similarity": 0.5},
            "collection": "papers",
        }
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps(config_data))

        with patch("docsearch.common.config.CONFIG_PATH", config_file):
            cfg = load_config()

        assert cfg.embedding.model == "BAAI/bge-base-en-v1.5"
        assert cfg.reranker.enabled is True
        assert cfg.reranker.endpoint == "http://localhost:8080/rerank"
        assert cfg.retrieval.top_n == 3
        assert cfg.retrieval.min_similarity == 0.5
        assert cfg.retrieval.max_clusters == 5
        assert cfg.collection == "papers"

    def test_invalid_json_keeps_defaults(self, tmp_path, clean_env):
        from docsearch.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")

        with patch("docsearch.common.config.CONFIG_PATH", config_file):
            cfg = load_config()

        assert cfg.retrieval.top_n == 10

    def test_env_overrides_file(self, tmp_path, clean_env):
        from docsearch.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"retrieval": {"top_n": 3}, "collection": "papers"}))

        env = {
            "DOCSEARCH_TOP_N": "7",
            "DOCSEARCH_MIN_SIMILARITY": "0.4",
            "DOCSEARCH_COLLECTION": "notes",
            "DOCSEARCH_RERANKING_ENABLED": "yes",
            "DOCSEARCH_RERANKER_API_KEY": "rk-secret",
        }
        with patch("docsearch.common.config.CONFIG_PATH", config_file), \
                patch.dict(os.environ, env):
            cfg = load_config()

        assert cfg.retrieval.top_n == 7
        assert cfg.retrieval.min_similarity == 0.4
        assert cfg.collection == "notes"
        assert cfg.reranker.enabled is True
        assert cfg.reranker.api_key == "rk-secret"
        assert "reranker.api_key" in cfg._env_sourced_keys


class TestSaveConfig:
    def test_round_trip_with_secure_permissions(self, tmp_path, clean_env):
        from docsearch.common.config import DocSearchConfig, load_config, save_config
        config_file = tmp_path / "config.json"
        cfg = DocSearchConfig()
        cfg.collection = "papers"
        cfg.reranker.api_key = "file-key"

        with patch("docsearch.common.config.CONFIG_DIR", tmp_path), \
                patch("docsearch.common.config.CONFIG_PATH", config_file):
            save_config(cfg)
            loaded = load_config()

        assert loaded.collection == "papers"
        assert loaded.reranker.api_key == "file-key"
        assert stat.S_IMODE(config_file.stat().st_mode) == 0o600

    def test_env_sourced_key_not_written(self, tmp_path, clean_env):
        from docsearch.common.config import load_config, save_config
        config_file = tmp_path / "config.json"

        with patch("docsearch.common.config.CONFIG_DIR", tmp_path), \
                patch("docsearch.common.config.CONFIG_PATH", config_file), \
                patch.dict(os.environ, {"DOCSEARCH_RERANKER_API_KEY": "rk-secret"}):
            save_config(load_config())

        data = json.loads(config_file.read_text())
        assert data["reranker"]["api_key"] == ""
