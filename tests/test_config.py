"""Tests for centralized Config class."""

import importlib
import os
from unittest.mock import patch

import pytest

from mail_search import config as config_module


@pytest.fixture
def reload_config():
    """Reload the config module under a patched environment, restoring it afterwards."""

    def _reload(**env):
        with patch.dict(os.environ, env):
            return importlib.reload(config_module).Config

    yield _reload
    importlib.reload(config_module)


def test_config_defaults(reload_config):
    """Verify default configuration values."""
    Config = reload_config()

    assert Config.EMBEDDING_DIMENSIONS == 1536
    assert Config.CHUNK_SIZE == 1000
    assert Config.CHUNK_OVERLAP == 200
    assert Config.CHUNK_ID_BOUND == 100
    assert Config.REINDEX_LIMIT == 10000
    assert Config.BM25_K1 == 1.2
    assert Config.BM25_B == 0.75
    assert Config.RRF_K == 60
    assert Config.HYBRID_DEFAULT_ALPHA == 0.5
    assert Config.SEMANTIC_DEFAULT_LIMIT == 20


def test_environment_overrides(reload_config):
    Config = reload_config(
        EMBEDDING_DIMENSIONS="768",
        BM25_K1="1.5",
        VECTOR_STORE="qdrant",
        QDRANT_API_KEY="secret",
        LOG_DIAGNOSE="yes",
    )

    assert Config.EMBEDDING_DIMENSIONS == 768
    assert Config.BM25_K1 == 1.5
    assert Config.VECTOR_STORE == "qdrant"
    assert Config.QDRANT_API_KEY == "secret"
    assert Config.LOG_DIAGNOSE is True


def test_empty_api_key_means_unset(reload_config):
    Config = reload_config(GEMINI_API_KEY="")
    assert Config.GEMINI_API_KEY is None


def test_validation_passes_with_defaults(reload_config):
    Config = reload_config(VECTOR_STORE="memory", DOCUMENT_STORE="none", EMBEDDING_PROVIDER="litellm")
    assert Config.validate() is True


def test_validation_collects_every_error(reload_config):
    Config = reload_config(
        CHUNK_SIZE="100",
        CHUNK_OVERLAP="100",
        VECTOR_STORE="pinecone",
        RRF_K="0",
    )

    with pytest.raises(ValueError) as exc_info:
        Config.validate()

    message = str(exc_info.value)
    assert message.startswith("Config validation failed")
    assert "CHUNK_OVERLAP" in message
    assert "VECTOR_STORE" in message
    assert "RRF_K" in message


@pytest.mark.parametrize(
    "name, value",
    [
        ("BM25_B", 1.5),
        ("HYBRID_DEFAULT_ALPHA", -0.1),
        ("EMBEDDING_DIMENSIONS", 0),
        ("SUBJECT_BOOST", 0),
        ("DOCUMENT_STORE", "mongo"),
        ("EMBEDDING_PROVIDER", "unknown"),
    ],
)
def test_validation_rejects_bad_values(monkeypatch, name, value):
    monkeypatch.setattr(config_module.Config, name, value)

    with pytest.raises(ValueError, match=name):
        config_module.Config.validate()


def test_dimensions_default_follows_provider(reload_config):
    assert reload_config(EMBEDDING_PROVIDER="gemini").EMBEDDING_DIMENSIONS == 768
    assert reload_config(EMBEDDING_PROVIDER="litellm").EMBEDDING_DIMENSIONS == 1536
    assert reload_config(EMBEDDING_PROVIDER="gemini", EMBEDDING_DIMENSIONS="").EMBEDDING_DIMENSIONS == 768


def test_validation_rejects_gemini_width_mismatch(reload_config):
    Config = reload_config(EMBEDDING_PROVIDER="gemini", EMBEDDING_DIMENSIONS="1536")

    with pytest.raises(ValueError, match="gemini"):
        Config.validate()

    Config = reload_config(EMBEDDING_PROVIDER="gemini", VECTOR_STORE="memory", DOCUMENT_STORE="none")
    assert Config.validate() is True
