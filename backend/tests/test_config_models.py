import json
import os
from unittest.mock import patch

import pytest
from mailsearch.common.exceptions import ConfigurationError
from mailsearch.config.loader import MailSearchConfig, get_config, set_config
from mailsearch.config.models import SearchConfig, SolrConfig, SystemConfig


def test_solr_config_defaults():
    """Test that SolrConfig falls back to a local Solr core named emails."""
    with patch.dict(os.environ, {}, clear=True):
        config = SolrConfig()
    assert config.base_url == "http://localhost:8983/solr"
    assert config.core == "emails"
    assert config.commit_within_ms == 0
    assert config.core_url == "http://localhost:8983/solr/emails"


def test_solr_config_from_prefixed_env():
    """Test that SolrConfig reads MAILSEARCH_ prefixed variables."""
    env = {
        "MAILSEARCH_SOLR_BASE_URL": "http://solr:8983/solr/",
        "MAILSEARCH_SOLR_CORE": "/archive",
        "MAILSEARCH_SOLR_TIMEOUT_SECONDS": "5",
    }
    with patch.dict(os.environ, env, clear=True):
        config = SolrConfig()
    assert config.timeout_seconds == 5.0
    assert config.core_url == "http://solr:8983/solr/archive"


def test_search_config_bare_env_fallback():
    """Unprefixed variable names are accepted as a fallback."""
    with patch.dict(os.environ, {"STREAM_BATCH_SIZE": "250"}, clear=True):
        config = SearchConfig()
    assert config.stream_batch_size == 250
    assert config.facet_limit == 100
    assert config.facet_min_count == 1


def test_search_config_invalid_int_raises():
    with patch.dict(os.environ, {"MAILSEARCH_FACET_LIMIT": "lots"}, clear=True):
        with pytest.raises(ValueError, match="MAILSEARCH_FACET_LIMIT"):
            SearchConfig()


def test_system_config_normalizes_log_level():
    with patch.dict(os.environ, {"MAILSEARCH_LOG_LEVEL": "debug"}, clear=True):
        config = SystemConfig()
    assert config.log_level == "DEBUG"
    assert config.log_format == "console"


class TestMailSearchConfigLoad:
    """Tests for MailSearchConfig.load and the singleton helpers."""

    def test_load_from_env_wraps_errors(self):
        with patch.dict(os.environ, {"MAILSEARCH_STREAM_PREFETCH": "-1"}, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                MailSearchConfig.load()
        assert exc_info.value.error_code == "CONFIG_INVALID"

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"solr": {"core": "legal"}, "search": {"facet_limit": 25}}))
        config = MailSearchConfig.load(path)
        assert config.solr.core == "legal"
        assert config.search.facet_limit == 25

    def test_load_missing_file_uses_env(self, tmp_path):
        with patch.dict(os.environ, {"MAILSEARCH_SOLR_CORE": "fromenv"}, clear=True):
            config = MailSearchConfig.load(tmp_path / "absent.json")
        assert config.solr.core == "fromenv"

    def test_load_corrupt_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError) as exc_info:
            MailSearchConfig.load(path)
        assert exc_info.value.error_code == "CONFIG_CORRUPT"

    def test_load_rejects_unknown_keys(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"solr": {"shards": 3}}))
        with pytest.raises(ConfigurationError):
            MailSearchConfig.load(path)

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / "config.json"
        original = MailSearchConfig(search=SearchConfig(stream_batch_size=42))
        original.save(path)
        assert MailSearchConfig.load(path).search.stream_batch_size == 42

    def test_set_and_get_config(self):
        config = MailSearchConfig(solr=SolrConfig(core="pinned"))
        set_config(config)
        assert get_config() is config
