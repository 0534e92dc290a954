"""Tests for gateway settings defaults."""

from llm_relay import config
from llm_relay.config import GatewaySettings


def test_settings_defaults_follow_module_constants():
    settings = GatewaySettings()

    assert settings.api_version == config.UPSTREAM_API_VERSION
    assert settings.upstream_timeout == config.UPSTREAM_TIMEOUT
    assert settings.edge_header_prefixes == config.EDGE_HEADER_PREFIXES
    assert settings.api_key_header == config.UPSTREAM_API_KEY_HEADER
    assert settings.max_clock_skew == config.MAX_CLOCK_SKEW


def test_from_env_matches_defaults_for_shared_fields():
    from_env = GatewaySettings.from_env()
    defaults = GatewaySettings()

    assert from_env.api_version == defaults.api_version
    assert from_env.upstream_timeout == defaults.upstream_timeout
    assert from_env.edge_header_prefixes == defaults.edge_header_prefixes
