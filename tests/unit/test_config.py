"""Unit tests for configuration module."""

import pytest
from dataclasses import replace

from chronos.config import (
    Config,
    DEFAULT_API_BASE,
    DEFAULT_FLASH_MODEL,
    DEFAULT_PRO_MODEL,
    load_config,
    validate_config,
)
from chronos.utils.errors import ConfigurationError


# ============================================================================
# Load Config Tests
# ============================================================================

def test_load_config_success(monkeypatch):
    """Test load_config with valid environment variables."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-123")

    config = load_config()

    assert isinstance(config, Config)
    assert config.gemini_api_key == "test-key-123"


def test_load_config_missing_api_key(monkeypatch):
    """Test load_config fails without a Gemini key."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_GEMINI_API_KEY", raising=False)

    with pytest.raises(ConfigurationError, match="GEMINI_API_KEY not configured"):
        load_config()


def test_load_config_google_key_fallback(monkeypatch):
    """Test GOOGLE_GEMINI_API_KEY is used when GEMINI_API_KEY is absent."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_GEMINI_API_KEY", "google-key")

    config = load_config()

    assert config.gemini_api_key == "google-key"


def test_load_config_defaults(monkeypatch):
    """Test load_config uses default values."""
    monkeypatch.delenv("GEMINI_API_BASE", raising=False)

    config = load_config()

    assert config.gemini_api_base == DEFAULT_API_BASE
    assert config.text_model == DEFAULT_FLASH_MODEL
    assert config.transcribe_model == DEFAULT_FLASH_MODEL
    assert config.reconstruct_model == DEFAULT_PRO_MODEL
    assert config.context_model == DEFAULT_FLASH_MODEL
    assert config.vision_model == DEFAULT_FLASH_MODEL
    assert config.chat_model == DEFAULT_FLASH_MODEL
    assert config.gateway_timeout == 120.0
    assert config.max_upload_bytes == 20 * 1024 * 1024
    assert config.port == 3000
    assert config.log_level == "INFO"


def test_load_config_custom_values(monkeypatch):
    """Test load_config with custom environment variables."""
    monkeypatch.setenv("GEMINI_API_BASE", "http://localhost:9000/v1/")
    monkeypatch.setenv("GEMINI_RECONSTRUCT_MODEL", "custom-pro")
    monkeypatch.setenv("GEMINI_CHAT_MODEL", "custom-chat")
    monkeypatch.setenv("GATEWAY_TIMEOUT", "0")
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "4096")
    monkeypatch.setenv("CHRONOS_PORT", "8080")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = load_config()

    assert config.gemini_api_base == "http://localhost:9000/v1"
    assert config.reconstruct_model == "custom-pro"
    assert config.chat_model == "custom-chat"
    assert config.gateway_timeout == 0.0
    assert config.max_upload_bytes == 4096
    assert config.port == 8080
    assert config.log_level == "DEBUG"


# ============================================================================
# Validate Config Tests
# ============================================================================

def test_validate_config_success(test_config):
    """Test validation passes for a valid configuration."""
    validate_config(test_config)


def test_validate_config_invalid_api_base(test_config):
    """Test validation rejects a non-http base URL."""
    with pytest.raises(ConfigurationError, match="Invalid GEMINI_API_BASE"):
        validate_config(replace(test_config, gemini_api_base="ftp://example.com"))


def test_validate_config_negative_timeout(test_config):
    """Test validation rejects a negative timeout."""
    with pytest.raises(ConfigurationError, match="GATEWAY_TIMEOUT"):
        validate_config(replace(test_config, gateway_timeout=-1))


def test_validate_config_zero_timeout_allowed(test_config):
    """Test a zero timeout (wait indefinitely) is accepted."""
    validate_config(replace(test_config, gateway_timeout=0))


def test_validate_config_invalid_upload_limit(test_config):
    """Test validation rejects a non-positive upload limit."""
    with pytest.raises(ConfigurationError, match="MAX_UPLOAD_BYTES"):
        validate_config(replace(test_config, max_upload_bytes=0))


@pytest.mark.parametrize("port", [0, 65536, -5])
def test_validate_config_invalid_port(test_config, port):
    """Test validation rejects out-of-range ports."""
    with pytest.raises(ConfigurationError, match="Invalid CHRONOS_PORT"):
        validate_config(replace(test_config, port=port))


def test_validate_config_invalid_log_level(test_config):
    """Test validation rejects unknown log levels."""
    with pytest.raises(ConfigurationError, match="Invalid LOG_LEVEL"):
        validate_config(replace(test_config, log_level="VERBOSE"))


def test_validate_config_log_level_case_insensitive(test_config):
    """Test lower-case log levels are accepted."""
    validate_config(replace(test_config, log_level="debug"))
