"""Configuration management for the Chronos analysis service."""

import os
from dataclasses import dataclass

from chronos.utils.errors import ConfigurationError


DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_FLASH_MODEL = "gemini-2.0-flash-exp"
DEFAULT_PRO_MODEL = "gemini-2.5-pro"


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # Gemini Configuration
    gemini_api_key: str
    gemini_api_base: str

    # Per-stage models
    text_model: str
    transcribe_model: str
    reconstruct_model: str
    context_model: str
    vision_model: str
    chat_model: str

    # Gateway
    gateway_timeout: float  # seconds, 0 disables

    # Ingest
    max_upload_bytes: int

    # Server Configuration
    port: int
    log_level: str


def load_config() -> Config:
    """
    Load configuration from environment variables.

    Returns:
        Config object with all settings

    Raises:
        ConfigurationError: If the Gemini credential is missing
    """
    # GOOGLE_GEMINI_API_KEY is accepted for deployments that only set that name
    gemini_api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_GEMINI_API_KEY")
    if not gemini_api_key:
        raise ConfigurationError("GEMINI_API_KEY not configured")

    return Config(
        gemini_api_key=gemini_api_key,
        gemini_api_base=os.getenv("GEMINI_API_BASE", DEFAULT_API_BASE).rstrip("/"),

        text_model=os.getenv("GEMINI_TEXT_MODEL", DEFAULT_FLASH_MODEL),
        transcribe_model=os.getenv("GEMINI_TRANSCRIBE_MODEL", DEFAULT_FLASH_MODEL),
        reconstruct_model=os.getenv("GEMINI_RECONSTRUCT_MODEL", DEFAULT_PRO_MODEL),
        context_model=os.getenv("GEMINI_CONTEXT_MODEL", DEFAULT_FLASH_MODEL),
        vision_model=os.getenv("GEMINI_VISION_MODEL", DEFAULT_FLASH_MODEL),
        chat_model=os.getenv("GEMINI_CHAT_MODEL", DEFAULT_FLASH_MODEL),

        gateway_timeout=float(os.getenv("GATEWAY_TIMEOUT", "120")),

        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(20 * 1024 * 1024))),

        port=int(os.getenv("CHRONOS_PORT", "3000")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def validate_config(config: Config) -> None:
    """
    Validate configuration values.

    Args:
        config: Configuration to validate

    Raises:
        ConfigurationError: If any configuration value is invalid
    """
    if not config.gemini_api_base.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"Invalid GEMINI_API_BASE: {config.gemini_api_base}. Must be an http(s) URL"
        )

    if config.gateway_timeout < 0:
        raise ConfigurationError(
            f"GATEWAY_TIMEOUT must be >= 0, got {config.gateway_timeout}"
        )

    if config.max_upload_bytes < 1:
        raise ConfigurationError(
            f"MAX_UPLOAD_BYTES must be >= 1, got {config.max_upload_bytes}"
        )

    if not (0 < config.port < 65536):
        raise ConfigurationError(f"Invalid CHRONOS_PORT: {config.port}")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ConfigurationError(
            f"Invalid LOG_LEVEL: {config.log_level}. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )
