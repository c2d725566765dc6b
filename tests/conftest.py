"""Pytest configuration and shared fixtures."""

import json
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src directory to Python path for imports
SRC_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "src")
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)


API_BASE = "https://gemini.test/v1beta"
TEST_API_KEY = "test-gemini-key-1234567890"


# ============================================================================
# Environment Setup
# ============================================================================

@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Set required environment variables for all tests."""
    monkeypatch.setenv("GEMINI_API_KEY", TEST_API_KEY)
    monkeypatch.delenv("GOOGLE_GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GEMINI_API_BASE", API_BASE)
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    for name in (
        "GEMINI_TEXT_MODEL",
        "GEMINI_TRANSCRIBE_MODEL",
        "GEMINI_RECONSTRUCT_MODEL",
        "GEMINI_CONTEXT_MODEL",
        "GEMINI_VISION_MODEL",
        "GEMINI_CHAT_MODEL",
        "GATEWAY_TIMEOUT",
        "MAX_UPLOAD_BYTES",
        "CHRONOS_PORT",
    ):
        monkeypatch.delenv(name, raising=False)


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config():
    """Create a test configuration object."""
    from chronos.config import Config
    return Config(
        gemini_api_key=TEST_API_KEY,
        gemini_api_base=API_BASE,
        text_model="text-model",
        transcribe_model="transcribe-model",
        reconstruct_model="reconstruct-model",
        context_model="context-model",
        vision_model="vision-model",
        chat_model="chat-model",
        gateway_timeout=5.0,
        max_upload_bytes=1024,
        port=3000,
        log_level="INFO",
    )


# ============================================================================
# Gateway Fixtures
# ============================================================================

@pytest.fixture
def gemini_body():
    """Return a builder for generateContent success bodies."""
    def build(text: str) -> dict:
        return {
            "candidates": [
                {"content": {"parts": [{"text": text}], "role": "model"}}
            ]
        }
    return build


@pytest.fixture
def mock_gateway():
    """Gateway double whose ``invoke`` is an AsyncMock returning ''."""
    gateway = MagicMock()
    gateway.invoke = AsyncMock(return_value="")
    gateway.health_check = AsyncMock(return_value={"status": "healthy", "model": "text-model"})
    gateway.aclose = AsyncMock()
    return gateway


# ============================================================================
# Sample Model Responses
# ============================================================================

@pytest.fixture
def sample_interpretation() -> dict:
    """Text interpretation as the model returns it."""
    return {
        "mostLikely": "Laughing out loud, you are so uncool. Age, sex, location?",
        "confidence": 92,
        "alternatives": [
            {"text": "Haha, you're boring. Tell me about yourself?", "confidence": 40}
        ],
        "era": "Early 2000s chat rooms",
        "community": "AOL Instant Messenger",
        "keyTerms": [
            {"original": "lol", "expanded": "laughing out loud", "meaning": "amusement"},
            {"original": "asl", "expanded": "age/sex/location", "meaning": "introductory question"}
        ],
        "reasoning": "Classic chat-room shorthand."
    }


@pytest.fixture
def sample_interpretation_text(sample_interpretation) -> str:
    """Interpretation wrapped in a fenced block, as the model often does."""
    return "```json\n" + json.dumps(sample_interpretation) + "\n```"


@pytest.fixture
def sample_reconstruction_text() -> str:
    """Seven-section reconstruction response."""
    return (
        "===RECONSTRUCTED TEXT===\n"
        "We should meet at the office tomorrow to review the launch plan.\n\n"
        "===KEY THEMES===\n"
        "Product launch\n"
        "  Team coordination  \n"
        "\n"
        "===IMPORTANT ENTITIES===\n"
        "Acme Corp\n"
        "Sarah\n\n"
        "===COMMUNICATION STYLE===\n"
        "Informal and brief\n\n"
        "===CONTEXTUAL INSIGHTS===\n"
        "Startup jargon\n\n"
        "===SENTIMENT ANALYSIS===\n"
        "Optimistic\n\n"
        "===ACTION ITEMS===\n"
        "Review the launch plan"
    )


@pytest.fixture
def sample_sources_text() -> str:
    """Context sources as a raw JSON array."""
    return json.dumps([
        {
            "title": "Understanding Product Launches",
            "snippet": "How launches are planned.",
            "relevance_score": 0.95
        },
        {
            "title": "Acme Corp History",
            "snippet": "A fictional company.",
            "relevance_score": 0.6
        }
    ])


@pytest.fixture
def sample_image_report() -> dict:
    """Image report as the model returns it."""
    return {
        "era": {"period": "Web 2.0 Peak", "yearRange": "2006-2010", "confidence": "high"},
        "platform": {"name": "MySpace", "type": "website", "version": None},
        "design": {
            "colorScheme": "Dark blue with glitter",
            "typography": "Verdana",
            "layoutStyle": "Two-column tables",
            "designParadigm": "skeuomorphic",
            "notableElements": ["Top 8 friends", "Autoplay music"]
        },
        "cultural": {
            "historicalContext": "Social networking boom.",
            "culturalSignificance": "Self-expression through HTML.",
            "userBehaviorPatterns": "Heavy profile customization."
        },
        "technical": {
            "resolution": "1024x768",
            "browserIndicators": "Internet Explorer 7",
            "technologyStack": ["HTML tables", "Flash"],
            "performanceNotes": None
        },
        "authenticity": {"assessment": "original", "confidence": "medium", "reasoning": "Period artifacts."},
        "significance": {"rating": 8, "explanation": "Defined early social media."},
        "summary": "A MySpace profile from the height of Web 2.0."
    }
