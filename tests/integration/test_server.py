"""
Integration tests for the HTTP service.

Runs the Starlette app in-process with a gateway double, so every route is
exercised end to end without network access.
"""

import json

import pytest
from starlette.testclient import TestClient

from chronos import __version__
from chronos.server import create_app, mask_key
from chronos.services.prompts import CHAT_APOLOGY
from chronos.utils.errors import GatewayError


pytestmark = pytest.mark.integration


@pytest.fixture
def client(test_config, mock_gateway):
    app = create_app(config=test_config, gateway=mock_gateway)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def unconfigured_client(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_GEMINI_API_KEY", raising=False)
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# Diagnostics
# ============================================================================

class TestDiagnostics:
    """Test /health and /api/test-env."""

    def test_health(self, client, mock_gateway):
        """Test the shallow health check."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "chronos"
        assert data["version"] == __version__
        assert data["configured"] is True
        assert "gemini" not in data
        mock_gateway.health_check.assert_not_awaited()

    def test_health_deep(self, client, mock_gateway):
        """Test ?deep=true probes the backend."""
        response = client.get("/health?deep=true")

        assert response.json()["gemini"]["status"] == "healthy"
        mock_gateway.health_check.assert_awaited_once()

    def test_health_unconfigured(self, unconfigured_client):
        """Test the service starts and reports missing configuration."""
        data = unconfigured_client.get("/health").json()

        assert data["configured"] is False
        assert data["error"] == "GEMINI_API_KEY not configured"

    def test_test_env(self, client):
        """Test credential presence with masked previews."""
        data = client.get("/api/test-env").json()

        assert data["geminiKeyStatus"] == "SET"
        assert data["geminiKeyPreview"] == "test-...67890"
        assert data["googleGeminiKeyStatus"] == "NOT SET"
        assert data["googleGeminiKeyPreview"] == "NOT SET"

    def test_mask_key(self):
        """Test only the first and last five characters are shown."""
        assert mask_key("abcdefghijklmnop") == "abcde...lmnop"
        assert mask_key("") == "NOT SET"
        assert mask_key(None) == "NOT SET"


# ============================================================================
# Configuration Errors
# ============================================================================

class TestMissingCredential:
    """Test every API call reports the missing key."""

    @pytest.mark.parametrize("path", [
        "/api/text-reconstruct",
        "/api/text-search",
        "/api/audio-reconstruct",
        "/api/audio-context",
        "/api/chat-with-ai",
    ])
    def test_json_routes(self, unconfigured_client, path):
        """Test JSON routes answer 500 with the configuration error."""
        response = unconfigured_client.post(path, json={"text": "brb"})

        assert response.status_code == 500
        assert response.json() == {"error": "GEMINI_API_KEY not configured"}

    def test_upload_route(self, unconfigured_client):
        """Test upload routes answer the same way."""
        response = unconfigured_client.post(
            "/api/audio-transcribe",
            files={"audio": ("memo.mp3", b"ID3", "audio/mpeg")}
        )

        assert response.status_code == 500
        assert response.json()["error"] == "GEMINI_API_KEY not configured"


# ============================================================================
# Text Routes
# ============================================================================

class TestTextRoutes:
    """Test /api/text-reconstruct and /api/text-search."""

    def test_text_reconstruct(self, client, mock_gateway, sample_interpretation_text):
        """Test a successful interpretation."""
        mock_gateway.invoke.return_value = sample_interpretation_text

        response = client.post("/api/text-reconstruct", json={"text": "lol ur so lame. asl?"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"]["era"] == "Early 2000s chat rooms"
        assert mock_gateway.invoke.call_args.kwargs["model"] == "text-model"

    def test_text_reconstruct_missing_text(self, client, mock_gateway):
        """Test missing text is a 400 before any call."""
        response = client.post("/api/text-reconstruct", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "No text provided"}
        mock_gateway.invoke.assert_not_awaited()

    def test_text_reconstruct_invalid_json(self, client):
        """Test a non-JSON body is a 400."""
        response = client.post(
            "/api/text-reconstruct",
            content=b"text=brb",
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Request body must be valid JSON"

    def test_text_reconstruct_upstream_error(self, client, mock_gateway):
        """Test backend errors mirror the upstream status."""
        mock_gateway.invoke.side_effect = GatewayError(
            "Generative backend returned HTTP 429", status=429, raw_body='{"error": "quota"}'
        )

        response = client.post("/api/text-reconstruct", json={"text": "brb"})

        assert response.status_code == 429
        assert response.json() == {
            "error": "Failed to reconstruct text",
            "details": '{"error": "quota"}',
            "status": 429
        }

    def test_text_reconstruct_transport_error(self, client, mock_gateway):
        """Test transport failures without a status answer 502."""
        mock_gateway.invoke.side_effect = GatewayError("Failed to reach generative backend", raw_body="timeout")

        response = client.post("/api/text-reconstruct", json={"text": "brb"})

        assert response.status_code == 502
        assert "status" not in response.json()

    def test_text_reconstruct_parse_error(self, client, mock_gateway):
        """Test malformed interpretation output carries the raw response."""
        mock_gateway.invoke.return_value = "not json"

        response = client.post("/api/text-reconstruct", json={"text": "brb"})

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to parse text reconstruction",
            "rawResponse": "not json"
        }

    def test_text_search(self, client, mock_gateway):
        """Test rich sources for a query."""
        mock_gateway.invoke.return_value = json.dumps([
            {"title": "AIM", "snippet": "s", "credibility": 0.9,
             "relevance_reason": "Chat era", "relevance_score": 0.8}
        ])

        response = client.post("/api/text-search", json={"query": "Age, sex, location?"})

        assert response.status_code == 200
        assert response.json() == {"sources": [{
            "title": "AIM",
            "url": "#",
            "snippet": "s",
            "score": 0.8,
            "credibility": 0.9,
            "relevanceReason": "Chat era"
        }]}

    def test_text_search_missing_query(self, client):
        """Test a blank query is a 400."""
        response = client.post("/api/text-search", json={"query": ""})

        assert response.status_code == 400


# ============================================================================
# Audio Routes
# ============================================================================

class TestAudioRoutes:
    """Test the three audio stage routes."""

    def test_audio_transcribe(self, client, mock_gateway):
        """Test an upload is transcribed with a coerced MIME type."""
        mock_gateway.invoke.return_value = "hello there"

        response = client.post(
            "/api/audio-transcribe",
            files={"audio": ("voice.ogg", b"OggS-data", "audio/ogg")}
        )

        assert response.status_code == 200
        assert response.json() == {
            "transcription": "hello there",
            "fileName": "voice.ogg",
            "fileSize": 9,
            "mimeType": "audio/mpeg"
        }
        assert mock_gateway.invoke.call_args.kwargs["payload"].mime_type == "audio/mpeg"

    def test_audio_transcribe_missing_file(self, client, mock_gateway):
        """Test a request without a file is a 400."""
        response = client.post("/api/audio-transcribe", data={"other": "x"})

        assert response.status_code == 400
        assert response.json() == {"error": "No audio file provided"}
        mock_gateway.invoke.assert_not_awaited()

    def test_audio_transcribe_empty_file(self, client):
        """Test an empty upload is a 400."""
        response = client.post(
            "/api/audio-transcribe",
            files={"audio": ("empty.mp3", b"", "audio/mpeg")}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Failed to process audio file - no data available"}

    def test_audio_transcribe_too_large(self, client):
        """Test uploads above MAX_UPLOAD_BYTES are rejected."""
        response = client.post(
            "/api/audio-transcribe",
            files={"audio": ("big.mp3", b"x" * 2048, "audio/mpeg")}
        )

        assert response.status_code == 400
        assert "too large" in response.json()["error"]

    def test_audio_reconstruct(self, client, mock_gateway, sample_reconstruction_text):
        """Test the reconstruction payload."""
        mock_gateway.invoke.return_value = sample_reconstruction_text

        response = client.post("/api/audio-reconstruct", json={"transcription": "we should meet"})

        assert response.status_code == 200
        data = response.json()
        assert data["keyTopics"] == ["Product launch", "Team coordination"]
        assert data["entities"] == ["Acme Corp", "Sarah"]
        assert data["actionItems"] == "Review the launch plan"

    def test_audio_reconstruct_missing(self, client):
        """Test a missing transcription is a 400."""
        response = client.post("/api/audio-reconstruct", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "No transcription provided"}

    def test_audio_context(self, client, mock_gateway, sample_sources_text):
        """Test sources for topics and entities."""
        mock_gateway.invoke.return_value = sample_sources_text

        response = client.post(
            "/api/audio-context",
            json={"topics": ["Product launch"], "entities": ["Acme Corp"]}
        )

        assert response.status_code == 200
        sources = response.json()["sources"]
        assert len(sources) == 2
        assert "credibility" not in sources[0]

    def test_audio_context_fallback(self, client, mock_gateway):
        """Test malformed output yields placeholder sources."""
        mock_gateway.invoke.return_value = "I cannot produce JSON today"

        response = client.post("/api/audio-context", json={"topics": ["Topic A", "Topic B"]})

        assert response.json()["sources"] == [
            {"title": "About Topic A", "url": "#", "snippet": "Context and information about Topic A", "score": 0.8},
            {"title": "About Topic B", "url": "#", "snippet": "Context and information about Topic B", "score": 0.7},
        ]

    def test_audio_context_non_finite_score(self, client, mock_gateway):
        """Test a NaN score renders as the default instead of failing the response."""
        mock_gateway.invoke.return_value = '[{"title": "T", "snippet": "s", "relevance_score": NaN}]'

        response = client.post("/api/audio-context", json={"topics": ["Topic A"]})

        assert response.status_code == 200
        assert response.json()["sources"] == [{"title": "T", "url": "#", "snippet": "s", "score": 0.8}]

    def test_audio_context_missing_terms(self, client):
        """Test empty topics and entities are a 400."""
        response = client.post("/api/audio-context", json={"topics": [], "entities": []})

        assert response.status_code == 400
        assert response.json() == {"error": "No topics or entities provided"}


# ============================================================================
# Image Route
# ============================================================================

class TestImageRoute:
    """Test /api/image-analyze."""

    def test_image_analyze(self, client, mock_gateway, sample_image_report):
        """Test a successful report."""
        mock_gateway.invoke.return_value = json.dumps(sample_image_report)

        response = client.post(
            "/api/image-analyze",
            files={"image": ("myspace.png", b"\x89PNG-data", "image/png")}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "analysis": sample_image_report}

    def test_image_analyze_parse_error(self, client, mock_gateway):
        """Test an unparseable report returns the raw response."""
        mock_gateway.invoke.return_value = "It looks like MySpace"

        response = client.post(
            "/api/image-analyze",
            files={"image": ("myspace.png", b"\x89PNG-data", "image/png")}
        )

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to parse analysis result",
            "rawResponse": "It looks like MySpace"
        }

    def test_image_analyze_non_finite_rating(self, client, mock_gateway, sample_image_report):
        """Test an infinite rating is replaced with the minimum."""
        mock_gateway.invoke.return_value = json.dumps(sample_image_report).replace('"rating": 8', '"rating": 1e999')

        response = client.post(
            "/api/image-analyze",
            files={"image": ("myspace.png", b"\x89PNG-data", "image/png")}
        )

        assert response.status_code == 200
        assert response.json()["analysis"]["significance"]["rating"] == 1

    def test_image_analyze_missing(self, client):
        """Test a request without an image is a 400."""
        response = client.post("/api/image-analyze", data={})

        assert response.status_code == 400
        assert response.json() == {"error": "No image provided"}


# ============================================================================
# Chat Route
# ============================================================================

class TestChatRoute:
    """Test /api/chat-with-ai."""

    def test_chat(self, client, mock_gateway):
        """Test the answer comes back raw and as escaped bold markup."""
        mock_gateway.invoke.return_value = "It is **MySpace** <b>circa</b> 2007"

        response = client.post("/api/chat-with-ai", json={
            "message": "What platform?",
            "context": "Image Analysis Context:\nPlatform: MySpace (website)",
            "analysisType": "image"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["response"] == "It is **MySpace** <b>circa</b> 2007"
        assert data["html"] == "It is <strong>MySpace</strong> &lt;b&gt;circa&lt;/b&gt; 2007"
        instruction = mock_gateway.invoke.call_args.args[0]
        assert "Platform: MySpace (website)" in instruction
        assert mock_gateway.invoke.call_args.kwargs["model"] == "chat-model"

    def test_chat_missing_message(self, client, mock_gateway):
        """Test a blank message is a 400."""
        response = client.post("/api/chat-with-ai", json={"message": "  "})

        assert response.status_code == 400
        assert response.json() == {"error": "No message provided"}
        mock_gateway.invoke.assert_not_awaited()

    def test_chat_upstream_error(self, client, mock_gateway):
        """Test a backend failure is reported as an error payload."""
        mock_gateway.invoke.side_effect = GatewayError("HTTP 500", status=500, raw_body="boom")

        response = client.post("/api/chat-with-ai", json={"message": "Why?"})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to generate response"
        assert response.json()["error"] != CHAT_APOLOGY


# ============================================================================
# Whole-Pipeline Route
# ============================================================================

class TestAnalyzeRoute:
    """Test /api/analyze/{modality}."""

    def test_analyze_text(self, client, mock_gateway, sample_interpretation_text):
        """Test a full text run with its status history."""
        mock_gateway.invoke.side_effect = [sample_interpretation_text, "[]"]

        response = client.post("/api/analyze/text", json={"text": "lol ur so lame. asl?"})

        assert response.status_code == 200
        data = response.json()
        assert data["pipeline"]["state"] == "complete"
        assert data["pipeline"]["progress"] == 100
        assert [s["progress"] for s in data["history"]] == [0, 0, 0, 50, 100]
        assert data["result"]["interpretation"]["confidence"] == 92
        assert data["result"]["sources"] == []
        assert data["result"]["grounding"].startswith("Text Analysis Context:")

    def test_analyze_audio(self, client, mock_gateway, sample_reconstruction_text, sample_sources_text):
        """Test a full audio run."""
        mock_gateway.invoke.side_effect = ["hello", sample_reconstruction_text, sample_sources_text]

        response = client.post(
            "/api/analyze/audio",
            files={"audio": ("voice.ogg", b"OggS", "audio/ogg")}
        )

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["transcription"]["mimeType"] == "audio/mpeg"
        assert result["reconstruction"]["entities"] == ["Acme Corp", "Sarah"]
        assert len(result["sources"]) == 2

    def test_analyze_image(self, client, mock_gateway, sample_image_report):
        """Test a full image run has no sources."""
        mock_gateway.invoke.return_value = json.dumps(sample_image_report)

        response = client.post(
            "/api/analyze/image",
            files={"image": ("page.webp", b"RIFF", "image/webp")}
        )

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["analysis"]["platform"]["name"] == "MySpace"
        assert "sources" not in result

    def test_analyze_failure_reports_pipeline_state(self, client, mock_gateway):
        """Test a failed stage returns the error with the FAILED status."""
        mock_gateway.invoke.side_effect = GatewayError("HTTP 500", status=500, raw_body="boom")

        response = client.post("/api/analyze/text", json={"text": "brb"})

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Failed to analyze text"
        assert data["details"] == "boom"
        assert data["pipeline"]["state"] == "failed"
        assert mock_gateway.invoke.await_count == 1

    def test_analyze_unknown_modality(self, client):
        """Test unknown modalities are a 404."""
        response = client.post("/api/analyze/video", json={})

        assert response.status_code == 404
        assert response.json() == {"error": "Unknown modality: video"}
