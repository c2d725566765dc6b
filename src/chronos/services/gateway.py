"""
Transport layer for the Gemini generateContent REST API.

One call in, one text out. No parsing, no retries, no business logic: every
caller decides how to interpret the raw text it gets back.
"""

import base64
import logging
import time
from typing import Any, Dict, Optional

import httpx

from chronos.models import InlinePayload
from chronos.utils.errors import ConfigurationError, GatewayError, ValidationError


logger = logging.getLogger("chronos.gateway")


class ModelGateway:
    """
    Stateless gateway to the generative backend.

    Usable as an async context manager; outside one, a client is created on
    first use and must be released with ``aclose()``.
    """

    def __init__(
        self,
        api_key: str,
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        default_model: str = "gemini-2.0-flash-exp",
        timeout: Optional[float] = 120.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize gateway.

        Args:
            api_key: Gemini API key
            api_base: REST base URL (without trailing slash)
            default_model: Model used when a call does not name one
            timeout: Request timeout in seconds (None or 0 waits indefinitely)
            client: Optional pre-built httpx client (tests, connection sharing)

        Raises:
            ConfigurationError: If the API key is missing
        """
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY not configured")

        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.default_model = default_model
        self.timeout = timeout or None
        self.client = client

    async def __aenter__(self):
        """Async context manager entry."""
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    def endpoint(self, model: str) -> str:
        return f"{self.api_base}/models/{model}:generateContent"

    def build_request(
        self,
        instruction: str,
        payload: Optional[InlinePayload] = None,
        response_schema: Optional[Dict[str, Any]] = None,
        generation_config: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Build the generateContent request body.

        Raises:
            ValidationError: If the instruction is blank or the payload is empty
        """
        if not instruction or not instruction.strip():
            raise ValidationError("Instruction text cannot be empty")

        parts: list[dict] = [{"text": instruction}]
        if payload is not None:
            if not payload.data:
                raise ValidationError("Artifact payload cannot be empty")
            if not payload.mime_type:
                raise ValidationError("Artifact payload must carry a MIME type")
            parts.append({
                "inline_data": {
                    "mime_type": payload.mime_type,
                    "data": base64.b64encode(payload.data).decode("ascii")
                }
            })

        body: Dict[str, Any] = {"contents": [{"parts": parts}]}

        config = dict(generation_config or {})
        if response_schema is not None:
            config["responseMimeType"] = "application/json"
            config["responseSchema"] = response_schema
        if config:
            body["generationConfig"] = config

        return body

    async def invoke(
        self,
        instruction: str,
        payload: Optional[InlinePayload] = None,
        response_schema: Optional[Dict[str, Any]] = None,
        generation_config: Optional[Dict[str, Any]] = None,
        model: Optional[str] = None
    ) -> str:
        """
        Issue a single generateContent request.

        Args:
            instruction: Instruction text (non-empty)
            payload: Optional inline audio/image bytes
            response_schema: Optional JSON schema; requests JSON output
            generation_config: Optional sampling settings
            model: Model name, defaults to the gateway default

        Returns:
            First candidate's first text part, or "" if there are no candidates

        Raises:
            ValidationError: Invalid instruction or payload (no request sent)
            GatewayError: Non-success response or transport failure
        """
        body = self.build_request(instruction, payload, response_schema, generation_config)
        model = model or self.default_model

        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout)

        start_time = time.time()
        try:
            response = await self.client.post(
                self.endpoint(model),
                params={"key": self.api_key},
                json=body
            )
        except httpx.HTTPError as e:
            logger.error(f"Gateway transport error: model={model}, error={e}")
            raise GatewayError(
                f"Failed to reach generative backend: {e}",
                status=None,
                raw_body=str(e)
            ) from e

        latency_ms = int((time.time() - start_time) * 1000)

        if response.status_code >= 400:
            logger.error(
                f"Gateway error response: model={model}, status={response.status_code}, "
                f"latency={latency_ms}ms"
            )
            raise GatewayError(
                f"Generative backend returned HTTP {response.status_code}",
                status=response.status_code,
                raw_body=response.text
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError(
                "Generative backend returned a non-JSON body",
                status=response.status_code,
                raw_body=response.text
            ) from e

        text = self._first_text(data)
        logger.info(
            f"Gateway call complete: model={model}, "
            f"mime={payload.mime_type if payload else 'none'}, "
            f"chars={len(text)}, latency={latency_ms}ms"
        )
        return text

    @staticmethod
    def _first_text(data: Any) -> str:
        """Return the first candidate's first text part, or ''."""
        if not isinstance(data, dict):
            return ""
        candidates = data.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts or not isinstance(parts[0], dict):
            return ""
        text = parts[0].get("text")
        return text if isinstance(text, str) else ""

    async def health_check(self) -> dict:
        """
        Test backend connectivity with a trivial prompt.

        Returns:
            Dictionary with status, latency_ms, and optional error
        """
        try:
            start_time = time.time()
            await self.invoke("Reply with the single word: ok")
            return {
                "status": "healthy",
                "model": self.default_model,
                "api_latency_ms": int((time.time() - start_time) * 1000)
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "model": self.default_model,
                "error": str(e)
            }
