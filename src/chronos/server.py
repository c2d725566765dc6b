"""
Chronos HTTP service.

Starlette application exposing each analysis stage as its own route, plus a
whole-pipeline route per modality, credential diagnostics and a health check.

Usage:
    python -m chronos

Configuration via .env file (see .env.example)
"""

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv
from starlette.applications import Starlette
from starlette.datastructures import UploadFile
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from chronos import __version__
from chronos.config import Config, load_config, validate_config
from chronos.models import MODALITY_AUDIO, MODALITY_IMAGE, MODALITY_TEXT, PipelineStatus
from chronos.pipeline import AnalysisPipeline
from chronos.services.chat_service import ChatService
from chronos.services.enrichment_service import EnrichmentService
from chronos.services.gateway import ModelGateway
from chronos.services.ingest_service import IngestService
from chronos.services.interpretation_service import InterpretationService
from chronos.utils.errors import (
    ChronosError,
    ConfigurationError,
    GatewayError,
    ParseError,
    PipelineError,
    ValidationError,
)
from chronos.utils.formatting import format_bold
from chronos.utils.logging import setup_logging


logger = logging.getLogger("chronos.server")


@dataclass
class Services:
    """Services shared by every request of one configured process."""
    config: Config
    gateway: ModelGateway
    ingest: IngestService
    interpretation: InterpretationService
    enrichment: EnrichmentService
    chat: ChatService

    def pipeline(self) -> AnalysisPipeline:
        """A fresh single-run pipeline; HTTP requests share no run state."""
        return AnalysisPipeline(self.ingest, self.interpretation, self.enrichment, self.chat)


def build_services(config: Config, gateway: Optional[ModelGateway] = None) -> Services:
    gateway = gateway or ModelGateway(
        api_key=config.gemini_api_key,
        api_base=config.gemini_api_base,
        default_model=config.text_model,
        timeout=config.gateway_timeout
    )
    return Services(
        config=config,
        gateway=gateway,
        ingest=IngestService(max_upload_bytes=config.max_upload_bytes),
        interpretation=InterpretationService(
            gateway,
            text_model=config.text_model,
            transcribe_model=config.transcribe_model,
            reconstruct_model=config.reconstruct_model,
            vision_model=config.vision_model
        ),
        enrichment=EnrichmentService(gateway, model=config.context_model),
        chat=ChatService(gateway, model=config.chat_model)
    )


# ============================================================================
# Error payloads
# ============================================================================

def error_response(
    message: str,
    status_code: int = 500,
    details: Optional[str] = None,
    upstream_status: Optional[int] = None,
    **extra: Any
) -> JSONResponse:
    """Render the ``{error, details?, status?}`` error payload."""
    body: Dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    if upstream_status is not None:
        body["status"] = upstream_status
    body.update(extra)
    return JSONResponse(body, status_code=status_code)


def chronos_error_response(error: ChronosError, failure: str, **extra: Any) -> JSONResponse:
    """
    Map a Chronos exception onto its HTTP error payload.

    Args:
        error: The raised exception
        failure: Route-specific summary used for backend failures
            (e.g. "Failed to transcribe audio")
    """
    if isinstance(error, ValidationError):
        return error_response(str(error), 400, **extra)
    if isinstance(error, ConfigurationError):
        return error_response(str(error), 500, **extra)
    if isinstance(error, GatewayError):
        return error_response(
            failure,
            error.status or 502,
            details=error.raw_body,
            upstream_status=error.status,
            **extra
        )
    if isinstance(error, ParseError):
        return error_response(str(error), 500, rawResponse=error.raw_text, **extra)
    if isinstance(error, PipelineError):
        return error_response(str(error), 409, **extra)
    return error_response(failure, 500, details=str(error), **extra)


def internal_error_response(error: Exception) -> JSONResponse:
    logger.error(f"Unhandled error: {error}", exc_info=True)
    return error_response("Internal server error", 500, details=str(error) or "Unknown error")


# ============================================================================
# Request helpers
# ============================================================================

def get_services(request: Request) -> Services:
    """
    Raises:
        ConfigurationError: The process started without a usable configuration
    """
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise ConfigurationError(
            getattr(request.app.state, "config_error", None) or "GEMINI_API_KEY not configured"
        )
    return services


async def json_body(request: Request) -> Dict[str, Any]:
    """
    Raises:
        ValidationError: Body is not a JSON object
    """
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


async def upload_field(request: Request, name: str) -> Tuple[Optional[bytes], Optional[str], str]:
    """Read one multipart file field as (data, content_type, filename)."""
    form = await request.form()
    upload = form.get(name)
    if not isinstance(upload, UploadFile):
        return None, None, name
    data = await upload.read()
    return data, upload.content_type, upload.filename or name


def string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def mask_key(value: Optional[str]) -> str:
    if not value:
        return "NOT SET"
    return f"{value[:5]}...{value[-5:]}"


# ============================================================================
# Stage routes
# ============================================================================

async def text_reconstruct(request: Request) -> JSONResponse:
    """Interpret a slang-laden text fragment."""
    try:
        body = await json_body(request)
        services = get_services(request)
        artifact = services.ingest.ingest_text(body.get("text"))
        result = await services.interpretation.interpret_text(artifact)
        return JSONResponse({"success": True, "data": result.to_dict()})
    except ChronosError as e:
        return chronos_error_response(e, "Failed to reconstruct text")
    except Exception as e:
        return internal_error_response(e)


async def text_search(request: Request) -> JSONResponse:
    """Synthesize rich context sources for a reconstructed fragment."""
    try:
        body = await json_body(request)
        services = get_services(request)
        sources = await services.enrichment.enrich_text(body.get("query") or "")
        return JSONResponse({"sources": [s.to_dict() for s in sources]})
    except ChronosError as e:
        return chronos_error_response(e, "Failed to search sources")
    except Exception as e:
        return internal_error_response(e)


async def audio_transcribe(request: Request) -> JSONResponse:
    """Transcribe an uploaded audio file (multipart field ``audio``)."""
    try:
        data, mime_type, filename = await upload_field(request, "audio")
        services = get_services(request)
        artifact = services.ingest.ingest_audio(data, mime_type, filename)
        transcription = await services.interpretation.transcribe(artifact)
        return JSONResponse(transcription.to_dict())
    except ChronosError as e:
        return chronos_error_response(e, "Failed to transcribe audio")
    except Exception as e:
        return internal_error_response(e)


async def audio_reconstruct(request: Request) -> JSONResponse:
    """Reconstruct and analyse a transcription."""
    try:
        body = await json_body(request)
        services = get_services(request)
        reconstruction = await services.interpretation.reconstruct(body.get("transcription") or "")
        return JSONResponse(reconstruction.to_dict())
    except ChronosError as e:
        return chronos_error_response(e, "Failed to reconstruct text")
    except Exception as e:
        return internal_error_response(e)


async def audio_context(request: Request) -> JSONResponse:
    """Synthesize context sources for reconstruction topics and entities."""
    try:
        body = await json_body(request)
        services = get_services(request)
        sources = await services.enrichment.enrich(
            string_list(body.get("topics")),
            string_list(body.get("entities"))
        )
        return JSONResponse({"sources": [s.to_dict() for s in sources]})
    except ChronosError as e:
        return chronos_error_response(e, "Failed to search context")
    except Exception as e:
        return internal_error_response(e)


async def image_analyze(request: Request) -> JSONResponse:
    """Produce the archaeological report for an uploaded screenshot (field ``image``)."""
    try:
        data, mime_type, filename = await upload_field(request, "image")
        services = get_services(request)
        artifact = services.ingest.ingest_image(data, mime_type, filename)
        report = await services.interpretation.analyze_image(artifact)
        return JSONResponse({"success": True, "analysis": report.to_dict()})
    except ChronosError as e:
        return chronos_error_response(e, "Failed to analyze image")
    except Exception as e:
        return internal_error_response(e)


async def chat_with_ai(request: Request) -> JSONResponse:
    """
    Answer one follow-up question.

    The client sends the grounding context it was given; the server keeps no
    conversation state. Backend failures come back as an error payload for
    the client to render. The apology message is produced only by
    ``AnalysisPipeline.chat`` (via ``ChatService.reply``) for library callers
    that hold a session's pipeline.
    """
    try:
        body = await json_body(request)
        services = get_services(request)
        context = body.get("context")
        answer = await services.chat.ask(
            body.get("message") or "",
            context if isinstance(context, str) else None,
            body.get("analysisType")
        )
        return JSONResponse({"success": True, "response": answer, "html": format_bold(answer)})
    except ChronosError as e:
        return chronos_error_response(e, "Failed to generate response")
    except Exception as e:
        return internal_error_response(e)


# ============================================================================
# Whole-pipeline route
# ============================================================================

async def analyze(request: Request) -> JSONResponse:
    """
    Run the full pipeline for one modality in a single request.

    The response carries every published status snapshot so a client can
    replay progress, the final status, the results and (text/audio) the
    context sources.
    """
    modality = request.path_params["modality"]
    if modality not in (MODALITY_TEXT, MODALITY_AUDIO, MODALITY_IMAGE):
        return error_response(f"Unknown modality: {modality}", 404)

    history: List[PipelineStatus] = []
    pipeline: Optional[AnalysisPipeline] = None
    try:
        services = get_services(request)
        pipeline = services.pipeline()
        pipeline.subscribe(history.append)

        if modality == MODALITY_TEXT:
            body = await json_body(request)
            run = await pipeline.submit_text(body.get("text"))
        elif modality == MODALITY_AUDIO:
            data, mime_type, filename = await upload_field(request, "audio")
            run = await pipeline.submit_audio(data, mime_type, filename)
        else:
            data, mime_type, filename = await upload_field(request, "image")
            run = await pipeline.submit_image(data, mime_type, filename)

        result = run.to_dict()
        result["grounding"] = pipeline.grounding_context()
        return JSONResponse({
            "success": True,
            "pipeline": pipeline.status.to_dict(),
            "history": [s.to_dict() for s in history],
            "result": result
        })
    except ChronosError as e:
        extra = {}
        if pipeline is not None:
            extra["pipeline"] = pipeline.status.to_dict()
            extra["history"] = [s.to_dict() for s in history]
        return chronos_error_response(e, f"Failed to analyze {modality}", **extra)
    except Exception as e:
        return internal_error_response(e)


# ============================================================================
# Diagnostics
# ============================================================================

async def test_env(request: Request) -> JSONResponse:
    """Report which credentials are set, with masked previews."""
    gemini_key = os.getenv("GEMINI_API_KEY")
    google_gemini_key = os.getenv("GOOGLE_GEMINI_API_KEY")
    return JSONResponse({
        "geminiKeyStatus": "SET" if gemini_key else "NOT SET",
        "googleGeminiKeyStatus": "SET" if google_gemini_key else "NOT SET",
        "geminiKeyPreview": mask_key(gemini_key),
        "googleGeminiKeyPreview": mask_key(google_gemini_key),
    })


async def health(request: Request) -> JSONResponse:
    """Health check endpoint. ``?deep=true`` also probes the backend."""
    services = getattr(request.app.state, "services", None)
    health_data: Dict[str, Any] = {
        "status": "ok",
        "service": "chronos",
        "version": __version__,
        "configured": services is not None,
        "environment": os.getenv("ENVIRONMENT", "prod")
    }

    if services is None:
        health_data["error"] = getattr(request.app.state, "config_error", None)
    elif request.query_params.get("deep", "").lower() == "true":
        health_data["gemini"] = await services.gateway.health_check()

    return JSONResponse(health_data)


# ============================================================================
# Application
# ============================================================================

def create_app(config: Optional[Config] = None, gateway: Optional[ModelGateway] = None) -> Starlette:
    """
    Build the Starlette application.

    Args:
        config: Configuration to use instead of the environment
        gateway: Pre-built gateway (tests); the app does not close it

    Returns:
        Application whose lifespan loads configuration and services
    """

    @asynccontextmanager
    async def lifespan(app):
        """Application lifespan - startup/shutdown."""
        load_dotenv()
        app.state.services = None
        app.state.config_error = None

        cfg = config
        try:
            cfg = cfg or load_config()
            validate_config(cfg)
        except ConfigurationError as e:
            cfg = None
            app.state.config_error = str(e)

        if cfg is None:
            setup_logging("INFO")
            # Reported per call instead of refusing to start
            logger.error(f"Configuration error: {app.state.config_error}")
            yield
            return

        setup_logging(cfg.log_level)
        logger.info(f"Starting Chronos v{__version__}")
        logger.info(f"  Gemini API: {cfg.gemini_api_base}")
        logger.info(
            f"  Models: text={cfg.text_model}, transcribe={cfg.transcribe_model}, "
            f"reconstruct={cfg.reconstruct_model}, context={cfg.context_model}, "
            f"vision={cfg.vision_model}, chat={cfg.chat_model}"
        )
        logger.info(f"  Gateway timeout: {cfg.gateway_timeout or 'none'}s, max upload: {cfg.max_upload_bytes} bytes")

        services = build_services(cfg, gateway)
        app.state.services = services
        try:
            yield
        finally:
            if gateway is None:
                await services.gateway.aclose()
            logger.info(f"Chronos v{__version__} stopped")

    return Starlette(
        debug=os.getenv("LOG_LEVEL") == "DEBUG",
        routes=[
            Route("/health", health),
            Route("/api/test-env", test_env),
            Route("/api/text-reconstruct", text_reconstruct, methods=["POST"]),
            Route("/api/text-search", text_search, methods=["POST"]),
            Route("/api/audio-transcribe", audio_transcribe, methods=["POST"]),
            Route("/api/audio-reconstruct", audio_reconstruct, methods=["POST"]),
            Route("/api/audio-context", audio_context, methods=["POST"]),
            Route("/api/image-analyze", image_analyze, methods=["POST"]),
            Route("/api/chat-with-ai", chat_with_ai, methods=["POST"]),
            Route("/api/analyze/{modality}", analyze, methods=["POST"]),
        ],
        lifespan=lifespan,
    )


app = create_app()
