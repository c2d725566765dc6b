"""Services module for the Chronos analysis service."""

from chronos.services.gateway import ModelGateway
from chronos.services.ingest_service import IngestService
from chronos.services.interpretation_service import InterpretationService
from chronos.services.enrichment_service import EnrichmentService
from chronos.services.chat_service import ChatService

__all__ = [
    "ModelGateway",
    "IngestService",
    "InterpretationService",
    "EnrichmentService",
    "ChatService",
]
