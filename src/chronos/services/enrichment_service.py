"""
Best-effort context enrichment.

Synthesizes reference material for the topics and entities an interpretation
produced. Nothing is searched: every source URL is the "#" placeholder.
Malformed output degrades to placeholder sources; transport failures propagate
so the caller can decide.
"""

import logging
from typing import List, Optional, Sequence

from chronos.models import ContextSource
from chronos.services.gateway import ModelGateway
from chronos.services.prompts import CONTEXT_PROMPT, MAX_CONTEXT_TERMS, TEXT_CONTEXT_PROMPT
from chronos.services import response_parser
from chronos.utils.errors import ValidationError


logger = logging.getLogger("chronos.enrichment")


def select_terms(
    topics: Optional[Sequence[str]] = None,
    entities: Optional[Sequence[str]] = None,
    limit: int = MAX_CONTEXT_TERMS
) -> List[str]:
    """Topics then entities, blanks dropped, first ``limit`` kept in order."""
    terms = [t for t in list(topics or []) + list(entities or []) if t and t.strip()]
    return terms[:limit]


class EnrichmentService:
    """Produces ContextSource lists from interpretation terms."""

    def __init__(self, gateway: ModelGateway, model: Optional[str] = None):
        self.gateway = gateway
        self.model = model

    async def enrich(
        self,
        topics: Optional[Sequence[str]] = None,
        entities: Optional[Sequence[str]] = None
    ) -> List[ContextSource]:
        """
        Synthesize sources for at most five topics/entities.

        Raises:
            ValidationError: No usable topics or entities (no call made)
            GatewayError: Backend failure
        """
        terms = select_terms(topics, entities)
        if not terms:
            raise ValidationError("No topics or entities provided")

        raw = await self.gateway.invoke(
            CONTEXT_PROMPT.format(terms=", ".join(terms)),
            model=self.model
        )
        sources = response_parser.parse_context_sources(raw, terms)
        logger.info(f"Enriched {len(terms)} terms into {len(sources)} sources")
        return sources

    async def enrich_text(self, query: str) -> List[ContextSource]:
        """
        Rich variant for the text modality: sources also carry credibility and
        a relevance reason.

        Raises:
            ValidationError: Blank query (no call made)
            GatewayError: Backend failure
        """
        terms = select_terms(entities=[query])
        if not terms:
            raise ValidationError("No query provided")

        raw = await self.gateway.invoke(
            TEXT_CONTEXT_PROMPT.format(terms=", ".join(terms)),
            model=self.model
        )
        sources = response_parser.parse_context_sources(raw, terms, rich=True)
        logger.info(f"Enriched text query into {len(sources)} sources")
        return sources
