"""
Follow-up chat grounded in a run's interpretation.

Every turn is independent: the grounding context is rebuilt from the
interpretation and sent in full with each question, and earlier turns are
never forwarded to the model.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from chronos.models import (
    ChatMessage,
    ImageReport,
    Reconstruction,
    TextInterpretation,
    Transcription,
)
from chronos.services.gateway import ModelGateway
from chronos.services.prompts import (
    CHAT_ABOUT,
    CHAT_APOLOGY,
    CHAT_FOCUS,
    CHAT_PROMPT,
    CHAT_SUBJECT,
    GENERIC_CHAT_SUBJECT,
    NO_CONTEXT,
)
from chronos.utils.errors import GatewayError, ValidationError


logger = logging.getLogger("chronos.chat")

NOT_AVAILABLE = "Not available"


def _or_na(value) -> str:
    if value is None or value == "" or value == []:
        return NOT_AVAILABLE
    return str(value)


# ============================================================================
# Grounding context builders
# ============================================================================

def text_grounding(original_text: str, result: Optional[TextInterpretation]) -> str:
    """Flatten a text interpretation into the chat grounding block."""
    key_terms = None
    confidence = None
    if result is not None:
        key_terms = ", ".join(f"{t.original} → {t.expanded}" for t in result.key_terms)
        confidence = f"{result.confidence:g}"

    lines = [
        "Text Analysis Context:",
        f"Original Text: {_or_na(original_text)}",
        f"Reconstructed Text: {_or_na(result.most_likely if result else None)}",
        f"Confidence: {_or_na(confidence)}%",
        f"Era: {_or_na(result.era if result else None)}",
        f"Community: {_or_na(result.community if result else None)}",
        f"Key Terms: {_or_na(key_terms)}",
        f"Reasoning: {_or_na(result.reasoning if result else None)}",
    ]
    return "\n".join(lines)


def audio_grounding(
    transcription: Optional[Transcription],
    reconstruction: Optional[Reconstruction]
) -> str:
    """Flatten a transcription and its reconstruction into the grounding block."""
    r = reconstruction or Reconstruction()
    lines = [
        "Audio Analysis Context:",
        f"Original Transcription: {_or_na(transcription.text if transcription else None)}",
        f"Reconstructed Text: {_or_na(r.reconstructed_text)}",
        f"Key Topics: {_or_na(', '.join(r.key_topics))}",
        f"Important Entities: {_or_na(', '.join(r.entities))}",
        f"Context Notes: {_or_na(r.context_notes)}",
        f"Communication Style: {_or_na(r.communication_style)}",
        f"Sentiment Analysis: {_or_na(r.sentiment_analysis)}",
        f"Action Items: {_or_na(r.action_items)}",
    ]
    return "\n".join(lines)


def image_grounding(report: ImageReport) -> str:
    """Flatten an image report into the grounding block."""
    lines = [
        "Image Analysis Context:",
        f"Era: {report.era.period} ({report.era.year_range})",
        f"Platform: {report.platform.name} ({report.platform.type})",
        f"Design: {report.design.color_scheme}, {report.design.typography}, {report.design.layout_style}",
        f"Cultural Context: {report.cultural.historical_context}",
        f"Technical Details: {', '.join(report.technical.technology_stack)}",
        f"Authenticity: {report.authenticity.assessment}",
        f"Significance: {report.significance.rating}/10 - {report.significance.explanation}",
    ]
    return "\n".join(lines)


# ============================================================================
# Chat service
# ============================================================================

def new_message(role: str, content: str) -> ChatMessage:
    return ChatMessage(
        id=uuid4().hex,
        role=role,
        content=content,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )


class ChatService:
    """Answers follow-up questions about an analysis."""

    def __init__(self, gateway: ModelGateway, model: Optional[str] = None):
        self.gateway = gateway
        self.model = model

    def build_prompt(
        self,
        message: str,
        context: Optional[str],
        modality_hint: Optional[str] = None
    ) -> str:
        focus = CHAT_FOCUS.get(modality_hint or "")
        if focus:
            subject = CHAT_SUBJECT.format(modality=modality_hint)
            about = CHAT_ABOUT.format(modality=modality_hint)
            focus = f"\n{focus}"
        else:
            subject, about, focus = GENERIC_CHAT_SUBJECT, "", ""

        return CHAT_PROMPT.format(
            subject=subject,
            context=context or NO_CONTEXT,
            message=message,
            about=about,
            focus=focus
        )

    async def ask(
        self,
        message: str,
        context: Optional[str],
        modality_hint: Optional[str] = None
    ) -> str:
        """
        Forward one question with its grounding context.

        Raises:
            ValidationError: Blank question (no call made)
            GatewayError: Backend failure
        """
        if not message or not message.strip():
            raise ValidationError("No message provided")

        answer = await self.gateway.invoke(
            self.build_prompt(message, context, modality_hint),
            model=self.model
        )
        logger.info(f"Chat answered: hint={modality_hint}, chars={len(answer)}")
        return answer

    async def reply(
        self,
        message: str,
        context: Optional[str],
        modality_hint: Optional[str] = None
    ) -> ChatMessage:
        """
        Like ``ask`` but always yields an assistant message: a backend failure
        becomes the standard apology.

        Raises:
            ValidationError: Blank question (no call made)
        """
        try:
            answer = await self.ask(message, context, modality_hint)
        except GatewayError as e:
            logger.warning(f"Chat turn failed: status={e.status}, error={e}")
            answer = CHAT_APOLOGY
        return new_message("assistant", answer)
