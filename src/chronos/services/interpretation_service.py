"""
Primary interpretation calls, one per modality stage.

Each method is one gateway call followed by one parse step:
- interpret_text: strict JSON -> TextInterpretation
- transcribe: raw text -> Transcription
- reconstruct: delimited sections -> Reconstruction
- analyze_image: strict JSON (schema-constrained) -> ImageReport
"""

import logging
from typing import Optional

from chronos.models import (
    AudioArtifact,
    ImageArtifact,
    ImageReport,
    Reconstruction,
    TextArtifact,
    TextInterpretation,
    Transcription,
)
from chronos.services.gateway import ModelGateway
from chronos.services.prompts import (
    IMAGE_ANALYSIS_PROMPT,
    IMAGE_REPORT_SCHEMA,
    RECONSTRUCT_GENERATION_CONFIG,
    RECONSTRUCT_PROMPT,
    TEXT_INTERPRET_PROMPT,
    TRANSCRIBE_GENERATION_CONFIG,
    TRANSCRIBE_PROMPT,
)
from chronos.services import response_parser
from chronos.utils.errors import ValidationError


logger = logging.getLogger("chronos.interpretation")


class InterpretationService:
    """Runs the primary model call for each modality."""

    def __init__(
        self,
        gateway: ModelGateway,
        text_model: Optional[str] = None,
        transcribe_model: Optional[str] = None,
        reconstruct_model: Optional[str] = None,
        vision_model: Optional[str] = None
    ):
        """
        Initialize interpretation service.

        Args:
            gateway: Model gateway
            text_model: Model for text interpretation (gateway default if None)
            transcribe_model: Model for audio transcription
            reconstruct_model: Model for transcription reconstruction
            vision_model: Model for the image report
        """
        self.gateway = gateway
        self.text_model = text_model
        self.transcribe_model = transcribe_model
        self.reconstruct_model = reconstruct_model
        self.vision_model = vision_model

    async def interpret_text(self, artifact: TextArtifact) -> TextInterpretation:
        """
        Raises:
            GatewayError: Backend failure
            ParseError: Response was not the expected JSON object
        """
        raw = await self.gateway.invoke(
            TEXT_INTERPRET_PROMPT.format(text=artifact.text),
            model=self.text_model
        )
        result = response_parser.parse_text_interpretation(raw)
        logger.info(f"Text interpreted: confidence={result.confidence}, era={result.era!r}")
        return result

    async def transcribe(self, artifact: AudioArtifact) -> Transcription:
        """
        An empty transcription is returned as-is; the reconstruction stage
        rejects it.

        Raises:
            GatewayError: Backend failure
        """
        text = await self.gateway.invoke(
            TRANSCRIBE_PROMPT,
            payload=artifact.payload(),
            generation_config=TRANSCRIBE_GENERATION_CONFIG,
            model=self.transcribe_model
        )
        logger.info(f"Audio transcribed: file={artifact.filename}, chars={len(text)}")
        return Transcription(
            text=text,
            file_name=artifact.filename,
            file_size=artifact.size,
            mime_type=artifact.mime_type
        )

    async def reconstruct(self, transcription: str) -> Reconstruction:
        """
        Raises:
            ValidationError: Empty transcription (no call made)
            GatewayError: Backend failure
        """
        if not transcription or not transcription.strip():
            raise ValidationError("No transcription provided")

        raw = await self.gateway.invoke(
            RECONSTRUCT_PROMPT.format(transcription=transcription),
            generation_config=RECONSTRUCT_GENERATION_CONFIG,
            model=self.reconstruct_model
        )
        reconstruction = response_parser.parse_reconstruction(raw)
        logger.info(
            f"Transcription reconstructed: topics={len(reconstruction.key_topics)}, "
            f"entities={len(reconstruction.entities)}"
        )
        return reconstruction

    async def analyze_image(self, artifact: ImageArtifact) -> ImageReport:
        """
        Raises:
            GatewayError: Backend failure
            ParseError: Report was not valid JSON
        """
        raw = await self.gateway.invoke(
            IMAGE_ANALYSIS_PROMPT,
            payload=artifact.payload(),
            response_schema=IMAGE_REPORT_SCHEMA,
            model=self.vision_model
        )
        report = response_parser.parse_image_report(raw)
        logger.info(
            f"Image analyzed: platform={report.platform.name!r}, "
            f"significance={report.significance.rating}"
        )
        return report
