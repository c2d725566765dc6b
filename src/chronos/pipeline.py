"""
Analysis pipeline: drives one artifact through Ingest -> Interpret -> Enrich.

Stages run strictly in sequence, each feeding the next. After every
transition a PipelineStatus snapshot is published to subscribers. Any stage
failure moves the run to FAILED and stops it; later stages are never
attempted. A new submission starts a new run and orphans the previous one:
when an orphaned stage finally returns, its result is dropped and the current
state is left alone.

Progress markers:
- text:  0 -> 50 (interpreted) -> 100
- audio: 10 (ingested) -> 33 (transcribed) -> 66 (reconstructed) -> 100
- image: 10 (ingested) -> 100
"""

import logging
from typing import Callable, List, Optional

from chronos.models import (
    MODALITY_AUDIO,
    MODALITY_IMAGE,
    MODALITY_TEXT,
    AnalysisRun,
    ChatMessage,
    ContextSource,
    PipelineState,
    PipelineStatus,
)
from chronos.services.chat_service import (
    ChatService,
    audio_grounding,
    image_grounding,
    new_message,
    text_grounding,
)
from chronos.services.enrichment_service import EnrichmentService, select_terms
from chronos.services.ingest_service import IngestService
from chronos.services.interpretation_service import InterpretationService
from chronos.utils.errors import GatewayError, PipelineError, ValidationError
from chronos.utils.logging import StructuredLogger


logger = logging.getLogger("chronos.pipeline")
events = StructuredLogger(logger)

StatusListener = Callable[[PipelineStatus], None]


class RunSuperseded(PipelineError):
    """Raised to the caller of a run that a newer submission replaced."""
    pass


class AnalysisPipeline:
    """Owns every gateway call of one session's current run."""

    def __init__(
        self,
        ingest: IngestService,
        interpretation: InterpretationService,
        enrichment: EnrichmentService,
        chat: ChatService
    ):
        """
        Initialize pipeline.

        Args:
            ingest: Artifact intake
            interpretation: Primary model calls
            enrichment: Context source synthesis
            chat: Follow-up chat
        """
        self.ingest = ingest
        self.interpretation = interpretation
        self.enrichment = enrichment
        self.chat_service = chat

        self.run: Optional[AnalysisRun] = None
        self.status = PipelineStatus(run_id=0, modality=None, state=PipelineState.IDLE, progress=0)
        self._run_seq = 0
        self._listeners: List[StatusListener] = []

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def subscribe(self, listener: StatusListener) -> None:
        """Register a callback invoked with every new status snapshot."""
        self._listeners.append(listener)

    @property
    def chat_history(self) -> List[ChatMessage]:
        return list(self.run.messages) if self.run else []

    def _publish(self, status: PipelineStatus) -> None:
        self.status = status
        events.info("pipeline_transition", {
            "run_id": status.run_id,
            "modality": status.modality,
            "state": status.state,
            "progress": status.progress,
        })
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error(f"Status listener failed: {e}", exc_info=True)

    def _begin(self, modality: str) -> int:
        """Discard the previous run and reset to IDLE."""
        self._run_seq += 1
        self.run = None
        self._publish(PipelineStatus(
            run_id=self._run_seq,
            modality=modality,
            state=PipelineState.IDLE,
            progress=0
        ))
        return self._run_seq

    def _check_current(self, run_id: int) -> None:
        if run_id != self._run_seq:
            logger.info(f"Run {run_id} superseded by run {self._run_seq}, dropping its result")
            raise RunSuperseded(f"Run {run_id} was superseded by a newer submission")

    def _advance(self, run_id: int, state: str, progress: int, message: str = "") -> None:
        """
        Move the current run forward.

        Raises:
            RunSuperseded: ``run_id`` is no longer the current run
            PipelineError: Backward transition or transition out of a terminal state
        """
        self._check_current(run_id)
        current = self.status
        if current.state in PipelineState.TERMINAL:
            raise PipelineError(f"Run {run_id} already finished ({current.state})")
        if PipelineState.ORDER.index(state) < PipelineState.ORDER.index(current.state):
            raise PipelineError(f"Illegal transition {current.state} -> {state}")

        self._publish(PipelineStatus(
            run_id=run_id,
            modality=current.modality,
            state=state,
            progress=max(progress, current.progress),
            message=message
        ))

    def _fail(self, run_id: int, error: Exception) -> None:
        if run_id != self._run_seq or self.status.state in PipelineState.TERMINAL:
            return
        events.error("pipeline_failed", {
            "run_id": run_id,
            "modality": self.status.modality,
            "state": self.status.state,
            "error_type": type(error).__name__,
            "error": str(error),
        })
        self._publish(PipelineStatus(
            run_id=run_id,
            modality=self.status.modality,
            state=PipelineState.FAILED,
            progress=self.status.progress,
            message=self.status.message,
            error=str(error) or type(error).__name__
        ))

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    async def submit_text(self, text: Optional[str]) -> AnalysisRun:
        """
        Interpret a text fragment, then enrich it with rich context sources.

        Enrichment failures of any kind leave the run COMPLETE with no sources.

        Raises:
            ValidationError: Blank text
            GatewayError, ParseError: Interpretation failed
            RunSuperseded: A newer submission replaced this run
        """
        run_id = self._begin(MODALITY_TEXT)
        try:
            self._advance(run_id, PipelineState.INGESTING, 0, "Validating text...")
            artifact = self.ingest.ingest_text(text)
            run = self.run = AnalysisRun(run_id=run_id, modality=MODALITY_TEXT, artifact=artifact)

            self._advance(run_id, PipelineState.INTERPRETING, 0, "Reconstructing text with Gemini AI...")
            result = await self.interpretation.interpret_text(artifact)
            self._check_current(run_id)
            run.text_result = result

            self._advance(run_id, PipelineState.ENRICHING, 50, "Finding relevant sources and references...")
            try:
                sources = await self.enrichment.enrich_text(result.most_likely)
            except (GatewayError, ValidationError) as e:
                events.warning("enrichment_unavailable", {"run_id": run_id, "error": str(e)})
                sources = []
            self._check_current(run_id)
            run.sources = sources

            self._advance(run_id, PipelineState.COMPLETE, 100, "Processing complete!")
            return run
        except RunSuperseded:
            raise
        except Exception as e:
            self._fail(run_id, e)
            raise

    async def submit_audio(
        self,
        data: Optional[bytes],
        mime_type: Optional[str] = None,
        filename: str = "audio"
    ) -> AnalysisRun:
        """
        Transcribe, reconstruct and enrich an audio recording.

        Raises:
            ValidationError: Missing or empty file, empty transcription
            GatewayError: Any stage's backend call failed, enrichment included
            RunSuperseded: A newer submission replaced this run
        """
        run_id = self._begin(MODALITY_AUDIO)
        try:
            self._advance(run_id, PipelineState.INGESTING, 10, "Uploading audio...")
            artifact = self.ingest.ingest_audio(data, mime_type, filename)
            run = self.run = AnalysisRun(run_id=run_id, modality=MODALITY_AUDIO, artifact=artifact)

            self._advance(run_id, PipelineState.INTERPRETING, 10, "Transcribing audio...")
            transcription = await self.interpretation.transcribe(artifact)
            self._check_current(run_id)
            run.transcription = transcription

            self._advance(run_id, PipelineState.INTERPRETING, 33, "Reconstructing text and expanding context...")
            reconstruction = await self.interpretation.reconstruct(transcription.text)
            self._check_current(run_id)
            run.reconstruction = reconstruction

            self._advance(run_id, PipelineState.ENRICHING, 66, "Finding relevant sources and references...")
            if select_terms(reconstruction.key_topics, reconstruction.entities):
                sources = await self.enrichment.enrich(reconstruction.key_topics, reconstruction.entities)
            else:
                events.warning("enrichment_skipped", {"run_id": run_id, "reason": "no topics or entities"})
                sources = []
            self._check_current(run_id)
            run.sources = sources

            self._advance(run_id, PipelineState.COMPLETE, 100, "Processing complete!")
            return run
        except RunSuperseded:
            raise
        except Exception as e:
            self._fail(run_id, e)
            raise

    async def submit_image(
        self,
        data: Optional[bytes],
        mime_type: Optional[str] = None,
        filename: str = "image"
    ) -> AnalysisRun:
        """
        Produce the archaeological report for a screenshot. No enrichment.

        Raises:
            ValidationError: Missing or empty file
            GatewayError, ParseError: Analysis failed
            RunSuperseded: A newer submission replaced this run
        """
        run_id = self._begin(MODALITY_IMAGE)
        try:
            self._advance(run_id, PipelineState.INGESTING, 10, "Uploading image...")
            artifact = self.ingest.ingest_image(data, mime_type, filename)
            run = self.run = AnalysisRun(run_id=run_id, modality=MODALITY_IMAGE, artifact=artifact)

            self._advance(run_id, PipelineState.INTERPRETING, 10, "Analyzing artifact with Gemini AI...")
            report = await self.interpretation.analyze_image(artifact)
            self._check_current(run_id)
            run.image_report = report

            self._advance(run_id, PipelineState.COMPLETE, 100, "Processing complete!")
            return run
        except RunSuperseded:
            raise
        except Exception as e:
            self._fail(run_id, e)
            raise

    async def enrich_context(
        self,
        topics: Optional[List[str]] = None,
        entities: Optional[List[str]] = None
    ) -> List[ContextSource]:
        """Standalone enrichment; does not touch the run state."""
        return await self.enrichment.enrich(topics, entities)

    # ------------------------------------------------------------------
    # Follow-up chat
    # ------------------------------------------------------------------

    def grounding_context(self) -> str:
        """
        Raises:
            PipelineError: No completed run to ground on
        """
        run = self.run
        if run is None or self.status.state != PipelineState.COMPLETE:
            raise PipelineError("Chat is available once the analysis is complete")

        if run.modality == MODALITY_TEXT:
            return text_grounding(run.artifact.text, run.text_result)
        if run.modality == MODALITY_AUDIO:
            return audio_grounding(run.transcription, run.reconstruction)
        return image_grounding(run.image_report)

    async def chat(self, question: Optional[str]) -> ChatMessage:
        """
        Ask one follow-up question about the completed run.

        Backend failures come back as an apology message; the run state is
        never affected.

        Raises:
            ValidationError: Blank question (nothing recorded, no call made)
            PipelineError: Run not complete
        """
        if not question or not question.strip():
            raise ValidationError("No message provided")
        context = self.grounding_context()

        run = self.run
        run.messages.append(new_message("user", question))
        answer = await self.chat_service.reply(question, context, run.modality)
        run.messages.append(answer)
        return answer
