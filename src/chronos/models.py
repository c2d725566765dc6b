"""
Data models for the Chronos analysis pipeline.

Artifacts are frozen once ingested. Interpretation results are plain value
types: ``from_dict`` builds them from untrusted model JSON with defaults for
anything missing, ``to_dict`` renders them in the camelCase wire format.
"""

import math
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any


# ============================================================================
# Modalities and pipeline states
# ============================================================================

MODALITY_TEXT = "text"
MODALITY_AUDIO = "audio"
MODALITY_IMAGE = "image"
MODALITIES = (MODALITY_TEXT, MODALITY_AUDIO, MODALITY_IMAGE)


class PipelineState:
    """Pipeline state names. FAILED may follow any non-terminal state."""
    IDLE = "idle"
    INGESTING = "ingesting"
    INTERPRETING = "interpreting"
    ENRICHING = "enriching"
    COMPLETE = "complete"
    FAILED = "failed"

    ORDER = (IDLE, INGESTING, INTERPRETING, ENRICHING, COMPLETE)
    TERMINAL = (COMPLETE, FAILED)


# ============================================================================
# Coercion helpers for untrusted model output
# ============================================================================

def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    return str(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return _text(value)


def _text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [_text(item) for item in value if item is not None]


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    # json.loads accepts NaN and Infinity
    return number if math.isfinite(number) else default


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


# ============================================================================
# Artifacts
# ============================================================================

@dataclass(frozen=True)
class InlinePayload:
    """Binary payload sent inline to the backend."""
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class TextArtifact:
    """Short, slang-laden text fragment."""
    text: str

    modality = MODALITY_TEXT


@dataclass(frozen=True)
class AudioArtifact:
    """Audio recording with its effective (allow-listed) MIME type."""
    data: bytes
    mime_type: str
    filename: str
    size: int

    modality = MODALITY_AUDIO

    def payload(self) -> InlinePayload:
        return InlinePayload(data=self.data, mime_type=self.mime_type)


@dataclass(frozen=True)
class ImageArtifact:
    """Screenshot of a historical digital interface."""
    data: bytes
    mime_type: str
    filename: str

    modality = MODALITY_IMAGE

    def payload(self) -> InlinePayload:
        return InlinePayload(data=self.data, mime_type=self.mime_type)


# ============================================================================
# Text interpretation
# ============================================================================

@dataclass
class Alternative:
    """Alternative reading of a text fragment."""
    text: str
    confidence: float


@dataclass
class KeyTerm:
    """Slang term with its expansion."""
    original: str
    expanded: str
    meaning: str


@dataclass
class TextInterpretation:
    """Reconstruction of a slang-laden text fragment."""
    most_likely: str
    confidence: float  # 0..100
    alternatives: List[Alternative] = field(default_factory=list)
    era: str = ""
    community: str = ""
    key_terms: List[KeyTerm] = field(default_factory=list)
    reasoning: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'TextInterpretation':
        """Create from model JSON, clamping confidences to [0, 100]."""
        alternatives = []
        for item in d.get("alternatives") or []:
            if isinstance(item, dict):
                alternatives.append(Alternative(
                    text=_text(item.get("text")),
                    confidence=_clamp(_number(item.get("confidence"), 0.0), 0.0, 100.0)
                ))

        key_terms = []
        for item in d.get("keyTerms") or []:
            if isinstance(item, dict):
                key_terms.append(KeyTerm(
                    original=_text(item.get("original")),
                    expanded=_text(item.get("expanded")),
                    meaning=_text(item.get("meaning"))
                ))

        return cls(
            most_likely=_text(d.get("mostLikely")),
            confidence=_clamp(_number(d.get("confidence"), 0.0), 0.0, 100.0),
            alternatives=alternatives,
            era=_text(d.get("era")),
            community=_text(d.get("community")),
            key_terms=key_terms,
            reasoning=_text(d.get("reasoning"))
        )

    def to_dict(self) -> dict:
        return {
            "mostLikely": self.most_likely,
            "confidence": self.confidence,
            "alternatives": [asdict(a) for a in self.alternatives],
            "era": self.era,
            "community": self.community,
            "keyTerms": [asdict(t) for t in self.key_terms],
            "reasoning": self.reasoning
        }


# ============================================================================
# Audio interpretation
# ============================================================================

@dataclass
class Transcription:
    """Verbatim transcription of an audio artifact."""
    text: str
    file_name: str
    file_size: int
    mime_type: str

    def to_dict(self) -> dict:
        return {
            "transcription": self.text,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "mimeType": self.mime_type
        }


@dataclass
class Reconstruction:
    """Cleaned-up, analysed version of a transcription."""
    reconstructed_text: str = ""
    key_topics: List[str] = field(default_factory=list)
    entities: List[str] = field(default_factory=list)
    context_notes: str = ""
    communication_style: str = ""
    sentiment_analysis: str = ""
    action_items: str = ""

    def to_dict(self) -> dict:
        return {
            "reconstructedText": self.reconstructed_text,
            "keyTopics": list(self.key_topics),
            "entities": list(self.entities),
            "contextNotes": self.context_notes,
            "communicationStyle": self.communication_style,
            "sentimentAnalysis": self.sentiment_analysis,
            "actionItems": self.action_items
        }


# ============================================================================
# Image interpretation
# ============================================================================

@dataclass
class EraInfo:
    period: str = ""
    year_range: str = ""
    confidence: str = ""  # high|medium|low


@dataclass
class PlatformInfo:
    name: str = ""
    type: str = ""
    version: Optional[str] = None


@dataclass
class DesignInfo:
    color_scheme: str = ""
    typography: str = ""
    layout_style: str = ""
    design_paradigm: str = ""
    notable_elements: List[str] = field(default_factory=list)


@dataclass
class CulturalInfo:
    historical_context: str = ""
    cultural_significance: str = ""
    user_behavior_patterns: str = ""


@dataclass
class TechnicalInfo:
    resolution: Optional[str] = None
    browser_indicators: Optional[str] = None
    technology_stack: List[str] = field(default_factory=list)
    performance_notes: Optional[str] = None


@dataclass
class AuthenticityInfo:
    assessment: str = ""  # original|recreation|modern|unclear
    confidence: str = ""
    reasoning: str = ""


@dataclass
class SignificanceInfo:
    rating: int = 1  # 1..10
    explanation: str = ""


@dataclass
class ImageReport:
    """Archaeological report for an interface screenshot."""
    era: EraInfo
    platform: PlatformInfo
    design: DesignInfo
    cultural: CulturalInfo
    technical: TechnicalInfo
    authenticity: AuthenticityInfo
    significance: SignificanceInfo
    summary: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ImageReport':
        """Create from model JSON. Missing sections fall back to empty values."""
        era = _section(d, "era")
        platform = _section(d, "platform")
        design = _section(d, "design")
        cultural = _section(d, "cultural")
        technical = _section(d, "technical")
        authenticity = _section(d, "authenticity")
        significance = _section(d, "significance")

        return cls(
            era=EraInfo(
                period=_text(era.get("period")),
                year_range=_text(era.get("yearRange")),
                confidence=_text(era.get("confidence"))
            ),
            platform=PlatformInfo(
                name=_text(platform.get("name")),
                type=_text(platform.get("type")),
                version=_optional_text(platform.get("version"))
            ),
            design=DesignInfo(
                color_scheme=_text(design.get("colorScheme")),
                typography=_text(design.get("typography")),
                layout_style=_text(design.get("layoutStyle")),
                design_paradigm=_text(design.get("designParadigm")),
                notable_elements=_text_list(design.get("notableElements"))
            ),
            cultural=CulturalInfo(
                historical_context=_text(cultural.get("historicalContext")),
                cultural_significance=_text(cultural.get("culturalSignificance")),
                user_behavior_patterns=_text(cultural.get("userBehaviorPatterns"))
            ),
            technical=TechnicalInfo(
                resolution=_optional_text(technical.get("resolution")),
                browser_indicators=_optional_text(technical.get("browserIndicators")),
                technology_stack=_text_list(technical.get("technologyStack")),
                performance_notes=_optional_text(technical.get("performanceNotes"))
            ),
            authenticity=AuthenticityInfo(
                assessment=_text(authenticity.get("assessment")),
                confidence=_text(authenticity.get("confidence")),
                reasoning=_text(authenticity.get("reasoning"))
            ),
            significance=SignificanceInfo(
                rating=int(_clamp(round(_number(significance.get("rating"), 1)), 1, 10)),
                explanation=_text(significance.get("explanation"))
            ),
            summary=_text(d.get("summary"))
        )

    def to_dict(self) -> dict:
        return {
            "era": {
                "period": self.era.period,
                "yearRange": self.era.year_range,
                "confidence": self.era.confidence
            },
            "platform": {
                "name": self.platform.name,
                "type": self.platform.type,
                "version": self.platform.version
            },
            "design": {
                "colorScheme": self.design.color_scheme,
                "typography": self.design.typography,
                "layoutStyle": self.design.layout_style,
                "designParadigm": self.design.design_paradigm,
                "notableElements": list(self.design.notable_elements)
            },
            "cultural": {
                "historicalContext": self.cultural.historical_context,
                "culturalSignificance": self.cultural.cultural_significance,
                "userBehaviorPatterns": self.cultural.user_behavior_patterns
            },
            "technical": {
                "resolution": self.technical.resolution,
                "browserIndicators": self.technical.browser_indicators,
                "technologyStack": list(self.technical.technology_stack),
                "performanceNotes": self.technical.performance_notes
            },
            "authenticity": {
                "assessment": self.authenticity.assessment,
                "confidence": self.authenticity.confidence,
                "reasoning": self.authenticity.reasoning
            },
            "significance": {
                "rating": self.significance.rating,
                "explanation": self.significance.explanation
            },
            "summary": self.summary
        }


# ============================================================================
# Enrichment, chat and run status
# ============================================================================

@dataclass
class ContextSource:
    """Synthesized reference material. ``url`` is a placeholder, never fetched."""
    title: str
    url: str
    snippet: str
    score: float
    # Text-modality variant only
    credibility: Optional[float] = None
    relevance_reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "title": self.title,
            "url": self.url,
            "snippet": self.snippet,
            "score": self.score
        }
        if self.credibility is not None:
            data["credibility"] = self.credibility
        if self.relevance_reason is not None:
            data["relevanceReason"] = self.relevance_reason
        return data


@dataclass
class ChatMessage:
    """A single chat turn, scoped to one pipeline run."""
    id: str
    role: str  # "user" | "assistant"
    content: str
    timestamp: str  # ISO-8601

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PipelineStatus:
    """Snapshot of a run's position, published after every transition."""
    run_id: int
    modality: Optional[str]
    state: str
    progress: int
    message: str = ""
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "runId": self.run_id,
            "modality": self.modality,
            "state": self.state,
            "progress": self.progress,
            "message": self.message,
            "error": self.error
        }


@dataclass
class AnalysisRun:
    """Everything one pipeline run has produced so far."""
    run_id: int
    modality: str
    artifact: Any
    text_result: Optional[TextInterpretation] = None
    transcription: Optional[Transcription] = None
    reconstruction: Optional[Reconstruction] = None
    image_report: Optional[ImageReport] = None
    sources: List[ContextSource] = field(default_factory=list)
    messages: List[ChatMessage] = field(default_factory=list)

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {"runId": self.run_id, "modality": self.modality}
        if self.text_result is not None:
            data["interpretation"] = self.text_result.to_dict()
        if self.transcription is not None:
            data["transcription"] = self.transcription.to_dict()
        if self.reconstruction is not None:
            data["reconstruction"] = self.reconstruction.to_dict()
        if self.image_report is not None:
            data["analysis"] = self.image_report.to_dict()
        if self.modality != MODALITY_IMAGE:
            data["sources"] = [s.to_dict() for s in self.sources]
        data["messages"] = [m.to_dict() for m in self.messages]
        return data


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
