"""
Parsers that turn raw model text into typed results.

Three contracts:
- Delimited sections (``===NAME===`` markers): never fails, missing sections
  default to empty values.
- Embedded JSON with fallback (context sources): malformed output degrades to
  deterministic placeholder sources built from the request terms.
- Strict JSON (image report, text interpretation): malformed output raises
  ParseError carrying the raw text.

Every function here is pure: the same input always yields the same output.
"""

import json
import logging
import math
import re
from typing import Any, Dict, List, Sequence

from chronos.models import ContextSource, ImageReport, Reconstruction, TextInterpretation
from chronos.services.prompts import RECONSTRUCTION_LIST_SECTIONS, RECONSTRUCTION_SECTIONS
from chronos.utils.errors import ParseError


logger = logging.getLogger("chronos.parser")


_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*[ \t]*\n?(.*?)```", re.DOTALL)
_MARKER = r"===[^=\n]+==="

PLACEHOLDER_URL = "#"
FALLBACK_START_SCORE = 0.8
FALLBACK_SCORE_STEP = 0.1
DEFAULT_SOURCE_SCORE = 0.8


# ============================================================================
# Delimited sections
# ============================================================================

def parse_sections(text: str, names: Sequence[str]) -> Dict[str, str]:
    """
    Extract ``===NAME===`` sections.

    Each section runs up to the next marker or the end of the text. Missing
    sections map to "".
    """
    text = text or ""
    sections = {}
    for name in names:
        pattern = rf"==={re.escape(name)}===(.*?)(?={_MARKER}|\Z)"
        match = re.search(pattern, text, re.DOTALL)
        sections[name] = match.group(1).strip() if match else ""
    return sections


def split_lines(content: str) -> List[str]:
    """Split a list-valued section into trimmed, non-empty lines."""
    return [line.strip() for line in (content or "").split("\n") if line.strip()]


def parse_reconstruction(text: str) -> Reconstruction:
    """Parse the seven-section reconstruction response."""
    sections = parse_sections(text, list(RECONSTRUCTION_SECTIONS))

    values: Dict[str, Any] = {}
    for name, attr in RECONSTRUCTION_SECTIONS.items():
        if name in RECONSTRUCTION_LIST_SECTIONS:
            values[attr] = split_lines(sections[name])
        else:
            values[attr] = sections[name]

    missing = [name for name, content in sections.items() if not content]
    if missing:
        logger.warning(f"Reconstruction response missing sections: {missing}")

    return Reconstruction(**values)


# ============================================================================
# JSON extraction
# ============================================================================

def extract_json_text(text: str) -> str:
    """Return the body of the first fenced code block, or the stripped text."""
    text = text or ""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_strict_json(text: str, what: str = "model response") -> Any:
    """
    Parse fenced-or-raw JSON.

    Raises:
        ParseError: If the text is not valid JSON
    """
    try:
        return json.loads(extract_json_text(text))
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"Failed to parse JSON from {what}: {e}")
        raise ParseError(f"Failed to parse {what}", raw_text=text or "") from e


def parse_image_report(text: str) -> ImageReport:
    """
    Raises:
        ParseError: If the report is not a JSON object
    """
    data = parse_strict_json(text, "analysis result")
    if not isinstance(data, dict):
        raise ParseError("Failed to parse analysis result", raw_text=text or "")
    return ImageReport.from_dict(data)


def parse_text_interpretation(text: str) -> TextInterpretation:
    """
    Raises:
        ParseError: If the interpretation is not a JSON object
    """
    data = parse_strict_json(text, "text reconstruction")
    if not isinstance(data, dict):
        raise ParseError("Failed to parse text reconstruction", raw_text=text or "")
    return TextInterpretation.from_dict(data)


# ============================================================================
# Context sources (JSON with fallback)
# ============================================================================

def fallback_sources(terms: Sequence[str], rich: bool = False) -> List[ContextSource]:
    """Deterministic placeholder sources: "About {term}", scores 0.8, 0.7, ..."""
    sources = []
    for index, term in enumerate(terms):
        score = round(FALLBACK_START_SCORE - index * FALLBACK_SCORE_STEP, 2)
        sources.append(ContextSource(
            title=f"About {term}",
            url=PLACEHOLDER_URL,
            snippet=f"Context and information about {term}",
            score=score,
            credibility=score if rich else None,
            relevance_reason="" if rich else None
        ))
    return sources


def parse_context_sources(
    text: str,
    terms: Sequence[str],
    rich: bool = False
) -> List[ContextSource]:
    """
    Parse a JSON array of sources; fall back to placeholders if malformed.

    Scores and list length are accepted as returned.

    Args:
        text: Raw model output
        terms: Terms the request was built from (used by the fallback)
        rich: Also read credibility and relevance_reason
    """
    try:
        items = json.loads(extract_json_text(text))
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Failed to parse context sources, using fallback: {e}")
        return fallback_sources(terms, rich)

    if not isinstance(items, list):
        logger.warning(f"Context sources were not a JSON array ({type(items).__name__}), using fallback")
        return fallback_sources(terms, rich)

    sources = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            item = {}
        score = _score(item.get("relevance_score"))
        source = ContextSource(
            title=str(item.get("title") or f"Context {index + 1}"),
            url=PLACEHOLDER_URL,
            snippet=str(item.get("snippet") or ""),
            score=score
        )
        if rich:
            source.credibility = _score(item.get("credibility"), default=score)
            source.relevance_reason = str(
                item.get("relevance_reason") or item.get("relevanceReason") or ""
            )
        sources.append(source)
    return sources


def _score(value: Any, default: float = DEFAULT_SOURCE_SCORE) -> float:
    if not value or isinstance(value, bool):
        return default
    try:
        score = float(value)
    except (TypeError, ValueError):
        return default
    # NaN and Infinity would break JSON rendering
    return score if math.isfinite(score) else default
