"""Markup helpers for model-generated text."""

import html
import re

_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")


def format_bold(text: str) -> str:
    """
    Convert ``**bold**`` spans to ``<strong>bold</strong>``.

    The input is HTML-escaped first, so the only markup in the result is the
    ``<strong>`` tags produced here.
    """
    if not text:
        return ""
    return _BOLD_RE.sub(r"<strong>\1</strong>", html.escape(text, quote=False))
