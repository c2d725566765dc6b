"""Chronos: digital archaeology for slang, audio and interface artifacts."""

__version__ = "1.0.0"
