"""Artifact intake: presence checks, size limits and MIME coercion."""

import logging
from typing import Optional

from chronos.models import AudioArtifact, ImageArtifact, TextArtifact
from chronos.utils.errors import ValidationError


logger = logging.getLogger("chronos.ingest")


SUPPORTED_AUDIO_TYPES = ["audio/mpeg", "audio/wav", "audio/webm", "audio/mp4", "audio/aac"]
DEFAULT_AUDIO_TYPE = "audio/mpeg"

SUPPORTED_IMAGE_TYPES = ["image/png", "image/jpeg", "image/webp"]
DEFAULT_IMAGE_TYPE = "image/jpeg"

IMAGE_EXTENSION_TYPES = {
    ".png": "image/png",
    ".webp": "image/webp",
}


def coerce_audio_mime(mime_type: Optional[str]) -> str:
    """Return ``mime_type`` if supported, otherwise ``audio/mpeg``."""
    mime_type = (mime_type or "").strip().lower() or DEFAULT_AUDIO_TYPE
    if mime_type not in SUPPORTED_AUDIO_TYPES:
        logger.warning(f"Unsupported MIME type {mime_type} detected. Defaulting to {DEFAULT_AUDIO_TYPE}.")
        return DEFAULT_AUDIO_TYPE
    return mime_type


def coerce_image_mime(mime_type: Optional[str], filename: Optional[str] = None) -> str:
    """
    Return ``mime_type`` if supported. Otherwise infer from the filename
    extension (.png, .webp) and fall back to ``image/jpeg``.
    """
    mime_type = (mime_type or "").strip().lower() or DEFAULT_IMAGE_TYPE
    if mime_type in SUPPORTED_IMAGE_TYPES:
        return mime_type

    name = (filename or "").lower()
    coerced = DEFAULT_IMAGE_TYPE
    for extension, candidate in IMAGE_EXTENSION_TYPES.items():
        if name.endswith(extension):
            coerced = candidate
            break

    logger.warning(f"Unsupported MIME type {mime_type} detected. Defaulting to {coerced}.")
    return coerced


class IngestService:
    """Turns raw submissions into immutable artifacts."""

    def __init__(self, max_upload_bytes: int = 20 * 1024 * 1024):
        self.max_upload_bytes = max_upload_bytes

    def ingest_text(self, text: Optional[str]) -> TextArtifact:
        """
        Raises:
            ValidationError: If the text is missing or blank
        """
        if text is None or not text.strip():
            raise ValidationError("No text provided")
        return TextArtifact(text=text)

    def ingest_audio(
        self,
        data: Optional[bytes],
        mime_type: Optional[str] = None,
        filename: str = "audio"
    ) -> AudioArtifact:
        """
        Accept an audio file, coercing unsupported MIME types to audio/mpeg.

        Raises:
            ValidationError: If no file was given, it is empty or too large
        """
        if data is None:
            raise ValidationError("No audio file provided")
        self._check_size(data, "audio")

        artifact = AudioArtifact(
            data=bytes(data),
            mime_type=coerce_audio_mime(mime_type),
            filename=filename or "audio",
            size=len(data)
        )
        logger.info(f"Ingested audio: name={artifact.filename}, size={artifact.size}, mime={artifact.mime_type}")
        return artifact

    def ingest_image(
        self,
        data: Optional[bytes],
        mime_type: Optional[str] = None,
        filename: str = "image"
    ) -> ImageArtifact:
        """
        Accept an image file, coercing unsupported MIME types.

        Raises:
            ValidationError: If no file was given, it is empty or too large
        """
        if data is None:
            raise ValidationError("No image provided")
        self._check_size(data, "image")

        artifact = ImageArtifact(
            data=bytes(data),
            mime_type=coerce_image_mime(mime_type, filename),
            filename=filename or "image"
        )
        logger.info(f"Ingested image: name={artifact.filename}, size={len(data)}, mime={artifact.mime_type}")
        return artifact

    def _check_size(self, data: bytes, kind: str) -> None:
        if len(data) == 0:
            raise ValidationError(f"Failed to process {kind} file - no data available")
        if len(data) > self.max_upload_bytes:
            raise ValidationError(
                f"{kind.capitalize()} file too large ({len(data)} bytes), "
                f"max {self.max_upload_bytes}"
            )
