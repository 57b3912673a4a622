"""
Capture Session

The staging buffer for one pending AI request. Three independent
acquisition flows feed it:
- text typed by the user
- one image (picked or photographed)
- one audio clip (press-and-hold recording)

Staging a new image or clip replaces the previous one. ``build_parts``
turns whatever is staged into the parts sent to the model.

UI widgets keep returning the same upload on every rerun. Passing its
``source_id`` lets the session ignore an upload it already staged, or one
that was cleared, discarded, rejected or submitted.
"""

import base64
from typing import Optional

from pydantic import BaseModel

from smart_ledger.capture.errors import NothingStagedError, UnsupportedMediaError
from smart_ledger.capture.recorder import AudioClip
from smart_ledger.models.ledger import MultimodalPart


class StagedImage(BaseModel):
    """An encoded image awaiting submission."""

    mime_type: str
    data: str
    filename: Optional[str] = None
    size_bytes: int


class CaptureSession:
    """
    Holds text, image and audio for the next AI submission.

    Not thread-safe; one session belongs to one user interaction.
    """

    def __init__(
        self,
        max_image_bytes: int = 10 * 1024 * 1024,
        allowed_image_formats: Optional[list[str]] = None,
    ):
        self._max_image_bytes = max_image_bytes
        self._allowed_formats = [f.lower() for f in (allowed_image_formats or [])]
        self._text = ""
        self._image: Optional[StagedImage] = None
        self._audio: Optional[AudioClip] = None
        self._image_source: Optional[str] = None
        self._audio_source: Optional[str] = None
        self._retired_sources: set[str] = set()

    def has_seen(self, source_id: Optional[str]) -> bool:
        """True if this upload is staged now or was already let go."""
        if source_id is None:
            return False
        return (
            source_id in self._retired_sources
            or source_id in (self._image_source, self._audio_source)
        )

    def _retire(self, source_id: Optional[str]) -> None:
        if source_id is not None:
            self._retired_sources.add(source_id)

    # -------------------------------------------------------------------------
    # Text
    # -------------------------------------------------------------------------

    @property
    def text(self) -> str:
        return self._text

    def set_text(self, text: Optional[str]) -> None:
        self._text = text or ""

    # -------------------------------------------------------------------------
    # Image
    # -------------------------------------------------------------------------

    @property
    def image(self) -> Optional[StagedImage]:
        return self._image

    def stage_image(
        self,
        data: bytes,
        mime_type: str,
        filename: Optional[str] = None,
        source_id: Optional[str] = None,
    ) -> Optional[StagedImage]:
        """
        Encode and stage an image, replacing any previous one.

        An upload the session has already seen is ignored and the current
        image is returned unchanged.

        Raises:
            UnsupportedMediaError: Not an image, a disallowed format,
                empty, or over the size limit.
        """
        if self.has_seen(source_id):
            return self._image

        try:
            staged = self._encode_image(data, mime_type, filename)
        except UnsupportedMediaError:
            self._retire(source_id)
            raise

        self._retire(self._image_source)
        self._image = staged
        self._image_source = source_id
        return self._image

    def _encode_image(
        self,
        data: bytes,
        mime_type: str,
        filename: Optional[str],
    ) -> StagedImage:
        mime_type = (mime_type or "").lower()
        if not mime_type.startswith("image/"):
            raise UnsupportedMediaError(f"Not an image: {mime_type or 'unknown type'}")

        subtype = mime_type.split("/", 1)[1]
        if self._allowed_formats and subtype not in self._allowed_formats:
            raise UnsupportedMediaError(f"Unsupported image format: {subtype}")

        if not data:
            raise UnsupportedMediaError("Image is empty")
        if len(data) > self._max_image_bytes:
            raise UnsupportedMediaError(
                f"Image is {len(data)} bytes; limit is {self._max_image_bytes}"
            )

        return StagedImage(
            mime_type=mime_type,
            data=base64.b64encode(data).decode("ascii"),
            filename=filename,
            size_bytes=len(data),
        )

    def clear_image(self) -> None:
        self._retire(self._image_source)
        self._image = None
        self._image_source = None

    # -------------------------------------------------------------------------
    # Audio
    # -------------------------------------------------------------------------

    @property
    def audio(self) -> Optional[AudioClip]:
        return self._audio

    def stage_audio(self, clip: Optional[AudioClip], source_id: Optional[str] = None) -> None:
        """Stage a finished clip, replacing any previous one. None and seen uploads are ignored."""
        if clip is None or self.has_seen(source_id):
            return
        self._retire(self._audio_source)
        self._audio = clip
        self._audio_source = source_id

    def discard_audio(self) -> None:
        self._retire(self._audio_source)
        self._audio = None
        self._audio_source = None

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    @property
    def has_content(self) -> bool:
        return bool(self._text.strip()) or self._image is not None or self._audio is not None

    def part_kinds(self) -> list[str]:
        """Short labels of what is staged, for logging."""
        kinds = []
        if self._text.strip():
            kinds.append("text")
        if self._image is not None:
            kinds.append(self._image.mime_type)
        if self._audio is not None:
            kinds.append(self._audio.mime_type)
        return kinds

    def build_parts(self) -> list[MultimodalPart]:
        """
        Parts for the model, in the order text, image, audio.

        Raises:
            NothingStagedError: If nothing is staged.
        """
        parts = []

        text = self._text.strip()
        if text:
            parts.append(MultimodalPart.from_text(text))

        if self._image is not None:
            parts.append(MultimodalPart.from_base64(self._image.mime_type, self._image.data))

        if self._audio is not None:
            parts.append(MultimodalPart.from_base64(self._audio.mime_type, self._audio.data))

        if not parts:
            raise NothingStagedError("Nothing staged for submission")
        return parts

    def reset(self) -> None:
        self._text = ""
        self.clear_image()
        self.discard_audio()
