"""
Press-and-hold audio recording.

An explicit two-state machine (IDLE -> RECORDING -> IDLE) driven by
start/stop signals from the input layer. The recorder only deals with
raw chunks; turning a gesture into those signals is the UI's job.

Every finished clip is tagged with one fixed container MIME type,
whatever codec the device produced.
"""

import base64
from enum import Enum
from typing import Optional, Protocol

import structlog
from pydantic import BaseModel, Field

from smart_ledger.capture.errors import CaptureError, MicrophoneUnavailableError


logger = structlog.get_logger(__name__)


class Microphone(Protocol):
    """Anything that can be opened for recording and released afterwards."""

    def open(self) -> None: ...

    def close(self) -> None: ...


class RecorderState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"


class AudioClip(BaseModel):
    """A finished recording, ready to be staged."""

    mime_type: str
    data: str = Field(..., min_length=1, description="Base64-encoded audio")
    size_bytes: int = Field(ge=0)


class AudioRecorder:
    """
    Collects audio chunks between a start and a stop signal.

    Usage:
        recorder.start(mic)          # press
        recorder.push_chunk(chunk)   # while held
        clip = recorder.stop()       # release
    """

    def __init__(self, mime_type: str = "audio/wav"):
        self._mime_type = mime_type
        self._state = RecorderState.IDLE
        self._chunks: list[bytes] = []
        self._microphone: Optional[Microphone] = None

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == RecorderState.RECORDING

    @property
    def mime_type(self) -> str:
        return self._mime_type

    def start(self, microphone: Microphone) -> None:
        """
        Open the microphone and begin collecting chunks.

        Raises:
            MicrophoneUnavailableError: If the microphone can't be opened.
                The recorder stays idle.
            CaptureError: If a recording is already in progress.
        """
        if self.is_recording:
            raise CaptureError("Recording already in progress")

        try:
            microphone.open()
        except Exception as e:
            logger.warning("microphone_unavailable", error=str(e))
            raise MicrophoneUnavailableError(f"Microphone unavailable: {e}") from e

        self._microphone = microphone
        self._chunks = []
        self._state = RecorderState.RECORDING

    def push_chunk(self, chunk: bytes) -> None:
        """Append a chunk; ignored unless recording."""
        if not self.is_recording:
            return
        if chunk:
            self._chunks.append(bytes(chunk))

    def stop(self) -> Optional[AudioClip]:
        """
        Finish the recording.

        Returns the concatenated clip, or None if nothing was recorded
        or the recorder was idle.
        """
        if not self.is_recording:
            return None

        microphone = self._microphone
        payload = b"".join(self._chunks)
        self._chunks = []
        self._microphone = None
        self._state = RecorderState.IDLE

        if microphone is not None:
            try:
                microphone.close()
            except Exception as e:
                logger.warning("microphone_release_failed", error=str(e))

        if not payload:
            return None
        return self._encode(payload)

    def record_clip(self, payload: bytes) -> Optional[AudioClip]:
        """Wrap a recording the host has already finished (no microphone involved)."""
        if self.is_recording:
            raise CaptureError("Recording already in progress")
        if not payload:
            return None
        return self._encode(payload)

    def _encode(self, payload: bytes) -> AudioClip:
        return AudioClip(
            mime_type=self._mime_type,
            data=base64.b64encode(payload).decode("ascii"),
            size_bytes=len(payload),
        )
