"""Multimodal capture package."""

from smart_ledger.capture.errors import (
    CaptureError,
    MicrophoneUnavailableError,
    NothingStagedError,
    UnsupportedMediaError,
)
from smart_ledger.capture.recorder import AudioClip, AudioRecorder, Microphone, RecorderState
from smart_ledger.capture.session import CaptureSession, StagedImage

__all__ = [
    "AudioClip",
    "AudioRecorder",
    "CaptureError",
    "CaptureSession",
    "Microphone",
    "MicrophoneUnavailableError",
    "NothingStagedError",
    "RecorderState",
    "StagedImage",
    "UnsupportedMediaError",
]
