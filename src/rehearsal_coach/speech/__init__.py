"""Speech capture, transcript assembly and timing boundaries."""

from .capability import CapabilityProbe, GrantedPermission, PermissionStatus, speech_recognition_available
from .interfaces import CaptureListener, MicrophonePermissionProvider, PermissionResult, SpeechCaptureProvider
from .scripted import ScriptedCaptureProvider, load_script
from .timer import AsyncioTicker, ElapsedTimer, ManualTicker, TickSource, format_elapsed
from .transcript import TranscriptState, apply_batch, apply_batches

__all__ = [
    "AsyncioTicker",
    "CapabilityProbe",
    "CaptureListener",
    "ElapsedTimer",
    "GrantedPermission",
    "ManualTicker",
    "MicrophonePermissionProvider",
    "PermissionResult",
    "PermissionStatus",
    "ScriptedCaptureProvider",
    "SpeechCaptureProvider",
    "TickSource",
    "TranscriptState",
    "apply_batch",
    "apply_batches",
    "format_elapsed",
    "load_script",
    "speech_recognition_available",
]
