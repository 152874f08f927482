"""
TCF Manager — Voice notes.

A voice note is stored inline on its report as a self-contained data URI
(``data:<mime>;base64,<payload>``). The recorder turns the chunk stream
of an AudioCapture device into that payload.
"""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING

from tcf_manager.ports.audio_port import AudioCaptureError

if TYPE_CHECKING:
    from tcf_manager.ports.audio_port import AudioCapture

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "audio/webm"
MICROPHONE_ALERT = "Could not access microphone. Please check permissions."

_AUDIO_EXTENSIONS = {
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".wav": "audio/wav",
}


def encode_audio_note(data: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_audio_note(payload: str) -> tuple[str, bytes]:
    """Split a data URI into (mime_type, raw bytes).

    Raises ValueError on anything that is not a base64 data URI.
    """
    if not payload.startswith("data:") or "," not in payload:
        raise ValueError("Not a data URI")
    header, encoded = payload[5:].split(",", 1)
    if not header.endswith(";base64"):
        raise ValueError("Audio note is not base64 encoded")
    mime_type = header[: -len(";base64")] or DEFAULT_MIME_TYPE
    try:
        return mime_type, base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Corrupt audio payload: {exc}") from exc


def audio_note_from_file(path: str | Path) -> str:
    """Build a voice-note payload from an existing audio file."""
    path = Path(path)
    mime_type = _AUDIO_EXTENSIONS.get(path.suffix.lower())
    if mime_type is None:
        mime_type = mimetypes.guess_type(path.name)[0] or DEFAULT_MIME_TYPE
    payload = encode_audio_note(path.read_bytes(), mime_type)
    logger.info("Loaded audio note from %s (%s)", path.name, mime_type)
    return payload


class AudioNoteRecorder:
    """Collects chunks from a capture device between start() and stop()."""

    def __init__(self, capture: AudioCapture) -> None:
        self._capture = capture
        self._chunks: list[bytes] = []
        self.is_recording = False

    def _on_chunk(self, chunk: bytes) -> None:
        if self.is_recording and chunk:
            self._chunks.append(chunk)

    async def start(self) -> str | None:
        """Begin recording. Returns a user-facing alert if the device is unavailable."""
        if self.is_recording:
            return None
        self._chunks = []
        self.is_recording = True
        try:
            await self._capture.start(self._on_chunk)
        except AudioCaptureError as exc:
            logger.error("Error accessing microphone: %s", exc)
            self.reset()
            return MICROPHONE_ALERT
        return None

    async def stop(self) -> str | None:
        """Stop recording and return the assembled payload, or None if nothing was captured."""
        if not self.is_recording:
            return None
        try:
            await self._capture.stop()
        except AudioCaptureError as exc:
            logger.error("Recording failed while stopping: %s", exc)
            self.reset()
            return None
        self.is_recording = False
        chunks, self._chunks = self._chunks, []
        if not chunks:
            return None
        return encode_audio_note(b"".join(chunks), self._capture.mime_type)

    def reset(self) -> None:
        """Drop buffered audio; later chunks are ignored until the next start()."""
        self.is_recording = False
        self._chunks = []
