"""Audio port — abstract interface for a voice capture device.

Core modules depend on this protocol, never on a specific recorder.
"""

from __future__ import annotations

from typing import Callable, Protocol


class AudioCaptureError(Exception):
    """Raised when the capture device cannot be acquired or fails mid-recording."""


class AudioCapture(Protocol):
    """Produces binary chunks between start() and stop()."""

    mime_type: str

    async def start(self, on_chunk: Callable[[bytes], None]) -> None: ...

    async def stop(self) -> None: ...
