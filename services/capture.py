"""Camera capture for the diagnosis pipeline.

`CaptureController` turns one shutter action into a `CapturedImage` backed by a
temporary file under the capture directory. Callers own the image and must
release it (or use `captured()`) when they retry or leave the pipeline.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional, Protocol

import aiofiles
import aiofiles.os

from models.diagnosis import CapturedImage
from services.thumbnail_generator import ThumbnailGenerator, detect_encoding
from utils.errors import CaptureFailure, PermissionDenied


class CameraSession(Protocol):
    """Anything that can produce one encoded still frame on request."""

    async def take_picture(self) -> Optional[bytes]:
        ...


@dataclass
class CameraPermission:
    """Camera access grant, acquired outside the pipeline."""

    granted: bool = False

    def grant(self) -> None:
        self.granted = True

    def revoke(self) -> None:
        self.granted = False


class FrameBufferCamera:
    """Camera session fed by frames uploaded from a remote client.

    Each loaded frame is handed out once; a capture without a pending frame
    produces nothing.
    """

    def __init__(self) -> None:
        self._pending: Optional[bytes] = None

    def load(self, frame: bytes) -> None:
        self._pending = frame

    async def take_picture(self) -> Optional[bytes]:
        frame, self._pending = self._pending, None
        return frame


class CaptureController:
    """Produce `CapturedImage`s from a camera session.

    Args:
        camera: Session that supplies the raw frame.
        permission: Camera grant; checked on every capture.
        capture_dir: Directory for temporary display files. Falls back to
            CAPTURE_DIR, then `<DATABASE_DIR>/captures`.
    """

    def __init__(
        self,
        camera: CameraSession,
        permission: CameraPermission,
        capture_dir: Optional[Path | str] = None,
    ) -> None:
        self.camera = camera
        self.permission = permission
        self.capture_dir = Path(capture_dir) if capture_dir else _default_capture_dir()
        self.previews = ThumbnailGenerator()

    async def capture(self) -> CapturedImage:
        """Take one picture and write it to a temporary file.

        Raises:
            PermissionDenied: Camera access has not been granted.
            CaptureFailure: The session produced no frame or an undecodable one.
        """
        if not self.permission.granted:
            raise PermissionDenied("Camera permission has not been granted.")

        try:
            frame = await self.camera.take_picture()
        except Exception as exc:
            logging.error("Camera session failed to produce a frame: %s", exc)
            raise CaptureFailure("Camera did not produce a frame.") from exc
        if not frame:
            raise CaptureFailure("Camera did not produce a frame.")

        try:
            encoding = detect_encoding(frame)
        except ValueError as exc:
            raise CaptureFailure(str(exc)) from exc

        handle = self.capture_dir / f"{uuid.uuid4().hex}.{_extension(encoding)}"
        try:
            await asyncio.to_thread(self.capture_dir.mkdir, parents=True, exist_ok=True)
            async with aiofiles.open(handle, "wb") as f:
                await f.write(frame)
        except OSError as exc:
            logging.error("Failed to buffer captured frame at %s: %s", handle, exc)
            raise CaptureFailure("Captured frame could not be buffered.") from exc

        return CapturedImage(payload=frame, encoding=encoding, handle=handle)

    async def release(self, image: Optional[CapturedImage]) -> None:
        """Delete the temporary file behind `image`. Safe to call twice."""
        if image is None or image.released:
            return
        image.released = True
        try:
            await aiofiles.os.remove(image.handle)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logging.error("Failed to remove captured frame at %s: %s", image.handle, exc)

    @asynccontextmanager
    async def captured(self) -> AsyncIterator[CapturedImage]:
        """Capture an image and release it when the block exits."""
        image = await self.capture()
        try:
            yield image
        finally:
            await self.release(image)

    async def preview(self, image: CapturedImage) -> bytes:
        """Return a PNG preview of `image` for display."""
        return await asyncio.to_thread(self.previews.create_thumbnail, image.payload)


def _extension(encoding: str) -> str:
    return "jpg" if encoding == "jpeg" else encoding


def _default_capture_dir() -> Path:
    env_dir = os.getenv("CAPTURE_DIR")
    if env_dir and env_dir.strip():
        return Path(env_dir).expanduser()
    db_dir = os.getenv("DATABASE_DIR")
    if db_dir and db_dir.strip():
        return Path(db_dir).expanduser() / "captures"
    raise RuntimeError("CAPTURE_DIR or DATABASE_DIR must be set to buffer captured frames.")
