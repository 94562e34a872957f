"""State machine that drives capture, identification and saving of one diagnosis."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional

from dal.history_dal import HistoryRepository
from models.diagnosis import CapturedImage, DiagnosisRequest, DiagnosisResult, LanguageCode, Severity
from services.capture import CaptureController
from services.diagnosis_assembler import DiagnosisAssembler
from services.inference.inference_client import InferenceClient
from utils.errors import (
    CaptureFailure,
    NetworkFailure,
    NotAuthenticated,
    PermissionDenied,
    ServiceError,
    WriteFailure,
)

NO_CAMERA_ACCESS = "No camera access"
CAPTURE_FAILED = "Failed to capture photo"
IDENTIFY_FAILED = "Failed to identify disease"
SAVE_FAILED = "Save failed"
SIGN_IN_TO_SAVE = "Sign in to save your diagnosis"
SAVED = "Saved to history"


class PipelineState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    CAPTURED = "captured"
    IDENTIFYING = "identifying"
    RESULTED = "resulted"
    SAVING = "saving"


LANGUAGE_EDITABLE = (PipelineState.CAPTURED, PipelineState.RESULTED)


class DiagnosisPipeline:
    """Coordinate one photo at a time through capture, inference and save.

    Every public transition checks the current state before its first await
    and returns False when the call is not allowed, so duplicate taps are
    dropped without side effects. Stage failures are turned into a state
    change plus `notice`; they never propagate to the caller.

    Args:
        capture: Produces and releases captured images.
        inference: Sends identification requests.
        history: Persists results for the signed-in identity.
        assembler: Normalizes raw inference text.
    """

    def __init__(
        self,
        capture: CaptureController,
        inference: InferenceClient,
        history: HistoryRepository,
        assembler: Optional[DiagnosisAssembler] = None,
    ) -> None:
        self.capture_controller = capture
        self.inference = inference
        self.history = history
        self.assembler = assembler or DiagnosisAssembler()

        self.state = PipelineState.IDLE
        self.language = LanguageCode.EN
        self.image: Optional[CapturedImage] = None
        self.result: Optional[DiagnosisResult] = None
        self.notice: Optional[str] = None
        self.needs_permission = False
        self.last_saved_id: Optional[str] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def capture(self) -> bool:
        """Take a photo. Allowed only in IDLE."""
        if not self._accepts("capture", PipelineState.IDLE):
            return False
        self.state = PipelineState.CAPTURING
        self._set_notice(None)

        try:
            image = await self.capture_controller.capture()
        except PermissionDenied as exc:
            logging.warning("Capture refused: %s", exc)
            return self._capture_failed(NO_CAMERA_ACCESS, needs_permission=True)
        except CaptureFailure as exc:
            logging.warning("Capture failed: %s", exc)
            return self._capture_failed(CAPTURE_FAILED)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logging.exception("Unexpected capture error: %s", exc)
            return self._capture_failed(CAPTURE_FAILED)

        if self._closed:
            await self.capture_controller.release(image)
            return False
        self.image = image
        self.result = None
        self.state = PipelineState.CAPTURED
        return True

    async def identify(self) -> bool:
        """Send the held photo for identification. Allowed only in CAPTURED."""
        if not self._accepts("identify", PipelineState.CAPTURED):
            return False
        request = DiagnosisRequest(image=self.image, language=self.language)
        self.state = PipelineState.IDENTIFYING
        self._set_notice(None)

        raw_text: Optional[str] = None
        try:
            raw_text = await self.inference.identify(request)
        except NetworkFailure as exc:
            logging.warning("Identification failed (network): %s", exc)
        except ServiceError as exc:
            logging.warning("Identification failed (service, status=%s): %s", exc.status_code, exc)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logging.exception("Identification failed (unexpected): %s", exc)

        if self._closed:
            return False
        if raw_text is None:
            self.state = PipelineState.CAPTURED
            self._set_notice(IDENTIFY_FAILED)
            return True

        self.result = self.assembler.assemble(raw_text, request.language)
        self.state = PipelineState.RESULTED
        return True

    async def retry(self) -> bool:
        """Discard the photo and any result. Allowed in CAPTURED and RESULTED."""
        if not self._accepts("retry", PipelineState.CAPTURED, PipelineState.RESULTED):
            return False
        image = self._reset()
        self._set_notice(None)
        await self.capture_controller.release(image)
        return True

    async def save(self, severity: Optional[Severity] = None) -> bool:
        """Persist the current result. Allowed only in RESULTED."""
        if not self._accepts("save", PipelineState.RESULTED):
            return False
        self.state = PipelineState.SAVING
        self._set_notice(None)

        failure: Optional[str] = None
        record_id: Optional[str] = None
        try:
            record_id = await self.history.save(self.result, severity)
        except NotAuthenticated as exc:
            logging.warning("Save refused: %s", exc)
            failure = SIGN_IN_TO_SAVE
        except WriteFailure as exc:
            logging.warning("Save failed: %s", exc)
            failure = SAVE_FAILED
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logging.exception("Unexpected save error: %s", exc)
            failure = SAVE_FAILED

        if self._closed:
            return False
        if failure is not None:
            self.state = PipelineState.RESULTED
            self._set_notice(failure)
            return True

        self.last_saved_id = record_id
        image = self._reset()
        self._set_notice(SAVED)
        await self.capture_controller.release(image)
        return True

    def set_language(self, code: LanguageCode | str) -> bool:
        """Change the answer language. Allowed in CAPTURED and RESULTED.

        Raises:
            ValueError: If `code` is not a supported language.
        """
        language = code if isinstance(code, LanguageCode) else LanguageCode.parse(code)
        if not self._accepts("set_language", *LANGUAGE_EDITABLE):
            return False
        self.language = language
        return True

    async def close(self) -> None:
        """Leave the pipeline: release the photo and ignore calls still in flight."""
        self._closed = True
        image = self._reset()
        await self.capture_controller.release(image)

    async def preview(self) -> Optional[bytes]:
        """Return a PNG preview of the held photo, or None without one."""
        if self.image is None:
            return None
        return await self.capture_controller.preview(self.image)

    def snapshot(self) -> Dict[str, Any]:
        """Return a JSON-safe view of the pipeline for presentation."""
        return {
            "state": self.state.value,
            "language": self.language.value,
            "language_name": self.language.display_name,
            "closed": self.closed,
            "has_image": self.image is not None,
            "result": self.result.as_dict() if self.result else None,
            "notice": self.notice,
            "needs_permission": self.needs_permission,
            "last_saved_id": self.last_saved_id,
        }

    def _accepts(self, action: str, *allowed: PipelineState) -> bool:
        if self._closed:
            logging.info("Ignoring %s on a closed pipeline", action)
            return False
        if self.state not in allowed:
            logging.info("Ignoring %s while %s", action, self.state.value)
            return False
        return True

    def _capture_failed(self, notice: str, needs_permission: bool = False) -> bool:
        if self._closed:
            return False
        self.state = PipelineState.IDLE
        self._set_notice(notice, needs_permission=needs_permission)
        return True

    def _reset(self) -> Optional[CapturedImage]:
        """Return to IDLE and hand back the image that needs releasing."""
        image, self.image = self.image, None
        self.result = None
        self.state = PipelineState.IDLE
        return image

    def _set_notice(self, notice: Optional[str], needs_permission: bool = False) -> None:
        self.notice = notice
        self.needs_permission = needs_permission
