import asyncio

import pytest

from controllers.pipeline_controller import (
    CAPTURE_FAILED,
    IDENTIFY_FAILED,
    NO_CAMERA_ACCESS,
    SAVE_FAILED,
    SAVED,
    SIGN_IN_TO_SAVE,
    DiagnosisPipeline,
    PipelineState,
)
from dal.history_dal import HistoryRepository
from models.diagnosis import LanguageCode, Severity
from services.capture import CameraPermission, CaptureController
from services.identity_session import IdentitySession
from tests.fakes import FakeInference, RecordingHistory, StaticCamera
from utils.errors import NetworkFailure, NotAuthenticated, ServiceError, WriteFailure


def _pipeline(tmp_path, frame, inference=None, history=None, camera=None, permission=None):
    capture = CaptureController(
        camera or StaticCamera(frame),
        permission or CameraPermission(granted=True),
        capture_dir=tmp_path / "captures",
    )
    return DiagnosisPipeline(capture, inference or FakeInference(), history or RecordingHistory())


def test_happy_path_persists_session_owner(tmp_path, jpeg_bytes, document_store):
    identity = IdentitySession()
    identity.sign_in("session-user")
    pipeline = _pipeline(tmp_path, jpeg_bytes, history=HistoryRepository(document_store, identity))

    async def run():
        assert await pipeline.capture()
        assert pipeline.state is PipelineState.CAPTURED
        handle = pipeline.image.handle
        assert await pipeline.identify()
        assert pipeline.state is PipelineState.RESULTED
        assert await pipeline.save(Severity.LOW)
        return handle, await document_store.get_all("history")

    handle, docs = asyncio.run(run())

    assert pipeline.state is PipelineState.IDLE
    assert pipeline.notice == SAVED
    assert pipeline.image is None and pipeline.result is None
    assert not handle.exists()
    assert len(docs) == 1
    assert docs[0]["userId"] == "session-user"
    assert docs[0]["id"] == pipeline.last_saved_id
    assert docs[0]["summary"] == "Early blight. Remove infected leaves."


def test_second_capture_ignored_while_first_in_flight(tmp_path, jpeg_bytes):
    async def run():
        gate = asyncio.Event()
        camera = StaticCamera(jpeg_bytes, gate=gate)
        pipeline = _pipeline(tmp_path, jpeg_bytes, camera=camera)
        first = asyncio.create_task(pipeline.capture())
        await asyncio.sleep(0)
        assert pipeline.state is PipelineState.CAPTURING
        second = await pipeline.capture()
        gate.set()
        return pipeline, camera, await first, second

    pipeline, camera, first, second = asyncio.run(run())
    assert first is True
    assert second is False
    assert camera.calls == 1
    assert pipeline.state is PipelineState.CAPTURED


def test_capture_rejected_until_idle(tmp_path, jpeg_bytes):
    pipeline = _pipeline(tmp_path, jpeg_bytes)

    async def run():
        await pipeline.capture()
        assert not await pipeline.capture()
        await pipeline.retry()
        return await pipeline.capture()

    assert asyncio.run(run()) is True


def test_save_while_identifying_is_rejected(tmp_path, jpeg_bytes):
    history = RecordingHistory()

    async def run():
        gate = asyncio.Event()
        pipeline = _pipeline(tmp_path, jpeg_bytes, inference=FakeInference(gate=gate), history=history)
        await pipeline.capture()
        identify = asyncio.create_task(pipeline.identify())
        await asyncio.sleep(0)
        assert pipeline.state is PipelineState.IDENTIFYING
        rejected = await pipeline.save()
        duplicate = await pipeline.identify()
        gate.set()
        await identify
        return pipeline, rejected, duplicate

    pipeline, rejected, duplicate = asyncio.run(run())
    assert rejected is False
    assert duplicate is False
    assert history.saved == []
    assert pipeline.state is PipelineState.RESULTED


@pytest.mark.parametrize("error", [NetworkFailure("down"), ServiceError("500", status_code=500), RuntimeError("x")])
def test_identify_failure_returns_to_captured(tmp_path, jpeg_bytes, error):
    pipeline = _pipeline(tmp_path, jpeg_bytes, inference=FakeInference(error=error))

    async def run():
        await pipeline.capture()
        return await pipeline.identify()

    assert asyncio.run(run()) is True
    assert pipeline.state is PipelineState.CAPTURED
    assert pipeline.result is None
    assert pipeline.image is not None
    assert pipeline.notice == IDENTIFY_FAILED


def test_sentinel_result_when_service_has_no_text(tmp_path, jpeg_bytes):
    pipeline = _pipeline(tmp_path, jpeg_bytes, inference=FakeInference(text="No result"))

    async def run():
        await pipeline.capture()
        await pipeline.identify()

    asyncio.run(run())
    assert pipeline.result.summary == "No result"


@pytest.mark.parametrize(
    "error, notice",
    [(WriteFailure("store down"), SAVE_FAILED), (NotAuthenticated("nobody"), SIGN_IN_TO_SAVE)],
)
def test_save_failure_keeps_result(tmp_path, jpeg_bytes, error, notice):
    pipeline = _pipeline(tmp_path, jpeg_bytes, history=RecordingHistory(error=error))

    async def run():
        await pipeline.capture()
        await pipeline.identify()
        result = pipeline.result
        assert await pipeline.save()
        return result

    result = asyncio.run(run())
    assert pipeline.state is PipelineState.RESULTED
    assert pipeline.result is result
    assert pipeline.image is not None
    assert pipeline.notice == notice


def test_permission_denied_notice(tmp_path, jpeg_bytes):
    pipeline = _pipeline(tmp_path, jpeg_bytes, permission=CameraPermission())
    assert asyncio.run(pipeline.capture()) is True
    assert pipeline.state is PipelineState.IDLE
    assert pipeline.notice == NO_CAMERA_ACCESS
    assert pipeline.needs_permission is True


def test_capture_failure_notice(tmp_path):
    pipeline = _pipeline(tmp_path, b"not an image")
    asyncio.run(pipeline.capture())
    assert pipeline.state is PipelineState.IDLE
    assert pipeline.notice == CAPTURE_FAILED
    assert pipeline.needs_permission is False


def test_retry_discards_image_and_result(tmp_path, jpeg_bytes):
    pipeline = _pipeline(tmp_path, jpeg_bytes)

    async def run():
        assert not await pipeline.retry()
        await pipeline.capture()
        handle = pipeline.image.handle
        await pipeline.identify()
        assert await pipeline.retry()
        return handle

    handle = asyncio.run(run())
    assert pipeline.state is PipelineState.IDLE
    assert pipeline.image is None and pipeline.result is None
    assert not handle.exists()


def test_language_only_editable_with_photo(tmp_path, jpeg_bytes):
    inference = FakeInference()
    pipeline = _pipeline(tmp_path, jpeg_bytes, inference=inference)

    async def run():
        assert not pipeline.set_language("si")
        await pipeline.capture()
        assert pipeline.set_language("TA")
        await pipeline.identify()
        assert pipeline.set_language(LanguageCode.FR)

    asyncio.run(run())
    assert inference.requests[0].language is LanguageCode.TA
    assert pipeline.result.language is LanguageCode.TA
    assert pipeline.language is LanguageCode.FR
    with pytest.raises(ValueError):
        pipeline.set_language("de")


def test_close_discards_in_flight_identification(tmp_path, jpeg_bytes):
    async def run():
        gate = asyncio.Event()
        pipeline = _pipeline(tmp_path, jpeg_bytes, inference=FakeInference(gate=gate))
        await pipeline.capture()
        handle = pipeline.image.handle
        identify = asyncio.create_task(pipeline.identify())
        await asyncio.sleep(0)
        await pipeline.close()
        gate.set()
        return pipeline, handle, await identify

    pipeline, handle, applied = asyncio.run(run())
    assert applied is False
    assert pipeline.result is None
    assert pipeline.state is PipelineState.IDLE
    assert not handle.exists()
    assert asyncio.run(pipeline.capture()) is False


def test_snapshot_is_json_safe(tmp_path, jpeg_bytes):
    pipeline = _pipeline(tmp_path, jpeg_bytes)

    async def run():
        await pipeline.capture()
        await pipeline.identify()

    asyncio.run(run())
    snapshot = pipeline.snapshot()
    assert snapshot["state"] == "resulted"
    assert snapshot["has_image"] is True
    assert snapshot["result"]["disease_label"] == "Detected Disease"
    assert snapshot["language"] == "en"


def test_duplicate_save_ignored_while_saving(tmp_path, jpeg_bytes):
    async def run():
        gate = asyncio.Event()
        history = RecordingHistory(gate=gate)
        pipeline = _pipeline(tmp_path, jpeg_bytes, history=history)
        await pipeline.capture()
        await pipeline.identify()
        first = asyncio.create_task(pipeline.save())
        await asyncio.sleep(0)
        assert pipeline.state is PipelineState.SAVING
        duplicate = await pipeline.save()
        gate.set()
        return history, await first, duplicate

    history, first, duplicate = asyncio.run(run())
    assert first is True
    assert duplicate is False
    assert len(history.saved) == 1


def test_language_refused_while_calls_in_flight(tmp_path, jpeg_bytes):
    async def run():
        identify_gate = asyncio.Event()
        save_gate = asyncio.Event()
        pipeline = _pipeline(
            tmp_path,
            jpeg_bytes,
            inference=FakeInference(gate=identify_gate),
            history=RecordingHistory(gate=save_gate),
        )
        await pipeline.capture()
        identify = asyncio.create_task(pipeline.identify())
        await asyncio.sleep(0)
        during_identify = pipeline.set_language("fr")
        identify_gate.set()
        await identify

        save = asyncio.create_task(pipeline.save())
        await asyncio.sleep(0)
        assert pipeline.state is PipelineState.SAVING
        during_save = pipeline.set_language("si")
        save_gate.set()
        await save
        return pipeline, during_identify, during_save

    pipeline, during_identify, during_save = asyncio.run(run())
    assert during_identify is False
    assert during_save is False
    assert pipeline.language is LanguageCode.EN


def test_save_succeeds_when_photo_cannot_be_removed(tmp_path, jpeg_bytes):
    history = RecordingHistory()
    pipeline = _pipeline(tmp_path, jpeg_bytes, history=history)

    async def run():
        await pipeline.capture()
        await pipeline.identify()
        stuck = tmp_path / "stuck"
        stuck.mkdir()
        pipeline.image.handle.unlink()
        pipeline.image.handle = stuck
        return await pipeline.save()

    assert asyncio.run(run()) is True
    assert pipeline.state is PipelineState.IDLE
    assert pipeline.notice == SAVED
    assert len(history.saved) == 1


def test_snapshot_reports_language_name_and_closed(tmp_path, jpeg_bytes):
    pipeline = _pipeline(tmp_path, jpeg_bytes)

    async def run():
        await pipeline.capture()
        pipeline.set_language("ta")
        before = pipeline.snapshot()
        await pipeline.close()
        return before, pipeline.snapshot()

    before, after = asyncio.run(run())
    assert before["language_name"] == "Tamil"
    assert before["closed"] is False
    assert after["closed"] is True
    assert pipeline.closed
