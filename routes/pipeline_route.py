"""FastAPI routes for the capture, identify and save pipeline."""

from typing import Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from controllers.pipeline_controller import DiagnosisPipeline, PipelineState
from models.diagnosis import Severity
from services.capture import CameraPermission, FrameBufferCamera

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


class LanguagePayload(BaseModel):
	language: str


class SavePayload(BaseModel):
	severity: Optional[str] = None


def _pipeline(request: Request) -> DiagnosisPipeline:
	pipeline = getattr(request.app.state, "pipeline", None)
	if pipeline is None:
		raise HTTPException(status_code=500, detail="Pipeline not initialized.")
	return pipeline


def _outcome(pipeline: DiagnosisPipeline, accepted: bool):
	"""Return the snapshot, or 409 when the pipeline refused the transition."""
	if not accepted:
		raise HTTPException(status_code=409, detail=pipeline.snapshot())
	return pipeline.snapshot()


@router.get("")
async def get_pipeline(request: Request):
	return _pipeline(request).snapshot()


@router.post("/permission")
async def grant_camera_permission(request: Request):
	"""Record that the user granted camera access."""
	permission: CameraPermission = request.app.state.camera_permission
	permission.grant()
	return {"granted": True}


@router.post("/capture")
async def capture_photo(request: Request, photo: UploadFile = File(...)):
	"""Take the uploaded frame as the shutter action."""
	pipeline = _pipeline(request)
	if pipeline.state is not PipelineState.IDLE:
		raise HTTPException(status_code=409, detail=pipeline.snapshot())
	try:
		frame = await photo.read()
	except Exception as exc:  # pylint: disable=broad-exception-caught
		raise HTTPException(status_code=400, detail="Unable to read uploaded photo.") from exc

	camera: FrameBufferCamera = request.app.state.camera
	camera.load(frame)
	return _outcome(pipeline, await pipeline.capture())


@router.post("/identify")
async def identify_photo(request: Request):
	pipeline = _pipeline(request)
	return _outcome(pipeline, await pipeline.identify())


@router.post("/retry")
async def retry_photo(request: Request):
	pipeline = _pipeline(request)
	return _outcome(pipeline, await pipeline.retry())


@router.post("/save")
async def save_result(request: Request, payload: Optional[SavePayload] = None):
	pipeline = _pipeline(request)
	severity = Severity.parse(payload.severity) if payload else None
	return _outcome(pipeline, await pipeline.save(severity))


@router.put("/language")
async def set_language(request: Request, payload: LanguagePayload):
	pipeline = _pipeline(request)
	try:
		accepted = pipeline.set_language(payload.language)
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	return _outcome(pipeline, accepted)


@router.get("/preview")
async def get_preview(request: Request):
	"""Return the held photo as a PNG preview."""
	pipeline = _pipeline(request)
	try:
		png = await pipeline.preview()
	except ValueError as exc:
		raise HTTPException(status_code=500, detail=str(exc)) from exc
	if png is None:
		raise HTTPException(status_code=404, detail="No photo captured")
	return Response(content=png, media_type="image/png")
