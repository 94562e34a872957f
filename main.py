import logging
import os
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from controllers.pipeline_controller import DiagnosisPipeline
from dal.document_store import AsyncDocumentStore
from dal.history_dal import HistoryRepository
from routes.history_route import router as history_router
from routes.pipeline_route import router as pipeline_router
from routes.session_route import router as session_router
from services.capture import CameraPermission, CaptureController, FrameBufferCamera
from services.identity_session import IdentitySession
from services.inference.inference_client import InferenceClient
from utils.database_init import AsyncDatabaseInitializer

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite document store (at DATABASE_DIR/app.db)
      - the process-wide identity session
      - the shared httpx client and inference client
      - the capture controller and diagnosis pipeline
    and attach them to `app.state`.
    """
    db_initializer = AsyncDatabaseInitializer()
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer
    app.state.document_store = AsyncDocumentStore(db_initializer)

    app.state.identity = IdentitySession()

    http_client = httpx.AsyncClient()
    app.state.http_client = http_client
    try:
        inference = InferenceClient.from_env(http_client)
    except Exception:
        await http_client.aclose()
        raise
    app.state.inference_client = inference

    app.state.camera = FrameBufferCamera()
    app.state.camera_permission = CameraPermission()
    capture = CaptureController(
        app.state.camera,
        app.state.camera_permission,
        capture_dir=os.getenv("CAPTURE_DIR") or db_initializer.db_dir / "captures",
    )
    app.state.pipeline = DiagnosisPipeline(
        capture,
        inference,
        HistoryRepository(app.state.document_store, app.state.identity),
    )

    try:
        yield
    finally:
        await app.state.pipeline.close()
        await http_client.aclose()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that verifies the store and inference client are present.
        """
        has_db = hasattr(request.app.state, "document_store")
        has_inference = getattr(request.app.state, "inference_client", None) is not None
        return {"ok": True, "db_initialized": has_db, "inference_available": has_inference}

    app.include_router(session_router)
    app.include_router(pipeline_router)
    app.include_router(history_router)

    return app


app = create_app()
