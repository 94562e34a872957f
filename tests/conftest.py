import pytest

from dal.document_store import AsyncDocumentStore
from models.diagnosis import DiagnosisResult, LanguageCode
from services.capture import CameraPermission, CaptureController
from tests.fakes import StaticCamera, make_jpeg
from utils.database_init import AsyncDatabaseInitializer


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg()


@pytest.fixture
def granted() -> CameraPermission:
    return CameraPermission(granted=True)


@pytest.fixture
def capture_controller(tmp_path, jpeg_bytes, granted) -> CaptureController:
    return CaptureController(StaticCamera(jpeg_bytes), granted, capture_dir=tmp_path / "captures")


@pytest.fixture
def document_store(tmp_path) -> AsyncDocumentStore:
    return AsyncDocumentStore(AsyncDatabaseInitializer(tmp_path / "db"))


@pytest.fixture
def sample_result() -> DiagnosisResult:
    return DiagnosisResult(
        disease_label="Detected Disease",
        summary="Leaf rust detected.",
        treatment="See details above",
        language=LanguageCode.EN,
    )
