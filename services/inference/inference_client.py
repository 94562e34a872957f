"""Description: Leaf disease identification over the generateContent HTTP API."""

import logging
import os
import time
from typing import Any, Optional

import httpx

from models.diagnosis import DiagnosisRequest
from services.inference.media_inputs import build_payload
from services.inference.response_parser import extract_text, extract_usage
from utils.errors import NetworkFailure, ServiceError

DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class InferenceClient:
    """Send one photo plus instruction to the inference service and return its text."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        """Initialize the client with a shared httpx client and API key."""
        if http_client is None:
            raise ValueError("HTTP client must be provided.")
        if not api_key:
            raise ValueError("Inference API key must be provided.")
        self.http = http_client
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_env(cls, http_client: httpx.AsyncClient) -> "InferenceClient":
        """Build a client from GEMINI_API_KEY, GEMINI_MODEL and GEMINI_BASE_URL."""
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY environment variable is not set")
        return cls(
            http_client,
            api_key,
            model=os.getenv("GEMINI_MODEL") or DEFAULT_MODEL,
            base_url=os.getenv("GEMINI_BASE_URL") or DEFAULT_BASE_URL,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def identify(self, request: DiagnosisRequest) -> str:
        """Return the raw diagnosis text for `request`.

        Raises:
            NetworkFailure: The service could not be reached.
            ServiceError: The service answered with a non-success status or a
                body that is not JSON, or the call failed unexpectedly.
        """
        start_time = time.time()
        payload = await self._create_response(build_payload(request))
        text = extract_text(payload)
        usage = extract_usage(payload)
        logging.info(
            "Identification finished in %.2fs (input_tokens=%s, output_tokens=%s)",
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return text

    async def _create_response(self, body: dict) -> Any:
        """POST the request body and return the decoded JSON response."""
        try:
            response = await self.http.post(
                self.endpoint,
                params={"key": self.api_key},
                json=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.TransportError as exc:
            logging.error("Inference service unreachable: %s", exc)
            raise NetworkFailure("Inference service unreachable.") from exc
        except Exception as exc:
            logging.error("Error during inference call: %s", exc)
            raise ServiceError("Inference call failed.") from exc

        if response.is_error:
            logging.error("Inference service returned HTTP %s: %s", response.status_code, _snippet(response))
            raise ServiceError(
                f"Inference service returned HTTP {response.status_code}.",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            logging.error("Inference response is not JSON: %s", _snippet(response))
            raise ServiceError("Inference response is not JSON.", status_code=response.status_code) from exc


def _snippet(response: httpx.Response, limit: int = 200) -> Optional[str]:
    try:
        return response.text[:limit]
    except Exception:
        return None
