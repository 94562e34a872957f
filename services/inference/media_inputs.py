"""Utilities to build multimodal payloads for the generateContent API."""

from typing import Any, Dict, List

from models.diagnosis import DiagnosisRequest
from services.inference.prompts import build_instruction


def build_parts(instruction: str, image_b64: str, mime_type: str) -> List[Dict[str, Any]]:
    """Compose the ordered content parts: instruction text first, then the inline image."""
    return [
        {"text": instruction},
        {"inlineData": {"mimeType": mime_type, "data": image_b64}},
    ]


def build_payload(request: DiagnosisRequest) -> Dict[str, Any]:
    """Build the JSON body for a single-shot identification request."""
    parts = build_parts(
        build_instruction(request.language),
        request.image.base64,
        request.image.mime_type,
    )
    return {"contents": [{"parts": parts}]}
