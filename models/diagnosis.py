from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class LanguageCode(str, Enum):
    """Languages the inference service is asked to answer in."""

    EN = "en"
    SI = "si"
    TA = "ta"
    ES = "es"
    FR = "fr"

    @property
    def display_name(self) -> str:
        return _LANGUAGE_NAMES[self]

    @classmethod
    def parse(cls, value: str) -> "LanguageCode":
        """Return the member for `value` or raise ValueError for unknown codes."""
        try:
            return cls((value or "").strip().lower())
        except ValueError as exc:
            supported = ", ".join(code.value for code in cls)
            raise ValueError(f"Unsupported language '{value}'. Supported: {supported}") from exc


_LANGUAGE_NAMES = {
    LanguageCode.EN: "English",
    LanguageCode.SI: "Sinhala",
    LanguageCode.TA: "Tamil",
    LanguageCode.ES: "Spanish",
    LanguageCode.FR: "French",
}


@dataclass
class CapturedImage:
    """A single still frame produced by the capture controller.

    Attributes:
        payload: Raw encoded image bytes.
        encoding: Image format tag detected from the frame (e.g. "jpeg").
        handle: Temporary file holding the frame for local display.
        released: True once the temporary file has been removed.
    """

    payload: bytes
    encoding: str
    handle: Path
    released: bool = False

    @property
    def mime_type(self) -> str:
        return f"image/{self.encoding}"

    @property
    def base64(self) -> str:
        return base64.b64encode(self.payload).decode("utf-8")


@dataclass(frozen=True)
class DiagnosisRequest:
    """One inference call: the image and the language for the answer."""

    image: CapturedImage
    language: LanguageCode = LanguageCode.EN


@dataclass(frozen=True)
class DiagnosisResult:
    """Normalized inference output ready for display or saving."""

    disease_label: str
    summary: str
    treatment: str
    language: LanguageCode

    def as_dict(self) -> dict:
        return {
            "disease_label": self.disease_label,
            "summary": self.summary,
            "treatment": self.treatment,
            "language": self.language.value,
        }


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Severity"]:
        """Return the member for `value`, None for blank or unknown values."""
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None
