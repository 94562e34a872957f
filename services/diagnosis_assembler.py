"""Map raw inference text into the record shape shown and saved by the app."""

from models.diagnosis import DiagnosisResult, LanguageCode
from services.inference.response_parser import NO_RESULT

DISEASE_LABEL_PLACEHOLDER = "Detected Disease"
TREATMENT_PLACEHOLDER = "See details above"


class DiagnosisAssembler:
    """Build `DiagnosisResult`s from inference text.

    The service answers in free text, so the disease label and treatment are
    fixed placeholders and the whole answer is carried in `summary`.
    """

    def __init__(
        self,
        disease_label: str = DISEASE_LABEL_PLACEHOLDER,
        treatment: str = TREATMENT_PLACEHOLDER,
    ) -> None:
        self.disease_label = disease_label
        self.treatment = treatment

    def assemble(self, raw_text: str | None, language: LanguageCode) -> DiagnosisResult:
        """Return the normalized result; blank text becomes the NO_RESULT sentinel."""
        has_text = isinstance(raw_text, str) and bool(raw_text.strip())
        return DiagnosisResult(
            disease_label=self.disease_label,
            summary=raw_text if has_text else NO_RESULT,
            treatment=self.treatment,
            language=language,
        )
