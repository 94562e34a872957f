"""Prompt builders for leaf disease identification."""

from models.diagnosis import LanguageCode


def build_instruction(language: LanguageCode) -> str:
    """Return the instruction sent alongside the leaf photo."""
    return f"Identify the plant disease and give summary and treatment in {language.value}"
