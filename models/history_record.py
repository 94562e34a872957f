from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models.diagnosis import LanguageCode, Severity


@dataclass
class HistoryRecord:
    """In-memory representation of a saved diagnosis document.

    Attributes:
        id: Store-assigned document id.
        owner_id: Subject id of the identity that saved the record.
        disease_label: Disease label shown on the history card.
        summary: Full inference text.
        treatment: Treatment text.
        language: Language the diagnosis was requested in.
        created_at: Server-assigned creation time, None if the store had none.
        severity: Optional severity badge.
    """

    id: str
    owner_id: str
    disease_label: str
    summary: str
    treatment: str
    language: LanguageCode
    created_at: Optional[datetime] = None
    severity: Optional[Severity] = None


@dataclass
class ArticleRecord:
    """Read-only reference article shown in the browse feed."""

    id: str
    title: str
    summary: str
    category: str
    created_at: Optional[datetime] = None
