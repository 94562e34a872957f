"""Async data access for saved diagnoses.

Records are written to the `history` collection of an `AsyncDocumentStore`
and always belong to the identity that was signed in when they were saved.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiosqlite

from dal.document_store import SERVER_TIMESTAMP, AsyncDocumentStore
from models.diagnosis import DiagnosisResult, LanguageCode, Severity
from models.history_record import HistoryRecord
from services.identity_session import IdentitySession
from utils.errors import WriteFailure

HISTORY_COLLECTION = "history"


class HistoryRepository:
    """Save and list diagnosis records for the current identity."""

    def __init__(self, store: AsyncDocumentStore, identity: IdentitySession) -> None:
        self._store = store
        self._identity = identity

    async def save(self, result: DiagnosisResult, severity: Optional[Severity] = None) -> str:
        """Persist `result` for the signed-in identity and return the document id.

        The owner id always comes from the identity session.

        Raises:
            NotAuthenticated: Nobody is signed in.
            WriteFailure: The store could not complete the write.
        """
        owner_id = self._identity.current_subject()
        document: Dict[str, Any] = {
            "userId": owner_id,
            "disease": result.disease_label,
            "summary": result.summary,
            "treatment": result.treatment,
            "language": result.language.value,
            "createdAt": SERVER_TIMESTAMP,
        }
        if severity is not None:
            document["severity"] = severity.value

        try:
            return await self._store.add(HISTORY_COLLECTION, document)
        except (aiosqlite.Error, OSError) as exc:
            logging.error("Failed to save diagnosis for %s: %s", owner_id, exc)
            raise WriteFailure("Diagnosis could not be saved.") from exc

    async def list_for_owner(self, owner_id: str) -> List[HistoryRecord]:
        """Return every record owned by `owner_id`, unordered."""
        documents = await self._store.where_equal(HISTORY_COLLECTION, "userId", owner_id)
        return [
            self._document_to_record(doc)
            for doc in documents
            if doc.get("userId") == owner_id
        ]

    @staticmethod
    def _document_to_record(doc: Dict[str, Any]) -> HistoryRecord:
        """Convert a stored document into a HistoryRecord."""
        try:
            language = LanguageCode.parse(doc.get("language") or LanguageCode.EN.value)
        except ValueError:
            language = LanguageCode.EN
        return HistoryRecord(
            id=doc["id"],
            owner_id=doc["userId"],
            disease_label=doc.get("disease") or "",
            summary=doc.get("summary") or "",
            treatment=doc.get("treatment") or "",
            language=language,
            created_at=to_datetime(doc.get("createdAt")),
            severity=Severity.parse(doc.get("severity")),
        )


def to_datetime(value: Any) -> Optional[datetime]:
    """Convert a stored epoch-seconds timestamp to an aware datetime."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)
