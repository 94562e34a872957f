"""Async data access for the article browse feed."""

from __future__ import annotations

from typing import Any, Dict, List

from dal.document_store import SERVER_TIMESTAMP, AsyncDocumentStore
from dal.history_dal import to_datetime
from models.history_record import ArticleRecord

ARTICLES_COLLECTION = "articles"

ARTICLE_CATEGORIES = ["All", "Plant Care", "Diseases", "Watering", "Fertilizing", "Pruning", "Tips"]


class ArticleRepository:
    """Read reference articles; `add` exists for seeding content."""

    def __init__(self, store: AsyncDocumentStore) -> None:
        self._store = store

    async def add(self, title: str, summary: str, category: str) -> str:
        """Insert an article stamped with the store clock and return its id."""
        return await self._store.add(
            ARTICLES_COLLECTION,
            {"title": title, "summary": summary, "category": category, "createdAt": SERVER_TIMESTAMP},
        )

    async def list_all(self) -> List[ArticleRecord]:
        """Return every article, unordered."""
        documents = await self._store.get_all(ARTICLES_COLLECTION)
        return [self._document_to_record(doc) for doc in documents]

    @staticmethod
    def _document_to_record(doc: Dict[str, Any]) -> ArticleRecord:
        return ArticleRecord(
            id=doc["id"],
            title=doc.get("title") or "",
            summary=doc.get("summary") or "",
            category=doc.get("category") or "",
            created_at=to_datetime(doc.get("createdAt")),
        )
