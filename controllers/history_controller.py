from typing import Any, Dict, Optional

from fastapi import HTTPException, Request

from dal.article_dal import ARTICLE_CATEGORIES, ArticleRepository
from dal.document_store import AsyncDocumentStore
from dal.history_dal import HistoryRepository
from services.history_view import history_headline, render_article, render_history_card
from services.identity_session import IdentitySession
from services.list_filter import ARTICLE_FILTER, HISTORY_FILTER, filter_records
from utils.errors import NotAuthenticated


async def list_history(request: Request, query: Optional[str], category: Optional[str]) -> Dict[str, Any]:
    """Return the signed-in user's saved diagnoses, filtered and newest first.

    Args:
        request: FastAPI Request (used to access the store and identity session).
        query: Optional case-insensitive search text.
        category: Optional severity filter; "All" or empty disables it.

    Returns:
        A dict with a `headline` and the rendered `records`.

    Raises:
        HTTPException(401) if nobody is signed in.
    """
    identity: IdentitySession = request.app.state.identity
    store: AsyncDocumentStore = request.app.state.document_store

    try:
        owner_id = identity.current_subject()
    except NotAuthenticated as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    records = await HistoryRepository(store, identity).list_for_owner(owner_id)
    visible = filter_records(records, query, category, HISTORY_FILTER)
    return {
        "headline": history_headline(len(records)),
        "total": len(records),
        "records": [render_history_card(r) for r in visible],
    }


async def list_articles(request: Request, query: Optional[str], category: Optional[str]) -> Dict[str, Any]:
    """Return reference articles filtered by search text and category, newest first."""
    store: AsyncDocumentStore = request.app.state.document_store
    articles = await ArticleRepository(store).list_all()
    visible = filter_records(articles, query, category, ARTICLE_FILTER)
    return {
        "categories": ARTICLE_CATEGORIES,
        "articles": [render_article(a) for a in visible],
    }
