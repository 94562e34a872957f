from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from controllers.history_controller import list_articles, list_history
from dal.article_dal import ARTICLE_CATEGORIES

router = APIRouter()


@router.get("/history")
async def get_history(request: Request, q: Optional[str] = None, category: Optional[str] = None):
    """Return the signed-in user's diagnosis history."""
    try:
        return await list_history(request, q, category)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/articles")
async def get_articles(request: Request, q: Optional[str] = None, category: Optional[str] = None):
    """Return reference articles for the browse feed."""
    try:
        return await list_articles(request, q, category)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/articles/categories")
async def get_article_categories():
    return {"categories": ARTICLE_CATEGORIES}
