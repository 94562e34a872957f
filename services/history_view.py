"""Display helpers for history cards and the article feed."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from models.diagnosis import Severity
from models.history_record import ArticleRecord, HistoryRecord

SEVERITY_COLORS = {
    Severity.LOW: "#C8E6C9",
    Severity.MEDIUM: "#FFE082",
    Severity.HIGH: "#FFAB91",
}
DEFAULT_SEVERITY_COLOR = "#E0E0E0"

CATEGORY_COLORS = {
    "plant care": "#4CAF50",
    "diseases": "#FF6B6B",
    "watering": "#42A5F5",
    "fertilizing": "#FFA726",
    "pruning": "#AB47BC",
    "tips": "#26C6DA",
}
DEFAULT_CATEGORY_COLOR = "#66BB6A"


def format_timestamp(ts: Optional[datetime]) -> str:
    """Return e.g. "Oct 17, 2026, 09:30 AM", or "No date"."""
    if ts is None:
        return "No date"
    return ts.strftime("%b %d, %Y, %I:%M %p")


def relative_date(ts: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Return "Today", "Yesterday", "N days ago" within a week, else a short date."""
    if ts is None:
        return "Unknown date"
    now = now or datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    days = abs(now - ts).days
    if days == 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    return ts.strftime("%b %d, %Y")


def severity_color(severity: Optional[Severity]) -> str:
    return SEVERITY_COLORS.get(severity, DEFAULT_SEVERITY_COLOR)


def category_color(category: Optional[str]) -> str:
    return CATEGORY_COLORS.get((category or "").lower(), DEFAULT_CATEGORY_COLOR)


def history_headline(count: int) -> str:
    """Return the list header, e.g. "3 diagnoses recorded"."""
    noun = "diagnosis" if count == 1 else "diagnoses"
    return f"{count} {noun} recorded"


def render_history_card(record: HistoryRecord) -> Dict[str, Any]:
    """Return the display fields for one saved diagnosis."""
    summary = record.summary or "No summary available"
    return {
        "id": record.id,
        "disease": record.disease_label or "Unknown Disease",
        "date": format_timestamp(record.created_at),
        "summary": summary,
        "preview": summary if len(summary) <= 140 else summary[:137].rstrip() + "...",
        "treatment": record.treatment or "No treatment details available",
        "language": record.language.value,
        "severity": record.severity.value if record.severity else None,
        "severity_color": severity_color(record.severity) if record.severity else None,
    }


def render_article(record: ArticleRecord, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Return the display fields for one article."""
    return {
        "id": record.id,
        "title": record.title,
        "summary": record.summary,
        "category": record.category,
        "category_color": category_color(record.category),
        "date": relative_date(record.created_at, now),
    }
