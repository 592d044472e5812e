"""Review analytics endpoint."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.schemas.review import ReviewSummaryResponse
from app.core.config import settings
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.review_service import get_review_summary

router = APIRouter()


@router.get("/review/summary", response_model=ReviewSummaryResponse, tags=["review"])
def review_summary(
    request: Request,
    user_id: Optional[str] = Query(None, description="Planner user; defaults to the request user"),
    range_days: int = Query(7, ge=1, le=365),
    db: Session = Depends(get_db),
) -> ReviewSummaryResponse:
    request_id = getattr(request.state, "request_id", None) or ""
    resolved_user = user_id or getattr(request.state, "planner_user", None) or settings.planner_user_id
    metadata = {"route": "/review/summary", "user_id": resolved_user, "range_days": range_days}

    with trace("review.summary", metadata=metadata, user_id=resolved_user, request_id=request_id):
        summary = get_review_summary(db, resolved_user, range_days)

    log_metric("review.summary.completed_count", summary.completed_count, metadata={"user_id": resolved_user})
    return ReviewSummaryResponse(**summary.model_dump(), request_id=request_id)
