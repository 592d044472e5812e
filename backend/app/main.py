"""Main FastAPI application for the DayPlan backend."""
from fastapi import FastAPI, Request

from app.api.routes.planner import router as planner_router
from app.api.routes.review import router as review_router
from app.api.routes.session import router as session_router
from app.core.config import settings
from app.core.logging import configure_logging
from app.core.middleware import RequestIDMiddleware
from app.db.base import Base
from app.db.session import engine
from app.db import models  # noqa: F401  (registers tables on Base.metadata)
from app.observability.client import init_opik
from app.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(planner_router)
app.include_router(session_router)
app.include_router(review_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.on_event("startup")
def create_completed_task_table() -> None:
    """The completed-task log is the only table; create it when missing."""
    if settings.completed_log_provider.lower() == "sql":
        Base.metadata.create_all(bind=engine)


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
