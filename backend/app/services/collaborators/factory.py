"""Collaborator factories driven by settings."""
from __future__ import annotations

import logging
from functools import lru_cache

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.ai_estimator import OpenAIEstimationService
from app.services.collaborators.base import CalendarSource, CompletedTaskLog, EstimationService, TaskStore
from app.services.collaborators.memory import InMemoryCompletedTaskLog, InMemoryTaskStore, StaticCalendarSource
from app.services.completed_task_log import SqlCompletedTaskLog

logger = logging.getLogger(__name__)


@lru_cache
def get_task_store() -> TaskStore:
    provider = settings.task_store_provider.lower()
    if provider != "memory":
        logger.warning("Unknown task store provider %r; using the in-memory store", provider)
    return InMemoryTaskStore()


@lru_cache
def get_calendar_source() -> CalendarSource:
    provider = settings.calendar_provider.lower()
    if provider != "memory":
        logger.warning("Unknown calendar provider %r; using an empty calendar", provider)
    return StaticCalendarSource()


@lru_cache
def get_estimation_service() -> EstimationService:
    return OpenAIEstimationService(settings)


@lru_cache
def get_completed_task_log() -> CompletedTaskLog:
    provider = settings.completed_log_provider.lower()
    if provider == "memory":
        return InMemoryCompletedTaskLog()
    return SqlCompletedTaskLog(SessionLocal)
