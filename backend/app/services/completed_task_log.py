"""Completed-task log persisted with SQLAlchemy."""
from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.completed_task import CompletedTask
from app.services.collaborators.base import CompletedTaskLog, CompletedTaskRecord
from app.services.errors import CollaboratorError

logger = logging.getLogger(__name__)

COMPLETED_LOG = "completed_log"


class SqlCompletedTaskLog(CompletedTaskLog):
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def append(self, record: CompletedTaskRecord) -> None:
        row = CompletedTask(
            task_id=record.task_id,
            user_id=record.user_id,
            title=record.title,
            est_time=record.est_time,
            urgency=record.urgency,
            importance=record.importance,
            context=record.context,
            list_name=record.list_name,
            energy=record.energy,
        )
        if record.completed_at is not None:
            row.completed_at = record.completed_at

        session = self._session_factory()
        try:
            session.add(row)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("Failed to store completed task %s: %s", record.task_id, exc)
            raise CollaboratorError(COMPLETED_LOG, "Could not save the completed task for analytics") from exc
        finally:
            session.close()
        logger.debug("Stored completed task %s for user %s", record.task_id, record.user_id)
