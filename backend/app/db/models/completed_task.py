"""Completed task ORM model."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, Index, Integer, Text, func

from app.db.base import Base


class CompletedTask(Base):
    """One row per task the user finished; read by the review analytics."""

    __tablename__ = "completed_tasks"
    __table_args__ = (
        Index("ix_completed_tasks_user_id", "user_id"),
        Index("ix_completed_tasks_completed_at", "completed_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(Text, nullable=False)
    user_id = Column(Text, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    title = Column(Text, nullable=False)
    est_time = Column(Integer, nullable=True)
    urgency = Column(Integer, nullable=True)
    importance = Column(Integer, nullable=True)
    context = Column(Text, nullable=True)
    list_name = Column(Text, nullable=True)
    energy = Column(Text, nullable=True, server_default="medium")
