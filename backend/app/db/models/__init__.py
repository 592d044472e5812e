"""ORM models exposed for metadata discovery."""
from app.db.models.completed_task import CompletedTask

__all__ = [
    "CompletedTask",
]
