"""
Soft delete helper functions for consistent filtering.

Usage examples:
    query = select(SearchAlert).where(SearchAlert.user_id == user_id)
    query = add_active_filter(query, SearchAlert)

    alert = await db.get(SearchAlert, alert_id)
    if alert is None or is_soft_deleted(alert):
        ...
"""

from typing import TypeVar

from sqlalchemy.sql import Select

from seatalert.models.base import BaseModel

T = TypeVar("T")


def add_active_filter(  # noqa: UP047
    query: Select[T],  # type: ignore[type-var]
    model: type[BaseModel],
) -> Select[T]:  # type: ignore[type-var]
    """
    Add deleted_at IS NULL filter to a query for a single model.

    Args:
        query: SQLAlchemy select query
        model: Model class that inherits from BaseModel

    Returns:
        Query with deleted_at filter added
    """
    return query.where(model.deleted_at.is_(None))


def is_soft_deleted(entity: BaseModel) -> bool:
    """
    Check if an entity is soft deleted.

    Args:
        entity: Entity instance to check

    Returns:
        True if entity has deleted_at set, False otherwise
    """
    return entity.deleted_at is not None
