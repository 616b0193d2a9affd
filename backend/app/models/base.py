"""Base model class providing the `objects` query manager."""

from __future__ import annotations

from typing import Any, ClassVar

from sqlmodel import SQLModel

from app.db.query_manager import ModelManager


class _ManagerDescriptor:
    def __get__(self, instance: object, owner: type[Any]) -> ModelManager[Any]:
        return ModelManager(owner)


class QueryModel(SQLModel):
    """SQLModel base with a Django-style `objects` entry point."""

    objects: ClassVar[ModelManager[Any]] = _ManagerDescriptor()  # type: ignore[assignment]
