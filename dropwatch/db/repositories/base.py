"""
Base repository for the job store.

Subclasses bind a Core table and the conversion between its rows and a
Pydantic model; lookups and deletes by primary key live here.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import Table, delete, select
from sqlalchemy.orm import Session

ModelT = TypeVar("ModelT", bound=BaseModel)


class BaseRepository(ABC, Generic[ModelT]):
    """
    Primary-key operations shared by repositories.

    Subclasses must implement:
    - table property: the SQLAlchemy Table
    - _row_to_model: database row to Pydantic model
    - _model_to_dict: Pydantic model to insert values
    """

    def __init__(self, session: Session):
        self.session = session

    @property
    @abstractmethod
    def table(self) -> Table:
        """SQLAlchemy table for this repository."""

    @abstractmethod
    def _row_to_model(self, row: Any) -> ModelT:
        """Convert database row to Pydantic model."""

    @abstractmethod
    def _model_to_dict(self, model: ModelT) -> dict:
        """Convert Pydantic model to insert values (must include ``id``)."""

    def get_by_id(self, id: str) -> ModelT | None:
        """
        Get a row by its string id.

        Returns:
            Pydantic model or None if not found
        """
        stmt = select(self.table).where(self.table.c.id == id)
        row = self.session.execute(stmt).fetchone()
        return self._row_to_model(row) if row is not None else None

    def create(self, model: ModelT) -> ModelT:
        """
        Insert a row and read it back.

        SQLite stores timestamps without zone info, so the stored row is
        re-read rather than echoing the input model.
        """
        data = self._model_to_dict(model)
        self.session.execute(self.table.insert().values(**data))
        created = self.get_by_id(data["id"])
        if created is None:
            raise RuntimeError(f"Inserted row {data['id']} could not be read back")
        return created

    def delete_by_id(self, id: str) -> bool:
        """
        Delete a row by id.

        Returns:
            True if a row was deleted
        """
        stmt = delete(self.table).where(self.table.c.id == id)
        return self.session.execute(stmt).rowcount > 0
