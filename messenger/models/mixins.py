from sqlalchemy import Column, DateTime
from datetime import datetime


class TimestampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class SoftDeleteMixin:
    """Tombstone column for rows that are hidden rather than removed.

    Nothing is filtered implicitly: queries that should only see live rows
    add ``Model.active()`` to their WHERE clause.
    """

    deleted_at = Column(DateTime, nullable=True, default=None)

    @property
    def trashed(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        if self.deleted_at is None:
            self.deleted_at = datetime.utcnow()

    def restore(self) -> None:
        self.deleted_at = None

    @classmethod
    def active(cls):
        return cls.deleted_at.is_(None)
