from typing import List

from sqlalchemy import Column, ForeignKey, Integer, Text, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import relationship, validates
from messenger.database import Base
from messenger.models.mixins import TimestampMixin
from messenger.models.participant import Participant


def require_body(body) -> str:
    if body is None or not str(body).strip():
        raise ValueError("Message body is required")
    return body


class Message(TimestampMixin, Base):
    """A single post in a thread."""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True)
    body = Column(Text, nullable=False)

    # Foreign keys
    thread_id = Column(Integer, ForeignKey("threads.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Relationships
    thread = relationship("Thread", back_populates="messages")
    user = relationship("User", back_populates="messages")  # Author, even if soft-deleted
    participants = relationship(
        "Participant",
        primaryjoin="foreign(Participant.thread_id) == Message.thread_id",
        viewonly=True,
    )

    @validates("body")
    def validate_body(self, key, body):
        return require_body(body)

    async def recipients(self, db: AsyncSession) -> List[Participant]:
        """Active participants of this message's thread, minus the author."""
        stmt = (
            select(Participant)
            .where(
                Participant.thread_id == self.thread_id,
                Participant.user_id != self.user_id,
                Participant.active(),
            )
            .order_by(Participant.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())
