from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from messenger.database import Base
from messenger.models.mixins import TimestampMixin, SoftDeleteMixin


class Participant(TimestampMixin, SoftDeleteMixin, Base):
    """Membership of a user in a thread, with the time they last read it."""
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True)
    last_read = Column(DateTime, nullable=True, default=None)

    # Foreign keys
    thread_id = Column(Integer, ForeignKey("threads.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Relationships
    thread = relationship("Thread", back_populates="participants")
    user = relationship("User", back_populates="participations")
