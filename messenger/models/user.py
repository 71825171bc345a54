from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from messenger.database import Base
from messenger.models.mixins import TimestampMixin, SoftDeleteMixin


class User(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    user_token = Column(String(255), nullable=True)  # Push token used for message notifications

    # Relationships
    messages = relationship("Message", back_populates="user")
    participations = relationship("Participant", back_populates="user")
