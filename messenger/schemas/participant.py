from pydantic import BaseModel
from typing import Optional


class ParticipantContact(BaseModel):
    """Who to notify about activity in a thread."""
    first_name: str
    last_name: str
    user_token: Optional[str] = None

    class Config:
        from_attributes = True
