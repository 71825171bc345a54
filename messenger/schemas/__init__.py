from messenger.schemas.participant import ParticipantContact

__all__ = [
    "ParticipantContact",
]
