from messenger.models.user import User
from messenger.models.participant import Participant
from messenger.models.message import Message
from messenger.models.thread import Thread

__all__ = [
	"User",
	"Participant",
	"Message",
	"Thread",
]
