import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import Column, Integer, String, event, or_, select
from sqlalchemy.exc import NoResultFound
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, relationship
from messenger.database import Base
from messenger.models.mixins import TimestampMixin, SoftDeleteMixin
from messenger.models.message import Message, require_body
from messenger.models.participant import Participant
from messenger.models.user import User
from messenger.schemas.participant import ParticipantContact

logger = logging.getLogger(__name__)


class Thread(TimestampMixin, SoftDeleteMixin, Base):
    """Conversation grouping messages and the users taking part in it."""
    __tablename__ = "threads"

    id = Column(Integer, primary_key=True)
    subject = Column(String(255), nullable=False)

    # Relationships
    messages = relationship("Message", back_populates="thread", order_by="Message.created_at")
    participants = relationship("Participant", back_populates="thread")  # Includes removed members

    @classmethod
    def latest_query(cls):
        return select(cls).where(cls.active()).order_by(cls.updated_at.desc())

    @classmethod
    async def get_all_latest(cls, db: AsyncSession) -> List["Thread"]:
        """All threads, most recently updated first."""
        result = await db.execute(cls.latest_query())
        return list(result.scalars().all())

    @classmethod
    def for_user_query(cls, user_id: int):
        return (
            select(cls)
            .join(Participant, cls.id == Participant.thread_id)
            .where(
                Participant.user_id == user_id,
                Participant.active(),
                cls.active(),
            )
            .order_by(cls.updated_at.desc())
        )

    @classmethod
    async def for_user(cls, db: AsyncSession, user_id: int) -> List["Thread"]:
        """Threads the user is an active participant of."""
        result = await db.execute(cls.for_user_query(user_id))
        return list(result.scalars().all())

    @classmethod
    def for_user_with_new_messages_query(cls, user_id: int):
        return cls.for_user_query(user_id).where(
            or_(
                cls.updated_at > Participant.last_read,
                Participant.last_read.is_(None),
            )
        )

    @classmethod
    async def for_user_with_new_messages(cls, db: AsyncSession, user_id: int) -> List["Thread"]:
        """Threads updated since the user last read them (or never read)."""
        result = await db.execute(cls.for_user_with_new_messages_query(user_id))
        return list(result.scalars().all())

    async def latest_message(self, db: AsyncSession) -> Optional[Message]:
        stmt = (
            select(Message)
            .where(Message.thread_id == self.id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    def _active_participants_query(self):
        return select(Participant).where(
            Participant.thread_id == self.id,
            Participant.active(),
        )

    async def participants_user_ids(self, db: AsyncSession, user_id: Optional[int] = None) -> List[int]:
        """User ids of the active participants.

        When ``user_id`` is given (any value but None, 0 included) it is
        appended to the list, not excluded.
        """
        stmt = (
            select(Participant.user_id)
            .where(Participant.thread_id == self.id, Participant.active())
            .order_by(Participant.id)
        )
        result = await db.execute(stmt)
        users = list(result.scalars().all())

        if user_id is not None:
            users.append(user_id)

        return users

    def _contacts_query(self, user_id: int):
        # Every membership row counts here, removed participants included
        return (
            select(User.first_name, User.last_name, User.user_token)
            .join(Participant, User.id == Participant.user_id)
            .where(
                User.id != user_id,
                Participant.thread_id == self.id,
            )
            .order_by(Participant.id)
        )

    async def participants_array(self, db: AsyncSession, user_id: int) -> List[ParticipantContact]:
        """Names and notification tokens of everyone in the thread except ``user_id``."""
        result = await db.execute(self._contacts_query(user_id))
        return [ParticipantContact.model_validate(row) for row in result.all()]

    async def participants_tokens(self, db: AsyncSession, user_id: int) -> List[Optional[str]]:
        """Notification tokens in the same order as ``participants_array``, None kept."""
        result = await db.execute(self._contacts_query(user_id))
        return [row.user_token for row in result.all()]

    async def add_participants(self, db: AsyncSession, user_ids: Iterable[int]) -> None:
        """Add users to the thread; users already active in it are left alone.

        A user who was removed earlier gets their old row back instead of a
        second one.
        """
        added = 0
        for user_id in user_ids:
            stmt = (
                select(Participant)
                .where(Participant.thread_id == self.id, Participant.user_id == user_id)
                .order_by(Participant.deleted_at.is_(None).desc(), Participant.id)
                .limit(1)
            )
            result = await db.execute(stmt)
            participant = result.scalar_one_or_none()
            if participant is None:
                db.add(Participant(thread_id=self.id, user_id=user_id))
            elif participant.trashed:
                participant.restore()
            else:
                continue
            await db.flush()
            added += 1

        if added:
            await db.commit()
            logger.info(f"Added {added} participant(s) to thread {self.id}")

    async def remove_participants(self, db: AsyncSession, user_ids: Iterable[int]) -> None:
        user_ids = list(user_ids)
        if not user_ids:
            return
        stmt = self._active_participants_query().where(Participant.user_id.in_(user_ids))
        result = await db.execute(stmt)
        participants = result.scalars().all()
        for participant in participants:
            participant.soft_delete()
        await db.commit()
        logger.info(f"Removed {len(participants)} participant(s) from thread {self.id}")

    async def activate_all_participants(self, db: AsyncSession) -> None:
        """Restore every participant of the thread, including removed ones.

        Only one row per user ends up active: a removed row is skipped when
        the same user already has a live one.
        """
        stmt = (
            select(Participant)
            .where(Participant.thread_id == self.id)
            .order_by(Participant.deleted_at.is_(None).desc(), Participant.id)
        )
        result = await db.execute(stmt)
        seen = set()
        for participant in result.scalars().all():
            if participant.user_id in seen:
                continue
            seen.add(participant.user_id)
            participant.restore()
        await db.commit()

    async def get_participant_from_user(self, db: AsyncSession, user_id: int) -> Participant:
        """Active participant row for ``user_id``.

        Raises ``NoResultFound`` when the user is not in the thread.
        """
        stmt = self._active_participants_query().where(Participant.user_id == user_id).limit(1)
        result = await db.execute(stmt)
        return result.scalar_one()

    async def mark_as_read(self, db: AsyncSession, user_id: int) -> None:
        try:
            participant = await self.get_participant_from_user(db, user_id)
        except NoResultFound:
            logger.debug(f"User {user_id} is not in thread {self.id}, nothing to mark read")
            return

        participant.last_read = datetime.utcnow()
        await db.commit()

    async def is_unread(self, db: AsyncSession, user_id: int) -> bool:
        try:
            participant = await self.get_participant_from_user(db, user_id)
        except NoResultFound:
            logger.debug(f"User {user_id} is not in thread {self.id}")
            return False

        if participant.last_read is None:
            return True
        return self.updated_at > participant.last_read

    async def archive(self, db: AsyncSession) -> None:
        # Messages and participants are kept as they are. updated_at moves
        # too, so a thread restored later reads as unread for everyone.
        self.soft_delete()
        await db.commit()


@event.listens_for(Session, "before_flush")
def touch_threads(session, flush_context, instances):
    """Keep a thread's updated_at in step with its newest message."""
    new = [obj for obj in session.new if isinstance(obj, Message)]
    dirty = [obj for obj in session.dirty if isinstance(obj, Message) and session.is_modified(obj)]
    if not new and not dirty:
        return

    now = datetime.utcnow()
    for message in new + dirty:
        require_body(message.body)
        if message in new:
            message.created_at = message.created_at or now
            message.updated_at = message.updated_at or message.created_at
            touched_at = message.created_at
        else:
            touched_at = now

        if message.thread_id is None:
            thread = message.thread
        else:
            thread = session.get(Thread, message.thread_id)
        if thread is not None and (thread.updated_at is None or thread.updated_at < touched_at):
            thread.updated_at = touched_at
