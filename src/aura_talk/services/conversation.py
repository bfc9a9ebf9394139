"""Direct-message conversations and the shared world channel.

Both are append-only message logs read through bounded, ascending windows.
Direct conversations additionally maintain a denormalized ``Chat`` summary
for the conversation list. The message append and the summary upsert are two
separate commits: if the second fails the message stays delivered and the
summary is stale until the next successful send.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from aura_talk.core.exceptions import AuraTalkError, NotFoundError, ValidationFailure
from aura_talk.core.settings import settings
from aura_talk.db.time import utcnow
from aura_talk.models import Chat, Message, MessageReaction, UserProfile
from aura_talk.schemas.message import ChatEntryResponse, MessageResponse
from aura_talk.schemas.user import PublicProfile
from aura_talk.services.live import (
    ChangeFeed,
    WindowSubscription,
    channel_key,
    chat_list_key,
    get_change_feed,
)

logger = logging.getLogger(__name__)

CONVERSATION_ID_DELIMITER = "_"


def conversation_id(uid_a: str | None, uid_b: str | None) -> str | None:
    """Return the canonical id for the conversation between two users.

    The pair is sorted before joining so both participants derive the same
    id. Returns ``None`` when either uid is missing.
    """
    if not uid_a or not uid_b:
        return None
    return CONVERSATION_ID_DELIMITER.join(sorted((uid_a, uid_b)))


class ConversationError(AuraTalkError):
    """Base exception for message log failures."""


class EmptyMessageError(ConversationError, ValidationFailure):
    """Raised when the message text is empty or whitespace only."""


class MessageTooLongError(ConversationError, ValidationFailure):
    """Raised when the message text exceeds the configured maximum."""


class InvalidReactionError(ConversationError, ValidationFailure):
    """Raised when a reaction emoji is blank or too long."""


class MessageNotFoundError(ConversationError, NotFoundError):
    """Raised when a message id does not exist in the addressed log."""


class SummaryWriteError(ConversationError):
    """The message was appended but the conversation summary was not updated.

    Attributes:
        message: The message that was durably written.
    """

    def __init__(self, message: Message) -> None:
        super().__init__(f"Message {message.id} sent but conversation summary is stale")
        self.message = message


@dataclass(frozen=True)
class ChatEntry:
    """A conversation summary joined with the other participant's profile."""

    chat: Chat
    partner: UserProfile

    def to_response(self) -> ChatEntryResponse:
        return ChatEntryResponse(
            id=self.chat.id,
            members=list(self.chat.members),
            last_message=self.chat.last_message,
            last_message_timestamp=self.chat.last_message_timestamp,
            updated_at=self.chat.updated_at,
            partner=PublicProfile.model_validate(self.partner),
        )


def _window_limit(limit: int | None) -> int:
    maximum = settings.message_window_size
    if limit is None:
        return maximum
    return max(1, min(limit, maximum))


def _fingerprint(items: list[MessageResponse] | list[ChatEntryResponse]) -> list[dict]:
    return [item.model_dump() for item in items]


class MessageLog:
    """Shared append, window and reaction operations over one store session."""

    def __init__(self, db: Session, feed: ChangeFeed | None = None) -> None:
        self.db = db
        self.feed = feed or get_change_feed()

    def window(self, channel_id: str, limit: int | None = None) -> list[Message]:
        """Return the most recent messages of a log in ascending order.

        Ties on ``timestamp`` fall back to insertion order.
        """
        stmt = (
            select(Message)
            .where(Message.channel_id == channel_id)
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .limit(_window_limit(limit))
        )
        messages = list(self.db.scalars(stmt))
        messages.reverse()
        return messages

    def _snapshot(self, channel_id: str, limit: int | None) -> list[MessageResponse]:
        # Long-lived subscription sessions must not serve cached rows, and must
        # not hold a pooled connection between snapshots.
        self.db.expire_all()
        try:
            return [MessageResponse.from_message(m) for m in self.window(channel_id, limit)]
        finally:
            self.db.rollback()

    def _subscribe(self, channel_id: str, limit: int | None) -> WindowSubscription[MessageResponse]:
        return WindowSubscription(
            self.feed,
            channel_key(channel_id),
            lambda: self._snapshot(channel_id, limit),
            fingerprint=_fingerprint,
        )

    def _append(
        self,
        channel_id: str,
        sender: UserProfile,
        text: str,
        *,
        receiver_id: str | None = None,
        seen: bool | None = None,
        reply_to: int | None = None,
    ) -> Message:
        if not text or not text.strip():
            raise EmptyMessageError("Message text must not be empty")
        if len(text) > settings.max_message_length:
            raise MessageTooLongError(
                f"Message exceeds {settings.max_message_length} characters"
            )

        message = Message(
            channel_id=channel_id,
            sender_id=sender.uid,
            sender_username=sender.username,
            sender_profile_pic=sender.profile_pic,
            text=text,
            timestamp=utcnow(),
            receiver_id=receiver_id,
            seen=seen,
            reply_to=reply_to,
        )
        try:
            self.db.add(message)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(message)
        self.feed.publish(channel_key(channel_id))
        logger.debug("Appended message %s to %s", message.id, channel_id)
        return message

    def _toggle_reaction(
        self, channel_id: str, message_id: int, uid: str, emoji: str
    ) -> tuple[bool, dict[str, list[str]]]:
        emoji = (emoji or "").strip()
        if not emoji or len(emoji) > settings.max_emoji_length:
            raise InvalidReactionError("Invalid emoji")

        message = self.db.get(Message, message_id)
        if message is None or message.channel_id != channel_id:
            raise MessageNotFoundError(f"Message {message_id} not found")

        existing = self.db.scalars(
            select(MessageReaction).where(
                MessageReaction.message_id == message_id,
                MessageReaction.emoji == emoji,
                MessageReaction.user_id == uid,
            )
        ).first()

        try:
            if existing is not None:
                self.db.delete(existing)
                added = False
            else:
                self.db.add(MessageReaction(message_id=message_id, emoji=emoji, user_id=uid))
                added = True
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.expire(message, ["reactions"])
        self.feed.publish(channel_key(channel_id))
        return added, message.reaction_map


class ConversationEngine(MessageLog):
    """One-to-one conversations keyed by :func:`conversation_id`."""

    def subscribe(
        self, chat_id: str, limit: int | None = None
    ) -> WindowSubscription[MessageResponse]:
        """Open a live window on a conversation's log.

        The caller owns the returned subscription and must close it.
        """
        return self._subscribe(chat_id, limit)

    def send(
        self,
        chat_id: str,
        sender: UserProfile,
        receiver_uid: str,
        text: str,
        reply_to: int | None = None,
    ) -> Message:
        """Append a direct message, then refresh the conversation summary.

        Raises:
            EmptyMessageError: If ``text`` is blank; nothing is written.
            SummaryWriteError: If the message was written but the summary
                upsert failed.
        """
        if chat_id != conversation_id(sender.uid, receiver_uid):
            raise ConversationError("Conversation id does not match its participants")

        message = self._append(
            chat_id,
            sender,
            text,
            receiver_id=receiver_uid,
            seen=False,
            reply_to=reply_to,
        )

        try:
            self._upsert_summary(chat_id, [sender.uid, receiver_uid], message)
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.warning("Summary update for chat %s failed: %s", chat_id, err)
            raise SummaryWriteError(message) from err

        self.feed.publish(chat_list_key(sender.uid), chat_list_key(receiver_uid))
        return message

    def _upsert_summary(self, chat_id: str, members: list[str], message: Message) -> Chat:
        """Merge the latest message into the chat summary, creating it if needed."""
        chat = self.db.get(Chat, chat_id)
        if chat is None:
            low, high = sorted(members)
            chat = Chat(id=chat_id, member_low=low, member_high=high, members=list(members))
            self.db.add(chat)
            try:
                self.db.flush()
            except IntegrityError:
                # The other participant created it first; merge into theirs.
                self.db.rollback()
                chat = self.db.get(Chat, chat_id)
                if chat is None:
                    raise

        chat.members = list(members)
        chat.last_message = message.text
        chat.last_message_timestamp = message.timestamp
        chat.updated_at = utcnow()
        self.db.commit()
        return chat

    def get_chat(self, chat_id: str) -> Chat | None:
        return self.db.get(Chat, chat_id)

    def list_chats(self, uid: str) -> list[ChatEntry]:
        """Return the user's conversations, most recently active first.

        Conversations whose partner has no profile are left out.
        """
        chats = list(
            self.db.scalars(
                select(Chat)
                .where(
                    or_(Chat.member_low == uid, Chat.member_high == uid),
                    Chat.last_message_timestamp.is_not(None),
                )
                .order_by(Chat.last_message_timestamp.desc())
            )
        )
        if not chats:
            return []

        partner_ids = {self._partner_of(chat, uid) for chat in chats}
        partners = {
            profile.uid: profile
            for profile in self.db.scalars(
                select(UserProfile).where(UserProfile.uid.in_(partner_ids))
            )
        }

        entries: list[ChatEntry] = []
        for chat in chats:
            partner = partners.get(self._partner_of(chat, uid))
            if partner is not None:
                entries.append(ChatEntry(chat=chat, partner=partner))
        return entries

    def subscribe_chats(self, uid: str) -> WindowSubscription[ChatEntryResponse]:
        """Open a live view of the user's conversation list."""

        def fetch() -> list[ChatEntryResponse]:
            self.db.expire_all()
            try:
                return [entry.to_response() for entry in self.list_chats(uid)]
            finally:
                self.db.rollback()

        return WindowSubscription(self.feed, chat_list_key(uid), fetch, fingerprint=_fingerprint)

    def toggle_reaction(
        self, chat_id: str, message_id: int, uid: str, emoji: str
    ) -> tuple[bool, dict[str, list[str]]]:
        return self._toggle_reaction(chat_id, message_id, uid, emoji)

    @staticmethod
    def _partner_of(chat: Chat, uid: str) -> str:
        return chat.member_high if chat.member_low == uid else chat.member_low


class WorldChannel(MessageLog):
    """The single shared channel every signed-in user can read and post to."""

    def __init__(
        self,
        db: Session,
        feed: ChangeFeed | None = None,
        channel_id: str | None = None,
    ) -> None:
        super().__init__(db, feed)
        self.channel_id = channel_id or settings.world_channel_id

    def window(self, channel_id: str | None = None, limit: int | None = None) -> list[Message]:
        return super().window(channel_id or self.channel_id, limit)

    def subscribe(self, limit: int | None = None) -> WindowSubscription[MessageResponse]:
        return self._subscribe(self.channel_id, limit)

    def send(self, sender: UserProfile, text: str, reply_to: int | None = None) -> Message:
        return self._append(self.channel_id, sender, text, reply_to=reply_to)

    def toggle_reaction(
        self, message_id: int, uid: str, emoji: str
    ) -> tuple[bool, dict[str, list[str]]]:
        return self._toggle_reaction(self.channel_id, message_id, uid, emoji)
