"""
Chat Service Module

Per-post chat threads kept in the realtime tree at
``posts/{post_id}/messages/{message_id}``. Messages are append-only;
listeners receive the whole thread, sorted by timestamp, on every change.
"""

from typing import Any, Callable, List, Optional

from data.models import ChatMessage, FieldError
from data.protocols import RealtimeTree, Subscription
from services.post_lifecycle import Clock
from services.validation_service import validate_chat_message, validate_username
from utils.exceptions import ValidationFailedError
from utils.helpers import to_epoch_ms, utc_now
from utils.logger import get_logger

logger = get_logger(__name__)

MessagesCallback = Callable[[List[ChatMessage]], None]


def _messages_path(post_id: str) -> str:
    return f"posts/{post_id}/messages"


def parse_messages(raw: Any, post_id: str = "") -> List[ChatMessage]:
    """
    Turn the value stored under a messages node into a sorted message list.

    Args:
        raw: Mapping of message id to record, or None
        post_id: Post the thread belongs to, used when a record lacks it

    Returns:
        List[ChatMessage]: Messages in ascending timestamp order
    """
    if not isinstance(raw, dict):
        return []

    messages = []
    for key, record in raw.items():
        if not isinstance(record, dict):
            continue
        try:
            message = ChatMessage.from_dict(record, message_id=key)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed chat message {key}: {e}")
            continue
        if not message.post_id:
            message.post_id = post_id
        messages.append(message)

    messages.sort(key=lambda m: (m.timestamp, m.id))
    return messages


class ChatService:
    """Chat relay over a RealtimeTree."""

    def __init__(self, tree: RealtimeTree, clock: Optional[Clock] = None):
        self.tree = tree
        self.clock = clock or utc_now

    def send_message(self, post_id: str, message: str, username: str) -> ChatMessage:
        """
        Append a message to a post's thread.

        Args:
            post_id: Post being discussed
            message: Message text
            username: Sender

        Returns:
            ChatMessage: The stored message with its assigned id

        Raises:
            ValidationFailedError: If the message or username is invalid
            NetworkError: If the tree cannot be written
        """
        errors = list(validate_chat_message(message).errors)
        errors.extend(validate_username(username).errors)
        if not post_id:
            errors.append(FieldError("post_id", "Post id is required", post_id))
        if errors:
            raise ValidationFailedError(errors)

        created_at = self.clock()
        path = _messages_path(post_id)
        message_id = self.tree.generate_key(path)
        chat_message = ChatMessage(
            id=message_id,
            post_id=post_id,
            username=username,
            message=message.strip(),
            timestamp=to_epoch_ms(created_at),
            created_at=created_at,
        )
        self.tree.set(f"{path}/{message_id}", chat_message.to_dict())
        logger.info(f"Message {message_id} sent to post {post_id}")
        return chat_message

    def get_messages(self, post_id: str) -> List[ChatMessage]:
        """Read a post's thread once, oldest first."""
        return parse_messages(self.tree.get(_messages_path(post_id)), post_id)

    def listen_to_messages(self, post_id: str, callback: MessagesCallback) -> Subscription:
        """
        Subscribe to a post's thread.

        The callback gets the current thread right away and the full sorted
        thread after every change, until the subscription is cancelled.

        Args:
            post_id: Post to follow
            callback: Receives the list of messages

        Returns:
            Subscription: Cancel it when the consumer goes away
        """
        def deliver(raw: Any) -> None:
            callback(parse_messages(raw, post_id))

        subscription = self.tree.listen(_messages_path(post_id), deliver)
        logger.debug(f"Listening to messages of post {post_id}")
        return subscription

    def delete_message(self, post_id: str, message_id: str) -> None:
        self.tree.delete(f"{_messages_path(post_id)}/{message_id}")
        logger.info(f"Message {message_id} deleted from post {post_id}")
