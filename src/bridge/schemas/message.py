"""
Message Schema Definitions

This module defines the chat message record returned by the bridge and the
persisted message row it is shaped from.
"""

from dataclasses import dataclass
from typing import Optional

from .base import BaseRecord


@dataclass(frozen=True)
class ChatMessage(BaseRecord):
    """
    A delivered or sent chat message. Never mutated after creation.

    Attributes:
        id: Unique identifier for the message
        from_jid: JID of the sender (wire key "from")
        body: Message text
        sent_at: ISO 8601 timestamp (wire key "sentAt")
    """

    id: str
    from_jid: str
    body: str
    sent_at: str

    _WIRE_NAMES = {"from_jid": "from", "sent_at": "sentAt"}


@dataclass
class MessageRow(BaseRecord):
    """
    Persisted message row as stored by the backend.

    Attributes:
        id: Unique identifier for the message
        from_jid: JID of the sender
        to_jid: JID of the recipient (contact or room)
        body: Message text
        timestamp: ISO 8601 timestamp
        message_type: XMPP message type (chat, groupchat, ...)
        thread: Optional thread identifier
        read: Whether the message has been read
    """

    id: str
    from_jid: str
    to_jid: str
    body: str
    timestamp: str
    message_type: str = "chat"
    thread: Optional[str] = None
    read: bool = False

    def involves(self, jid: str) -> bool:
        """True if `jid` is the sender or the recipient of this row."""
        return jid in (self.from_jid, self.to_jid)

    def to_chat_message(self) -> ChatMessage:
        """Shape this row into the record returned to callers."""
        return ChatMessage(
            id=self.id,
            from_jid=self.from_jid,
            body=self.body,
            sent_at=self.timestamp,
        )
