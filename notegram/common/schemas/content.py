"""
Content Item Schema

A single unit delivered by the transport: one chat message, optionally with
one attachment. Immutable once received.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ContentType(str, Enum):
    """Content type tags"""
    TEXT = "text"
    VOICE = "voice"
    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"

    @classmethod
    def parse(cls, value: str) -> Optional["ContentType"]:
        """Return the matching tag, or None for unknown types."""
        try:
            return cls((value or "").lower())
        except ValueError:
            return None


# Label used when an attachment's analysis is quoted in a combined note
DISPLAY_NAMES = {
    ContentType.PHOTO: "image",
    ContentType.VIDEO: "video",
    ContentType.VOICE: "voice message",
    ContentType.AUDIO: "audio",
    ContentType.DOCUMENT: "document",
}

_URL_ONLY = re.compile(r"^\s*(https?://\S+\s*)+$", re.IGNORECASE)


def display_name(content_type: Optional[ContentType]) -> str:
    return DISPLAY_NAMES.get(content_type, "file")


@dataclass(frozen=True)
class Attachment:
    """Transport-level reference to a downloadable file"""
    file_id: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None


@dataclass(frozen=True)
class ContentItem:
    """One received message"""
    item_id: str
    content_type: ContentType = ContentType.TEXT
    text: Optional[str] = None  # message text, or the caption of an attachment
    group_id: Optional[str] = None
    attachment: Optional[Attachment] = None
    received_at: Optional[datetime] = None
    chat_title: Optional[str] = None
    sender_name: Optional[str] = None

    def __post_init__(self):
        if self.received_at is None:
            object.__setattr__(self, "received_at", datetime.now(timezone.utc))

    @property
    def caption(self) -> str:
        return (self.text or "").strip()

    @property
    def has_caption(self) -> bool:
        return bool(self.caption)

    @property
    def has_attachment(self) -> bool:
        return self.attachment is not None

    @property
    def is_url_only(self) -> bool:
        """True for plain-text messages that contain nothing but links."""
        return not self.has_attachment and bool(_URL_ONLY.match(self.text or ""))
