"""
External Collaborators

Abstract interfaces for the pieces notegram relies on but does not own: the
chat transport, the note storage and local document text extraction.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..common.schemas.content import ContentItem


class Transport(ABC):
    """
    Source of attachment bytes.

    The transport also delivers ContentItems, by calling
    ``NotePipeline.handle`` for each received message.
    """

    @abstractmethod
    async def fetch_attachment(self, item: ContentItem) -> bytes:
        """
        Download the attachment referenced by ``item``.

        Args:
            item: Item carrying an attachment

        Returns:
            Raw file bytes

        Raises:
            Exception: any failure; it is recorded against the item
        """
        pass


class NoteStorage(ABC):
    """Destination for finished notes and their attachments"""

    @abstractmethod
    async def save_attachment(self, path: str, data: bytes) -> str:
        """
        Store attachment bytes.

        Args:
            path: Requested path, relative to the storage root
            data: File contents

        Returns:
            The path the file was actually stored at
        """
        pass

    @abstractmethod
    async def write_note(self, path: str, content: str) -> None:
        """Write (or append to) the note at ``path``."""
        pass


class DocumentTextExtractor(ABC):
    """Local text extraction for document attachments"""

    @abstractmethod
    async def extract(self, item: ContentItem, path: str) -> Optional[str]:
        """
        Extract plain text from a stored document.

        Returns:
            Extracted text, or None when the format is not supported
        """
        pass
