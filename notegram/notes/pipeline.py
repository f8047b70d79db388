"""
Note Pipeline

Entry point for the transport: every received ContentItem goes through
``NotePipeline.handle``. Single items become a note right away; grouped items
are buffered by the MediaGroupAggregator and become one note per group.
"""

import logging
from typing import Callable, List, Optional

from .assembler import FinishedNote, NoteAssembler
from .collaborators import DocumentTextExtractor, NoteStorage, Transport
from .media_group import AttachmentFile, InFlightCounter, MediaGroup, MediaGroupAggregator
from ..ai.orchestrator import AIOrchestrator
from ..ai.prompts import PromptComposer
from ..categories.classifier import AIClassifier
from ..categories.engine import CategorizationEngine
from ..common.config import NotegramConfig
from ..common.errors import AttachmentRetrievalError
from ..common.schemas.category import Category, CategorizationRule
from ..common.schemas.content import ContentItem

logger = logging.getLogger("notegram.notes.pipeline")


class NotePipeline:
    """
    Routes items to the aggregator or straight to the assembler and writes
    the finished notes to storage.

    The in-flight counter covers each item from receipt until it is either
    handed to the aggregator or written as a note; groups never commit while
    it is non-zero.
    """

    def __init__(
        self,
        config: NotegramConfig,
        transport: Transport,
        storage: NoteStorage,
        assembler: NoteAssembler,
        *,
        in_flight: Optional[InFlightCounter] = None,
        aggregator: Optional[MediaGroupAggregator] = None,
    ):
        self.config = config
        self.transport = transport
        self.storage = storage
        self.assembler = assembler
        self.in_flight = in_flight or InFlightCounter()
        self.aggregator = aggregator or MediaGroupAggregator(
            self._commit_group,
            self.in_flight,
            tick_interval=config.media_group.tick_interval,
            inactivity_window=config.media_group.inactivity_window,
        )

    async def handle(self, item: ContentItem) -> Optional[FinishedNote]:
        """
        Handle one received item.

        Returns:
            The note written for a single item; None for grouped items
            (written when the group commits) and on failure
        """
        try:
            with self.in_flight.track():
                file = await self._retrieve(item) if item.has_attachment else None
                if item.group_id:
                    await self.aggregator.ingest(item, file)
                    return None

                note = await self.assembler.assemble(item, [file] if file else [])
                await self.storage.write_note(note.path, note.content)
                logger.info("Saved note %s", note.path)
                return note
        except Exception as e:
            logger.exception("Failed to handle item %s: %s", item.item_id, e)
            return None

    async def close(self, flush: bool = True) -> List[MediaGroup]:
        """Stop the aggregator, committing open groups first unless ``flush`` is False."""
        committed = await self.aggregator.flush() if flush else []
        await self.aggregator.close()
        return committed

    async def _retrieve(self, item: ContentItem) -> AttachmentFile:
        try:
            path = await self.assembler.attachment_path(item)
            data = await self.transport.fetch_attachment(item)
            stored = await self.storage.save_attachment(path, data)
            return AttachmentFile(item.item_id, path=stored or path)
        except Exception as e:
            error = AttachmentRetrievalError(str(e) or type(e).__name__, item_id=item.item_id)
            logger.warning("Attachment retrieval failed for %s: %s", item.item_id, error)
            return AttachmentFile(item.item_id, error=str(error))

    async def _commit_group(self, group: MediaGroup) -> None:
        note = await self.assembler.assemble(
            group.primary_item,
            group.files,
            combined_context=group.combined_context(),
        )
        await self.storage.write_note(note.path, note.content)
        logger.info("Saved media group %s (%d items) to %s", group.group_id, len(group.items), note.path)


def build_pipeline(
    config: NotegramConfig,
    transport: Transport,
    storage: NoteStorage,
    *,
    extractor: Optional[DocumentTextExtractor] = None,
    on_categories_change: Optional[Callable[[List[Category], List[CategorizationRule]], None]] = None,
) -> NotePipeline:
    """Wire the AI, categorization and note layers from configuration."""
    orchestrator = AIOrchestrator(
        config.ai,
        config.processing,
        PromptComposer(config.prompts),
        image_loader=transport.fetch_attachment,
    )
    engine = CategorizationEngine(
        config.categories,
        AIClassifier(orchestrator),
        on_change=on_categories_change,
    )
    assembler = NoteAssembler(config, orchestrator, engine, extractor=extractor)
    return NotePipeline(config, transport, storage, assembler)
