"""
Note Assembler

Turns a single item, or the primary item of a committed media group, into a
finished (path, content) pair: AI enrichment, attachment links,
categorization and path rendering.
"""

import logging
import mimetypes
import posixpath
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Sequence

from .ai_parameters import AIParameterGenerator
from .collaborators import DocumentTextExtractor
from .media_group import AttachmentFile
from .templates import ai_parameter_names, ensure_markdown, render_path
from ..ai.orchestrator import AIOrchestrator
from ..categories.engine import CategorizationEngine
from ..common.config import NotegramConfig
from ..common.log_events import log_event
from ..common.schemas.category import Category
from ..common.schemas.content import ContentItem, ContentType, display_name

logger = logging.getLogger("notegram.notes.assembler")

FAILED_FILE_MARKER = "[❌ error while handling file]({error})"


@dataclass
class FinishedNote:
    """Note ready for the storage collaborator"""
    path: str
    content: str
    category: Optional[Category] = None


def render_links(files: Sequence[AttachmentFile]) -> str:
    """Embed links for stored files, error markers for failed ones."""
    lines = []
    for file in files:
        if file.ok:
            lines.append(f"![[{file.path}]]")
        else:
            lines.append(FAILED_FILE_MARKER.format(error=file.error or "unknown error"))
    return "\n".join(lines)


def join_blocks(*blocks: Optional[str]) -> str:
    return "\n\n".join(b for b in blocks if b)


def describe_attachment(item: ContentItem, files: Sequence[AttachmentFile] = ()) -> str:
    """Text stand-in for an attachment the provider cannot see."""
    name = item.attachment.file_name if item.attachment else None
    if not name:
        stored = next((f.path for f in files if f.ok), None)
        name = posixpath.basename(stored) if stored else "attachment"
    return f"{display_name(item.content_type).capitalize()} file: {name}"


class NoteAssembler:
    """Builds finished notes from content items."""

    def __init__(
        self,
        config: NotegramConfig,
        orchestrator: AIOrchestrator,
        engine: CategorizationEngine,
        *,
        extractor: Optional[DocumentTextExtractor] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self._orchestrator = orchestrator
        self._engine = engine
        self._extractor = extractor
        self._clock = clock
        self._parameters = AIParameterGenerator(orchestrator, config.custom_parameters)

    async def assemble(
        self,
        item: ContentItem,
        files: Sequence[AttachmentFile] = (),
        *,
        combined_context: Optional[str] = None,
    ) -> FinishedNote:
        """
        Build the note for ``item``.

        Args:
            item: The single item, or the primary item of a media group
            files: Attachment results, in item order
            combined_context: Summary of a media group's captions and types

        Returns:
            FinishedNote; on any failure the raw text plus links
        """
        links = render_links(files)
        try:
            body = await self._process_body(item, files, combined_context)
            content = join_blocks(body, links)
            category = await self._resolve_category(item, body or content)
            return await self._finish(item, content, category)
        except Exception as e:
            logger.exception("Note assembly failed for %s, saving raw content: %s", item.item_id, e)
            path = ensure_markdown(render_path(self.config.routing.note_path_template, item=item, now=self._clock()))
            return FinishedNote(path=path, content=join_blocks(item.caption, links))

    async def attachment_path(self, item: ContentItem) -> str:
        """Storage path for ``item``'s attachment.

        A category's ``file_path_override`` replaces the routing template
        when the caption resolves to that category.
        """
        file_name = self._file_name(item)
        template = self.config.routing.file_path_template
        override = await self._file_path_override(item)
        if override:
            template = override
        if "{{file" not in template:
            template = template.rstrip("/") + "/{{file}}"
        return render_path(template, item=item, content=item.caption, file_name=file_name, now=self._clock())

    # =========================================================================
    # Body
    # =========================================================================

    async def _process_body(
        self,
        item: ContentItem,
        files: Sequence[AttachmentFile],
        combined_context: Optional[str],
    ) -> str:
        text = item.caption
        orchestrator = self._orchestrator

        if combined_context is not None:
            processed = await orchestrator.process(combined_context, item.content_type)
            return processed or text

        if item.content_type is ContentType.DOCUMENT:
            extracted = await self._extract_document(item, files)
            if extracted:
                if text:
                    extracted += f"\n\n**Document caption:**\n{text}"
                processed = await orchestrator.process(extracted, ContentType.TEXT, item)
                return processed or text

        if item.has_attachment:
            description = describe_attachment(item, files)
            if text:
                processed = await orchestrator.process_mixed(description, item.content_type, text, item)
            else:
                processed = await orchestrator.process(description, item.content_type, item)
            return processed or text

        if item.is_url_only:
            return text
        processed = await orchestrator.process(text, ContentType.TEXT, item)
        return processed or text

    async def _extract_document(self, item: ContentItem, files: Sequence[AttachmentFile]) -> Optional[str]:
        if self._extractor is None:
            return None
        stored = next((f for f in files if f.ok), None)
        if stored is None:
            return None
        try:
            extracted = await self._extractor.extract(item, stored.path)
        except Exception as e:
            logger.warning("Document text extraction failed for %s: %s", item.item_id, e)
            return None
        return (extracted or "").strip() or None

    # =========================================================================
    # Categorization and paths
    # =========================================================================

    async def _resolve_category(self, item: ContentItem, content: str) -> Optional[Category]:
        if not self.config.categories.enabled:
            return None
        try:
            forced = self.config.routing.force_category_id or None
            if forced:
                return await self._engine.categorize(content, item, forced_category_id=forced)
            if item.is_url_only:
                return self._engine.default_category
            return await self._engine.categorize(content, item)
        except Exception as e:
            log_event(logger, logging.WARNING, "categorization_error", item_id=item.item_id, error=str(e))
            return None

    async def _finish(self, item: ContentItem, content: str, category: Optional[Category]) -> FinishedNote:
        categories = self.config.categories
        template = self.config.routing.note_path_template
        if (
            category is not None
            and categories.folders_enabled
            and category.note_path_template
            and not self.config.routing.override_category_folders
        ):
            template = category.note_path_template

        ai_values = await self._ai_values(template, content)
        path = ensure_markdown(render_path(
            template,
            item=item,
            content=item.caption or content,
            category=category,
            ai_values=ai_values,
            now=self._clock(),
        ))

        if category is not None and categories.tags_enabled and category.tag not in content:
            content = f"{category.tag}\n\n{content}"
        return FinishedNote(path=path, content=content, category=category)

    async def _ai_values(self, template: str, content: str) -> Dict[str, str]:
        names = ai_parameter_names(template)
        if not names:
            return {}
        return await self._parameters.generate(content, names)

    async def _file_path_override(self, item: ContentItem) -> Optional[str]:
        categories = self.config.categories
        if not categories.enabled or not categories.folders_enabled:
            return None
        if not any(c.file_path_override for c in self._engine.categories):
            return None
        forced = self.config.routing.force_category_id or None
        if not item.has_caption and not forced:
            return None
        category = await self._engine.categorize(item.caption, item, forced_category_id=forced)
        return category.file_path_override if category else None

    @staticmethod
    def _file_name(item: ContentItem) -> str:
        attachment = item.attachment
        if attachment is not None and attachment.file_name:
            return attachment.file_name
        extension = ""
        if attachment is not None and attachment.mime_type:
            extension = mimetypes.guess_extension(attachment.mime_type) or ""
        return f"{item.content_type.value}_{item.item_id}{extension}"
