"""
Media Group Aggregation

Attachments sent together arrive as separate messages sharing one group id,
with no "end of group" signal. The aggregator buffers them and commits a
group once it has been quiet for the inactivity window and nothing else is
still downloading, so one burst becomes one note.
"""

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from ..common.errors import AttachmentRetrievalError
from ..common.log_events import log_event
from ..common.schemas.content import ContentItem, ContentType

logger = logging.getLogger("notegram.notes.media_group")

_SUMMARY_TYPES = {ContentType.PHOTO, ContentType.VIDEO, ContentType.DOCUMENT, ContentType.AUDIO}


@dataclass
class AttachmentFile:
    """Where one attachment ended up, or why it did not"""
    item_id: str
    path: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.path is not None and self.error is None


class InFlightCounter:
    """Items received but not yet fully handed off, across all groups."""

    def __init__(self):
        self._count = 0

    @property
    def value(self) -> int:
        return self._count

    def increment(self) -> None:
        self._count += 1

    def decrement(self) -> None:
        self._count = max(0, self._count - 1)

    @contextlib.contextmanager
    def track(self):
        self.increment()
        try:
            yield
        finally:
            self.decrement()


@dataclass
class MediaGroup:
    """Buffered attachments sharing one group id"""
    group_id: str
    items: List[ContentItem] = field(default_factory=list)
    files: List[AttachmentFile] = field(default_factory=list)
    primary_item: Optional[ContentItem] = None
    last_activity: float = 0.0
    error: Optional[AttachmentRetrievalError] = None
    committed: bool = False
    _captioned_primary: bool = field(default=False, repr=False)

    @property
    def file_paths(self) -> List[Optional[str]]:
        """Local paths, index-aligned with the items that carried an attachment"""
        return [f.path for f in self.files]

    def append(self, item: ContentItem, file: Optional[AttachmentFile], now: float) -> None:
        self.items.append(item)
        if item.has_attachment:
            if file is None:
                file = AttachmentFile(item.item_id, error="attachment was not retrieved")
            self.files.append(file)
            if file.error and self.error is None:
                self.error = AttachmentRetrievalError(file.error, item_id=item.item_id)

        # The first captioned item drives the note; otherwise the first item does
        if item.has_caption and not self._captioned_primary:
            self.primary_item = item
            self._captioned_primary = True
        elif self.primary_item is None:
            self.primary_item = item

        self.last_activity = now

    def combined_context(self) -> str:
        types = []
        for item in self.items:
            if not item.has_attachment:
                continue
            name = item.content_type.value if item.content_type in _SUMMARY_TYPES else "file"
            if name not in types:
                types.append(name)

        context = f"Group of {len(self.items)} files: {', '.join(types)}"
        captions = [item.caption for item in self.items if item.has_caption]
        if captions:
            context += "\n\nFile captions:\n"
            context += "".join(f"{i}. {caption}\n" for i, caption in enumerate(captions, 1))
        return context


CommitHandler = Callable[[MediaGroup], Awaitable[None]]


class MediaGroupAggregator:
    """
    Buffers grouped items and commits each group exactly once.

    All group mutations happen under one lock; commits run outside it so
    slow AI processing does not hold up ingestion. The ticker starts with the
    first open group and stops itself when none are left.
    """

    def __init__(
        self,
        on_commit: CommitHandler,
        in_flight: Optional[InFlightCounter] = None,
        *,
        tick_interval: float = 0.5,
        inactivity_window: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._on_commit = on_commit
        self.in_flight = in_flight or InFlightCounter()
        self.tick_interval = tick_interval
        self.inactivity_window = inactivity_window
        self._clock = clock
        self._groups: Dict[str, MediaGroup] = {}
        self._lock: Optional[asyncio.Lock] = None
        self._ticker: Optional[asyncio.Task] = None
        self._scanning = False

    @property
    def open_groups(self) -> List[MediaGroup]:
        return list(self._groups.values())

    @property
    def lock(self) -> asyncio.Lock:
        """Group lock, created on first use inside the running loop."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @property
    def is_running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    def get(self, group_id: str) -> Optional[MediaGroup]:
        return self._groups.get(group_id)

    async def ingest(self, item: ContentItem, file: Optional[AttachmentFile] = None) -> MediaGroup:
        """
        Add a grouped item to its open group, creating the group if needed.

        Args:
            item: Item with a group id
            file: Download result for the item's attachment, if any

        Returns:
            The group the item was added to
        """
        if not item.group_id:
            raise ValueError("ingest() requires an item with a group id")

        async with self.lock:
            now = self._clock()
            group = self._groups.get(item.group_id)
            if group is None:
                group = MediaGroup(group_id=item.group_id, last_activity=now)
                self._groups[item.group_id] = group
                log_event(logger, logging.INFO, "media_group_created", group_id=group.group_id)

            had_error = group.error is not None
            group.append(item, file, now)
            log_event(
                logger, logging.DEBUG, "media_group_item_appended",
                group_id=group.group_id, item_id=item.item_id, items=len(group.items),
            )
            if group.error is not None and not had_error:
                log_event(
                    logger, logging.WARNING, "media_group_error",
                    group_id=group.group_id, item_id=item.item_id, error=str(group.error),
                )
            self._ensure_ticker()
        return group

    async def scan(self) -> List[MediaGroup]:
        """
        Commit every group that is ready.

        A group is ready once nothing was appended for the inactivity window
        and no item is in flight anywhere. Overlapping scans are skipped.

        Returns:
            The groups committed by this scan
        """
        if self._scanning:
            return []
        self._scanning = True
        try:
            async with self.lock:
                if self.in_flight.value > 0:
                    return []
                now = self._clock()
                ready = [
                    g for g in self._groups.values()
                    if now - g.last_activity >= self.inactivity_window
                ]
                for group in ready:
                    group.committed = True
                    del self._groups[group.group_id]

            for group in ready:
                await self._commit(group)
            return ready
        finally:
            self._scanning = False

    async def flush(self) -> List[MediaGroup]:
        """Commit all open groups immediately (shutdown)."""
        async with self.lock:
            ready = list(self._groups.values())
            for group in ready:
                group.committed = True
            self._groups.clear()
        for group in ready:
            await self._commit(group)
        return ready

    async def close(self) -> None:
        """Stop the ticker without committing anything."""
        ticker = self._ticker
        self._ticker = None
        if ticker is not None and not ticker.done():
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker

    async def _commit(self, group: MediaGroup) -> None:
        log_event(
            logger, logging.INFO, "media_group_committed",
            group_id=group.group_id, items=len(group.items), files=len(group.files),
            error=str(group.error) if group.error else None,
        )
        try:
            await self._on_commit(group)
        except Exception as e:
            log_event(logger, logging.ERROR, "media_group_error", group_id=group.group_id, error=str(e))

    def _ensure_ticker(self) -> None:
        if not self.is_running:
            self._ticker = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        logger.debug("Media group ticker started")
        try:
            while True:
                await asyncio.sleep(self.tick_interval)
                await self.scan()
                if not self._groups:
                    break
        finally:
            if self._ticker is asyncio.current_task():
                self._ticker = None
            logger.debug("Media group ticker stopped")
