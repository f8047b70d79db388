"""
Notegram Notes

Media group aggregation, note assembly and the pipeline that connects them
to the transport and storage collaborators.
"""

from .media_group import AttachmentFile, InFlightCounter, MediaGroup, MediaGroupAggregator
from .assembler import FinishedNote, NoteAssembler
from .collaborators import Transport, NoteStorage, DocumentTextExtractor
from .pipeline import NotePipeline, build_pipeline

__all__ = [
    "AttachmentFile",
    "InFlightCounter",
    "MediaGroup",
    "MediaGroupAggregator",
    "FinishedNote",
    "NoteAssembler",
    "Transport",
    "NoteStorage",
    "DocumentTextExtractor",
    "NotePipeline",
    "build_pipeline",
]
