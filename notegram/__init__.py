"""
Notegram

Turns chat messages and their attachments into finished Markdown notes.

Philosophy:
- A burst of attachments sent together becomes one note
- AI enrichment is best-effort: a failed provider never loses a message
- Categories come from deterministic rules first, AI classification second
- Raw content is always the fallback

Usage:
    from notegram.common import load_config
    from notegram.ai import AIOrchestrator, PromptComposer
    from notegram.categories import CategorizationEngine, AIClassifier
    from notegram.notes import MediaGroupAggregator, NoteAssembler, NotePipeline
"""

__version__ = "0.1.0"
