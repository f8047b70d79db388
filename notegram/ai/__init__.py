"""
Notegram AI Layer

Provider adapters (OpenAI, Claude, Gemini), hierarchical prompts and the
orchestrator that runs every request under one resilience policy.
"""

from .prompts import PromptComposer
from .orchestrator import AIOrchestrator, RetryPolicy
from .providers import ProviderName, ProviderAdapter, build_provider

__all__ = [
    "PromptComposer",
    "AIOrchestrator",
    "RetryPolicy",
    "ProviderName",
    "ProviderAdapter",
    "build_provider",
]
