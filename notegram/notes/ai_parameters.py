"""
Custom AI Parameters

Named values generated by the AI provider for ``{{ai:name}}`` placeholders,
e.g. a short title for the note file name. All parameters a template needs
are requested in a single call.
"""

import logging
from typing import Dict, List

from ..ai.orchestrator import AIOrchestrator
from ..common.llm_utils import extract_parameters

logger = logging.getLogger("notegram.notes.ai_parameters")


def build_parameters_prompt(content: str, parameters: Dict[str, str]) -> str:
    described = "\n".join(f"- {name}: {prompt}" for name, prompt in parameters.items())
    expected = "\n".join(f"{name}: [value]" for name in parameters)
    return (
        "Analyze the following text and create parameters for note organization.\n\n"
        f"Text: {content}\n\n"
        f"Create the following parameters:\n{described}\n\n"
        f"Return result in format:\n{expected}\n\n"
        "Use English language. Be concise and accurate."
    )


def fallback_values(names: List[str]) -> Dict[str, str]:
    return {name: f"param_{name}" for name in names}


class AIParameterGenerator:
    """Generates custom parameter values for a note."""

    def __init__(self, orchestrator: AIOrchestrator, parameters: Dict[str, str]):
        self._orchestrator = orchestrator
        self.parameters = parameters

    async def generate(self, content: str, names: List[str]) -> Dict[str, str]:
        """
        Generate values for ``names``.

        Undefined parameters, disabled AI and failed calls all fall back to
        ``param_{name}``.
        """
        values = fallback_values(names)
        defined = {name: self.parameters[name] for name in names if name in self.parameters}
        if not defined:
            return values

        answer = await self._orchestrator.process_with_prompt(
            content, build_parameters_prompt(content, defined), label="parameters"
        )
        if not answer:
            logger.info("AI parameters unavailable, using fallbacks for %s", ", ".join(defined))
            return values

        values.update(extract_parameters(answer, defined))
        return values
