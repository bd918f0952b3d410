"""Service layer built on top of the acquisition core."""

from .prompt_service import PromptService, NamedPrompt, DEFAULT_PROMPT
from .summarization_service import (
    SummarizationService,
    SummarizationBackend,
    NoteRenderer,
    SummaryResult,
    AlreadyProcessingError,
    SummarizationError
)

__all__ = [
    "PromptService",
    "NamedPrompt",
    "DEFAULT_PROMPT",
    "SummarizationService",
    "SummarizationBackend",
    "NoteRenderer",
    "SummaryResult",
    "AlreadyProcessingError",
    "SummarizationError"
]
