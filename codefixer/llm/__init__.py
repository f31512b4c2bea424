"""Model vendor adapters."""

from .clients import (
    ChatCompletionsProposer,
    FixProposer,
    OllamaProposer,
    OpenAIProposer,
    XAIProposer,
    create_proposer,
)
from .prompt import SYSTEM_PROMPT, build_prompt, parse_fix_proposal

__all__ = [
    "ChatCompletionsProposer",
    "FixProposer",
    "OllamaProposer",
    "OpenAIProposer",
    "SYSTEM_PROMPT",
    "XAIProposer",
    "build_prompt",
    "create_proposer",
    "parse_fix_proposal",
]
