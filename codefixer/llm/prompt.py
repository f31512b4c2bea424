"""Shared prompt template and response parser for every model vendor."""

from __future__ import annotations

import json
from typing import List, Optional

from pydantic import BaseModel, ValidationError

from ..errors import ParseError
from ..models import Confidence, FileChange, FixProposal, IssueReport, RepositoryContext
from ..rendering import render_template

SYSTEM_PROMPT = (
    "You are an expert software developer. Analyze issues and provide fixes in a "
    "structured JSON format."
)

# Per-file cap inside the prompt; the context itself keeps whole files.
MAX_PROMPT_FILE_CHARS = 5000


class _FilePayload(BaseModel):
    path: str
    content: str


class _FixPayload(BaseModel):
    confidence: Optional[str] = None
    needs_more_info: bool = False
    questions: Optional[List[str]] = None
    explanation: Optional[str] = None
    files: Optional[List[_FilePayload]] = None


def build_prompt(issue: IssueReport, context: RepositoryContext) -> str:
    """Render the user prompt for ``issue`` with the selected repository context."""
    files = []
    for path, content in context.files.items():
        if len(content) > MAX_PROMPT_FILE_CHARS:
            content = content[:MAX_PROMPT_FILE_CHARS] + "\n... (truncated)"
        files.append({"path": path, "content": content})
    return render_template(
        "prompt.md.j2",
        issue=issue,
        structure=context.structure.rstrip("\n"),
        files=files,
    )


def parse_fix_proposal(response: str) -> FixProposal:
    """Turn a model response into a FixProposal, raising ParseError when malformed."""
    cleaned = _strip_code_fence(response)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        data = _extract_object(cleaned, response)

    if not isinstance(data, dict):
        raise ParseError("Model response is not a JSON object", response=response)

    try:
        payload = _FixPayload.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"Model response has an unexpected shape: {exc}", response=response) from exc

    return FixProposal(
        confidence=Confidence.parse(payload.confidence),
        needs_more_info=payload.needs_more_info,
        questions=[question for question in payload.questions or [] if question.strip()],
        explanation=(payload.explanation or "").strip(),
        file_changes=[
            FileChange(path=item.path, content=item.content) for item in payload.files or []
        ],
    )


def _strip_code_fence(response: str) -> str:
    text = response.strip()
    if text.startswith("```json"):
        text = text[len("```json") :]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def _extract_object(text: str, original: str) -> object:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ParseError("Model response does not contain JSON", response=original)
    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ParseError(f"Failed to parse model response: {exc}", response=original) from exc


__all__ = ["MAX_PROMPT_FILE_CHARS", "SYSTEM_PROMPT", "build_prompt", "parse_fix_proposal"]
