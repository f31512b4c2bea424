"""Vendor adapters that turn an issue and its context into a fix proposal."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Sequence

from ..accounting import SessionTally
from ..config import Settings
from ..errors import ParseError, TransportError
from ..logging import get_logger
from ..models import FixProposal, IssueReport, RepositoryContext
from ..transport import request_json
from .prompt import SYSTEM_PROMPT, build_prompt, parse_fix_proposal

HOSTED_TIMEOUT = 120.0
LOCAL_TIMEOUT = 300.0

_logger = get_logger("llm")


class FixProposer(ABC):
    """One model vendor able to propose a fix for an issue."""

    service: str = ""
    default_model: str = ""
    fallback_models: Sequence[str] = ()

    def __init__(self, model: str | None = None, *, request_timeout: float | None = None) -> None:
        self.model = model or self.default_model
        self.request_timeout = request_timeout or self.default_timeout()

    @staticmethod
    def default_timeout() -> float:
        return HOSTED_TIMEOUT

    def propose_fix(
        self,
        issue: IssueReport,
        context: RepositoryContext,
        *,
        tally: SessionTally | None = None,
    ) -> FixProposal:
        """Ask the model for a fix; raises TransportError or ParseError."""
        if tally is not None:
            tally.record_model_call(self.service)
        prompt = build_prompt(issue, context)
        _logger.debug("Sending %d-character prompt to %s (%s)", len(prompt), self.service, self.model)
        response = self.complete(prompt, system=SYSTEM_PROMPT)
        return parse_fix_proposal(response)

    @abstractmethod
    def complete(self, prompt: str, *, system: str | None = None) -> str:
        """Send one prompt and return the raw response text."""

    @abstractmethod
    def list_models(self) -> List[str]:
        """Return model identifiers offered by the service."""


class ChatCompletionsProposer(FixProposer):
    """Shared transport for OpenAI-compatible chat completion APIs."""

    base_url: str = ""
    temperature = 0.2
    max_tokens = 8000

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        *,
        base_url: str | None = None,
        request_timeout: float | None = None,
    ) -> None:
        super().__init__(model, request_timeout=request_timeout)
        self.api_key = api_key
        if base_url:
            self.base_url = base_url.rstrip("/")

    def complete(self, prompt: str, *, system: str | None = None) -> str:
        payload: dict[str, object] = {
            "model": self.model,
            "messages": _build_messages(system, prompt),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        response = request_json(
            "POST",
            f"{self.base_url}/chat/completions",
            headers=self._headers(),
            payload=payload,
            timeout=self.request_timeout,
            label=f"{self.service} API",
        )
        content = _extract_content(response)
        if not content:
            raise ParseError(f"{self.service} returned an empty response", response=str(response))
        return content

    def list_models(self) -> List[str]:
        try:
            response = request_json(
                "GET",
                f"{self.base_url}/models",
                headers=self._headers(),
                timeout=self.request_timeout,
                label=f"{self.service} API",
            )
        except TransportError as exc:
            _logger.debug("Model listing failed for %s: %s", self.service, exc)
            return list(self.fallback_models)

        data = response.get("data") if isinstance(response, dict) else None
        models = [
            item["id"]
            for item in data or []
            if isinstance(item, dict) and isinstance(item.get("id"), str) and self._accepts(item["id"])
        ]
        return models or [self.default_model]

    def _accepts(self, model_id: str) -> bool:
        return True

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}


class OpenAIProposer(ChatCompletionsProposer):
    service = "openai"
    default_model = "gpt-4o"
    base_url = "https://api.openai.com/v1"
    fallback_models = ("gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo")

    def _accepts(self, model_id: str) -> bool:
        return model_id.startswith("gpt-")


class XAIProposer(ChatCompletionsProposer):
    service = "xai"
    default_model = "grok-beta"
    base_url = "https://api.x.ai/v1"
    fallback_models = ("grok-beta", "grok-vision-beta")


class OllamaProposer(FixProposer):
    """Local Ollama server; slower, so it gets a longer timeout."""

    service = "ollama"
    default_model = "llama3"
    fallback_models = ("llama2", "codellama", "mistral")

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str | None = None,
        *,
        request_timeout: float | None = None,
    ) -> None:
        super().__init__(model, request_timeout=request_timeout)
        self.base_url = base_url.rstrip("/")

    @staticmethod
    def default_timeout() -> float:
        return LOCAL_TIMEOUT

    def complete(self, prompt: str, *, system: str | None = None) -> str:
        full_prompt = f"{system.strip()}\n\n{prompt}" if system else prompt
        response = request_json(
            "POST",
            f"{self.base_url}/api/generate",
            payload={"model": self.model, "prompt": full_prompt, "stream": False},
            timeout=self.request_timeout,
            label="Ollama API",
        )
        content = response.get("response") if isinstance(response, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise ParseError("Ollama returned an empty response", response=str(response))
        return content

    def list_models(self) -> List[str]:
        try:
            response = request_json(
                "GET",
                f"{self.base_url}/api/tags",
                timeout=self.request_timeout,
                label="Ollama API",
            )
        except TransportError as exc:
            _logger.debug("Model listing failed for ollama: %s", exc)
            return list(self.fallback_models)

        entries = response.get("models") if isinstance(response, dict) else None
        models = [
            item["name"]
            for item in entries or []
            if isinstance(item, dict) and isinstance(item.get("name"), str)
        ]
        return models or ["llama2"]


def create_proposer(settings: Settings, *, model: Optional[str] = None) -> FixProposer:
    """Instantiate the proposer selected by ``settings.ai.service``."""
    ai = settings.ai
    selected_model = model if model is not None else ai.model
    service = ai.service.lower()
    if service in {"chatgpt", "openai"}:
        return OpenAIProposer(ai.api_key or "", selected_model, request_timeout=ai.request_timeout)
    if service in {"grok", "xai"}:
        return XAIProposer(ai.api_key or "", selected_model, request_timeout=ai.request_timeout)
    return OllamaProposer(ai.ollama_url, selected_model, request_timeout=ai.request_timeout)


def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    return messages


def _extract_content(payload: Any) -> str:
    if not isinstance(payload, Mapping):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str):
            return content
    text = first.get("text")
    if isinstance(text, str):
        return text
    return ""


__all__ = [
    "ChatCompletionsProposer",
    "FixProposer",
    "OllamaProposer",
    "OpenAIProposer",
    "XAIProposer",
    "create_proposer",
]
