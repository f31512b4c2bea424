"""Settings loading and persistence for codefixer (~/.codefixer.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .errors import ConfigurationError

CONFIG_ENV_VAR = "CODEFIXER_CONFIG"
DEFAULT_SERVICE = "ollama"
DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_TEST_TIMEOUT = 600.0
_CONFIG_FILE_MODE = 0o600
HOSTED_SERVICES = ("chatgpt", "openai", "grok", "xai")

_API_KEY_ENV = {
    "chatgpt": "OPENAI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "grok": "XAI_API_KEY",
    "xai": "XAI_API_KEY",
}


def default_config_path() -> Path:
    override = os.getenv(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".codefixer.yml"


def default_work_dir() -> Path:
    return Path.home() / ".codefixer" / "workspace"


@dataclass
class RepositorySettings:
    """Target repository coordinates."""

    owner: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None


@dataclass
class AISettings:
    """Model service selection and credentials."""

    service: str = DEFAULT_SERVICE
    api_key: Optional[str] = None
    model: Optional[str] = None
    ollama_url: str = DEFAULT_OLLAMA_URL
    request_timeout: Optional[float] = None


@dataclass
class Settings:
    """The single persisted configuration record."""

    repository: RepositorySettings = field(default_factory=RepositorySettings)
    github_token: Optional[str] = None
    ai: AISettings = field(default_factory=AISettings)
    work_dir: Path = field(default_factory=default_work_dir)
    test_timeout: float = DEFAULT_TEST_TIMEOUT


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from disk, returning defaults when the file does not exist."""
    config_file = (path or default_config_path()).expanduser()
    if not config_file.exists():
        return Settings()

    data = _read_yaml(config_file)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_file.name} must contain a mapping at the root")

    repo_data = _as_dict(data.get("repository"))
    repository = RepositorySettings(
        owner=_as_str(repo_data.get("owner")),
        name=_as_str(repo_data.get("name")),
        url=_as_str(repo_data.get("url")),
    )

    github_data = _as_dict(data.get("github"))
    ai_data = _as_dict(data.get("ai"))
    ai = AISettings(
        service=(_as_str(ai_data.get("service")) or DEFAULT_SERVICE).lower(),
        api_key=_as_str(ai_data.get("api_key")),
        model=_as_str(ai_data.get("model")),
        ollama_url=_as_str(ai_data.get("ollama_url")) or DEFAULT_OLLAMA_URL,
        request_timeout=_as_float(ai_data.get("request_timeout")),
    )

    work_dir_value = _as_str(data.get("work_dir"))
    work_dir = Path(work_dir_value).expanduser() if work_dir_value else default_work_dir()

    tests_data = _as_dict(data.get("tests"))
    test_timeout = _as_float(tests_data.get("timeout")) or DEFAULT_TEST_TIMEOUT

    return Settings(
        repository=repository,
        github_token=_as_str(github_data.get("token")),
        ai=ai,
        work_dir=work_dir,
        test_timeout=test_timeout,
    )


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Write settings as YAML with owner-only permissions and return the path."""
    config_file = (path or default_config_path()).expanduser()
    payload = {
        "repository": {
            "owner": settings.repository.owner,
            "name": settings.repository.name,
            "url": settings.repository.url,
        },
        "github": {"token": settings.github_token},
        "ai": {
            "service": settings.ai.service,
            "api_key": settings.ai.api_key,
            "model": settings.ai.model,
            "ollama_url": settings.ai.ollama_url,
            "request_timeout": settings.ai.request_timeout,
        },
        "work_dir": str(settings.work_dir),
        "tests": {"timeout": settings.test_timeout},
    }
    config_file.parent.mkdir(parents=True, exist_ok=True)
    # Created owner-only; an existing file is tightened before the token is written.
    fd = os.open(config_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _CONFIG_FILE_MODE)
    os.fchmod(fd, _CONFIG_FILE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        yaml.safe_dump(payload, handle, sort_keys=False)
    return config_file


def parse_repo_url(url: str) -> Tuple[str, str]:
    """Extract ``(owner, name)`` from a GitHub URL in https, ssh or bare form."""
    cleaned = url.strip()
    if cleaned.endswith(".git"):
        cleaned = cleaned[: -len(".git")]
    if "github.com" not in cleaned:
        raise ConfigurationError("Only GitHub repositories are supported")

    path = cleaned.split("github.com", 1)[1].lstrip(":/")
    parts = [part for part in path.split("/") if part]
    if len(parts) < 2:
        raise ConfigurationError(f"Invalid repository path in URL: {url}")
    return parts[0], parts[1]


def apply_repository(settings: Settings, value: str) -> None:
    """Set repository coordinates from a URL or an ``owner/name`` pair."""
    if "github.com" in value:
        owner, name = parse_repo_url(value)
        settings.repository.url = value
    else:
        parts = value.strip().strip("/").split("/")
        if len(parts) != 2 or not all(parts):
            raise ConfigurationError(f"Expected owner/name or a GitHub URL, got '{value}'")
        owner, name = parts
        settings.repository.url = f"https://github.com/{owner}/{name}"
    settings.repository.owner = owner
    settings.repository.name = name


def apply_environment(settings: Settings) -> Settings:
    """Fill empty credentials from environment variables."""
    if not settings.github_token:
        settings.github_token = os.getenv("GITHUB_TOKEN") or None
    env_key = _API_KEY_ENV.get(settings.ai.service)
    if env_key and not settings.ai.api_key:
        settings.ai.api_key = os.getenv(env_key) or None
    return settings


def validate_settings(settings: Settings) -> None:
    """Raise ConfigurationError when required credentials are missing."""
    if not settings.repository.owner or not settings.repository.name:
        raise ConfigurationError("Repository owner and name are required")
    if not settings.github_token:
        raise ConfigurationError("GitHub token is required")
    if settings.ai.service in HOSTED_SERVICES and not settings.ai.api_key:
        raise ConfigurationError(f"{settings.ai.service} API key is required")


def _read_yaml(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


__all__ = [
    "AISettings",
    "CONFIG_ENV_VAR",
    "HOSTED_SERVICES",
    "RepositorySettings",
    "Settings",
    "apply_environment",
    "apply_repository",
    "default_config_path",
    "load_settings",
    "parse_repo_url",
    "save_settings",
    "validate_settings",
]
