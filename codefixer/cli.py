"""CLI entrypoints for codefixer commands."""

from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path
from typing import List, Optional

from .accounting import SessionTally
from .config import (
    HOSTED_SERVICES,
    Settings,
    apply_environment,
    apply_repository,
    load_settings,
    save_settings,
    validate_settings,
)
from .errors import ConfigurationError, TransportError
from .git.workspace import GitWorkspace
from .llm import create_proposer
from .logging import configure_logging
from .orchestrator import Orchestrator, RunReport
from .pipeline import IssuePipeline
from .suite import SuiteRunner
from .tracker.github import GitHubTracker


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_config_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings file to use (defaults to ~/.codefixer.yml or $CODEFIXER_CONFIG).",
    )


def _add_settings_overrides(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--repo-url", help="GitHub repository URL or owner/name.")
    parser.add_argument("--owner", help="GitHub repository owner.")
    parser.add_argument("--repo", help="GitHub repository name.")
    parser.add_argument("--github-token", help="GitHub personal access token.")
    parser.add_argument("--ai-service", help="Model service: chatgpt, grok or ollama.")
    parser.add_argument("--ai-key", help="API key for the hosted model service.")
    parser.add_argument("--ai-model", help="Model identifier to use.")
    parser.add_argument("--ollama-url", help="Base URL of the local Ollama server.")
    parser.add_argument("--work-dir", type=Path, help="Directory where repositories are cloned.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codefixer",
        description="Propose fixes for open GitHub issues with a language model.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run",
        help="Process open issues of the configured repository.",
    )
    _add_verbose_option(run_parser, suppress_default=True)
    _add_config_option(run_parser)
    _add_settings_overrides(run_parser)
    target = run_parser.add_mutually_exclusive_group()
    target.add_argument("--issue", type=int, help="Process a single issue by number.")
    target.add_argument(
        "--all",
        action="store_true",
        help="Process every eligible open issue.",
    )
    run_parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write timestamped logs to this file.",
    )
    run_parser.add_argument(
        "--yes",
        action="store_true",
        help="Do not ask for confirmation; keep going after failures.",
    )

    setup_parser = subparsers.add_parser(
        "setup",
        help="Interactively edit and save settings.",
    )
    _add_verbose_option(setup_parser, suppress_default=True)
    _add_config_option(setup_parser)

    models_parser = subparsers.add_parser(
        "models",
        help="List models offered by the configured service.",
    )
    _add_verbose_option(models_parser, suppress_default=True)
    _add_config_option(models_parser)
    _add_settings_overrides(models_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for codefixer commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=getattr(args, "log_file", None))

    if args.command == "setup":
        try:
            settings = load_settings(args.config)
        except ConfigurationError as exc:
            parser.exit(1, f"{exc}\n")
        path = save_settings(interactive_setup(settings), args.config)
        print(f"Configuration saved to: {path}")
        return

    try:
        settings = _resolve_settings(args)
    except ConfigurationError as exc:
        parser.exit(1, f"Error: {exc}\n")

    if args.command == "models":
        for model in create_proposer(settings).list_models():
            print(model)
        return

    if args.command == "run":
        try:
            validate_settings(settings)
        except ConfigurationError as exc:
            parser.exit(1, f"Error: {exc}\nRun `codefixer setup` to configure credentials.\n")
        try:
            report = run(settings, issue_number=args.issue, fix_all=args.all, assume_yes=args.yes)
        except TransportError as exc:
            parser.exit(1, f"codefixer run failed: {exc}\nRun with --verbose for more details.\n")
        if report is not None and report.failures:
            parser.exit(1)
        return

    parser.exit(1, "Unknown command\n")  # pragma: no cover - argparse enforces choices


def run(
    settings: Settings,
    *,
    issue_number: Optional[int] = None,
    fix_all: bool = False,
    assume_yes: bool = False,
) -> Optional[RunReport]:
    """Select issues according to the flags, process them and print the summary."""
    owner = settings.repository.owner or ""
    name = settings.repository.name or ""
    token = settings.github_token or ""
    tracker = GitHubTracker(token, owner, name)
    pipeline = IssuePipeline(
        tracker,
        create_proposer(settings),
        lambda: GitWorkspace(settings.work_dir, owner, name, token),
        suite_factory=lambda path: SuiteRunner(path, timeout=settings.test_timeout),
    )
    orchestrator = Orchestrator(
        tracker,
        pipeline,
        service=settings.ai.service,
        ask=None if assume_yes else prompt,
    )

    print(f"Repository: {owner}/{name}")
    print(f"AI service: {settings.ai.service} (model: {pipeline.proposer.model})")

    tally = SessionTally()
    if issue_number is not None:
        report = orchestrator.process(
            [tracker.get_issue(issue_number)], tally, interactive=not assume_yes
        )
    else:
        report = orchestrator.run(tally, fix_all=fix_all, interactive=not assume_yes)
    if report is None:
        return None

    for failure in report.failures:
        print(f"Failed to process issue #{failure.issue_number} ({failure.kind}): {failure.message}")
        if failure.kind == "tests" and failure.output:
            print(failure.output)
    for outcome in report.outcomes:
        line = f"Issue #{outcome.issue_number}: {outcome.resolution.value}"
        if outcome.change_request_url:
            line += f" ({outcome.change_request_url})"
        print(line)
    print("\n".join(tally.render_summary()))
    return report


def _resolve_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    repo_url = getattr(args, "repo_url", None)
    if repo_url:
        apply_repository(settings, repo_url)
    if getattr(args, "owner", None):
        settings.repository.owner = args.owner
    if getattr(args, "repo", None):
        settings.repository.name = args.repo
    if getattr(args, "github_token", None):
        settings.github_token = args.github_token
    if getattr(args, "ai_service", None):
        settings.ai.service = args.ai_service.lower()
    if getattr(args, "ai_key", None):
        settings.ai.api_key = args.ai_key
    if getattr(args, "ai_model", None):
        settings.ai.model = args.ai_model
    if getattr(args, "ollama_url", None):
        settings.ai.ollama_url = args.ollama_url
    if getattr(args, "work_dir", None):
        settings.work_dir = args.work_dir.expanduser()
    return apply_environment(settings)


def prompt(label: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    answer = input(f"{label}{suffix}: ").strip()
    return answer or default


def prompt_secret(label: str, default: str | None = None) -> str | None:
    suffix = " [****]" if default else ""
    answer = getpass.getpass(f"{label}{suffix}: ").strip()
    return answer or default


def prompt_choice(label: str, options: List[str], default: str | None = None) -> str:
    for index, option in enumerate(options, start=1):
        print(f"  {index}. {option}")
    default_index = options.index(default) + 1 if default in options else 1
    answer = prompt(f"{label} (1-{len(options)})", str(default_index))
    if answer.isdigit() and 1 <= int(answer) <= len(options):
        return options[int(answer) - 1]
    for option in options:
        if option.lower() == answer.lower():
            return option
    return options[default_index - 1]


def interactive_setup(settings: Settings) -> Settings:
    """Walk the operator through every setting and return the edited record."""
    print("=== codefixer setup ===")
    while True:
        repo_value = prompt("Repository URL or owner/repo", settings.repository.url or "")
        try:
            apply_repository(settings, repo_value)
            break
        except ConfigurationError as exc:
            print(f"Warning: {exc}")

    settings.github_token = prompt_secret("GitHub Token", settings.github_token)
    settings.ai.service = prompt(
        "AI Service (chatgpt/grok/ollama)", settings.ai.service
    ).lower()
    if settings.ai.service in HOSTED_SERVICES:
        settings.ai.api_key = prompt_secret(f"{settings.ai.service} API Key", settings.ai.api_key)
    else:
        settings.ai.ollama_url = prompt("Ollama URL", settings.ai.ollama_url)

    print("Fetching available models...")
    models = create_proposer(settings).list_models()
    if models:
        settings.ai.model = prompt_choice("Select model", models, settings.ai.model)
    else:
        settings.ai.model = prompt("AI Model", settings.ai.model or "") or None

    print(f"  (Repositories will be cloned to: {settings.work_dir}/<owner>/<repo>)")
    settings.work_dir = Path(prompt("Work Directory", str(settings.work_dir))).expanduser()
    return settings


__all__ = ["interactive_setup", "main", "run"]


if __name__ == "__main__":
    main(sys.argv[1:])
