"""CLI entrypoint: analyze a text file (or stdin) and print the result as JSON."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from pydantic import ValidationError

from textlens.api import create_backend
from textlens.config.settings import Settings
from textlens.core.exceptions import (
    AnalysisValidationError,
    BackendError,
    ConfigurationError,
)
from textlens.core.interfaces import GenerationBackend
from textlens.core.models import AnalysisConfig, TaskKind
from textlens.orchestration import AnalysisMode, FailurePolicy, Orchestrator, TaskUpdate
from textlens.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_BACKEND_ERROR = 1
EXIT_USAGE_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="textlens",
        description="Summarize and analyze free-form text with a generation backend.",
    )
    parser.add_argument("path", nargs="?", default="-", help="Text file to analyze ('-' for stdin)")
    parser.add_argument("--language", help="Output language (default from settings)")
    parser.add_argument("--sentences", type=int, default=3, help="Summary length in sentences")
    parser.add_argument("--key-points", type=int, default=5, help="Number of key points")
    parser.add_argument("--include", default="", help="Comma-separated topics to focus on")
    parser.add_argument("--exclude", default="", help="Comma-separated topics to avoid")
    parser.add_argument("--technical", action="store_true", help="Focus on technical details")
    parser.add_argument("--neutral", action="store_true", help="Use a neutral tone")
    parser.add_argument(
        "--tasks",
        default=",".join(t.value for t in TaskKind),
        help="Comma-separated tasks: " + ", ".join(t.value for t in TaskKind),
    )
    parser.add_argument(
        "--mode",
        choices=["per-task", "combined"],
        default="per-task",
        help="One backend call per task, or a single combined call",
    )
    parser.add_argument(
        "--fail-soft",
        action="store_true",
        help="Keep running remaining tasks after a backend failure",
    )
    parser.add_argument("--log-level", help="Log level (default from settings)")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON logs")
    return parser


def parse_tasks(raw: str) -> List[TaskKind]:
    tasks: List[TaskKind] = []
    for name in AnalysisConfig.parse_keywords(raw):
        key = name.lower().replace("-", "_")
        try:
            tasks.append(TaskKind(key))
        except ValueError:
            raise argparse.ArgumentTypeError(f"Unknown task: {name}") from None
    return tasks


def read_text(path: str, stdin: TextIO) -> str:
    if path == "-":
        return stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _report(update: TaskUpdate, stream: TextIO) -> None:
    suffix = " (fallback)" if update.degraded else ""
    if update.error is not None:
        suffix = f": {update.error.message}"
    print(f"[{update.state.value:>9}] {update.task.value}{suffix}", file=stream)


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    backend: Optional[GenerationBackend] = None,
    settings: Optional[Settings] = None,
    stdin: TextIO = sys.stdin,
    stdout: TextIO = sys.stdout,
    stderr: TextIO = sys.stderr,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = settings or Settings()
    except ValidationError as exc:
        print(f"error: invalid settings: {exc}", file=stderr)
        return EXIT_USAGE_ERROR
    configure_logging(level=args.log_level or settings.log_level, json_logs=args.json_logs or settings.json_logs)

    try:
        config = AnalysisConfig(
            output_language=args.language or settings.output_language,
            summary_sentences=args.sentences,
            key_point_count=args.key_points,
            include_keywords=args.include,
            exclude_keywords=args.exclude,
            technical_focus=args.technical,
            neutral_tone=args.neutral,
            enabled_tasks=parse_tasks(args.tasks),
        )
        text = read_text(args.path, stdin)
        orchestrator = Orchestrator(
            backend or create_backend(settings),
            options=settings.generation_options(),
            mode=AnalysisMode.COMBINED if args.mode == "combined" else AnalysisMode.PER_TASK,
            policy=FailurePolicy.FAIL_SOFT if args.fail_soft else FailurePolicy.FAIL_FAST,
        )
        run = orchestrator.run(text, config)
    except (argparse.ArgumentTypeError, ValidationError, OSError, UnicodeDecodeError) as exc:
        print(f"error: {exc}", file=stderr)
        return EXIT_USAGE_ERROR
    except (AnalysisValidationError, ConfigurationError) as exc:
        print(f"error: {exc.message}", file=stderr)
        return EXIT_USAGE_ERROR

    exit_code = EXIT_OK
    try:
        for update in run:
            _report(update, stderr)
    except BackendError as exc:
        print(f"error: {exc.message}", file=stderr)
        exit_code = EXIT_BACKEND_ERROR
    if run.failed:
        exit_code = EXIT_BACKEND_ERROR

    print(run.result.model_dump_json(indent=2, exclude_none=True), file=stdout)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
