from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from reelmatch.domain.entities.media import ProviderKind, SearchOutcome, SearchRequest
from reelmatch.domain.exceptions import InputError
from reelmatch.infrastructure.composition import open_coordinator
from reelmatch.infrastructure.config import AppConfig, load_config
from reelmatch.infrastructure.logging.setup import configure_logging

log = structlog.get_logger(__name__)

EXIT_INPUT_ERROR = 2


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="reelmatch",
        description="Find a movie or episode among the files stored on a debrid provider.",
    )

    # Query
    parser.add_argument(
        "--provider",
        required=True,
        help=f"Provider holding the files ({', '.join(k.value for k in ProviderKind)}).",
    )
    parser.add_argument("--api-key", required=True, help="Provider API key.")
    parser.add_argument("--title", required=True, help="Title to look for.")
    parser.add_argument(
        "--type",
        dest="content_type",
        default="movie",
        choices=["movie", "series"],
        help="Content type (default: movie).",
    )
    parser.add_argument("--imdb-id", default=None, help="IMDb id, e.g. tt0388629.")
    parser.add_argument("--season", default=None, type=int, help="Season number.")
    parser.add_argument("--episode", default=None, type=int, help="Episode number.")
    parser.add_argument(
        "--threshold",
        default=None,
        type=float,
        help="Fuzzy threshold, 0 = exact, 1 = anything (default from config).",
    )

    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )

    return parser.parse_args(argv)


def _build_request(args: argparse.Namespace, config: AppConfig) -> SearchRequest:
    threshold = args.threshold
    if threshold is None:
        threshold = config.search.default_fuzzy_threshold
    return SearchRequest(
        title=args.title,
        content_type=args.content_type,
        provider=ProviderKind.parse(args.provider),
        api_key=args.api_key,
        imdb_id=args.imdb_id,
        season=args.season,
        episode=args.episode,
        fuzzy_threshold=threshold,
    )


def outcome_to_dict(outcome: SearchOutcome) -> dict[str, Any]:
    """JSON-ready view of a search outcome."""
    data = dataclasses.asdict(outcome)
    data["phases"] = [phase.value for phase in outcome.phases]
    return data


async def _run(request: SearchRequest, config: AppConfig) -> SearchOutcome:
    async with open_coordinator(config) as coordinator:
        return await coordinator.coordinate(request)


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Prints the outcome as JSON on stdout; logs go to stderr.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config_path = Path(args.config) if args.config else None
    dotenv_path = Path(args.dotenv) if args.dotenv else None

    cli_overrides: dict[str, Any] = {}
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    config = load_config(
        config_path=config_path,
        dotenv_path=dotenv_path,
        cli_overrides=cli_overrides,
    )

    configure_logging(config)

    try:
        request = _build_request(args, config)
        outcome = asyncio.run(_run(request, config))
    except InputError as exc:
        log.error("invalid_search_request", error=str(exc))
        print(f"reelmatch: error: {exc}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    print(json.dumps(outcome_to_dict(outcome), indent=2, ensure_ascii=False, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(start())
