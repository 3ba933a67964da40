"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

from mf_engine.config import BACKFILL_CONCURRENCY, EMBEDDING_DB_PATH, SCORING_CONFIG_PATH
from mf_engine.feed.query import FeedFilters, FeedQueryError
from mf_engine.feed.source import FeedUnavailableError, InMemoryCandidateSource, ViewerNotFoundError, load_profiles
from mf_engine.models import Coordinate
from mf_engine.semantic.backfill import EmbeddingUpdateResult, batch_update_embeddings
from mf_engine.semantic.generator import EmbeddingGenerator
from mf_engine.semantic.provider import DeterministicHashEmbeddingProvider, OpenAIEmbeddingProvider
from mf_engine.service import build_service
from mf_engine.travel.provider import build_routing_provider
from mf_engine.travel.resolver import TravelTimeResolver

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    if logging.getLogger().hasHandlers():
        return
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _parse_coordinate(value: str) -> Coordinate:
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"expected LAT,LNG but got {value!r}")
    try:
        coord = Coordinate(float(parts[0]), float(parts[1]))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected LAT,LNG but got {value!r}") from exc
    if not coord.is_valid():
        raise argparse.ArgumentTypeError(f"coordinate out of range: {value!r}")
    return coord


def _load_profiles_or_exit(path: str):
    try:
        return load_profiles(Path(path))
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(str(exc)) from exc


def _backfill(args: argparse.Namespace) -> int:
    _setup_logging()
    profiles = _load_profiles_or_exit(args.profiles)
    provider = DeterministicHashEmbeddingProvider() if args.offline else OpenAIEmbeddingProvider()
    service = build_service(
        profiles_path=None,
        db_path=Path(args.db),
        scoring_config_path=Path(args.scoring_config),
        generator=EmbeddingGenerator(provider),
    )
    if provider.requires_credentials and not service.credentials:
        logger.warning("OPENAI_API_KEY is not set; every profile will fail with missing_credentials")

    def _progress(done: int, total: int, outcome: EmbeddingUpdateResult) -> None:
        state = "failed" if outcome.error else ("skipped" if outcome.skipped else "ok")
        logger.info("[backfill] %s/%s profile=%s status=%s", done, total, outcome.profile_id, state)

    result = asyncio.run(
        batch_update_embeddings(
            profiles,
            generator=service.generator,
            store=service.store,
            concurrency=args.concurrency,
            credentials=service.credentials,
            field_weights=service.field_weights,
            force=args.force,
            on_progress=_progress,
        )
    )
    print(json.dumps({**result.summary(), "failed_ids": result.failed}, indent=2, sort_keys=True))
    return 1 if result.failed and not (result.succeeded or result.skipped) else 0


def _feed(args: argparse.Namespace) -> int:
    _setup_logging()
    profiles = _load_profiles_or_exit(args.profiles)
    service = build_service(
        profiles_path=None,
        db_path=Path(args.db),
        scoring_config_path=Path(args.scoring_config),
        source=InMemoryCandidateSource(profiles),
    )
    try:
        filters = FeedFilters(
            profile_types=[t for t in (args.profile_types or "").split(",") if t.strip()],
            min_score=args.min_score,
            distance_km=args.distance_km,
            limit=args.limit,
        )
        page = asyncio.run(
            service.assembler.get_page(args.viewer, args.sort, args.cursor, filters, viewer_location=args.at)
        )
    except (FeedQueryError, ValueError) as exc:
        raise SystemExit(f"invalid feed request: {exc}") from exc
    except ViewerNotFoundError as exc:
        raise SystemExit(f"viewer not found: {args.viewer}") from exc
    except FeedUnavailableError as exc:
        raise SystemExit(f"feed unavailable: {exc}") from exc
    print(json.dumps(page.to_dict(), indent=2, sort_keys=True))
    return 0


def _travel_time(args: argparse.Namespace) -> int:
    _setup_logging()
    resolver = TravelTimeResolver(build_routing_provider())
    result = asyncio.run(resolver.resolve(args.origin, args.destination))
    print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="matchfeed")
    subparsers = parser.add_subparsers(dest="command", required=True)

    backfill = subparsers.add_parser("backfill", help="Generate and store profile embeddings")
    backfill.add_argument("--profiles", required=True, help="Profiles JSON path.")
    backfill.add_argument("--db", default=str(EMBEDDING_DB_PATH), help="Embedding SQLite path.")
    backfill.add_argument("--scoring-config", default=str(SCORING_CONFIG_PATH), help="Scoring config JSON path.")
    backfill.add_argument("--concurrency", type=int, default=BACKFILL_CONCURRENCY, help="Concurrent profiles.")
    backfill.add_argument("--force", action="store_true", help="Regenerate even when texts are unchanged.")
    backfill.add_argument("--offline", action="store_true", help="Use deterministic hash embeddings.")
    backfill.set_defaults(func=_backfill)

    feed = subparsers.add_parser("feed", help="Print one feed page as JSON")
    feed.add_argument("--profiles", required=True, help="Profiles JSON path.")
    feed.add_argument("--viewer", required=True, help="Viewer profile id.")
    feed.add_argument("--sort", default="match", help="match, distance, lastActive or newest.")
    feed.add_argument("--cursor", help="Cursor from a previous page.")
    feed.add_argument("--limit", type=int, help="Page size (1-60).")
    feed.add_argument("--at", type=_parse_coordinate, help="Viewer location override as LAT,LNG.")
    feed.add_argument("--profile-types", help="Comma-separated profile types.")
    feed.add_argument("--min-score", type=float, help="Minimum match probability.")
    feed.add_argument("--distance-km", type=float, help="Maximum straight-line distance.")
    feed.add_argument("--db", default=str(EMBEDDING_DB_PATH), help="Embedding SQLite path.")
    feed.add_argument("--scoring-config", default=str(SCORING_CONFIG_PATH), help="Scoring config JSON path.")
    feed.set_defaults(func=_feed)

    travel = subparsers.add_parser("travel-time", help="Resolve travel times between two points")
    travel.add_argument("--from", dest="origin", type=_parse_coordinate, required=True, help="Origin LAT,LNG.")
    travel.add_argument("--to", dest="destination", type=_parse_coordinate, required=True, help="Destination LAT,LNG.")
    travel.set_defaults(func=_travel_time)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
