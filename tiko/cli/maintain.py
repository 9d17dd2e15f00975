"""CLI for the batch maintenance jobs over the TIKO collections.

Usage::

    # Baseline scores for events that have none
    python -m tiko.cli score --batch-size 20
    python -m tiko.cli score --rescore --dry-run

    # Venue shape audit / repair
    python -m tiko.cli audit-venues
    python -m tiko.cli repair-venues --dry-run

    # Artist genre enrichment (Spotify client credentials required)
    python -m tiko.cli enrich-artists --limit 500
    python -m tiko.cli backfill-genres --limit 50

    # Catalog health summary
    python -m tiko.cli report --json

    # Live fetch for cities listeners asked for
    python -m tiko.cli process-city-requests --limit 5

Every command needs ``MONGODB_URI``.  Ctrl-C during a job finishes the
current document and prints the partial report.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import httpx
from pydantic import BaseModel

from tiko.config.loader import load_config
from tiko.config.settings import Settings
from tiko.models.maintenance import JobReport
from tiko.providers.cache.mongo_cache import MongoCacheProvider
from tiko.providers.events.edmtrain_provider import EDMTrainProvider
from tiko.providers.events.ticketmaster_provider import TicketmasterProvider
from tiko.providers.spotify.spotify_provider import SpotifyProvider
from tiko.providers.storage.mongo_artist_store import MongoArtistStore
from tiko.providers.storage.mongo_city_request_store import MongoCityRequestStore
from tiko.providers.storage.mongo_client import create_mongo_client, get_database
from tiko.providers.storage.mongo_event_store import MongoEventStore
from tiko.services.city_request_service import CityRequestService
from tiko.services.event_service import EventService
from tiko.services.maintenance_service import MaintenanceService
from tiko.services.vibe_match import VibeMatchScorer
from tiko.utils.errors import TikoError
from tiko.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_score(args: argparse.Namespace, service: MaintenanceService) -> BaseModel:
    return await service.populate_scores(
        batch_size=args.batch_size,
        limit=args.limit or 1000,
        rescore=args.rescore,
        dry_run=args.dry_run,
    )


async def _handle_audit_venues(args: argparse.Namespace, service: MaintenanceService) -> BaseModel:
    return await service.audit_venue_shapes(sample_size=args.sample_size)


async def _handle_repair_venues(args: argparse.Namespace, service: MaintenanceService) -> BaseModel:
    return await service.repair_venue_shapes(dry_run=args.dry_run, limit=args.limit)


async def _handle_backfill_genres(args: argparse.Namespace, service: MaintenanceService) -> BaseModel:
    return await service.backfill_artist_genres(limit=args.limit or 50, dry_run=args.dry_run)


async def _handle_enrich_artists(args: argparse.Namespace, service: MaintenanceService) -> BaseModel:
    return await service.enrich_artists_from_events(limit=args.limit or 500, dry_run=args.dry_run)


async def _handle_report(args: argparse.Namespace, service: MaintenanceService) -> BaseModel:
    return await service.data_quality_report(sample_size=args.sample_size)


async def _handle_city_requests(args: argparse.Namespace, service: MaintenanceService) -> BaseModel:
    return await service.process_city_requests(limit=args.limit or 10, dry_run=args.dry_run)


_HANDLERS = {
    "score": _handle_score,
    "audit-venues": _handle_audit_venues,
    "repair-venues": _handle_repair_venues,
    "backfill-genres": _handle_backfill_genres,
    "enrich-artists": _handle_enrich_artists,
    "report": _handle_report,
    "process-city-requests": _handle_city_requests,
}


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _print_result(result: BaseModel, as_json: bool) -> None:
    if as_json:
        print(result.model_dump_json(indent=2))
        return

    data = result.model_dump(exclude={"errors", "started_at", "finished_at"})
    title = data.pop("job", type(result).__name__)
    print(f"\n{title}")
    print("-" * 40)
    for key, value in data.items():
        if isinstance(value, dict):
            print(f"  {key}:")
            for sub_key, sub_value in value.items():
                print(f"    {sub_key:<12} {sub_value}")
        else:
            print(f"  {key:<28} {value}")

    errors = getattr(result, "errors", [])
    if errors:
        print(f"\n  Errors ({len(errors)} shown):")
        for err in errors:
            print(f"    - {err}")


def _exit_code(result: BaseModel) -> int:
    if isinstance(result, JobReport) and result.failed and not result.updated:
        return 1
    return 0


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def _build_service(
    settings: Settings,
    config: dict,
    database,  # noqa: ANN001
    http_client: httpx.AsyncClient,
    stop_event: asyncio.Event,
) -> MaintenanceService:
    delay = config.get("maintenance", {}).get("request_delay", settings.maintenance_request_delay)
    city_cfg = config.get("city_requests", {})
    event_store = MongoEventStore(database)
    event_service = EventService(
        sources=[
            TicketmasterProvider(settings=settings, http_client=http_client),
            EDMTrainProvider(settings=settings, http_client=http_client),
        ],
        cache=MongoCacheProvider(database, ttl=settings.event_cache_stale_ttl),
        store=event_store,
        max_concurrency=settings.max_concurrent_sources,
    )
    city_requests = CityRequestService(
        store=MongoCityRequestStore(database),
        event_service=event_service,
        request_delay=city_cfg.get("request_delay", 5.0),
        retention_days=city_cfg.get("retention_days", 7),
        stop_event=stop_event,
    )
    return MaintenanceService(
        event_store=event_store,
        artist_store=MongoArtistStore(database),
        scorer=VibeMatchScorer.from_config(config),
        music_provider=SpotifyProvider(settings=settings, http_client=http_client),
        request_delay=delay,
        stop_event=stop_event,
        city_requests=city_requests,
    )


def _install_stop_handler(stop_event: asyncio.Event) -> None:
    """First Ctrl-C sets *stop_event*; jobs finish the current document and return."""
    loop = asyncio.get_running_loop()

    def _on_sigint() -> None:
        logger.warning("stop_requested", message="finishing current document")
        stop_event.set()

    try:
        loop.add_signal_handler(signal.SIGINT, _on_sigint)
    except (NotImplementedError, RuntimeError):
        # Windows event loops have no add_signal_handler; Ctrl-C aborts instead.
        logger.debug("signal_handler_unavailable")


async def _run(args: argparse.Namespace) -> int:
    settings = Settings()
    config = load_config(settings=settings)
    configure_logging(log_level="WARNING" if args.json else settings.log_level)

    try:
        mongo_client = create_mongo_client(settings)
    except TikoError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    stop_event = asyncio.Event()
    _install_stop_handler(stop_event)
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout) as http_client:
            service = _build_service(
                settings, config, get_database(mongo_client, settings), http_client, stop_event
            )
            result = await _HANDLERS[args.command](args, service)
    except TikoError as exc:
        logger.error("maintenance_job_failed", command=args.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        mongo_client.close()

    _print_result(result, args.json)
    return _exit_code(result)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the maintenance CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m tiko.cli",
        description="Batch maintenance jobs for the TIKO event and artist collections.",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--json", action="store_true", help="Print the report as JSON")
    subparsers = parser.add_subparsers(dest="command", help="Maintenance commands")

    # -- score --
    score_parser = subparsers.add_parser("score", help="Write baseline scores for unscored events", parents=[common])
    score_parser.add_argument("--batch-size", type=int, default=20, help="Events per batch (default: 20)")
    score_parser.add_argument("--limit", type=int, default=None, help="Maximum events (default: 1000)")
    score_parser.add_argument("--rescore", action="store_true", help="Also rescore already-scored events")
    score_parser.add_argument("--dry-run", action="store_true", help="Compute scores without writing")

    # -- audit-venues --
    audit_parser = subparsers.add_parser("audit-venues", help="Count venue storage shapes", parents=[common])
    audit_parser.add_argument("--sample-size", type=int, default=10, help="String-venue ids to list")

    # -- repair-venues --
    repair_parser = subparsers.add_parser("repair-venues", help="Rewrite string venues as objects", parents=[common])
    repair_parser.add_argument("--limit", type=int, default=None, help="Maximum events to scan")
    repair_parser.add_argument("--dry-run", action="store_true", help="Report without writing")

    # -- backfill-genres --
    backfill_parser = subparsers.add_parser(
        "backfill-genres", help="Look up Spotify genres for flagged artists", parents=[common]
    )
    backfill_parser.add_argument("--limit", type=int, default=None, help="Maximum artists (default: 50)")
    backfill_parser.add_argument("--dry-run", action="store_true", help="Search without writing")

    # -- enrich-artists --
    enrich_parser = subparsers.add_parser(
        "enrich-artists", help="Register unknown event artists for genre lookup", parents=[common]
    )
    enrich_parser.add_argument("--limit", type=int, default=None, help="Maximum events (default: 500)")
    enrich_parser.add_argument("--dry-run", action="store_true", help="Report without writing")

    # -- report --
    report_parser = subparsers.add_parser("report", help="Catalog data quality summary", parents=[common])
    report_parser.add_argument("--sample-size", type=int, default=200, help="Events sampled for completeness")

    # -- process-city-requests --
    city_parser = subparsers.add_parser(
        "process-city-requests", help="Fetch events for queued city requests", parents=[common]
    )
    city_parser.add_argument("--limit", type=int, default=None, help="Maximum cities (default: 10)")
    city_parser.add_argument("--dry-run", action="store_true", help="List pending cities without fetching")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the maintenance tool."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
