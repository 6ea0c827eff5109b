# ABOUTME: CLI entry point for podcast-ingest.
# ABOUTME: Supports 'parse-feed', 'parse-opml', 'subscribe', 'import-opml' and 'export-opml'.

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx
import structlog

from podcast_ingest.config import get_settings

log = structlog.get_logger()


def configure_logging() -> None:
    """Route structlog output to stderr at the configured level."""
    level = getattr(logging, get_settings().log_level.upper(), logging.INFO)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


async def _read_source(source: str) -> bytes:
    if source.startswith(("http://", "https://")):
        from podcast_ingest.services.loader import HttpFeedLoader

        return await HttpFeedLoader().load(source)
    return Path(source).read_bytes()


def cmd_parse_feed(args: argparse.Namespace) -> int:
    """Parse a feed file or URL and print the podcast as JSON."""
    from podcast_ingest.services.rss import parse_feed
    from podcast_ingest.services.xml_events import FeedParseError

    def print_warning(warning):
        print(f"warning: {warning}", file=sys.stderr)

    try:
        data = asyncio.run(_read_source(args.source))
    except (OSError, httpx.HTTPError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    try:
        podcast = parse_feed(data, args.feed_url or args.source, warning_sink=print_warning)
    except FeedParseError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(podcast.model_dump_json(indent=2))
    return 0


def cmd_parse_opml(args: argparse.Namespace) -> int:
    """Parse an OPML file and print every feed URL it lists."""
    from podcast_ingest.services.opml import parse_opml
    from podcast_ingest.services.xml_events import FeedParseError

    try:
        document = parse_opml(Path(args.path).read_bytes())
    except (OSError, FeedParseError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    for outline in document.body.outlines:
        for url in outline.all_feed_urls():
            print(url)
    return 0


async def _with_store(run):
    """Run ``run(store, service)`` against the configured SQLite store."""
    from podcast_ingest.db.session import close_db, get_session_factory, init_db
    from podcast_ingest.db.store import SqlPodcastStore
    from podcast_ingest.services.loader import HttpFeedLoader
    from podcast_ingest.services.subscription import SubscriptionService

    await init_db()
    try:
        store = SqlPodcastStore(get_session_factory())
        service = SubscriptionService(HttpFeedLoader(), store)
        return await run(store, service)
    finally:
        await close_db()


def cmd_subscribe(args: argparse.Namespace) -> int:
    """Subscribe to a feed URL and store it."""
    from podcast_ingest.services.subscription import SubscriptionError

    async def run(_store, service):
        try:
            podcast = await service.subscribe(args.url)
        except SubscriptionError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        print(f"Subscribed to {podcast.title} ({len(podcast.episodes)} episodes)")
        return 0

    return asyncio.run(_with_store(run))


def cmd_import_opml(args: argparse.Namespace) -> int:
    """Subscribe to every feed in an OPML file."""
    from podcast_ingest.services.opml_import import OPMLImportError, OPMLImportService

    async def run(_store, service):
        try:
            result = await OPMLImportService(service).import_file(Path(args.path))
        except OPMLImportError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        print(f"Imported {len(result.successful_feeds)} of {result.total_feeds} feeds")
        for failure in result.failed_feeds:
            print(f"  {failure.url}: {failure.error}")
        return 0 if result.has_partial_success else 1

    return asyncio.run(_with_store(run))


def cmd_export_opml(args: argparse.Namespace) -> int:
    """Export subscribed podcasts as OPML."""
    from podcast_ingest.services.opml_export import (
        NoSubscriptionsError,
        export_subscriptions,
        render_opml,
    )

    async def run(store, _service):
        try:
            document = export_subscriptions(await store.all())
        except NoSubscriptionsError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        xml = render_opml(document)
        if args.output:
            Path(args.output).write_text(xml, encoding="utf-8")
            log.info("opml_written", path=args.output, feeds=len(document.body.outlines))
        else:
            sys.stdout.write(xml)
        return 0

    return asyncio.run(_with_store(run))


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="podcast-ingest", description="Podcast feed and OPML ingestion"
    )
    subparsers = parser.add_subparsers(dest="command")

    # parse-feed
    feed_parser = subparsers.add_parser("parse-feed", help="Parse an RSS feed file or URL")
    feed_parser.add_argument("source", help="Path or http(s) URL of the feed")
    feed_parser.add_argument("--feed-url", default=None, help="Feed URL to record for a local file")

    # parse-opml
    opml_parser = subparsers.add_parser("parse-opml", help="List feed URLs in an OPML file")
    opml_parser.add_argument("path")

    # subscribe
    subscribe_parser = subparsers.add_parser("subscribe", help="Subscribe to a feed URL")
    subscribe_parser.add_argument("url")

    # import-opml
    import_parser = subparsers.add_parser("import-opml", help="Subscribe to feeds in an OPML file")
    import_parser.add_argument("path")

    # export-opml
    export_parser = subparsers.add_parser("export-opml", help="Export subscriptions as OPML")
    export_parser.add_argument("-o", "--output", default=None)

    args = parser.parse_args(argv)
    configure_logging()

    commands = {
        "parse-feed": cmd_parse_feed,
        "parse-opml": cmd_parse_opml,
        "subscribe": cmd_subscribe,
        "import-opml": cmd_import_opml,
        "export-opml": cmd_export_opml,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)
    sys.exit(command(args))


if __name__ == "__main__":
    main()
