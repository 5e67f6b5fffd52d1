"""Compliance monitor command-line runner.

Wires configuration, database, scraper and summarizer into a
ComplianceCrawler and exposes the pipeline operations as subcommands:
schema setup, rule loading, due listing, single and batch crawls, the
deadline calendar and the recent-change digest.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .alerts import AlertRenderer
from .config import MonitorConfig, PipelineOptions, ServiceSettings
from .crawler import DEFAULT_BATCH_SIZE, ComplianceCrawler
from .database import ComplianceDatabase
from .deadlines import DeadlineTracker
from .errors import ComplianceMonitorError
from .logging_config import setup_logging
from .models import PRIORITIES, MonitoredRule
from .parser_utils import parse_timestamp, utc_now
from .scheduler import CrawlScheduler
from .scraper import build_scraper
from .summarizer import build_summarizer


def load_rules(path: Union[str, Path], scheduler: Optional[CrawlScheduler] = None) -> List[MonitoredRule]:
    """Read monitored rules from a JSON file.

    Accepts a list of rule objects or ``{"rules": [...]}``. A missing
    priority is filled from the topic priority table.
    """
    rules_path = Path(path)
    if not rules_path.exists():
        raise FileNotFoundError(f"Rules file not found: {rules_path}")

    with open(rules_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    entries: Iterable[Dict[str, Any]] = data.get("rules", []) if isinstance(data, dict) else data
    scheduler = scheduler or CrawlScheduler()

    rules: List[MonitoredRule] = []
    for entry in entries:
        missing = [key for key in ("rule_id", "jurisdiction", "topic_key", "source_url") if not entry.get(key)]
        if missing:
            raise ValueError(f"Rule entry missing {', '.join(missing)}: {entry}")
        rule = MonitoredRule(
            rule_id=entry["rule_id"],
            jurisdiction=entry["jurisdiction"],
            topic_key=entry["topic_key"],
            topic_label=entry.get("topic_label") or entry["topic_key"].replace("_", " ").title(),
            source_url=entry["source_url"],
            priority=entry.get("priority") or scheduler.topic_priority(entry["topic_key"]),
            monitoring_status=entry.get("monitoring_status", "active"),
            last_significant_change=parse_timestamp(entry.get("last_significant_change")),
        )
        created_at = parse_timestamp(entry.get("created_at"))
        if created_at:
            rule.created_at = created_at
        rules.append(rule)
    return rules


def build_crawler(config: MonitorConfig, db: ComplianceDatabase) -> ComplianceCrawler:
    settings = ServiceSettings.from_env(config=config)
    return ComplianceCrawler(
        db=db,
        scraper=build_scraper(settings),
        summarizer=build_summarizer(settings),
        scheduler=CrawlScheduler(config.get_strategies(), config.get_topic_priorities()),
        options=PipelineOptions.from_config(config),
    )


def _emit(payload: Any, as_json: bool, logger: logging.Logger, message: str) -> None:
    if as_json:
        print(json.dumps(payload, indent=2))
    else:
        logger.info(message)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compliance monitor runner - schedules and crawls monitored employment-law sources"
    )
    parser.add_argument("--config", type=Path, help="Path to YAML configuration file")
    parser.add_argument("--db-path", type=Path, help="Path to SQLite database")
    parser.add_argument("--log-file", type=Path, help="Write logs to file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--json", action="store_true", help="Output results as JSON")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database schema")

    load_parser = subparsers.add_parser("load-rules", help="Load monitored rules from a JSON file")
    load_parser.add_argument("file", type=Path)

    due_parser = subparsers.add_parser("due", help="List rules due for crawling")
    due_parser.add_argument("--limit", type=int, default=None)
    due_parser.add_argument("--priority", choices=PRIORITIES)
    due_parser.add_argument("--jurisdiction")

    crawl_parser = subparsers.add_parser("crawl", help="Crawl a single rule")
    crawl_parser.add_argument("rule_id")
    crawl_parser.add_argument("--force", action="store_true", help="Crawl even if not due")

    batch_parser = subparsers.add_parser("batch", help="Crawl all due rules sequentially")
    batch_parser.add_argument("--size", type=int, default=None)
    batch_parser.add_argument("--priority", choices=PRIORITIES)
    batch_parser.add_argument("--jurisdiction")

    deadlines_parser = subparsers.add_parser("deadlines", help="Refresh and list upcoming deadlines")
    deadlines_parser.add_argument("--days", type=int, default=None)
    deadlines_parser.add_argument("--jurisdiction")
    deadlines_parser.add_argument("--topic")

    changes_parser = subparsers.add_parser("changes", help="List recent changes and render a digest")
    changes_parser.add_argument("--days", type=int, default=None)
    changes_parser.add_argument("--severity", choices=PRIORITIES)
    changes_parser.add_argument("--topic")
    changes_parser.add_argument("--jurisdiction")
    changes_parser.add_argument("--limit", type=int, default=None)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the compliance monitor."""
    args = build_parser().parse_args(argv)

    config = MonitorConfig(args.config)
    logger = setup_logging(
        log_file=args.log_file,
        log_dir=Path(config.get_setting("log_dir", "logs")),
        level=logging.DEBUG if args.verbose else logging.INFO,
        console=not args.json,
    )

    try:
        db = ComplianceDatabase(db_path=args.db_path or config.get_setting("db_path"))

        if args.command == "init-db":
            _emit({"db_path": str(db.db_path)}, args.json, logger, f"Initialised database at {db.db_path}")
            return 0

        if args.command == "load-rules":
            rules = load_rules(args.file, CrawlScheduler(config.get_strategies(), config.get_topic_priorities()))
            for rule in rules:
                db.upsert_rule(rule)
            _emit({"loaded": len(rules)}, args.json, logger, f"Loaded {len(rules)} rules from {args.file}")
            return 0

        if args.command == "deadlines":
            days = args.days or int(config.get_setting("deadline_days_ahead", 30))
            result = DeadlineTracker(db).track()
            deadlines = db.get_upcoming_deadlines(
                days,
                jurisdiction=args.jurisdiction,
                topic_key=args.topic,
            )
            _emit(
                {"created": result.created, "updated": result.updated, "upcoming": deadlines},
                args.json,
                logger,
                f"{len(deadlines)} deadlines in the next {days} days",
            )
            return 0

        if args.command == "changes":
            days = args.days or int(config.get_setting("digest_days", 30))
            changes = db.get_recent_changes(
                days,
                severity=args.severity,
                topic_key=args.topic,
                jurisdiction=args.jurisdiction,
                limit=args.limit or int(config.get_setting("digest_limit", 50)),
            )
            digest = AlertRenderer().render_digest(changes, utc_now(), period_days=days)
            _emit(
                {"change_count": len(changes), "changes": changes, "digest": digest.to_dict()},
                args.json,
                logger,
                f"{len(changes)} changes in the last {days} days\n{digest.text}",
            )
            return 0

        crawler = build_crawler(config, db)

        if args.command == "due":
            rules = crawler.get_rules_due_for_crawling(
                limit=args.limit or config.get_setting("due_limit"),
                priority_filter=args.priority,
                jurisdiction_filter=args.jurisdiction,
            )
            _emit(
                [rule.to_dict() for rule in rules],
                args.json,
                logger,
                f"{len(rules)} rules due at {utc_now().isoformat()}: "
                + ", ".join(rule.rule_id for rule in rules),
            )
            return 0

        if args.command == "crawl":
            outcome = asyncio.run(crawler.crawl_compliance_rule(args.rule_id, force_recrawl=args.force))
            _emit(
                outcome.to_dict(),
                args.json,
                logger,
                f"{outcome.rule_id}: changes_detected={outcome.changes_detected} "
                f"severity={outcome.severity} skipped={outcome.skipped}",
            )
            return 0

        if args.command == "batch":
            size = args.size or int(config.get_setting("batch_size", DEFAULT_BATCH_SIZE))
            summary = asyncio.run(
                crawler.batch_crawl_compliance_rules(
                    batch_size=size,
                    priority_filter=args.priority,
                    jurisdiction_filter=args.jurisdiction,
                )
            )
            _emit(
                summary.to_dict(),
                args.json,
                logger,
                f"Batch: {summary.crawled}/{summary.total} crawled, {summary.failed} failed, "
                f"{summary.changes_detected} changes detected",
            )
            if summary.errors:
                logger.warning(f"Failed rules: {'; '.join(summary.errors)}")
            return summary.exit_code()

    except (ComplianceMonitorError, FileNotFoundError, ValueError) as e:
        logger.error(f"Fatal error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
