"""Compliance crawl orchestration.

Drives one rule through lookup, scheduling, scraping, parsing, change
classification and persistence, and runs due rules in sequential batches.
"""

from __future__ import annotations

import asyncio
import sqlite3
import time
from datetime import datetime
from typing import Callable, List, Optional

from .alerts import AlertRenderer, build_alert
from .changes import ChangeClassifier
from .config import PipelineOptions
from .database import ComplianceDatabase
from .errors import RuleNotFoundError, StaleReportError
from .logging_config import get_logger
from .models import (
    PRIORITY_CRITICAL,
    BatchSummary,
    ChangeVerdict,
    ComplianceReport,
    CrawlOutcome,
    CrawlResult,
    MonitoredRule,
    ParsedContent,
    StepOutcome,
)
from .parser import parse_content
from .parser_utils import to_epoch_ms, utc_now
from .scheduler import CrawlScheduler, CrawlStrategy
from .scraper import Scraper
from .summarizer import GeminiSummarizer, parse_summary

logger = get_logger("crawler")

DEFAULT_BATCH_SIZE = 50
PROCESSING_METHOD = "scheduled_crawl"
JOB_EMBEDDING_REFRESH = "update_existing"
JOB_IMMEDIATE_ALERT = "immediate_alert"
REASON_NOT_DUE = "not_due"


class ComplianceCrawler:
    """Runs the crawl pipeline for monitored compliance rules."""

    def __init__(
        self,
        db: ComplianceDatabase,
        scraper: Scraper,
        summarizer: Optional[GeminiSummarizer] = None,
        scheduler: Optional[CrawlScheduler] = None,
        options: Optional[PipelineOptions] = None,
        classifier: Optional[ChangeClassifier] = None,
        alert_renderer: Optional[AlertRenderer] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.db = db
        self.scraper = scraper
        self.summarizer = summarizer
        self.scheduler = scheduler or CrawlScheduler()
        self.options = options or PipelineOptions()
        self.classifier = classifier or ChangeClassifier(snippet_chars=self.options.snippet_chars)
        self.alert_renderer = alert_renderer or AlertRenderer()
        self.clock = clock or utc_now

    # ------------------------------------------------------------------
    # Single rule
    # ------------------------------------------------------------------
    async def crawl_compliance_rule(self, rule_id: str, force_recrawl: bool = False) -> CrawlOutcome:
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)

        now = self.clock()
        strategy = self.scheduler.strategy_for(rule)
        if not force_recrawl and not self.scheduler.should_crawl_now(rule, now, strategy):
            next_crawl = self.scheduler.next_crawl_time(rule, strategy)
            logger.info(f"Skipping {rule_id}: not due until {next_crawl.isoformat()}")
            return CrawlOutcome(
                rule_id=rule_id,
                skipped=True,
                reason=REASON_NOT_DUE,
                next_crawl_scheduled=next_crawl,
            )

        logger.info(
            f"Crawling {rule_id} ({rule.jurisdiction} / {rule.topic_key}, "
            f"{strategy.bucket}, {strategy.priority}, every {strategy.check_interval_minutes} min)"
        )
        crawl = await self._crawl(rule)
        parsed = parse_content(crawl.content, now=now)

        previous = self.db.get_latest_report(rule_id)
        verdict = self.classifier.classify(parsed, previous)
        logger.info(
            f"{rule_id}: {verdict.change_type} (severity {verdict.severity}, "
            f"{len(verdict.changes)} section changes)"
        )

        outcome = CrawlOutcome(
            rule_id=rule_id,
            success=True,
            changes_detected=verdict.has_significant_changes,
            severity=verdict.severity,
            change_type=verdict.change_type,
            content_length=len(crawl.content),
            crawl_error=crawl.error,
        )

        if verdict.is_new_content or verdict.has_significant_changes:
            await self._persist_report(rule, parsed, previous, now, outcome)

        # A rejected report leaves the change to the run that stored the newer one.
        significant = verdict.has_significant_changes and not outcome.conflict
        outcome.changes_detected = significant

        self.db.update_rule_monitoring(
            rule_id,
            checked_at=now,
            crawl_success=crawl.success,
            content_length=len(crawl.content),
            response_time_ms=crawl.response_time_ms,
            significant_change=significant,
        )

        if self.options.compliance_mode:
            if self.options.mirror_change_log:
                self._mirror_change_log(rule, crawl, verdict, now, significant, outcome.conflict)
            if significant:
                self._record_change(rule, verdict, now, outcome)

        outcome.next_crawl_scheduled = self._next_crawl(rule, strategy, significant, now)
        logger.info(f"Compliance crawl completed for {rule_id}")
        return outcome

    async def _crawl(self, rule: MonitoredRule) -> CrawlResult:
        started = time.perf_counter()
        try:
            response = await self.scraper.scrape(rule.source_url)
        except Exception as exc:
            elapsed = int((time.perf_counter() - started) * 1000)
            logger.error(f"Scrape failed for {rule.rule_id} ({rule.source_url}): {exc}")
            return CrawlResult(success=False, response_time_ms=elapsed, error=str(exc))

        elapsed = int((time.perf_counter() - started) * 1000)
        if not response.success or not response.markdown:
            error = response.error or "No content returned from scraper"
            logger.error(f"Scrape failed for {rule.rule_id} ({rule.source_url}): {error}")
            return CrawlResult(success=False, response_time_ms=elapsed, error=error)

        return CrawlResult(
            success=True,
            content=response.markdown,
            response_time_ms=elapsed,
            metadata=response.metadata,
        )

    async def _persist_report(
        self,
        rule: MonitoredRule,
        parsed: ParsedContent,
        previous: Optional[ComplianceReport],
        now: datetime,
        outcome: CrawlOutcome,
    ) -> None:
        report = ComplianceReport(
            report_id=f"{rule.rule_id}_{to_epoch_ms(now)}",
            rule_id=rule.rule_id,
            report_content=parsed.raw_content,
            content_hash=parsed.content_hash,
            content_length=len(parsed.raw_content),
            extracted_sections=dict(parsed.sections),
            processing_method=PROCESSING_METHOD,
            generated_at=now,
        )
        try:
            self.db.insert_report(report, expected_latest_id=previous.report_id if previous else None)
        except StaleReportError as exc:
            logger.warning(f"Report for {rule.rule_id} not stored: {exc}")
            outcome.conflict = True
            return

        outcome.report_id = report.report_id
        logger.info(f"Stored report {report.report_id} ({report.content_length} chars)")

        summary = await self._summarize(rule, parsed)
        outcome.summary_status = summary.status
        if summary.status == StepOutcome.FAILED and self.options.degrade_on_summary_failure:
            outcome.degraded = True

    async def _summarize(self, rule: MonitoredRule, parsed: ParsedContent) -> StepOutcome:
        if self.summarizer is None or not self.options.ai_summarization:
            return StepOutcome.skipped("summarization disabled")
        if not parsed.raw_content:
            return StepOutcome.skipped("no content")
        try:
            text = await self.summarizer.summarize(
                parsed.raw_content,
                rule.source_url,
                rule.jurisdiction,
                rule.topic_key,
            )
        except Exception as exc:
            logger.error(f"AI summarization failed for {rule.rule_id} (non-fatal): {exc}")
            return StepOutcome.failed(str(exc))
        summary = parse_summary(text)
        logger.debug(f"Summary for {rule.rule_id}: {summary['overview'][:120]}")
        return StepOutcome.ok(summary)

    def _mirror_change_log(
        self,
        rule: MonitoredRule,
        crawl: CrawlResult,
        verdict: ChangeVerdict,
        now: datetime,
        significant: bool,
        conflict: bool = False,
    ) -> StepOutcome:
        display = crawl.content or self.alert_renderer.render_placeholder(rule, significant, now)
        try:
            record_id = self.db.store_scrape_result(
                url=rule.source_url,
                markdown=display[: self.options.max_display_chars],
                title=f"{rule.jurisdiction} - {rule.topic_label}",
                description=f"Compliance check for {rule.topic_label}",
                change_status="changed" if significant else "same",
                rule_id=rule.rule_id,
                metadata={
                    "crawl_success": crawl.success,
                    "response_time_ms": crawl.response_time_ms,
                    "severity": verdict.severity,
                    "change_type": verdict.change_type,
                    "conflict": conflict,
                },
                scraped_at=now,
            )
        except sqlite3.Error as exc:
            logger.error(f"Failed to store change log entry for {rule.rule_id}: {exc}")
            return StepOutcome.failed(str(exc))
        return StepOutcome.ok(record_id)

    def _record_change(
        self,
        rule: MonitoredRule,
        verdict: ChangeVerdict,
        now: datetime,
        outcome: CrawlOutcome,
    ) -> None:
        alert = build_alert(rule, verdict, now)
        self.db.create_change(alert)
        outcome.alert_id = alert.change_id
        logger.info(f"Created {alert.severity} alert {alert.change_id}: {alert.change_description}")

        critical = verdict.severity == PRIORITY_CRITICAL
        if self.options.enqueue_embedding_refresh:
            self.db.enqueue_job(
                JOB_EMBEDDING_REFRESH,
                [rule.rule_id],
                priority="high" if critical else "medium",
            )

        if critical and self.options.alert_on_critical:
            rendered = self.alert_renderer.render_immediate_alert(rule, alert)
            self.db.enqueue_job(
                JOB_IMMEDIATE_ALERT,
                [rule.rule_id],
                priority="high",
                payload={"change_id": alert.change_id, **rendered.to_dict()},
            )
            self.db.append_notification(alert.change_id, JOB_IMMEDIATE_ALERT)
            logger.warning(f"CRITICAL ALERT: {rule.jurisdiction} {rule.topic_label} has critical changes")

    def _next_crawl(
        self,
        rule: MonitoredRule,
        strategy: CrawlStrategy,
        significant: bool,
        now: datetime,
    ) -> datetime:
        if significant:
            return now + strategy.interval
        return self.scheduler.next_crawl_time(rule, strategy)

    # ------------------------------------------------------------------
    # Due rules and batches
    # ------------------------------------------------------------------
    def get_rules_due_for_crawling(
        self,
        limit: Optional[int] = None,
        priority_filter: Optional[str] = None,
        jurisdiction_filter: Optional[str] = None,
    ) -> List[MonitoredRule]:
        rules = self.db.list_rules(monitoring_status="active")
        return self.scheduler.select_due_rules(
            rules,
            self.clock(),
            limit=limit,
            priority_filter=priority_filter,
            jurisdiction_filter=jurisdiction_filter,
        )

    async def batch_crawl_compliance_rules(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        priority_filter: Optional[str] = None,
        jurisdiction_filter: Optional[str] = None,
    ) -> BatchSummary:
        summary = BatchSummary(started_at=self.clock())
        rules = self.get_rules_due_for_crawling(
            limit=batch_size,
            priority_filter=priority_filter,
            jurisdiction_filter=jurisdiction_filter,
        )
        summary.total = len(rules)
        logger.info(f"Starting batch compliance crawl: {len(rules)} rules due (batch size {batch_size})")

        for index, rule in enumerate(rules):
            if index and self.options.batch_delay_seconds > 0:
                await asyncio.sleep(self.options.batch_delay_seconds)
            try:
                outcome = await self.crawl_compliance_rule(rule.rule_id)
            except Exception as exc:
                summary.failed += 1
                summary.errors.append(f"{rule.rule_id}: {exc}")
                logger.exception(f"Failed to crawl rule {rule.rule_id}")
                continue

            if outcome.skipped:
                summary.skipped += 1
            elif outcome.success:
                summary.crawled += 1
                if outcome.changes_detected:
                    summary.changes_detected += 1

        summary.completed_at = self.clock()
        logger.info(
            f"Batch crawl completed: {summary.crawled} crawled, {summary.failed} failed, "
            f"{summary.changes_detected} changes detected"
        )
        return summary
