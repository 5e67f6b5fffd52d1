"""Compliance monitor database interface.

Provides schema management and query helpers for monitored rules, versioned
reports, change alerts, the change-tracking log, deferred jobs and deadlines.
"""

from __future__ import annotations

import argparse
import json
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .errors import PersistenceError, RuleNotFoundError, StaleReportError
from .logging_config import get_logger
from .models import (
    ComplianceAlert,
    ComplianceReport,
    Deadline,
    MonitoredRule,
)
from .parser_utils import parse_timestamp, to_iso, utc_now

logger = get_logger("database")

JOB_STATUS_PENDING = "pending"

_LIST_COLUMNS = ("entity_ids", "reminders_sent", "affected_sections", "notifications_sent")


class ComplianceDatabase:
    """High-level helper for the compliance monitor SQLite database."""

    DEFAULT_DB_PATH = Path("data/compliance_monitor.db")

    def __init__(self, db_path: Optional[Union[str, Path]] = None, auto_initialize: bool = True) -> None:
        path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        if not path.is_absolute():
            path = Path.cwd() / path
        self.db_path = path
        if auto_initialize:
            self.initialize()

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------
    def initialize(self) -> None:
        """Initialise database directory and ensure schema exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            self._apply_pragmas(conn)
            self._create_schema(conn)
            conn.commit()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _apply_pragmas(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA temp_store=MEMORY")

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS compliance_rules (
                rule_id TEXT PRIMARY KEY,
                jurisdiction TEXT NOT NULL,
                topic_key TEXT NOT NULL,
                topic_label TEXT NOT NULL,
                source_url TEXT NOT NULL,
                priority TEXT NOT NULL DEFAULT 'medium',
                monitoring_status TEXT NOT NULL DEFAULT 'active',
                created_at TEXT NOT NULL,
                last_significant_change TEXT,
                last_checked_at TEXT,
                last_crawl_success INTEGER,
                last_content_length INTEGER,
                last_response_time_ms INTEGER,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS compliance_reports (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                report_id TEXT NOT NULL UNIQUE,
                rule_id TEXT NOT NULL,
                report_content TEXT NOT NULL,
                content_hash TEXT NOT NULL,
                content_length INTEGER NOT NULL DEFAULT 0,
                extracted_sections TEXT,
                processing_method TEXT NOT NULL,
                generated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS compliance_changes (
                change_id TEXT PRIMARY KEY,
                rule_id TEXT NOT NULL,
                change_type TEXT NOT NULL,
                severity TEXT NOT NULL,
                detected_at TEXT NOT NULL,
                affected_sections TEXT,
                change_description TEXT,
                ai_confidence REAL,
                human_verified INTEGER NOT NULL DEFAULT 0,
                notifications_sent TEXT
            );

            CREATE TABLE IF NOT EXISTS scrape_results (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                rule_id TEXT,
                url TEXT NOT NULL,
                title TEXT,
                description TEXT,
                markdown TEXT,
                change_status TEXT,
                metadata TEXT,
                scraped_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS jobs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                job_type TEXT NOT NULL,
                entity_ids TEXT,
                priority TEXT NOT NULL DEFAULT 'medium',
                status TEXT NOT NULL DEFAULT 'pending',
                payload TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS compliance_deadlines (
                deadline_id TEXT PRIMARY KEY,
                rule_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                deadline_date TEXT NOT NULL,
                deadline_type TEXT NOT NULL,
                recurring_pattern TEXT,
                status TEXT NOT NULL DEFAULT 'upcoming',
                reminders_sent TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_rules_status ON compliance_rules(monitoring_status);
            CREATE INDEX IF NOT EXISTS idx_rules_jurisdiction ON compliance_rules(jurisdiction);
            CREATE INDEX IF NOT EXISTS idx_reports_rule ON compliance_reports(rule_id, generated_at);
            CREATE INDEX IF NOT EXISTS idx_changes_rule ON compliance_changes(rule_id, detected_at);
            CREATE INDEX IF NOT EXISTS idx_scrape_results_rule ON scrape_results(rule_id);
            CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status, job_type);
            CREATE INDEX IF NOT EXISTS idx_deadlines_date ON compliance_deadlines(deadline_date);
            """
        )

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------
    def upsert_rule(self, rule: MonitoredRule) -> None:
        payload = {
            "rule_id": rule.rule_id,
            "jurisdiction": rule.jurisdiction,
            "topic_key": rule.topic_key,
            "topic_label": rule.topic_label,
            "source_url": rule.source_url,
            "priority": rule.priority,
            "monitoring_status": rule.monitoring_status,
            "created_at": to_iso(rule.created_at),
            "last_significant_change": to_iso(rule.last_significant_change),
            "last_checked_at": to_iso(rule.last_checked_at),
            "last_crawl_success": None if rule.last_crawl_success is None else int(rule.last_crawl_success),
            "last_content_length": rule.last_content_length,
            "last_response_time_ms": rule.last_response_time_ms,
            "updated_at": to_iso(utc_now()),
        }
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO compliance_rules (
                    rule_id, jurisdiction, topic_key, topic_label, source_url,
                    priority, monitoring_status, created_at, last_significant_change,
                    last_checked_at, last_crawl_success, last_content_length,
                    last_response_time_ms, updated_at
                ) VALUES (
                    :rule_id, :jurisdiction, :topic_key, :topic_label, :source_url,
                    :priority, :monitoring_status, :created_at, :last_significant_change,
                    :last_checked_at, :last_crawl_success, :last_content_length,
                    :last_response_time_ms, :updated_at
                )
                ON CONFLICT(rule_id) DO UPDATE SET
                    jurisdiction = excluded.jurisdiction,
                    topic_key = excluded.topic_key,
                    topic_label = excluded.topic_label,
                    source_url = excluded.source_url,
                    priority = excluded.priority,
                    monitoring_status = excluded.monitoring_status,
                    last_significant_change = COALESCE(
                        excluded.last_significant_change, compliance_rules.last_significant_change
                    ),
                    updated_at = excluded.updated_at
                """,
                payload,
            )
            conn.commit()

    def get_rule(self, rule_id: str) -> Optional[MonitoredRule]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM compliance_rules WHERE rule_id = ?",
                (rule_id,),
            ).fetchone()
        return self._row_to_rule(row) if row else None

    def list_rules(
        self,
        *,
        monitoring_status: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> List[MonitoredRule]:
        query = ["SELECT * FROM compliance_rules"]
        params: List[Any] = []
        filters: List[str] = []
        if monitoring_status:
            filters.append("monitoring_status = ?")
            params.append(monitoring_status)
        if jurisdiction:
            filters.append("jurisdiction = ?")
            params.append(jurisdiction)
        if priority:
            filters.append("priority = ?")
            params.append(priority)
        if filters:
            query.append("WHERE " + " AND ".join(filters))
        query.append("ORDER BY rule_id")

        with self._connect() as conn:
            rows = conn.execute(" ".join(query), params).fetchall()
        return [self._row_to_rule(row) for row in rows]

    def update_rule_monitoring(
        self,
        rule_id: str,
        *,
        checked_at: datetime,
        crawl_success: bool,
        content_length: int,
        response_time_ms: int,
        significant_change: bool,
    ) -> None:
        """Record the outcome of a crawl on the rule.

        ``last_significant_change`` only moves forward when a change was
        detected.
        """
        checked = to_iso(checked_at)
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE compliance_rules
                   SET last_checked_at = :checked_at,
                       last_crawl_success = :crawl_success,
                       last_content_length = :content_length,
                       last_response_time_ms = :response_time_ms,
                       last_significant_change = CASE
                           WHEN :significant THEN :checked_at
                           ELSE last_significant_change
                       END,
                       updated_at = :checked_at
                 WHERE rule_id = :rule_id
                """,
                {
                    "checked_at": checked,
                    "crawl_success": int(crawl_success),
                    "content_length": content_length,
                    "response_time_ms": response_time_ms,
                    "significant": int(significant_change),
                    "rule_id": rule_id,
                },
            )
            if cur.rowcount == 0:
                raise RuleNotFoundError(rule_id)
            conn.commit()

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    def get_latest_report(self, rule_id: str) -> Optional[ComplianceReport]:
        with self._connect() as conn:
            row = self._latest_report_row(conn, rule_id)
        return self._row_to_report(row) if row else None

    def list_reports(self, rule_id: str, limit: Optional[int] = None) -> List[ComplianceReport]:
        sql = "SELECT * FROM compliance_reports WHERE rule_id = ? ORDER BY generated_at DESC, id DESC"
        params: List[Any] = [rule_id]
        if limit:
            sql += " LIMIT ?"
            params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_report(row) for row in rows]

    def insert_report(self, report: ComplianceReport, expected_latest_id: Optional[str]) -> None:
        """Append a report if the rule's latest report is still ``expected_latest_id``.

        Raises StaleReportError when another writer got there first.
        """
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            current = self._latest_report_row(conn, report.rule_id)
            actual_id = current["report_id"] if current else None
            if actual_id != expected_latest_id:
                conn.rollback()
                raise StaleReportError(report.rule_id, expected_latest_id, actual_id)
            try:
                self._write_report(conn, report, replace=False)
            except sqlite3.IntegrityError as exc:
                conn.rollback()
                raise PersistenceError(f"Report {report.report_id} already exists") from exc
            conn.commit()

    def upsert_report(self, report: ComplianceReport) -> None:
        """Insert or overwrite a report by id without the concurrency check."""
        with self._connect() as conn:
            self._write_report(conn, report, replace=True)
            conn.commit()

    def _write_report(self, conn: sqlite3.Connection, report: ComplianceReport, *, replace: bool) -> None:
        payload = {
            "report_id": report.report_id,
            "rule_id": report.rule_id,
            "report_content": report.report_content,
            "content_hash": report.content_hash,
            "content_length": report.content_length,
            "extracted_sections": self._to_json(report.extracted_sections),
            "processing_method": report.processing_method,
            "generated_at": to_iso(report.generated_at),
        }
        conflict = (
            """
            ON CONFLICT(report_id) DO UPDATE SET
                rule_id = excluded.rule_id,
                report_content = excluded.report_content,
                content_hash = excluded.content_hash,
                content_length = excluded.content_length,
                extracted_sections = excluded.extracted_sections,
                processing_method = excluded.processing_method,
                generated_at = excluded.generated_at
            """
            if replace
            else ""
        )
        conn.execute(
            """
            INSERT INTO compliance_reports (
                report_id, rule_id, report_content, content_hash, content_length,
                extracted_sections, processing_method, generated_at
            ) VALUES (
                :report_id, :rule_id, :report_content, :content_hash, :content_length,
                :extracted_sections, :processing_method, :generated_at
            )
            """
            + conflict,
            payload,
        )

    @staticmethod
    def _latest_report_row(conn: sqlite3.Connection, rule_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            """
            SELECT * FROM compliance_reports
             WHERE rule_id = ?
             ORDER BY generated_at DESC, id DESC
             LIMIT 1
            """,
            (rule_id,),
        ).fetchone()

    # ------------------------------------------------------------------
    # Change alerts
    # ------------------------------------------------------------------
    def create_change(self, alert: ComplianceAlert) -> str:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO compliance_changes (
                    change_id, rule_id, change_type, severity, detected_at,
                    affected_sections, change_description, ai_confidence,
                    human_verified, notifications_sent
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    alert.change_id,
                    alert.rule_id,
                    alert.change_type,
                    alert.severity,
                    to_iso(alert.detected_at),
                    self._to_json(alert.affected_sections),
                    alert.change_description,
                    alert.ai_confidence,
                    int(alert.human_verified),
                    self._to_json(alert.notifications_sent),
                ),
            )
            conn.commit()
        return alert.change_id

    def get_change(self, change_id: str) -> Optional[ComplianceAlert]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM compliance_changes WHERE change_id = ?",
                (change_id,),
            ).fetchone()
        return self._row_to_alert(row) if row else None

    def get_changes_for_rule(self, rule_id: str) -> List[ComplianceAlert]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM compliance_changes WHERE rule_id = ? ORDER BY detected_at DESC",
                (rule_id,),
            ).fetchall()
        return [self._row_to_alert(row) for row in rows]

    def append_notification(self, change_id: str, channel: str) -> List[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT notifications_sent FROM compliance_changes WHERE change_id = ?",
                (change_id,),
            ).fetchone()
            if row is None:
                raise PersistenceError(f"Change {change_id} not found")
            sent = self._from_json(row["notifications_sent"], default=[])
            if channel not in sent:
                sent.append(channel)
            conn.execute(
                "UPDATE compliance_changes SET notifications_sent = ? WHERE change_id = ?",
                (self._to_json(sent), change_id),
            )
            conn.commit()
        return sent

    def set_human_verified(self, change_id: str, verified: bool = True) -> None:
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE compliance_changes SET human_verified = ? WHERE change_id = ?",
                (int(verified), change_id),
            )
            if cur.rowcount == 0:
                raise PersistenceError(f"Change {change_id} not found")
            conn.commit()

    def get_recent_changes(
        self,
        days: int = 30,
        *,
        severity: Optional[str] = None,
        topic_key: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        limit: Optional[int] = 50,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Changes detected in the last ``days`` days, newest first, with rule context."""
        since = (now or utc_now()) - timedelta(days=days)
        query = [
            "SELECT c.*, r.jurisdiction, r.topic_key, r.topic_label, r.source_url",
            "FROM compliance_changes c",
            "JOIN compliance_rules r ON r.rule_id = c.rule_id",
            "WHERE c.detected_at >= ?",
        ]
        params: List[Any] = [to_iso(since)]
        if severity:
            query.append("AND c.severity = ?")
            params.append(severity)
        if topic_key:
            query.append("AND r.topic_key = ?")
            params.append(topic_key)
        if jurisdiction:
            query.append("AND r.jurisdiction = ?")
            params.append(jurisdiction)
        query.append("ORDER BY c.detected_at DESC")
        if limit:
            query.append("LIMIT ?")
            params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(" ".join(query), params).fetchall()

        changes = []
        for row in rows:
            data = self._row_to_dict(row, json_columns=("affected_sections", "notifications_sent"))
            data["human_verified"] = bool(data["human_verified"])
            changes.append(data)
        return changes

    # ------------------------------------------------------------------
    # Change-tracking log
    # ------------------------------------------------------------------
    def store_scrape_result(
        self,
        *,
        url: str,
        markdown: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        change_status: Optional[str] = None,
        rule_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        scraped_at: Optional[datetime] = None,
    ) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO scrape_results (
                    rule_id, url, title, description, markdown, change_status, metadata, scraped_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    rule_id,
                    url,
                    title,
                    description,
                    markdown,
                    change_status,
                    self._to_json(metadata),
                    to_iso(scraped_at or utc_now()),
                ),
            )
            record_id = int(cur.lastrowid)
            conn.commit()
        return record_id

    def get_scrape_results(self, rule_id: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        query = ["SELECT * FROM scrape_results"]
        params: List[Any] = []
        if rule_id:
            query.append("WHERE rule_id = ?")
            params.append(rule_id)
        query.append("ORDER BY scraped_at DESC, id DESC LIMIT ?")
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(" ".join(query), params).fetchall()
        return [self._row_to_dict(row, json_columns=("metadata",)) for row in rows]

    # ------------------------------------------------------------------
    # Deferred jobs
    # ------------------------------------------------------------------
    def enqueue_job(
        self,
        job_type: str,
        entity_ids: Sequence[str],
        *,
        priority: str = "medium",
        payload: Optional[Dict[str, Any]] = None,
    ) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO jobs (job_type, entity_ids, priority, status, payload, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    job_type,
                    self._to_json(list(entity_ids)),
                    priority,
                    JOB_STATUS_PENDING,
                    self._to_json(payload),
                    to_iso(utc_now()),
                ),
            )
            job_id = int(cur.lastrowid)
            conn.commit()
        logger.debug(f"Enqueued {job_type} job {job_id} for {list(entity_ids)}")
        return job_id

    def get_jobs(self, job_type: Optional[str] = None, status: Optional[str] = None) -> List[Dict[str, Any]]:
        query = ["SELECT * FROM jobs"]
        params: List[Any] = []
        filters: List[str] = []
        if job_type:
            filters.append("job_type = ?")
            params.append(job_type)
        if status:
            filters.append("status = ?")
            params.append(status)
        if filters:
            query.append("WHERE " + " AND ".join(filters))
        query.append("ORDER BY id")
        with self._connect() as conn:
            rows = conn.execute(" ".join(query), params).fetchall()
        return [self._row_to_dict(row, json_columns=("entity_ids", "payload")) for row in rows]

    # ------------------------------------------------------------------
    # Deadlines
    # ------------------------------------------------------------------
    def upsert_deadline(self, deadline: Deadline) -> str:
        """Insert or refresh a deadline. Returns ``created`` or ``updated``."""
        now = to_iso(utc_now())
        with self._connect() as conn:
            existing = conn.execute(
                "SELECT deadline_id FROM compliance_deadlines WHERE deadline_id = ?",
                (deadline.deadline_id,),
            ).fetchone()
            if existing:
                conn.execute(
                    """
                    UPDATE compliance_deadlines
                       SET title = ?,
                           description = ?,
                           deadline_date = ?,
                           deadline_type = ?,
                           recurring_pattern = ?,
                           status = ?,
                           updated_at = ?
                     WHERE deadline_id = ?
                    """,
                    (
                        deadline.title,
                        deadline.description,
                        to_iso(deadline.deadline_date),
                        deadline.deadline_type,
                        deadline.recurring_pattern,
                        deadline.status,
                        now,
                        deadline.deadline_id,
                    ),
                )
                status = "updated"
            else:
                conn.execute(
                    """
                    INSERT INTO compliance_deadlines (
                        deadline_id, rule_id, title, description, deadline_date,
                        deadline_type, recurring_pattern, status, reminders_sent,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        deadline.deadline_id,
                        deadline.rule_id,
                        deadline.title,
                        deadline.description,
                        to_iso(deadline.deadline_date),
                        deadline.deadline_type,
                        deadline.recurring_pattern,
                        deadline.status,
                        self._to_json(deadline.reminders_sent),
                        now,
                        now,
                    ),
                )
                status = "created"
            conn.commit()
        return status

    def get_deadline(self, deadline_id: str) -> Optional[Deadline]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM compliance_deadlines WHERE deadline_id = ?",
                (deadline_id,),
            ).fetchone()
        return self._row_to_deadline(row) if row else None

    def get_upcoming_deadlines(
        self,
        days_ahead: int = 30,
        *,
        jurisdiction: Optional[str] = None,
        topic_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Deadlines falling within ``days_ahead`` days, soonest first, with rule context."""
        start = now or utc_now()
        end = start + timedelta(days=days_ahead)
        query = [
            "SELECT d.*, r.jurisdiction, r.topic_key, r.topic_label",
            "FROM compliance_deadlines d",
            "JOIN compliance_rules r ON r.rule_id = d.rule_id",
            "WHERE d.deadline_date >= ? AND d.deadline_date <= ?",
        ]
        params: List[Any] = [to_iso(start), to_iso(end)]
        if jurisdiction:
            query.append("AND r.jurisdiction = ?")
            params.append(jurisdiction)
        if topic_key:
            query.append("AND r.topic_key = ?")
            params.append(topic_key)
        query.append("ORDER BY d.deadline_date")
        with self._connect() as conn:
            rows = conn.execute(" ".join(query), params).fetchall()
        return [self._row_to_dict(row, json_columns=("reminders_sent",)) for row in rows]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _row_to_dict(self, row: sqlite3.Row, json_columns: Iterable[str] = ()) -> Dict[str, Any]:
        data = dict(row)
        for column in json_columns:
            default: Any = [] if column in _LIST_COLUMNS else {}
            data[column] = self._from_json(data.get(column), default=default)
        return data

    @staticmethod
    def _row_to_rule(row: sqlite3.Row) -> MonitoredRule:
        success = row["last_crawl_success"]
        return MonitoredRule(
            rule_id=row["rule_id"],
            jurisdiction=row["jurisdiction"],
            topic_key=row["topic_key"],
            topic_label=row["topic_label"],
            source_url=row["source_url"],
            priority=row["priority"],
            monitoring_status=row["monitoring_status"],
            created_at=parse_timestamp(row["created_at"]),
            last_significant_change=parse_timestamp(row["last_significant_change"]),
            last_checked_at=parse_timestamp(row["last_checked_at"]),
            last_crawl_success=None if success is None else bool(success),
            last_content_length=row["last_content_length"],
            last_response_time_ms=row["last_response_time_ms"],
        )

    def _row_to_report(self, row: sqlite3.Row) -> ComplianceReport:
        return ComplianceReport(
            report_id=row["report_id"],
            rule_id=row["rule_id"],
            report_content=row["report_content"],
            content_hash=row["content_hash"],
            content_length=row["content_length"],
            extracted_sections=self._from_json(row["extracted_sections"], default={}),
            processing_method=row["processing_method"],
            generated_at=parse_timestamp(row["generated_at"]),
        )

    def _row_to_alert(self, row: sqlite3.Row) -> ComplianceAlert:
        return ComplianceAlert(
            change_id=row["change_id"],
            rule_id=row["rule_id"],
            change_type=row["change_type"],
            severity=row["severity"],
            detected_at=parse_timestamp(row["detected_at"]),
            affected_sections=self._from_json(row["affected_sections"], default=[]),
            change_description=row["change_description"] or "",
            ai_confidence=row["ai_confidence"],
            human_verified=bool(row["human_verified"]),
            notifications_sent=self._from_json(row["notifications_sent"], default=[]),
        )

    def _row_to_deadline(self, row: sqlite3.Row) -> Deadline:
        return Deadline(
            deadline_id=row["deadline_id"],
            rule_id=row["rule_id"],
            title=row["title"],
            description=row["description"] or "",
            deadline_date=parse_timestamp(row["deadline_date"]),
            deadline_type=row["deadline_type"],
            recurring_pattern=row["recurring_pattern"],
            status=row["status"],
            reminders_sent=self._from_json(row["reminders_sent"], default=[]),
        )

    @staticmethod
    def _to_json(value: Optional[Any]) -> Optional[str]:
        if value is None:
            return None
        return json.dumps(value, sort_keys=True)

    @staticmethod
    def _from_json(value: Optional[str], default: Any) -> Any:
        if not value:
            return default
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return default


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Compliance monitor database helper")
    parser.add_argument("--init", action="store_true", help="Initialise the database schema")
    parser.add_argument("--db-path", help="Override database path", default=None)
    args = parser.parse_args(argv)

    db = ComplianceDatabase(db_path=args.db_path, auto_initialize=False)
    if args.init:
        db.initialize()
        print(f"Initialised compliance database at {db.db_path}")
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
