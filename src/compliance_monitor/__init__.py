"""Compliance monitor package namespace."""

from importlib import import_module
from typing import Any

_EXPORTS = {
    "ComplianceCrawler": "src.compliance_monitor.crawler",
    "ComplianceDatabase": "src.compliance_monitor.database",
    "CrawlScheduler": "src.compliance_monitor.scheduler",
    "ChangeClassifier": "src.compliance_monitor.changes",
    "compare_sections": "src.compliance_monitor.changes",
    "extract_sections": "src.compliance_monitor.sections",
    "extract_fields": "src.compliance_monitor.fields",
    "parse_content": "src.compliance_monitor.parser",
    "content_hash": "src.compliance_monitor.parser",
    "MonitorConfig": "src.compliance_monitor.config",
    "PipelineOptions": "src.compliance_monitor.config",
    "ServiceSettings": "src.compliance_monitor.config",
    "DeadlineTracker": "src.compliance_monitor.deadlines",
    "AlertRenderer": "src.compliance_monitor.alerts",
}

__all__ = list(_EXPORTS)


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        module = import_module(_EXPORTS[name])
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(__all__)
