"""Configuration loading for the compliance monitor."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .models import HttpClientConfig

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = env.get(key)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_value(env: Mapping[str, str], key: str, default: Any) -> str:
    value = env.get(key)
    if value is None or value.strip() == "":
        return str(default)
    return value.strip()


class MonitorConfig:
    """YAML-backed settings: scheduling tables, pipeline options and services."""

    DEFAULT_CONFIG_PATH = Path("config/compliance_monitor.yaml")

    def __init__(self, config_path: Optional[Union[str, Path]] = None) -> None:
        path = Path(config_path) if config_path else self.DEFAULT_CONFIG_PATH
        if not path.is_absolute():
            path = Path.cwd() / path
        self.config_path = path
        self._data = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            return {"settings": {}, "strategies": {}, "topic_priorities": {}}
        with open(self.config_path, "r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}

    def get_setting(self, key: str, default: Any = None) -> Any:
        return (self._data.get("settings") or {}).get(key, default)

    def get_strategies(self) -> Dict[str, Dict[str, Any]]:
        return dict(self._data.get("strategies") or {})

    def get_topic_priorities(self) -> Dict[str, str]:
        return dict(self._data.get("topic_priorities") or {})

    def get_pipeline(self) -> Dict[str, Any]:
        return dict(self._data.get("pipeline") or {})

    def get_services(self) -> Dict[str, Any]:
        return dict(self._data.get("services") or {})


@dataclass
class PipelineOptions:
    """Feature switches handed to the crawler at construction."""

    compliance_mode: bool = True
    ai_summarization: bool = True
    mirror_change_log: bool = True
    alert_on_critical: bool = True
    enqueue_embedding_refresh: bool = True
    degrade_on_summary_failure: bool = False
    batch_delay_seconds: float = 1.0
    snippet_chars: int = 200
    max_display_chars: int = 10000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "PipelineOptions":
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            compliance_mode=_env_flag(env, "COMPLIANCE_MODE", defaults.compliance_mode),
            ai_summarization=_env_flag(env, "COMPLIANCE_AI_SUMMARIZATION", defaults.ai_summarization),
            mirror_change_log=_env_flag(env, "COMPLIANCE_MIRROR_CHANGE_LOG", defaults.mirror_change_log),
            alert_on_critical=_env_flag(env, "COMPLIANCE_ALERT_ON_CRITICAL", defaults.alert_on_critical),
            enqueue_embedding_refresh=_env_flag(
                env, "COMPLIANCE_EMBEDDING_REFRESH", defaults.enqueue_embedding_refresh
            ),
            degrade_on_summary_failure=_env_flag(
                env, "COMPLIANCE_DEGRADE_ON_SUMMARY_FAILURE", defaults.degrade_on_summary_failure
            ),
            batch_delay_seconds=float(
                _env_value(env, "COMPLIANCE_BATCH_DELAY_SECONDS", defaults.batch_delay_seconds)
            ),
            snippet_chars=int(_env_value(env, "COMPLIANCE_SNIPPET_CHARS", defaults.snippet_chars)),
            max_display_chars=int(
                _env_value(env, "COMPLIANCE_MAX_DISPLAY_CHARS", defaults.max_display_chars)
            ),
        )

    @classmethod
    def from_config(cls, config: MonitorConfig) -> "PipelineOptions":
        known = {item.name for item in fields(cls)}
        values = {key: value for key, value in config.get_pipeline().items() if key in known}
        return cls(**values)


@dataclass
class ServiceSettings:
    """Credentials and endpoints of the external services."""

    firecrawl_api_key: Optional[str] = None
    firecrawl_base_url: str = "https://api.firecrawl.dev"
    gemini_api_key: Optional[str] = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-1.5-flash"
    http_timeout_seconds: float = 60.0
    http_max_retries: int = 0

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        config: Optional[MonitorConfig] = None,
    ) -> "ServiceSettings":
        env = os.environ if env is None else env
        file_values = config.get_services() if config else {}
        defaults = cls()
        return cls(
            firecrawl_api_key=env.get("FIRECRAWL_API_KEY") or file_values.get("firecrawl_api_key"),
            firecrawl_base_url=file_values.get("firecrawl_base_url", defaults.firecrawl_base_url),
            gemini_api_key=env.get("GEMINI_API_KEY") or file_values.get("gemini_api_key"),
            gemini_base_url=file_values.get("gemini_base_url", defaults.gemini_base_url),
            gemini_model=env.get("GEMINI_MODEL") or file_values.get("gemini_model", defaults.gemini_model),
            http_timeout_seconds=float(
                file_values.get("http_timeout_seconds", defaults.http_timeout_seconds)
            ),
            http_max_retries=int(file_values.get("http_max_retries", defaults.http_max_retries)),
        )

    def http_config(self, name: str) -> HttpClientConfig:
        return HttpClientConfig(
            name=name,
            timeout_seconds=self.http_timeout_seconds,
            max_retries=self.http_max_retries,
        )
