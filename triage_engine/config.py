"""Environment-driven runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def env_str(name: str, default: str, *, strip: bool = True) -> str:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip() if strip else value


def env_optional_str(name: str, default: Optional[str] = None, *, strip: bool = True) -> Optional[str]:
    value = os.environ.get(name)
    if value is None:
        return default
    value = value.strip() if strip else value
    return value or default


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def env_list(name: str, default: tuple[str, ...] = ()) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class TriageConfig:
    """Triage runtime settings.

    Env-first with local-dev defaults. Attention thresholds are fixed
    constants in ``triage_engine.attention`` and are not read from here.
    """

    jira_base_url: Optional[str] = None
    refresh_delay_s: float = 5.0
    clear_delay_s: float = 3.0
    disabled_sources: tuple[str, ...] = ()
    high_priority: int = 80
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "TriageConfig":
        return cls(
            jira_base_url=env_optional_str("TRIAGE_JIRA_BASE_URL"),
            refresh_delay_s=env_float("TRIAGE_REFRESH_DELAY_S", 5.0),
            clear_delay_s=env_float("TRIAGE_CLEAR_DELAY_S", 3.0),
            disabled_sources=env_list("TRIAGE_DISABLED_SOURCES"),
            high_priority=env_int("TRIAGE_HIGH_PRIORITY", 80),
            log_level=env_str("TRIAGE_LOG_LEVEL", "INFO").upper(),
        )

    def is_enabled(self, source: str) -> bool:
        return source.lower() not in self.disabled_sources
