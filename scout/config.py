"""Load env settings and default search criteria."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from scout.log import get_logger
from scout.models import SearchCriteria

log = get_logger(__name__)

load_dotenv()

CONFIG_DIR: Path = Path(__file__).resolve().parent.parent / "config"
CRITERIA_PATH: Path = CONFIG_DIR / "criteria.yaml"
REPORTS_DIR: Path = Path(__file__).resolve().parent.parent / "reports"

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_MODEL = "gemini-3-pro-preview"
FAILURE_MODES: tuple[str, ...] = ("stall", "fail")

DEFAULT_RESUME = """ALEX MORGAN
Austin, TX | alex.morgan@example.com

SUMMARY
Program management and sales leadership executive with 10+ years of experience
driving cross-functional transformations in e-commerce, supply chain and CPG.
Track record of leading programs that optimize operations and grow revenue
(+35% YoY) for enterprise-scale clients. Data-driven with SQL, Tableau and Python.

EXPERIENCE
Senior Program Manager, Supply Chain (2024 - Present)
- Led inbound supply chain architecture for 3,000+ third-party sellers, cutting fees by $20M.
- Drove a 99% in-stock rate during peak events through forecasting and risk mitigation.

Manager of Customer Success Managers (2022 - 2024)
- Directed category strategy generating $525M in revenue (+24% YoY).
- Mentored 15 strategic account managers to $1B+ in sales.

Director of Retail Sales (2020 - 2022)
- Delivered 23% YoY sales growth across national retail chains.

EDUCATION
MBA, Kellogg School of Management
Python Programming Certification

TECHNICAL SKILLS
Python, SQL, Tableau, Power BI, Excel, JIRA, CRM systems, Agile
"""


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    batch_size: int = 5
    pacing_min: float = 0.8
    pacing_max: float = 1.8
    enrich_latency: float = 0.8
    resume_prefix_chars: int = 2000
    failure_mode: str = "stall"

    @property
    def ai_available(self) -> bool:
        return bool(self.api_key)


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _env_number(key: str, default: float, cast=float) -> Any:
    raw = get_env(key)
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        log.warning("Ignoring invalid %s=%r, using %s", key, raw, default)
        return default
    if value < 0:
        log.warning("Ignoring negative %s=%r, using %s", key, raw, default)
        return default
    return value


def load_settings() -> Settings:
    api_key = get_env("GEMINI_API_KEY") or get_env("API_KEY")
    pacing_min = _env_number("SCOUT_PACING_MIN", 0.8)
    pacing_max = _env_number("SCOUT_PACING_MAX", 1.8)
    if pacing_max < pacing_min:
        log.warning("SCOUT_PACING_MAX < SCOUT_PACING_MIN — using %.2fs for both", pacing_min)
        pacing_max = pacing_min

    failure_mode = get_env("SCOUT_FAILURE_MODE", "stall").lower()
    if failure_mode not in FAILURE_MODES:
        log.warning("Unknown SCOUT_FAILURE_MODE=%r — falling back to 'stall'", failure_mode)
        failure_mode = "stall"

    return Settings(
        api_key=api_key,
        base_url=get_env("SCOUT_LLM_BASE_URL") or DEFAULT_BASE_URL,
        model=get_env("SCOUT_LLM_MODEL") or DEFAULT_MODEL,
        batch_size=max(1, _env_number("SCOUT_BATCH_SIZE", 5, int)),
        pacing_min=pacing_min,
        pacing_max=pacing_max,
        enrich_latency=_env_number("SCOUT_ENRICH_LATENCY", 0.8),
        resume_prefix_chars=_env_number("SCOUT_RESUME_PREFIX", 2000, int),
        failure_mode=failure_mode,
    )


def _as_bool(value: Any, default: bool) -> bool:
    """YAML booleans, plus quoted "false"/"no"/"0" style strings."""
    if value is None:
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "yes", "on", "1"):
            return True
        if text in ("false", "no", "off", "0"):
            return False
        log.warning("Ignoring unrecognised boolean %r, using %s", value, default)
        return default
    return bool(value)


def load_criteria(path: Path | None = None) -> SearchCriteria:
    """Default criteria from config/criteria.yaml, else the built-in defaults."""
    path = path or CRITERIA_PATH
    if not path.exists():
        return SearchCriteria(resume_text=DEFAULT_RESUME)

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    resume = data.get("resume_text") or ""
    resume_file = data.get("resume_file")
    if not resume and resume_file:
        resume_path = (path.parent / resume_file).resolve()
        try:
            resume = resume_path.read_text(encoding="utf-8")
        except OSError as exc:
            log.warning("Could not read resume_file %s: %s", resume_path, exc)

    return SearchCriteria(
        job_title=str(data.get("job_title") or ""),
        location=str(data.get("location") or ""),
        is_remote=_as_bool(data.get("is_remote"), True),
        resume_text=resume or DEFAULT_RESUME,
    )
