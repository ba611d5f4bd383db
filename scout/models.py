"""Data models for scouted jobs, enrichment and AI analysis."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Recommendation(str, Enum):
    APPLY = "Apply"
    AVOID = "Avoid"
    NETWORK_FIRST = "Network First"


class JobStatus(str, Enum):
    SCRAPED = "scraped"
    ENRICHING = "enriching"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    # Only reachable when the pipeline runs with failure_mode="fail"
    FAILED = "failed"


# Forward-only lifecycle edges
TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.SCRAPED: frozenset({JobStatus.ENRICHING}),
    JobStatus.ENRICHING: frozenset({JobStatus.ANALYZING, JobStatus.COMPLETE, JobStatus.FAILED}),
    JobStatus.ANALYZING: frozenset({JobStatus.COMPLETE, JobStatus.FAILED}),
    JobStatus.COMPLETE: frozenset(),
    JobStatus.FAILED: frozenset(),
}

TERMINAL: frozenset[JobStatus] = frozenset({JobStatus.COMPLETE, JobStatus.FAILED})


class InvalidTransition(ValueError):
    """Raised when a job status would move backwards or skip a phase."""


def can_transition(current: JobStatus, new: JobStatus) -> bool:
    return current == new or new in TRANSITIONS[current]


@dataclass(frozen=True)
class Financials:
    symbol: str
    price: float
    revenue_growth: float  # fraction, 0.15 == 15%
    is_private: bool
    market_cap: str


@dataclass(frozen=True)
class AiAnalysis:
    fit_score: int
    recommendation: Recommendation
    pros_cons: list[str]
    growth_verdict: str


@dataclass(frozen=True)
class Job:
    id: str
    title: str
    company: str
    location: str
    is_remote: bool
    posted_date: str
    description: str
    salary_min: int
    salary_max: int
    source: str = "LinkedIn"
    status: JobStatus = JobStatus.SCRAPED
    financials: Financials | None = None
    analysis: AiAnalysis | None = None
    error: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.status == JobStatus.COMPLETE

    @property
    def salary_midpoint(self) -> float:
        return (self.salary_min + self.salary_max) / 2


@dataclass
class SearchCriteria:
    job_title: str = ""
    location: str = ""
    is_remote: bool = True
    resume_text: str = ""
