"""Shared fixtures: fast settings, job factories and fake model clients."""
import os

# Keep test runs from writing daily log files
os.environ.setdefault("SCOUT_LOG_FILE", "0")

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from scout.config import Settings
from scout.models import AiAnalysis, Job, JobStatus, Recommendation, SearchCriteria
from scout.store import JobStore


@pytest.fixture
def fast_settings() -> Settings:
    """No pacing or latency so sessions finish immediately."""
    return Settings(
        api_key="",
        batch_size=5,
        pacing_min=0.0,
        pacing_max=0.0,
        enrich_latency=0.0,
    )


@pytest.fixture
def criteria() -> SearchCriteria:
    return SearchCriteria(
        job_title="Solutions Architect",
        location="",
        is_remote=True,
        resume_text="Ten years of technical sales and solution architecture.",
    )


@pytest.fixture
def store() -> JobStore:
    return JobStore()


@pytest.fixture
def make_job():
    def _make(job_id: str = "job1", company: str = "TechFlow Systems", **overrides) -> Job:
        fields = dict(
            id=job_id,
            title="Solutions Architect",
            company=company,
            location="Remote",
            is_remote=True,
            posted_date="2026-01-01T00:00:00+00:00",
            description="Bridge technical and commercial teams.",
            salary_min=130_000,
            salary_max=200_000,
            source="LinkedIn",
            status=JobStatus.SCRAPED,
        )
        fields.update(overrides)
        return Job(**fields)

    return _make


class FakeAnalyst:
    """Stands in for scout.analyst.Analyst inside the pipeline."""

    def __init__(self, score: int = 82, error: Exception | None = None, available: bool = True) -> None:
        self.score = score
        self.error = error
        self.available = available
        self.calls: list[tuple[str, str]] = []

    async def analyze_job_match(self, job: Job, resume_text: str) -> AiAnalysis:
        self.calls.append((job.id, resume_text))
        if self.error is not None:
            raise self.error
        return AiAnalysis(
            fit_score=self.score,
            recommendation=Recommendation.APPLY,
            pros_cons=[f"Strong overlap with {job.title}"],
            growth_verdict=f"{job.company} is growing.",
        )


@pytest.fixture
def fake_analyst():
    return FakeAnalyst


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeStream:
    def __init__(self, parts: list[str], error: Exception | None = None) -> None:
        self.parts = parts
        self.error = error
        self.closed = False

    def __aiter__(self):
        return self._chunks()

    async def _chunks(self):
        for part in self.parts:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=part))])
        if self.error is not None:
            raise self.error

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client():
    """Factory for a MagicMock shaped like AsyncOpenAI."""

    def _make(content=None, *, side_effect=None, stream_parts=None, stream_error=None):
        client = MagicMock()
        if stream_parts is not None:
            result = FakeStream(stream_parts, stream_error)
        else:
            result = completion(content)
        client.chat.completions.create = AsyncMock(return_value=result, side_effect=side_effect)
        return client

    return _make
