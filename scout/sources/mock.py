"""Mock job source: synthetic listings built from fixed catalogs."""
from __future__ import annotations

import dataclasses
import random
import string
from datetime import datetime, timezone

from scout.enrichment import COMPANIES
from scout.log import get_logger
from scout.models import Job, JobStatus, SearchCriteria
from scout.sources.base import JobSource

log = get_logger(__name__)

JOB_TITLES: list[str] = [
    "Director of Sales Engineering",
    "Technical Account Manager",
    "Solutions Architect",
    "Enterprise Account Executive (SaaS)",
    "Head of Growth",
]

LOCATIONS: list[str] = ["San Francisco, CA", "New York, NY", "Austin, TX", "Remote", "London, UK"]

SOURCES: tuple[str, str] = ("LinkedIn", "Indeed")

SALARY_MIN_FLOOR = 120_000
SALARY_MIN_SPREAD = 50_000
SALARY_MAX_FLOOR = 180_000
SALARY_MAX_SPREAD = 100_000

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_LENGTH = 8

_DESCRIPTION = """We are seeking a {title} to join our team at {company}.

Responsibilities:
- Bridge the gap between technical teams and commercial sales.
- Drive revenue growth through technical demonstrations.
- Manage key enterprise relationships.

Requirements:
- 5+ years in technical sales or solution architecture.
- Strong understanding of cloud infrastructure.
- Proven track record of meeting quotas.

Benefits:
- Competitive salary and equity.
- Remote work options."""


def _job_id(rng: random.Random) -> str:
    return "".join(rng.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def generate_mock_job(criteria: SearchCriteria, rng: random.Random | None = None) -> Job:
    rng = rng or random.Random()
    company = rng.choice(COMPANIES)
    title = criteria.job_title.strip() or rng.choice(JOB_TITLES)
    if criteria.is_remote:
        location = "Remote"
    else:
        location = criteria.location.strip() or rng.choice(LOCATIONS)

    # Floors differ by 60k and the min spread is smaller, so min < max always
    salary_min = SALARY_MIN_FLOOR + rng.randrange(SALARY_MIN_SPREAD)
    salary_max = SALARY_MAX_FLOOR + rng.randrange(SALARY_MAX_SPREAD)

    return Job(
        id=_job_id(rng),
        title=title,
        company=company.name,
        location=location,
        is_remote=criteria.is_remote,
        posted_date=datetime.now(timezone.utc).isoformat(),
        description=_DESCRIPTION.format(title=title, company=company.name),
        salary_min=salary_min,
        salary_max=salary_max,
        source=rng.choice(SOURCES),
        status=JobStatus.SCRAPED,
    )


class MockSource(JobSource):
    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()
        self._issued: set[str] = set()

    def generate(self, criteria: SearchCriteria) -> Job:
        job = generate_mock_job(criteria, self.rng)
        while job.id in self._issued:
            job = dataclasses.replace(job, id=_job_id(self.rng))
        self._issued.add(job.id)
        log.info("Scouted %s @ %s [%s]", job.title, job.company, job.id)
        return job
