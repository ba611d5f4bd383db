"""Simulated market-data enrichment for scouted jobs.

A static catalog stands in for a financial data API. Companies missing from
the catalog are reported as private.
"""
from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass

from scout.log import get_logger
from scout.models import Financials, Job, JobStatus

log = get_logger(__name__)

PRIVATE_SYMBOL = "PVT"


@dataclass(frozen=True)
class CompanyProfile:
    name: str
    symbol: str
    price: float
    growth: float
    private: bool
    cap: str


COMPANIES: list[CompanyProfile] = [
    CompanyProfile("TechFlow Systems", "TFS", 142.50, 0.15, False, "12B"),
    CompanyProfile("SalesForce Dynamics", "CRM", 290.10, 0.11, False, "280B"),
    CompanyProfile("StartupX", "", 0.0, 0.0, True, "N/A"),
    CompanyProfile("OmniCorp Global", "OCG", 45.20, -0.02, False, "4B"),
    CompanyProfile("CloudScale AI", "CSAI", 88.00, 0.45, False, "2B"),
]

# Fallback entry for companies we have no data on
PRIVATE_COMPANY: CompanyProfile = COMPANIES[2]

_BY_NAME: dict[str, CompanyProfile] = {c.name: c for c in COMPANIES}


def lookup_financials(company: str) -> Financials:
    profile = _BY_NAME.get(company)
    if profile is None:
        log.debug("No market data for %r — treating as private", company)
        profile = PRIVATE_COMPANY
    return Financials(
        symbol=PRIVATE_SYMBOL if profile.private else profile.symbol,
        price=profile.price,
        revenue_growth=profile.growth,
        is_private=profile.private,
        market_cap=profile.cap,
    )


async def enrich_job(job: Job, latency: float = 0.8) -> Job:
    """Attach financials after a simulated API round trip; job moves on to analysis."""
    if latency > 0:
        await asyncio.sleep(latency)
    financials = lookup_financials(job.company)
    log.debug("Enriched %s (%s) → %s", job.id, job.company, financials.symbol)
    return dataclasses.replace(job, financials=financials, status=JobStatus.ANALYZING)
