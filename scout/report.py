"""Views over the job collection: grid rows, stats, charts and the session brief."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote_plus

import pandas as pd

from scout.config import REPORTS_DIR
from scout.log import get_logger
from scout.models import Job, JobStatus, SearchCriteria, TERMINAL

log = get_logger(__name__)

HIGH_FIT = 75
MEDIUM_FIT = 50

# Market comparison bands shown next to a role's salary midpoint
SALARY_BANDS: list[tuple[str, int]] = [
    ("Junior", 110_000),
    ("Mid-Level", 135_000),
    ("Senior", 160_000),
    ("Lead", 190_000),
    ("Principal", 210_000),
]


@dataclass(frozen=True)
class Summary:
    opportunities: int
    high_fit: int
    complete: int
    in_progress: int
    failed: int


def search_url(job: Job) -> str:
    """Best-effort link to the posting; synthetic jobs have no canonical URL."""
    return f"https://www.google.com/search?q={quote_plus(f'{job.title} {job.company} jobs')}"


def score_band(score: int) -> str:
    if score > HIGH_FIT:
        return "high"
    if score > MEDIUM_FIT:
        return "medium"
    return "low"


def summarize(jobs: tuple[Job, ...] | list[Job]) -> Summary:
    return Summary(
        opportunities=len(jobs),
        high_fit=sum(1 for j in jobs if j.analysis and j.analysis.fit_score > HIGH_FIT),
        complete=sum(1 for j in jobs if j.is_complete),
        in_progress=sum(1 for j in jobs if j.status not in TERMINAL),
        failed=sum(1 for j in jobs if j.status == JobStatus.FAILED),
    )


def _growth_label(job: Job) -> str:
    if not job.financials:
        return "—"
    growth = job.financials.revenue_growth * 100
    return f"{'+' if growth > 0 else ''}{growth:.0f}%"


def salary_benchmarks(job: Job) -> pd.DataFrame:
    """Bar-chart data: market bands with this role slotted in after Mid-Level."""
    rows = [{"level": name, "salary": value, "this_role": False} for name, value in SALARY_BANDS]
    rows.insert(2, {"level": "This Role", "salary": job.salary_midpoint, "this_role": True})
    df = pd.DataFrame(rows)
    df["level"] = pd.Categorical(df["level"], categories=list(df["level"]), ordered=True)
    return df


def jobs_frame(jobs: tuple[Job, ...] | list[Job]) -> pd.DataFrame:
    columns = ["id", "company", "title", "location", "growth", "score", "recommendation", "status", "link"]
    rows = []
    for j in jobs:
        rows.append(
            {
                "id": j.id,
                "company": j.company,
                "title": j.title,
                "location": "Remote" if j.is_remote else j.location,
                "growth": _growth_label(j),
                "score": j.analysis.fit_score if j.analysis else None,
                "recommendation": j.analysis.recommendation.value if j.analysis else "",
                "status": j.status.value,
                "link": search_url(j),
            }
        )
    return pd.DataFrame(rows, columns=columns)


def _salary_k(job: Job) -> str:
    return f"${job.salary_min / 1000:.0f}k - ${job.salary_max / 1000:.0f}k"


def build_session_report(jobs: tuple[Job, ...] | list[Job], criteria: SearchCriteria | None = None) -> str:
    date = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M")
    s = summarize(jobs)
    lines: list[str] = [f"# Scouting Report — {date} UTC", ""]

    if criteria is not None:
        role = criteria.job_title or "any role"
        where = "Remote" if criteria.is_remote else (criteria.location or "any location")
        lines.append(f"_Target: {role} — {where}_")
        lines.append("")

    lines.append(
        f"**{s.opportunities}** opportunities | **{s.high_fit}** high fit | "
        f"**{s.complete}** complete | **{s.in_progress}** in progress"
        + (f" | **{s.failed}** failed" if s.failed else "")
    )
    lines.append("")

    if not jobs:
        lines.append("No opportunities scouted yet.")
        return "\n".join(lines)

    lines.append("## Quick Reference")
    lines.append("")
    lines.append("| # | Role | Company | Growth | Fit | Verdict | Status |")
    lines.append("|--:|------|---------|-------:|----:|---------|--------|")
    for i, j in enumerate(jobs, 1):
        title = j.title[:40] + ("…" if len(j.title) > 40 else "")
        fit = str(j.analysis.fit_score) if j.analysis else "—"
        verdict = j.analysis.recommendation.value if j.analysis else "—"
        lines.append(f"| {i} | {title} | {j.company} | {_growth_label(j)} | {fit} | {verdict} | {j.status.value} |")
    lines.append("")

    analysed = [j for j in jobs if j.analysis]
    if analysed:
        lines.append("---")
        lines.append("")
        lines.append("## Analysis")
        lines.append("")
        for j in sorted(analysed, key=lambda x: -x.analysis.fit_score):
            a = j.analysis
            lines.append(f"### {j.title} @ {j.company}")
            lines.append(f"- **Fit:** {a.fit_score}/100 ({score_band(a.fit_score)}) — {a.recommendation.value}")
            lines.append(f"- **Location:** {j.location} | **Salary:** {_salary_k(j)}")
            if j.financials:
                kind = "Private" if j.financials.is_private else f"Public ({j.financials.symbol})"
                lines.append(f"- **Company:** {kind}, market cap {j.financials.market_cap}, growth {_growth_label(j)}")
            lines.append(f"- **Growth verdict:** {a.growth_verdict}")
            for point in a.pros_cons:
                lines.append(f"  - {point}")
            lines.append(f"- **Posting:** [Search]({search_url(j)})")
            lines.append("")

    stuck = [j for j in jobs if j.status not in TERMINAL]
    failed = [j for j in jobs if j.status == JobStatus.FAILED]
    if stuck or failed:
        lines.append("---")
        lines.append("")
        lines.append("## Unfinished")
        lines.append("")
        for j in failed:
            lines.append(f"- **{j.title}** @ {j.company} — failed: {j.error or 'unknown error'}")
        for j in stuck:
            lines.append(f"- **{j.title}** @ {j.company} — still _{j.status.value}_")
        lines.append("")

    log.info("Built session report: %d jobs, %d analysed", len(jobs), len(analysed))
    return "\n".join(lines)


def write_session_report(content: str, path: Path | None = None) -> Path:
    if path is None:
        REPORTS_DIR.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H%M%S")
        path = REPORTS_DIR / f"scout_{stamp}.md"
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    log.info("Report written → %s", path)
    return path
