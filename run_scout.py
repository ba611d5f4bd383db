#!/usr/bin/env python3
"""Run one scouting session headless and write the session report."""
from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from scout.analyst import build_analyst
from scout.config import load_criteria, load_settings
from scout.log import get_logger
from scout.pipeline import run_scouting_session
from scout.report import build_session_report, summarize, write_session_report
from scout.store import JobStore

log = get_logger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Scout mock jobs and score them against a resume.")
    p.add_argument("--title", help="Target role (default: random)")
    p.add_argument("--location", help="Location (ignored when remote)")
    p.add_argument("--remote", action=argparse.BooleanOptionalAction, default=None, help="Remote only")
    p.add_argument("--resume", type=Path, help="Resume text file")
    p.add_argument("--count", type=int, help="Number of jobs to scout")
    p.add_argument("--report", type=Path, help="Where to write the Markdown report")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = load_settings()
    criteria = load_criteria()

    if args.title is not None:
        criteria.job_title = args.title
    if args.location is not None:
        criteria.location = args.location
    if args.remote is not None:
        criteria.is_remote = args.remote
    if args.resume is not None:
        criteria.resume_text = args.resume.read_text(encoding="utf-8")
    if args.count is not None:
        if args.count < 1:
            log.error("--count must be at least 1")
            return 2
        settings = replace(settings, batch_size=args.count)

    store = JobStore()
    session = asyncio.run(
        run_scouting_session(store, criteria, settings=settings, analyst=build_analyst(settings))
    )

    jobs = store.get()
    s = summarize(jobs)
    log.info("Run complete.")
    log.info("  Opportunities: %d", s.opportunities)
    log.info("  High fit (>75): %d", s.high_fit)
    log.info("  Complete: %d, in progress: %d, failed: %d", s.complete, s.in_progress, s.failed)
    for job_id, reason in session.failures.items():
        log.info("  Pipeline error %s: %s", job_id, reason)

    path = write_session_report(build_session_report(jobs, criteria), args.report)
    log.info("  Report: %s", path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
