"""
Job scouting session.

Runs: generate → enrich → analyze, one independent asyncio task per job,
publishing every status change to the shared JobStore as it happens.
"""
from __future__ import annotations

import asyncio
import functools
import random
from typing import Awaitable, Callable

from scout.analyst import Analyst
from scout.config import Settings
from scout.enrichment import enrich_job
from scout.log import get_logger
from scout.models import Job, JobStatus, SearchCriteria, can_transition
from scout.sources import JobSource, get_source
from scout.store import JobStore

log = get_logger(__name__)

Enricher = Callable[[Job], Awaitable[Job]]


class ScoutSession:
    """One batch of scouting against a shared store.

    ``run`` paces job generation and launches each job's pipeline without
    waiting for it. ``cancel`` only stops generation, including for a run that
    has not started yet; pipelines that already started run to completion.
    ``join`` waits for the outstanding ones.
    """

    def __init__(
        self,
        store: JobStore,
        criteria: SearchCriteria,
        *,
        settings: Settings | None = None,
        source: JobSource | None = None,
        analyst: Analyst | None = None,
        enricher: Enricher | None = None,
        rng: random.Random | None = None,
    ) -> None:
        settings = settings or Settings()
        self.store = store
        self.criteria = criteria
        self.batch_size = settings.batch_size
        self.pacing = (settings.pacing_min, settings.pacing_max)
        self.failure_mode = settings.failure_mode
        self.rng = rng or random.Random()
        self.source = source or get_source(self.rng)
        self.analyst = analyst
        self.enricher = enricher or functools.partial(enrich_job, latency=settings.enrich_latency)

        self.active = False
        self.failures: dict[str, str] = {}
        self._cancelled = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def ai_enabled(self) -> bool:
        return self.analyst is not None and self.analyst.available

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def cancel(self) -> None:
        if self.active:
            log.info("Scouting cancelled — no further jobs will be generated")
        self._cancelled = True

    async def run(self, *, wait: bool = False) -> list[str]:
        """Generate up to ``batch_size`` jobs; returns their ids in generation order."""
        self.active = True
        generated: list[str] = []
        log.info(
            "Scouting %d job(s) — AI analysis %s",
            self.batch_size, "on" if self.ai_enabled else "off",
        )
        try:
            for i in range(self.batch_size):
                if self._cancelled:
                    break
                job = self.source.generate(self.criteria)
                self.store.prepend(job)
                generated.append(job.id)
                self._launch(job)

                if i < self.batch_size - 1:
                    await asyncio.sleep(self._pause())
        finally:
            self.active = False

        log.info("Generation finished — %d job(s), %d pipeline(s) in flight", len(generated), self.pending)
        if wait:
            await self.join()
        return generated

    async def join(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def process_job(self, job: Job) -> None:
        """Drive one job through enrichment and analysis."""
        try:
            self.store.upsert(job.id, status=JobStatus.ENRICHING)
            enriched = await self.enricher(job)

            if self.ai_enabled:
                self.store.upsert(job.id, financials=enriched.financials, status=JobStatus.ANALYZING)
                analysis = await self.analyst.analyze_job_match(enriched, self.criteria.resume_text)
                self.store.upsert(job.id, analysis=analysis, status=JobStatus.COMPLETE)
            else:
                log.warning("No API key — finishing %s without AI analysis", job.id)
                self.store.upsert(job.id, financials=enriched.financials, status=JobStatus.COMPLETE)
        except Exception as exc:
            self._record_failure(job.id, exc)

    def _record_failure(self, job_id: str, exc: Exception) -> None:
        reason = f"{type(exc).__name__}: {exc}"
        self.failures[job_id] = reason
        log.exception("Pipeline failed for job %s", job_id)
        if self.failure_mode != "fail":
            return
        current = self.store.find(job_id)
        if current is not None and can_transition(current.status, JobStatus.FAILED):
            self.store.upsert(job_id, status=JobStatus.FAILED, error=reason)

    def _launch(self, job: Job) -> None:
        task = asyncio.create_task(self.process_job(job), name=f"pipeline-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _pause(self) -> float:
        lo, hi = self.pacing
        return lo + self.rng.random() * (hi - lo)


async def process_job_pipeline(
    job: Job,
    store: JobStore,
    criteria: SearchCriteria,
    **kwargs,
) -> None:
    await ScoutSession(store, criteria, **kwargs).process_job(job)


async def run_scouting_session(
    store: JobStore,
    criteria: SearchCriteria,
    *,
    wait: bool = True,
    **kwargs,
) -> ScoutSession:
    session = ScoutSession(store, criteria, **kwargs)
    await session.run(wait=wait)
    return session


async def run_with_redraw(
    session: ScoutSession,
    redraw: Callable[[tuple[Job, ...]], None],
) -> None:
    """Run *session* to completion, calling *redraw* with fresh snapshots.

    Store changes only set a flag; *redraw* runs in its own task, coalescing
    bursts of updates, so anything it raises never lands inside a pipeline
    step. If *redraw* raises (a UI rerun, say), generation is cancelled, the
    pipelines already launched are drained, and the error is re-raised.
    """
    changed = asyncio.Event()

    async def _paint() -> None:
        while True:
            await changed.wait()
            changed.clear()
            try:
                redraw(session.store.get())
            except BaseException:
                session.cancel()
                raise

    unsubscribe = session.store.subscribe(lambda jobs: changed.set())
    painter = asyncio.create_task(_paint(), name="redraw")
    try:
        await session.run(wait=True)
    finally:
        unsubscribe()
        painter.cancel()
    (outcome,) = await asyncio.gather(painter, return_exceptions=True)
    if not isinstance(outcome, asyncio.CancelledError):
        raise outcome
