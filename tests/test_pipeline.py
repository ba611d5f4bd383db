"""Tests for the scouting session and per-job pipeline."""
import asyncio
import dataclasses
from collections import defaultdict

import pytest

from scout.analyst import Analyst
from scout.enrichment import enrich_job
from scout.models import JobStatus, Recommendation
from scout.pipeline import ScoutSession, process_job_pipeline, run_scouting_session, run_with_redraw
from scout.store import JobStore


def _record_statuses(store: JobStore):
    """Subscribe a recorder that tracks each job's status history and checks invariants."""
    history: dict[str, list[JobStatus]] = defaultdict(list)
    violations: list[str] = []

    def _on_change(jobs):
        for job in jobs:
            seq = history[job.id]
            if not seq or seq[-1] != job.status:
                seq.append(job.status)
            if job.status in (JobStatus.SCRAPED, JobStatus.ENRICHING) and job.financials is not None:
                violations.append(f"{job.id}: financials while {job.status.value}")
            if job.status != JobStatus.COMPLETE and job.analysis is not None:
                violations.append(f"{job.id}: analysis while {job.status.value}")

    store.subscribe(_on_change)
    return history, violations


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_with_ai(self, store, criteria, fast_settings, fake_analyst):
        analyst = fake_analyst(score=91)
        history, violations = _record_statuses(store)

        session = await run_scouting_session(store, criteria, settings=fast_settings, analyst=analyst)

        jobs = store.get()
        assert len(jobs) == 5
        assert all(j.location == "Remote" for j in jobs)
        assert all(j.status == JobStatus.COMPLETE for j in jobs)
        assert all(j.financials is not None and j.analysis is not None for j in jobs)
        assert all(j.analysis.fit_score == 91 for j in jobs)
        assert not session.active
        assert session.pending == 0
        assert violations == []
        for seq in history.values():
            assert seq == [JobStatus.SCRAPED, JobStatus.ENRICHING, JobStatus.ANALYZING, JobStatus.COMPLETE]
        assert {resume for _, resume in analyst.calls} == {criteria.resume_text}

    @pytest.mark.asyncio
    async def test_without_ai(self, store, criteria, fast_settings):
        history, violations = _record_statuses(store)

        await run_scouting_session(store, criteria, settings=fast_settings, analyst=None)

        jobs = store.get()
        assert len(jobs) == 5
        assert all(j.status == JobStatus.COMPLETE for j in jobs)
        assert all(j.analysis is None for j in jobs)
        assert all(j.financials is not None for j in jobs)
        assert violations == []
        for seq in history.values():
            assert seq == [JobStatus.SCRAPED, JobStatus.ENRICHING, JobStatus.COMPLETE]

    @pytest.mark.asyncio
    async def test_unavailable_analyst_is_skipped(self, store, criteria, fast_settings, fake_analyst):
        analyst = fake_analyst(available=False)
        await run_scouting_session(store, criteria, settings=fast_settings, analyst=analyst)
        assert analyst.calls == []
        assert all(j.analysis is None and j.status == JobStatus.COMPLETE for j in store.get())

    @pytest.mark.asyncio
    async def test_analysis_failure_falls_back(self, store, criteria, fast_settings, fake_client):
        analyst = Analyst("key", model="m", client=fake_client(side_effect=ConnectionError("offline")))

        await run_scouting_session(store, criteria, settings=fast_settings, analyst=analyst)

        for job in store.get():
            assert job.status == JobStatus.COMPLETE
            assert job.analysis.fit_score == 0
            assert job.analysis.recommendation is Recommendation.AVOID
            assert job.analysis.pros_cons


class TestBatchOrchestration:
    @pytest.mark.asyncio
    async def test_ids_distinct_and_newest_first(self, store, criteria, fast_settings):
        session = ScoutSession(store, criteria, settings=fast_settings)
        generated = await session.run(wait=True)

        assert len(generated) == 5
        assert len(set(generated)) == 5
        assert [j.id for j in store.get()] == list(reversed(generated))

    @pytest.mark.asyncio
    async def test_appends_to_existing_collection(self, store, criteria, fast_settings, make_job):
        store.prepend(make_job("older", status=JobStatus.COMPLETE))
        await run_scouting_session(store, criteria, settings=fast_settings)
        assert len(store) == 6
        assert store.get()[-1].id == "older"

    @pytest.mark.asyncio
    async def test_batch_size_is_configurable(self, store, criteria, fast_settings):
        settings = dataclasses.replace(fast_settings, batch_size=2)
        session = await run_scouting_session(store, criteria, settings=settings)
        assert len(store) == 2
        assert session.failures == {}

    @pytest.mark.asyncio
    async def test_generation_does_not_wait_for_pipelines(self, store, criteria, fast_settings):
        release = asyncio.Event()

        async def slow_enricher(job):
            await release.wait()
            return await enrich_job(job, latency=0)

        session = ScoutSession(store, criteria, settings=fast_settings, enricher=slow_enricher)
        generated = await session.run()

        # Let the last launched pipeline reach its first suspension point
        await asyncio.sleep(0)
        assert len(generated) == 5
        assert not session.active
        assert session.pending == 5
        assert all(j.status == JobStatus.ENRICHING for j in store.get())

        release.set()
        await session.join()
        assert session.pending == 0
        assert all(j.status == JobStatus.COMPLETE for j in store.get())

    @pytest.mark.asyncio
    async def test_active_while_generating(self, store, criteria, fast_settings):
        session = ScoutSession(store, criteria, settings=fast_settings)
        seen_active = []
        store.subscribe(lambda jobs: seen_active.append(session.active))
        await session.run(wait=True)
        assert seen_active[0] is True
        assert session.active is False

    @pytest.mark.asyncio
    async def test_cancel_stops_generation_only(self, store, criteria, fast_settings):
        session = ScoutSession(store, criteria, settings=fast_settings)

        def _cancel_after_two(jobs):
            if len(jobs) == 2:
                session.cancel()

        store.subscribe(_cancel_after_two)
        generated = await session.run(wait=True)

        assert len(generated) == 2
        assert len(store) == 2
        assert not session.active
        # Pipelines that had started still finish
        assert all(j.status == JobStatus.COMPLETE for j in store.get())

    @pytest.mark.asyncio
    async def test_cancel_before_run_generates_nothing(self, store, criteria, fast_settings):
        session = ScoutSession(store, criteria, settings=fast_settings)
        session.cancel()
        generated = await session.run(wait=True)
        assert generated == []
        assert len(store) == 0
        assert not session.active

    @pytest.mark.asyncio
    async def test_pacing_interval_within_bounds(self, store, criteria, fast_settings):
        settings = dataclasses.replace(fast_settings, pacing_min=0.8, pacing_max=1.8)
        session = ScoutSession(store, criteria, settings=settings)
        for _ in range(100):
            assert 0.8 <= session._pause() <= 1.8


class TestPerJobPipeline:
    @pytest.mark.asyncio
    async def test_overlapping_updates_do_not_clobber(self, criteria, fast_settings, make_job):
        a = make_job("a", company="TechFlow Systems")
        b = make_job("b", company="CloudScale AI")
        store = JobStore([b, a])
        gates = {"a": asyncio.Event(), "b": asyncio.Event()}

        async def gated_enricher(job):
            await gates[job.id].wait()
            return await enrich_job(job, latency=0)

        session = ScoutSession(store, criteria, settings=fast_settings, enricher=gated_enricher)
        task_a = asyncio.create_task(session.process_job(a))
        task_b = asyncio.create_task(session.process_job(b))
        await asyncio.sleep(0)
        assert store.find("a").status == JobStatus.ENRICHING
        assert store.find("b").status == JobStatus.ENRICHING

        gates["b"].set()
        await task_b
        assert store.find("b").status == JobStatus.COMPLETE
        assert store.find("a").status == JobStatus.ENRICHING

        gates["a"].set()
        await task_a
        assert store.find("b").status == JobStatus.COMPLETE
        assert store.find("b").financials.symbol == "CSAI"
        assert store.find("a").status == JobStatus.COMPLETE
        assert store.find("a").financials.symbol == "TFS"
        assert [j.id for j in store.get()] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_enrichment_error_stalls_job(self, store, criteria, fast_settings, make_job):
        async def broken_enricher(job):
            raise RuntimeError("market data down")

        store.prepend(make_job("a"))
        session = ScoutSession(store, criteria, settings=fast_settings, enricher=broken_enricher)
        await session.process_job(store.find("a"))

        job = store.find("a")
        assert job.status == JobStatus.ENRICHING
        assert job.financials is None
        assert "market data down" in session.failures["a"]

    @pytest.mark.asyncio
    async def test_analysis_error_stalls_job(self, store, criteria, fast_settings, make_job, fake_analyst):
        store.prepend(make_job("a"))
        analyst = fake_analyst(error=RuntimeError("model exploded"))
        session = ScoutSession(store, criteria, settings=fast_settings, analyst=analyst)
        await session.process_job(store.find("a"))

        job = store.find("a")
        assert job.status == JobStatus.ANALYZING
        assert job.financials is not None
        assert job.analysis is None
        assert "model exploded" in session.failures["a"]

    @pytest.mark.asyncio
    async def test_fail_mode_marks_job_failed(self, store, criteria, fast_settings, make_job, fake_analyst):
        settings = dataclasses.replace(fast_settings, failure_mode="fail")
        store.prepend(make_job("a"))
        analyst = fake_analyst(error=RuntimeError("model exploded"))
        session = ScoutSession(store, criteria, settings=settings, analyst=analyst)
        await session.process_job(store.find("a"))

        job = store.find("a")
        assert job.status == JobStatus.FAILED
        assert "model exploded" in job.error
        assert job.analysis is None
        assert "a" in session.failures

    @pytest.mark.asyncio
    async def test_failure_in_one_job_leaves_others_alone(self, store, criteria, fast_settings):
        calls = 0

        async def flaky_enricher(job):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("first one fails")
            return await enrich_job(job, latency=0)

        session = await run_scouting_session(store, criteria, settings=fast_settings, enricher=flaky_enricher)

        statuses = [j.status for j in store.get()]
        assert statuses.count(JobStatus.ENRICHING) == 1
        assert statuses.count(JobStatus.COMPLETE) == 4
        assert len(session.failures) == 1

    @pytest.mark.asyncio
    async def test_process_job_pipeline_helper(self, store, criteria, fast_settings, make_job, fake_analyst):
        store.prepend(make_job("a"))
        await process_job_pipeline(
            store.find("a"), store, criteria, settings=fast_settings, analyst=fake_analyst(score=60)
        )
        job = store.find("a")
        assert job.status == JobStatus.COMPLETE
        assert job.analysis.fit_score == 60


class _PageRerun(BaseException):
    """Stands in for a UI framework's control-flow exception."""


class TestRunWithRedraw:
    @pytest.mark.asyncio
    async def test_redraws_snapshots(self, store, criteria, fast_settings):
        session = ScoutSession(store, criteria, settings=fast_settings)
        seen: list[int] = []
        await run_with_redraw(session, lambda jobs: seen.append(len(jobs)))
        assert seen
        assert max(seen) <= 5
        assert len(store) == 5
        assert all(j.status == JobStatus.COMPLETE for j in store.get())

    @pytest.mark.asyncio
    async def test_redraw_error_drains_pipelines_then_reraises(self, store, criteria, fast_settings):
        session = ScoutSession(store, criteria, settings=fast_settings)

        def _redraw(jobs):
            raise _PageRerun()

        with pytest.raises(_PageRerun):
            await run_with_redraw(session, _redraw)

        # Generation stopped early, but every launched job still finished
        assert 1 <= len(store) < 5
        assert all(j.status == JobStatus.COMPLETE for j in store.get())
        assert session.pending == 0
        assert session.failures == {}

    @pytest.mark.asyncio
    async def test_redraw_error_never_reaches_pipelines(self, store, criteria, fast_settings):
        settings = dataclasses.replace(fast_settings, enrich_latency=0.01)
        session = ScoutSession(store, criteria, settings=settings)
        calls = 0

        def _redraw(jobs):
            nonlocal calls
            calls += 1
            if calls == 2:
                raise _PageRerun()

        with pytest.raises(_PageRerun):
            await run_with_redraw(session, _redraw)

        assert all(j.status == JobStatus.COMPLETE for j in store.get())
        assert session.failures == {}
