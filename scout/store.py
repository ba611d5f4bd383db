"""In-memory job collection with copy-on-write snapshots.

Every mutation swaps in a new tuple, so a renderer holding a snapshot never
sees a half-applied update. Patches are keyed by job id: a pipeline updating
one job starts from the *stored* record, not from its own stale copy, and
never touches other entries.
"""
from __future__ import annotations

import dataclasses
from typing import Callable, Iterable

from scout.log import get_logger
from scout.models import InvalidTransition, Job, can_transition

log = get_logger(__name__)

Listener = Callable[[tuple[Job, ...]], None]

_IMMUTABLE_FIELDS = frozenset({"id"})


class JobStore:
    def __init__(self, jobs: Iterable[Job] = ()) -> None:
        self._jobs: tuple[Job, ...] = tuple(jobs)
        self._listeners: list[Listener] = []

    def __len__(self) -> int:
        return len(self._jobs)

    def get(self) -> tuple[Job, ...]:
        return self._jobs

    def find(self, job_id: str) -> Job | None:
        for job in self._jobs:
            if job.id == job_id:
                return job
        return None

    def replace_all(self, jobs: Iterable[Job]) -> None:
        self._set(tuple(jobs))

    def prepend(self, job: Job) -> None:
        if self.find(job.id) is not None:
            raise ValueError(f"Duplicate job id: {job.id}")
        self._set((job, *self._jobs))

    def upsert(self, job_id: str, **patch) -> Job:
        """Apply *patch* to the stored job with *job_id* and return the new record."""
        bad = _IMMUTABLE_FIELDS.intersection(patch)
        if bad:
            raise ValueError(f"Cannot change {', '.join(sorted(bad))} of job {job_id}")

        current = self.find(job_id)
        if current is None:
            raise KeyError(job_id)

        new_status = patch.get("status")
        if new_status is not None and not can_transition(current.status, new_status):
            raise InvalidTransition(
                f"Job {job_id}: {current.status.value} → {new_status.value} is not allowed"
            )

        updated = dataclasses.replace(current, **patch)
        self._set(tuple(updated if j.id == job_id else j for j in self._jobs))
        if new_status is not None and new_status != current.status:
            log.debug("Job %s: %s → %s", job_id, current.status.value, new_status.value)
        return updated

    def clear(self) -> None:
        self._set(())

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with every new snapshot; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set(self, jobs: tuple[Job, ...]) -> None:
        self._jobs = jobs
        for listener in list(self._listeners):
            try:
                listener(jobs)
            except Exception:
                log.exception("Store listener %r failed", listener)
