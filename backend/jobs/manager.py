"""
Job Lifecycle Manager - one state machine per submitted transcript.

submit() registers the job and starts extract -> graph -> cycles -> resolve as a
background asyncio task; pollers read job state without locking. Each job owns
its graph and snapshot exclusively; resolution and completions for the same job
are serialized through job.lock.
"""

import asyncio
import hashlib
import os
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from loguru import logger

import db
from extractor import extract_tasks
from shared.errors import ExtractionFailure, NotFound, ValidationFailure
from shared.graph import TaskGraph
from tasks import Task, detect_cycles, resolve_statuses, status_counts

from .completion import complete_task as _complete_task
from .models import Job, JobStatus, TaskSnapshot


def _float_env(name: str, default: float) -> float:
    v = os.environ.get(name)
    return float(v) if v is not None else default


def _int_env(name: str, default: int) -> int:
    v = os.environ.get(name)
    return int(v) if v is not None else default


MAX_JOBS = _int_env("INSIGHTBOARD_MAX_JOBS", 200)
MAX_TRANSCRIPT_CHARS = _int_env("INSIGHTBOARD_MAX_TRANSCRIPT_CHARS", 100_000)
SUBMIT_WAIT_SECONDS = _float_env("INSIGHTBOARD_SUBMIT_WAIT_SECONDS", 0.05)
MAX_CONCURRENT_EXTRACTIONS = _int_env("INSIGHTBOARD_MAX_CONCURRENT_EXTRACTIONS", 10)

Extractor = Callable[[str], Awaitable[List[Task]]]
Notifier = Callable[[str, dict], Awaitable[Any]]

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_transcript(transcript: str) -> str:
    """Collapse whitespace runs and strip; the idempotency key is computed on this."""
    return _WHITESPACE_RE.sub(" ", transcript or "").strip()


def transcript_hash(normalized: str) -> str:
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


async def _default_extract(transcript: str) -> List[Task]:
    config = await db.get_effective_config()
    return await extract_tasks(transcript, config)


class JobManager:
    def __init__(
        self,
        extract: Optional[Extractor] = None,
        notify: Optional[Notifier] = None,
        persist: bool = True,
        max_jobs: int = MAX_JOBS,
        submit_wait: float = SUBMIT_WAIT_SECONDS,
        max_transcript_chars: int = MAX_TRANSCRIPT_CHARS,
    ):
        self._extract = extract or _default_extract
        self._notify = notify
        self.persist = persist
        self.max_jobs = max_jobs
        self.submit_wait = submit_wait
        self.max_transcript_chars = max_transcript_chars
        self._jobs: Dict[str, Job] = {}
        self._by_hash: Dict[str, str] = {}
        self._registry_lock = asyncio.Lock()
        self._extract_semaphore = asyncio.Semaphore(MAX_CONCURRENT_EXTRACTIONS)
        self._background: Set[asyncio.Task] = set()

    # ---------- submission ----------

    async def submit(self, transcript: str) -> Tuple[Job, bool]:
        """Create a job (or return the cached one). Returns (job, cached).
        cached is True only when an identical transcript already completed."""
        if transcript is not None and not isinstance(transcript, str):
            raise ValidationFailure("Transcript must be a string")
        normalized = normalize_transcript(transcript)
        if not normalized:
            raise ValidationFailure("Transcript is required")
        if len(normalized) > self.max_transcript_chars:
            raise ValidationFailure(
                f"Transcript too long ({len(normalized)} > {self.max_transcript_chars} characters)"
            )
        digest = transcript_hash(normalized)

        async with self._registry_lock:
            existing = self._jobs.get(self._by_hash.get(digest, ""))
            if existing is not None and existing.status != JobStatus.FAILED:
                cached = existing.status == JobStatus.COMPLETED
                logger.info("Job {} reused for identical transcript (status {})", existing.id, existing.status.value)
                return existing, cached
            job = Job(transcript_hash=digest)
            self._jobs[job.id] = job
            self._by_hash[digest] = job.id
            self._evict_locked()

        logger.info("Job {} created ({} chars)", job.id, len(normalized))
        job.start()
        await self._emit_update(job)

        runner = asyncio.create_task(self._run(job, transcript))
        self._background.add(runner)
        runner.add_done_callback(self._background.discard)
        if self.submit_wait > 0:
            await asyncio.wait({runner}, timeout=self.submit_wait)
        return job, False

    async def _run(self, job: Job, transcript: str) -> None:
        """Extract, build graph, detect cycles, resolve. Fails the job on any error."""
        try:
            async with self._extract_semaphore:
                tasks = await self._extract(transcript)
            graph = TaskGraph(tasks)
            if len(graph) == 0:
                raise ExtractionFailure("No tasks found in transcript")
            dangling = {tid: graph.dangling(tid) for tid in graph.task_ids() if graph.dangling(tid)}
            if dangling:
                logger.info("Job {}: dependencies on unknown tasks stay blocked: {}", job.id, dangling)
            cycles = detect_cycles(graph)
            async with job.lock:
                snapshot = TaskSnapshot(tasks=resolve_statuses(graph, cycles))
                job.complete(graph, cycles, snapshot)
            logger.info(
                "Job {} completed: {} tasks, {} cycles, {}",
                job.id, len(graph), len(cycles), status_counts(snapshot.task_list()),
            )
        except ExtractionFailure as e:
            logger.warning("Job {} failed: {}", job.id, e)
            job.fail(str(e))
        except asyncio.CancelledError:
            if not job.is_terminal:
                logger.warning("Job {} cancelled while {}", job.id, job.status.value)
                job.fail("Processing cancelled: server shutting down")
            raise
        except Exception as e:
            logger.exception("Job {} failed with unexpected error", job.id)
            job.fail(f"Unexpected error during processing: {e}")
        await self._emit_update(job)
        await self._persist(job)

    # ---------- reads ----------

    def get_job(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFound(f"Job {job_id} not found")
        return job

    def list_jobs(self) -> List[dict]:
        return [job.summary() for job in list(self._jobs.values())]

    # ---------- task completion ----------

    async def complete_task(self, job_id: str, task_id: str) -> List[Task]:
        job = self.get_job(job_id)
        tasks = await _complete_task(job, task_id)
        logger.info("Job {}: task {} completed, {}", job.id, task_id, status_counts(tasks))
        await self._emit_update(job)
        await self._persist(job)
        return tasks

    # ---------- housekeeping ----------

    def _evict_locked(self) -> None:
        """Drop oldest terminal jobs beyond max_jobs. Caller holds _registry_lock."""
        overflow = len(self._jobs) - self.max_jobs
        if overflow <= 0:
            return
        for job_id in [jid for jid, j in self._jobs.items() if j.is_terminal][:overflow]:
            job = self._jobs.pop(job_id)
            if self._by_hash.get(job.transcript_hash) == job_id:
                del self._by_hash[job.transcript_hash]
            logger.debug("Job {} evicted", job_id)

    async def _emit_update(self, job: Job) -> None:
        if self._notify is None:
            return
        try:
            await self._notify("job-update", {"jobId": job.id, "status": job.status.value})
        except Exception as e:
            logger.warning("Failed to emit job-update for {}: {}", job.id, e)

    async def _persist(self, job: Job) -> None:
        """Archive the job. Writes for one job are serialized so the file ends at the latest snapshot."""
        if not self.persist:
            return
        try:
            async with job.lock:
                await db.save_job_snapshot(job.id, {**job.summary(), **job.status_payload()})
        except Exception as e:
            logger.warning("Failed to persist job {}: {}", job.id, e)

    async def wait_idle(self) -> None:
        """Wait for all in-flight jobs to finish."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel in-flight jobs on shutdown."""
        pending = list(self._background)
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
