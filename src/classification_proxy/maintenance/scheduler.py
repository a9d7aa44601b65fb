"""
Periodic maintenance tasks.

Each sweep runs as its own asyncio task, owned by a PeriodicSweeper and
tied to the application lifespan. Nothing starts on import.
"""

import asyncio
import contextlib
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class SweepJob:
    """A named synchronous sweep and how often to run it."""

    name: str
    interval_seconds: float
    func: Callable[[], int]


class PeriodicSweeper:
    """
    Runs sweep jobs on fixed intervals until stopped.

    A failing sweep is logged and retried on the next tick; it never stops
    the loop.
    """

    def __init__(self, jobs: list[SweepJob]) -> None:
        self._jobs = list(jobs)
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start one background task per job. Idempotent."""
        if self._running:
            return
        self._running = True
        for job in self._jobs:
            self._tasks[job.name] = asyncio.create_task(self._loop(job), name=f"sweep:{job.name}")
        logger.info("Maintenance sweeps started", jobs=[job.name for job in self._jobs])

    async def stop(self) -> None:
        """Cancel every job task and wait for it to finish."""
        self._running = False
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if tasks:
            logger.info("Maintenance sweeps stopped", jobs=len(tasks))

    def run_once(self, name: Optional[str] = None) -> dict[str, int]:
        """Run every job (or only ``name``) immediately. Returns removed counts."""
        removed: dict[str, int] = {}
        for job in self._jobs:
            if name is None or job.name == name:
                removed[job.name] = self._run_job(job)
        return removed

    def _run_job(self, job: SweepJob) -> int:
        try:
            removed = job.func()
        except Exception as e:
            logger.error("Maintenance sweep failed", job=job.name, error=str(e))
            return 0
        logger.debug("Maintenance sweep completed", job=job.name, removed=removed)
        return removed

    async def _loop(self, job: SweepJob) -> None:
        while self._running:
            await asyncio.sleep(job.interval_seconds)
            self._run_job(job)
