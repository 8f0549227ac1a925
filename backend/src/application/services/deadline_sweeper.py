"""
Deadline Sweeper
Closes open projects whose deadline has passed, on demand or on a timer
"""
import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from loguru import logger

from application.repositories.interfaces import IProjectRepository
from core.exceptions import ResourceNotFoundException
from domain.entities import Project
from domain.enums import ProjectStatus


@dataclass(frozen=True)
class SweepResult:
    updated_count: int
    scanned_count: int


class DeadlineSweeper:
    """
    Stateless sweep over all projects.

    Safe to run repeatedly and from several callers at once: closing an
    already closed project is never attempted, and each update only
    writes status=closed.
    """

    def __init__(self, project_repo: IProjectRepository, today: Callable[[], date] = date.today):
        self.project_repo = project_repo
        self._today = today

    async def auto_close_expired_projects(self, today: Optional[date] = None) -> SweepResult:
        today = today or self._today()
        projects = await self.project_repo.list_all()

        expired = [p for p in projects if self._should_close(p, today)]
        results = await asyncio.gather(*(self._close(p) for p in expired))
        updated = sum(1 for closed in results if closed)

        logger.info(f"autoCloseExpiredProjects: updated {updated} of {len(projects)} projects (today={today})")
        return SweepResult(updated_count=updated, scanned_count=len(projects))

    @staticmethod
    def _should_close(project: Project, today: date) -> bool:
        if project.status == ProjectStatus.CLOSED:
            return False
        deadline = project.deadline_date()
        # Missing or unparsable deadlines are left alone
        return deadline is not None and deadline < today

    async def _close(self, project: Project) -> bool:
        try:
            await self.project_repo.set_status(project.id, ProjectStatus.CLOSED)
        except ResourceNotFoundException:
            logger.debug(f"Project {project.id} was deleted during the sweep")
            return False
        logger.info(f"Closed expired project {project.id} (deadline {project.deadline})")
        return True


class DeadlineSweeperWorker:
    """Runs the sweep every interval until stopped"""

    def __init__(self, sweeper: DeadlineSweeper, interval_seconds: float = 3600):
        """
        Args:
            sweeper: The sweep to run
            interval_seconds: Seconds between runs; the first run starts immediately
        """
        self.sweeper = sweeper
        self.interval_seconds = interval_seconds
        self.running = False
        self._task: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        """Start the loop as a background task"""
        if self._task is None or self._task.done():
            self.running = True
            self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self) -> None:
        """Stop the loop and wait for it to exit"""
        self.running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Deadline sweeper stopped")

    async def _run(self) -> None:
        logger.info(f"Deadline sweeper started (interval={self.interval_seconds}s)")
        while self.running:
            try:
                await self.sweeper.auto_close_expired_projects()
            except Exception as e:
                logger.error(f"Deadline sweep failed, will retry next interval: {e}")
            await asyncio.sleep(self.interval_seconds)
