"""
Tests for closing projects past their deadline
"""
import asyncio
import time
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from application.services.deadline_sweeper import DeadlineSweeper, DeadlineSweeperWorker
from core.exceptions import ResourceNotFoundException
from domain.enums import ProjectStatus
from domain.value_objects import is_expired, parse_deadline
from infrastructure.persistence.repositories import PROJECTS

from conftest import make_project

TODAY = date(2024, 1, 5)


@pytest.fixture
def sweeper(project_repo):
    return DeadlineSweeper(project_repo, today=lambda: TODAY)


@pytest.fixture
def local_zone(monkeypatch):
    """Switch the process time zone for one test"""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")

    def use(name):
        monkeypatch.setenv("TZ", name)
        time.tzset()

    yield use
    monkeypatch.undo()
    time.tzset()


class TestParseDeadline:

    @pytest.mark.parametrize("value, expected", [
        ("2024-01-01", date(2024, 1, 1)),
        ("2024-01-01T23:59:00", date(2024, 1, 1)),
        (datetime(2024, 1, 1, 18, 30), date(2024, 1, 1)),
        (date(2024, 1, 1), date(2024, 1, 1)),
        ("", None),
        (None, None),
        ("next friday", None),
        (20240101, None),
    ])
    def test_parse(self, value, expected):
        assert parse_deadline(value) == expected

    @pytest.mark.parametrize("zone, value, expected", [
        ("PST8", "2024-01-02T03:00:00Z", date(2024, 1, 1)),
        ("PST8", datetime(2024, 1, 2, 3, 0, tzinfo=timezone.utc), date(2024, 1, 1)),
        ("AEST-10", "2024-01-01T20:00:00+00:00", date(2024, 1, 2)),
        ("AEST-10", "2024-01-01T10:00:00+05:30", date(2024, 1, 1)),
        ("UTC0", "2024-01-01T23:59:00Z", date(2024, 1, 1)),
    ])
    def test_timestamps_use_server_date(self, local_zone, zone, value, expected):
        local_zone(zone)
        assert parse_deadline(value) == expected

    def test_utc_timestamp_late_in_the_day_is_not_expired_early(self, local_zone):
        local_zone("PST8")
        # 18:00 on 4 January in the server zone
        assert is_expired("2024-01-05T02:00:00Z", date(2024, 1, 4)) is False
        assert is_expired("2024-01-05T02:00:00Z", date(2024, 1, 5)) is True

    def test_deadline_today_is_not_expired(self):
        assert is_expired("2024-01-05", TODAY) is False
        assert is_expired("2024-01-04", TODAY) is True
        assert is_expired("garbage", TODAY) is False


class TestAutoCloseExpiredProjects:

    @pytest.mark.asyncio
    async def test_closes_only_expired_open_projects(self, sweeper, project_service, project_repo):
        await project_service.create_project(make_project("expired", deadline="2024-01-01"))
        await project_service.create_project(make_project("today", deadline="2024-01-05"))
        await project_service.create_project(make_project("future", deadline="2024-02-01"))
        await project_service.create_project(make_project("no-deadline"))

        result = await sweeper.auto_close_expired_projects()

        assert result.updated_count == 1
        assert result.scanned_count == 4
        assert (await project_repo.get_by_id("expired")).status == ProjectStatus.CLOSED
        for project_id in ("today", "future", "no-deadline"):
            assert (await project_repo.get_by_id(project_id)).status == ProjectStatus.OPEN

    @pytest.mark.asyncio
    async def test_second_run_updates_nothing(self, sweeper, project_service):
        await project_service.create_project(make_project("p1", deadline="2024-01-01"))

        assert (await sweeper.auto_close_expired_projects()).updated_count == 1
        assert (await sweeper.auto_close_expired_projects()).updated_count == 0

    @pytest.mark.asyncio
    async def test_concurrent_sweeps_converge(self, sweeper, project_service, project_repo):
        await project_service.create_project(make_project("p1", deadline="2024-01-01"))

        await asyncio.gather(sweeper.auto_close_expired_projects(), sweeper.auto_close_expired_projects())

        assert (await project_repo.get_by_id("p1")).status == ProjectStatus.CLOSED

    @pytest.mark.asyncio
    async def test_only_status_is_written(self, sweeper, project_service, store):
        await project_service.create_project(make_project("p1", deadline="2024-01-01"))
        before = (await store.get(PROJECTS, "p1")).data

        await sweeper.auto_close_expired_projects()

        after = (await store.get(PROJECTS, "p1")).data
        assert after["status"] == "closed"
        assert after["updatedAt"] == before["updatedAt"]
        assert {k: v for k, v in after.items() if k != "status"} == {
            k: v for k, v in before.items() if k != "status"
        }

    @pytest.mark.asyncio
    async def test_malformed_deadline_skipped(self, sweeper, store):
        await store.create(PROJECTS, "p1", {"projectTitle": "x", "status": "open", "lastDate": "soon"})
        await store.create(PROJECTS, "p2", {"projectTitle": "y", "status": "open", "lastDate": {"bad": 1}})

        result = await sweeper.auto_close_expired_projects()

        assert result.updated_count == 0
        assert (await store.get(PROJECTS, "p1")).get("status") == "open"

    @pytest.mark.asyncio
    async def test_explicit_today_overrides_clock(self, sweeper, project_service):
        await project_service.create_project(make_project("p1", deadline="2024-01-01"))
        result = await sweeper.auto_close_expired_projects(today=date(2023, 12, 1))
        assert result.updated_count == 0

    @pytest.mark.asyncio
    async def test_project_deleted_mid_sweep(self):
        repo = AsyncMock()
        repo.list_all.return_value = [
            make_project("gone", deadline="2024-01-01"),
            make_project("here", deadline="2024-01-01"),
        ]

        async def set_status(project_id, status):
            if project_id == "gone":
                raise ResourceNotFoundException("Project", project_id)

        repo.set_status.side_effect = set_status
        sweeper = DeadlineSweeper(repo, today=lambda: TODAY)

        result = await sweeper.auto_close_expired_projects()

        assert result.updated_count == 1


class TestDeadlineSweeperWorker:

    @pytest.mark.asyncio
    async def test_runs_immediately_and_stops(self):
        sweeper = AsyncMock()
        worker = DeadlineSweeperWorker(sweeper, interval_seconds=3600)

        worker.start()
        await asyncio.sleep(0.01)
        await worker.stop()

        sweeper.auto_close_expired_projects.assert_awaited_once()
        assert worker.running is False

    @pytest.mark.asyncio
    async def test_failed_sweep_does_not_stop_loop(self):
        calls = []

        async def sweep():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("db down")

        sweeper = AsyncMock()
        sweeper.auto_close_expired_projects.side_effect = sweep
        worker = DeadlineSweeperWorker(sweeper, interval_seconds=0.001)

        worker.start()
        await asyncio.sleep(0.05)
        await worker.stop()

        assert len(calls) >= 2
