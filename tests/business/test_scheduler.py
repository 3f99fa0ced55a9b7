"""Scheduler tests."""
import asyncio

import pytest

from business.scheduler import Scheduler, register_salon_tasks


class TestScheduler:

    @pytest.mark.asyncio
    async def test_register_system_checks(self):
        scheduler = Scheduler()
        register_salon_tasks(scheduler, lambda: None, poll_seconds=5)
        assert scheduler.get_job_ids() == ["system_checks"]
        scheduler.remove_job("system_checks")
        assert scheduler.get_job_ids() == []

    @pytest.mark.asyncio
    async def test_interval_task_runs(self):
        scheduler = Scheduler()
        calls = []
        scheduler.add_interval_task(lambda: calls.append(1), seconds=0.05, task_id="tick")
        scheduler.start()
        await asyncio.sleep(0.3)
        scheduler.stop()
        assert calls

    @pytest.mark.asyncio
    async def test_daily_task_replaces_existing(self):
        scheduler = Scheduler()
        scheduler.add_daily_task(lambda: None, hour=9, task_id="daily")
        scheduler.add_daily_task(lambda: None, hour=10, task_id="daily")
        assert scheduler.get_job_ids() == ["daily"]

    def test_remove_missing_job_is_logged(self):
        Scheduler().remove_job("nope")
