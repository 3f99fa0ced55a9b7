"""定时任务调度器

通知巡检等周期任务通过回调注入，调度器本身不包含业务逻辑。
"""
import asyncio
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger


class Scheduler:
    """定时任务调度器"""

    def __init__(self):
        try:
            loop = asyncio.get_event_loop()
            if loop.is_closed():
                loop = asyncio.new_event_loop()
                asyncio.set_event_loop(loop)
        except RuntimeError:
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
        self.scheduler = AsyncIOScheduler(event_loop=loop)

    def add_interval_task(
        self,
        task_func: Callable,
        seconds: float,
        task_id: str = 'interval_task',
        task_name: str = '周期任务'
    ):
        """添加固定间隔任务

        Args:
            task_func: 任务函数（普通函数或 async 函数）
            seconds: 间隔秒数
            task_id: 任务ID
            task_name: 任务名称
        """
        self.scheduler.add_job(
            task_func,
            trigger=IntervalTrigger(seconds=seconds),
            id=task_id,
            name=task_name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Added interval task '{task_name}' every {seconds}s")

    def add_daily_task(
        self,
        task_func: Callable,
        hour: int = 9,
        minute: int = 0,
        task_id: str = 'daily_task',
        task_name: str = '每日任务'
    ):
        """添加每日定时任务

        Args:
            task_func: 任务函数
            hour: 小时 (0-23)
            minute: 分钟 (0-59)
            task_id: 任务ID
            task_name: 任务名称
        """
        self.scheduler.add_job(
            task_func,
            trigger=CronTrigger(hour=hour, minute=minute),
            id=task_id,
            name=task_name,
            replace_existing=True
        )
        logger.info(f"Added daily task '{task_name}' at {hour:02d}:{minute:02d}")

    def get_job_ids(self):
        return [job.id for job in self.scheduler.get_jobs()]

    def start(self):
        self.scheduler.start()
        logger.info("Scheduler started")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    def remove_job(self, job_id: str):
        """移除任务

        Args:
            job_id: 任务ID
        """
        try:
            self.scheduler.remove_job(job_id)
            logger.info(f"Job {job_id} removed")
        except Exception as e:
            logger.warning(f"Failed to remove job {job_id}: {e}")


def register_salon_tasks(scheduler: Scheduler, checks: Callable,
                         poll_seconds: float) -> None:
    """注册门店周期任务：通知巡检"""
    scheduler.add_interval_task(
        checks, seconds=poll_seconds,
        task_id='system_checks', task_name='通知巡检'
    )
