"""调度器测试公共夹具"""

import asyncio

import pytest

from akshare_monitor.scheduler.tasks.base import Schedulable, ScheduleTaskType, TaskMeta

EVERY_SECOND = "* * * * * *"


class CountingTask(Schedulable):
    """记录执行次数的测试任务"""

    def __init__(
        self,
        cron_expr: str = EVERY_SECOND,
        name: str = "counting",
        tag: ScheduleTaskType | None = None,
        duration: float = 0.0,
        error: Exception | None = None,
        cancel: bool = False,
    ):
        self.cron_expr = cron_expr
        self.name = name
        self.tag = tag
        self.duration = duration
        self.error = error
        self.cancel = cancel
        self.count = 0
        self.finished = 0
        self.started = asyncio.Event()

    def describe(self) -> TaskMeta:
        return TaskMeta(name=self.name, desc=f"{self.name} task", cron_expr=self.cron_expr, tag=self.tag)

    async def execute(self) -> None:
        self.count += 1
        self.started.set()
        if self.duration:
            await asyncio.sleep(self.duration)
        if self.error is not None:
            raise self.error
        self.finished += 1

    async def should_cancel(self) -> bool:
        return self.cancel


@pytest.fixture
def make_task():
    """构造测试任务"""
    return CountingTask
