"""任务执行循环

每个已注册的任务对应一个 TaskRunner：睡眠到下一次 cron 触发时间，
执行任务，然后继续下一轮，直到收到取消信号。
"""

import asyncio
from datetime import datetime

from akshare_monitor.core.logging import get_logger
from akshare_monitor.scheduler.cron import cst_now
from akshare_monitor.scheduler.state.models import RunnerState, ScheduleTask

logger = get_logger("scheduler.runner")


class CancelHandle:
    """一次性取消信号

    send() 只能生效一次；执行循环退出后 close()，此后 is_closed 为 True，
    僵尸任务清理依据的就是这个显式的结束标记。
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._closed = False

    @property
    def cancelled(self) -> bool:
        """是否已发送过取消信号"""
        return self._event.is_set()

    @property
    def is_closed(self) -> bool:
        """执行循环是否已经退出"""
        return self._closed

    def send(self) -> bool:
        """发送取消信号

        Returns:
            是否发送成功；信号已被使用或执行循环已退出时返回 False
        """
        if self._closed or self._event.is_set():
            return False
        self._event.set()
        return True

    def close(self) -> None:
        """标记执行循环已退出"""
        self._closed = True

    async def wait(self, timeout: float | None = None) -> bool:
        """等待取消信号

        Args:
            timeout: 最长等待秒数

        Returns:
            收到取消信号返回 True，超时返回 False
        """
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False


class TaskRunner:
    """任务执行循环

    状态流转：SCHEDULED -> SLEEPING -> EXECUTING -> SCHEDULED，
    终态为 CANCELLED 或 COMPLETED（cron 不再有触发时间）。

    执行期间不会被取消信号打断，取消只阻止下一次触发；
    任务抛出的异常只记录日志和失败次数，不重试也不向外传播。

    Example:
        runner = TaskRunner(schedule_task)
        runner.spawn()
        ...
        runner.cancel()
    """

    def __init__(self, task: ScheduleTask, handle: CancelHandle | None = None):
        self.task = task
        self.handle = handle or CancelHandle()
        self.state = RunnerState.SCHEDULED
        self.next_fire_at: datetime | None = None
        self.run_count = 0
        self.fail_count = 0
        self.last_run_at: datetime | None = None
        self.last_error: str | None = None
        self._aio_task: asyncio.Task | None = None

    @property
    def key(self) -> str:
        return self.task.key

    @property
    def is_alive(self) -> bool:
        """参考存活状态：取消信号未关闭即视为存活"""
        return not self.handle.is_closed

    def spawn(self) -> asyncio.Task:
        """在当前事件循环中启动执行循环"""
        if self._aio_task is None:
            self._aio_task = asyncio.create_task(self.run(), name=f"task-runner-{self.key}")
        return self._aio_task

    def cancel(self) -> bool:
        """请求取消（不等待执行循环退出）"""
        return self.handle.send()

    async def wait_closed(self, timeout: float | None = None) -> bool:
        """等待执行循环退出

        Returns:
            是否在超时前退出
        """
        if self._aio_task is None:
            return True
        done, _ = await asyncio.wait({self._aio_task}, timeout=timeout)
        return bool(done)

    def abort(self) -> None:
        """强制终止执行循环（仅用于进程关闭）"""
        if self._aio_task is not None and not self._aio_task.done():
            self._aio_task.cancel()

    async def run(self) -> None:
        """执行循环主体"""
        meta = self.task.meta
        try:
            while True:
                self.state = RunnerState.SCHEDULED
                next_time = self.task.schedule.next_after(cst_now())
                if next_time is None:
                    self.state = RunnerState.COMPLETED
                    logger.info("cron 不再有触发时间，任务结束", task_key=self.key, name=meta.name)
                    return

                self.next_fire_at = next_time
                logger.debug(
                    "下次执行时间",
                    task_key=self.key,
                    name=meta.name,
                    next_time=next_time.strftime("%Y-%m-%d %H:%M:%S"),
                )

                self.state = RunnerState.SLEEPING
                # 触发时间已过（时钟偏移或上次执行超时）时立即触发
                delay = max((next_time - cst_now()).total_seconds(), 0.0)
                if await self.handle.wait(delay):
                    self.state = RunnerState.CANCELLED
                    logger.info("收到取消信号，任务退出", task_key=self.key, name=meta.name)
                    return

                if self.handle.cancelled or await self._should_cancel():
                    self.state = RunnerState.CANCELLED
                    logger.info("任务主动取消", task_key=self.key, name=meta.name)
                    return

                self.state = RunnerState.EXECUTING
                await self.execute_once()
        finally:
            if not self.state.is_terminal:
                self.state = RunnerState.CANCELLED
            self.handle.close()

    async def execute_once(self) -> bool:
        """执行一次任务并记录结果

        Returns:
            是否执行成功
        """
        self.last_run_at = cst_now()
        self.run_count += 1
        try:
            await self.task.schedulable.execute()
        except Exception as e:
            self.fail_count += 1
            self.last_error = str(e) or e.__class__.__name__
            logger.exception(
                "任务执行异常",
                task_key=self.key,
                name=self.task.meta.name,
                error=self.last_error,
            )
            return False

        self.last_error = None
        logger.debug("任务执行完成", task_key=self.key, name=self.task.meta.name)
        return True

    async def _should_cancel(self) -> bool:
        try:
            return bool(await self.task.schedulable.should_cancel())
        except Exception as e:
            logger.error("should_cancel 调用异常，继续执行", task_key=self.key, error=str(e))
            return False

    def __repr__(self) -> str:
        return f"<TaskRunner key={self.key} state={self.state.value}>"
