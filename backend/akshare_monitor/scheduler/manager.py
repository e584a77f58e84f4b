"""调度任务管理器

在运行时工作的调度任务管理器，对外提供 add / update / cancel / inspect / trigger_now。
写操作通过 CommandProcessor 串行应用，读操作直接读取 TaskRegistry 的快照。
任务持久化不在本模块职责范围内。
"""

import asyncio

from akshare_monitor.core.logging import get_logger
from akshare_monitor.scheduler.processor import (
    AddTask,
    CommandProcessor,
    RemoveTask,
    UpdateTask,
)
from akshare_monitor.scheduler.registry import RegistryEntry, TaskRegistry
from akshare_monitor.scheduler.errors import TaskNotFoundError
from akshare_monitor.scheduler.state.models import ScheduleTask, TaskSnapshot
from akshare_monitor.scheduler.tasks.base import Schedulable, ScheduleTaskType

logger = get_logger("scheduler.manager")


class TaskManager:
    """调度任务管理器

    由进程生命周期的持有者（FastAPI lifespan）显式创建、启动和关闭。

    Example:
        manager = TaskManager()
        manager.start()

        key = await manager.add(MyTask())
        await manager.update(key, MyTask(cron_expr="0 0 * * * *"))
        snapshots = manager.inspect(ScheduleTaskType.ALL)
        await manager.cancel(key)

        await manager.stop()
    """

    def __init__(self, queue_size: int = 100, shutdown_timeout: float = 5.0):
        self.registry = TaskRegistry()
        self.processor = CommandProcessor(self.registry, maxsize=queue_size)
        self.shutdown_timeout = shutdown_timeout
        self._triggered: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self.processor.is_running

    def start(self) -> None:
        """启动指令处理循环"""
        self.processor.start()
        logger.info("任务调度管理器已启动")

    async def stop(self) -> None:
        """关闭管理器

        先处理完已入队的指令，再向所有执行循环发送取消信号并等待退出；
        超时仍未退出（通常是任务正在执行）的执行循环会被强制终止。
        """
        await self.processor.stop()

        entries = self.registry.clear()
        for entry in entries:
            entry.runner.cancel()

        for entry in entries:
            if not await entry.runner.wait_closed(timeout=self.shutdown_timeout):
                logger.warning("任务未在超时前退出，强制终止", task_key=entry.key, name=entry.task.meta.name)
                entry.runner.abort()
                await entry.runner.wait_closed()

        for task in list(self._triggered):
            task.cancel()
        if self._triggered:
            await asyncio.gather(*self._triggered, return_exceptions=True)

        logger.info("任务调度管理器已停止", task_count=len(entries))

    async def add(self, task: Schedulable, key: str | None = None) -> str:
        """添加调度任务

        指令入队后立即返回，任务由指令处理器异步加入注册中心。

        Args:
            task: 任务实现
            key: 任务 key，为 None 时使用 task.gen_key()

        Returns:
            任务 key

        Raises:
            CronParseError: cron 表达式格式错误，任务不会被接收
        """
        schedule_task = ScheduleTask.build(key or task.gen_key(), task)
        logger.info("[add_task] 提交任务", task_key=schedule_task.key, meta=schedule_task.meta)
        await self.processor.submit(AddTask(schedule_task))
        return schedule_task.key

    async def update(self, key: str, task: Schedulable) -> None:
        """以同一 key 替换任务；key 不存在时等同于新增

        Raises:
            CronParseError: cron 表达式格式错误，旧任务保持不变
        """
        schedule_task = ScheduleTask.build(key, task)
        logger.info("[update_task] 提交任务", task_key=key, meta=schedule_task.meta)
        await self.processor.submit(UpdateTask(schedule_task))

    async def cancel(self, key: str) -> None:
        """取消任务；key 不存在时忽略"""
        logger.info("[cancel_task] 提交取消", task_key=key)
        await self.processor.submit(RemoveTask(key))

    async def join(self) -> None:
        """等待所有已提交的指令生效"""
        await self.processor.join()

    def get(self, key: str) -> RegistryEntry | None:
        return self.registry.get(key)

    def inspect(self, tag: ScheduleTaskType | None = ScheduleTaskType.ALL) -> list[TaskSnapshot]:
        """查看当前调度任务快照

        存活状态仅供参考：任务执行中同样显示为存活，
        执行循环真正退出后要等僵尸任务清理才会从结果中消失。
        """
        return self.registry.snapshot(tag)

    def sweep_zombies(self) -> int:
        """清除执行循环已退出的条目

        Returns:
            清除的条目数
        """
        return len(self.registry.retain_alive())

    def trigger_now(self, key: str) -> asyncio.Task:
        """立即在后台执行一次任务，不影响其 cron 节奏

        Returns:
            后台执行的 asyncio.Task，结果为是否执行成功

        Raises:
            TaskNotFoundError: 任务不存在
        """
        entry = self.registry.get(key)
        if entry is None:
            logger.warning("手动触发的任务不存在", task_key=key)
            raise TaskNotFoundError(key)

        logger.info("手动触发任务", task_key=key, name=entry.task.meta.name)
        task = asyncio.create_task(entry.runner.execute_once(), name=f"task-trigger-{key}")
        self._triggered.add(task)
        task.add_done_callback(self._triggered.discard)
        return task

    def __len__(self) -> int:
        return len(self.registry)

    def __contains__(self, key: str) -> bool:
        return key in self.registry
