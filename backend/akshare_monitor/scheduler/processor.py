"""调度指令处理器

唯一的注册中心写入方：从有界队列中按 FIFO 顺序读取 Add/Update/Remove 指令，
修改 TaskRegistry 并启动或取消 TaskRunner。所有写入决策都在同一个消费协程中完成，
决策逻辑本身不需要加锁。
"""

import asyncio
import contextlib
from dataclasses import dataclass

from akshare_monitor.core.logging import get_logger
from akshare_monitor.scheduler.registry import RegistryEntry, TaskRegistry
from akshare_monitor.scheduler.runner import TaskRunner
from akshare_monitor.scheduler.state.models import ScheduleTask

logger = get_logger("scheduler.processor")


@dataclass(frozen=True)
class AddTask:
    """新增任务"""

    task: ScheduleTask


@dataclass(frozen=True)
class UpdateTask:
    """以同一 key 替换任务"""

    task: ScheduleTask


@dataclass(frozen=True)
class RemoveTask:
    """按 key 删除任务"""

    key: str


TaskCommand = AddTask | UpdateTask | RemoveTask


class CommandProcessor:
    """调度指令处理器

    Attributes:
        registry: 任务注册中心
        maxsize: 指令队列容量
    """

    def __init__(self, registry: TaskRegistry, maxsize: int = 100):
        self.registry = registry
        self.maxsize = maxsize
        self._queue: asyncio.Queue[TaskCommand] = asyncio.Queue(maxsize=maxsize)
        self._consumer: asyncio.Task | None = None
        self._closed = False

    @property
    def is_running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    @property
    def pending(self) -> int:
        """尚未处理的指令数"""
        return self._queue.qsize()

    def start(self) -> None:
        """启动消费循环"""
        if self.is_running:
            logger.warning("指令处理器已在运行")
            return
        self._closed = False
        self._consumer = asyncio.create_task(self._consume(), name="scheduler-command-processor")
        logger.info("指令处理器已启动", queue_size=self.maxsize)

    async def stop(self) -> None:
        """停止消费循环，已入队的指令会先处理完"""
        self._closed = True
        if self._consumer is None:
            return
        if not self._consumer.done():
            await self._queue.join()
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
        self._consumer = None
        logger.info("指令处理器已停止")

    async def submit(self, command: TaskCommand) -> bool:
        """提交指令（队列满时等待）

        Returns:
            是否成功入队；处理器未运行时记录错误并返回 False
        """
        if self._closed or not self.is_running:
            logger.error(
                "指令发送失败，指令处理器未运行",
                command=type(command).__name__,
                task_key=_command_key(command),
            )
            return False
        await self._queue.put(command)
        return True

    async def join(self) -> None:
        """等待所有已入队指令处理完成"""
        await self._queue.join()

    async def _consume(self) -> None:
        while True:
            command = await self._queue.get()
            try:
                self.apply(command)
            except Exception as e:
                logger.exception(
                    "调度指令处理失败",
                    command=type(command).__name__,
                    task_key=_command_key(command),
                    error=str(e),
                )
            finally:
                self._queue.task_done()

    def apply(self, command: TaskCommand) -> None:
        """应用一条指令（不含 await，保证写入决策线性化）"""
        if isinstance(command, AddTask):
            self._add_task(command.task)
        elif isinstance(command, UpdateTask):
            self._update_task(command.task)
        elif isinstance(command, RemoveTask):
            self._cancel_task(command.key)
        else:
            raise TypeError(f"未知的调度指令: {command!r}")

    def _add_task(self, task: ScheduleTask) -> None:
        # key 必须唯一，重复新增按更新处理，避免同一 key 下残留无人管理的执行循环
        if task.key in self.registry:
            logger.warning("任务 key 已存在，按更新处理", task_key=task.key, name=task.meta.name)
            self._update_task(task)
            return

        runner = self._spawn_runner(task)
        self.registry.insert(RegistryEntry(task=task, runner=runner))
        logger.info("添加调度任务", task_key=task.key, name=task.meta.name, cron=task.meta.cron_expr)

    def _update_task(self, task: ScheduleTask) -> None:
        old = self.registry.get(task.key)
        if old is None:
            logger.warning("更新的任务不存在，按新增处理", task_key=task.key, name=task.meta.name)
        elif not old.runner.cancel():
            logger.error("[update_task] 取消信号发送失败，旧任务可能已经退出", task_key=task.key)

        runner = self._spawn_runner(task)
        self.registry.replace(RegistryEntry(task=task, runner=runner))
        logger.info("更新调度任务", task_key=task.key, name=task.meta.name, cron=task.meta.cron_expr)

    def _cancel_task(self, key: str) -> None:
        old = self.registry.remove(key)
        if old is None:
            logger.info("删除的任务不存在，忽略", task_key=key)
            return

        if not old.runner.cancel():
            logger.error("[cancel_task] 取消信号发送失败，任务可能已经退出", task_key=key)
        logger.info("删除调度任务", task_key=key, name=old.task.meta.name)

    @staticmethod
    def _spawn_runner(task: ScheduleTask) -> TaskRunner:
        runner = TaskRunner(task)
        runner.spawn()
        return runner


def _command_key(command: TaskCommand) -> str | None:
    if isinstance(command, RemoveTask):
        return command.key
    return getattr(getattr(command, "task", None), "key", None)
