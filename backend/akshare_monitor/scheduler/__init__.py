"""运行时任务调度模块

提供按 cron 表达式周期执行任务的能力，支持运行时新增、替换与取消：
- CronExpression: cron 表达式解析与下次触发时间计算（固定东八区）
- TaskRegistry: 任务注册中心
- TaskRunner: 单个任务的执行循环
- CommandProcessor: 串行应用 Add/Update/Remove 指令
- TaskManager: 对外门面

使用方式：
    from akshare_monitor.scheduler import TaskManager
    from akshare_monitor.scheduler.tasks import register_system_tasks

    manager = TaskManager()
    manager.start()
    await register_system_tasks(manager)
    ...
    await manager.stop()
"""

from akshare_monitor.scheduler.cron import CST, CronExpression, cst_now
from akshare_monitor.scheduler.errors import CronParseError, SchedulerError, TaskNotFoundError
from akshare_monitor.scheduler.manager import TaskManager
from akshare_monitor.scheduler.processor import CommandProcessor
from akshare_monitor.scheduler.registry import TaskRegistry
from akshare_monitor.scheduler.runner import CancelHandle, TaskRunner
from akshare_monitor.scheduler.state.models import RunnerState, ScheduleTask, TaskSnapshot
from akshare_monitor.scheduler.tasks.base import Schedulable, ScheduleTaskType, TaskMeta

__all__ = [
    "CST",
    "CancelHandle",
    "CommandProcessor",
    "CronExpression",
    "CronParseError",
    "RunnerState",
    "ScheduleTask",
    "ScheduleTaskType",
    "Schedulable",
    "SchedulerError",
    "TaskManager",
    "TaskMeta",
    "TaskNotFoundError",
    "TaskRegistry",
    "TaskRunner",
    "TaskSnapshot",
    "cst_now",
]
