"""调度器自省任务

- SchedHeartBeat: 每10分钟将调度器内部状态写入日志
- ZombieSweepTask: 每分钟第5秒清除执行循环已退出的僵尸任务
"""

from typing import TYPE_CHECKING

from akshare_monitor.core.logging import get_logger
from akshare_monitor.scheduler.tasks.base import Schedulable, ScheduleTaskType, TaskMeta

if TYPE_CHECKING:
    from akshare_monitor.scheduler.manager import TaskManager

logger = get_logger("scheduler.tasks.system")


class SchedHeartBeat(Schedulable):
    """调度器心跳，每10分钟输出当前调度器内部状态"""

    def __init__(self, manager: "TaskManager", cron_expr: str = "0 */10 * * * *"):
        self.manager = manager
        self.cron_expr = cron_expr

    def describe(self) -> TaskMeta:
        return TaskMeta(
            name="调度器心跳任务",
            desc="心跳任务，每10分钟将调度器状态写入日志",
            cron_expr=self.cron_expr,
            tag=ScheduleTaskType.SYSTEM,
        )

    async def execute(self) -> None:
        snapshots = self.manager.inspect(ScheduleTaskType.ALL)
        logger.info(
            "当前调度器内部状态",
            task_count=len(snapshots),
            tasks=[s.to_dict() for s in snapshots],
        )


class ZombieSweepTask(Schedulable):
    """清除僵尸任务，比调度器心跳要快一些，一分钟执行一次

    清理依据是执行循环退出时设置的结束标记，与其他任务的触发秒数无关。
    """

    def __init__(self, manager: "TaskManager", cron_expr: str = "5 * * * * *"):
        self.manager = manager
        self.cron_expr = cron_expr

    def describe(self) -> TaskMeta:
        return TaskMeta(
            name="定时清除僵尸任务",
            desc="定时清除僵尸任务，每分钟的第5秒执行一次",
            cron_expr=self.cron_expr,
            tag=ScheduleTaskType.SYSTEM,
        )

    async def execute(self) -> None:
        removed = self.manager.sweep_zombies()
        if removed:
            logger.info("僵尸任务已清除", count=removed)


async def register_system_tasks(manager: "TaskManager") -> list[str]:
    """注册调度器自省任务

    Returns:
        注册的任务 key 列表
    """
    return [
        await manager.add(SchedHeartBeat(manager)),
        await manager.add(ZombieSweepTask(manager)),
    ]
