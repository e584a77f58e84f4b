"""采集数据清理任务"""

from akshare_monitor.monitor_tasks.sink import JsonlSink
from akshare_monitor.scheduler.tasks.base import Schedulable, ScheduleTaskType, TaskMeta


class CleanUp(Schedulable):
    """每天定时清理过期的采集数据，避免磁盘超出容量"""

    def __init__(self, sink: JsonlSink, retention_days: int = 2, cron_expr: str = "0 0 6 * * *"):
        self.sink = sink
        self.retention_days = retention_days
        self.cron_expr = cron_expr

    def describe(self) -> TaskMeta:
        return TaskMeta(
            name="data cleanup",
            desc="每天定时清理过期的采集数据，避免磁盘超出容量",
            cron_expr=self.cron_expr,
            tag=ScheduleTaskType.SYSTEM,
        )

    async def execute(self) -> None:
        await self.sink.purge(self.retention_days)
