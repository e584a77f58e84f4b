"""任务实现模块

- Schedulable: 任务抽象基类
- SchedHeartBeat: 调度器心跳任务
- ZombieSweepTask: 僵尸任务清理
"""

from akshare_monitor.scheduler.tasks.base import Schedulable, ScheduleTaskType, TaskMeta
from akshare_monitor.scheduler.tasks.system import (
    SchedHeartBeat,
    ZombieSweepTask,
    register_system_tasks,
)

__all__ = [
    "Schedulable",
    "ScheduleTaskType",
    "TaskMeta",
    "SchedHeartBeat",
    "ZombieSweepTask",
    "register_system_tasks",
]
