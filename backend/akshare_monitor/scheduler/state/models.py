"""调度任务状态模型

定义已注册任务、执行循环状态和 inspect 快照的数据结构。
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from akshare_monitor.scheduler.cron import CronExpression
from akshare_monitor.scheduler.tasks.base import Schedulable, TaskMeta


class RunnerState(str, Enum):
    """执行循环当前状态"""

    SCHEDULED = "scheduled"  # 计算下次触发时间
    SLEEPING = "sleeping"  # 等待触发时间或取消信号
    EXECUTING = "executing"  # 正在执行任务
    CANCELLED = "cancelled"  # 已取消（终态）
    COMPLETED = "completed"  # cron 不再有触发时间（终态）

    @property
    def is_terminal(self) -> bool:
        return self in (RunnerState.CANCELLED, RunnerState.COMPLETED)


@dataclass(frozen=True)
class ScheduleTask:
    """已注册的调度任务

    Attributes:
        key: 任务唯一标识
        meta: 任务元信息
        schedulable: 任务实现（共享引用）
        schedule: 已解析的 cron 表达式
    """

    key: str
    meta: TaskMeta
    schedulable: Schedulable
    schedule: CronExpression

    @classmethod
    def build(cls, key: str, schedulable: Schedulable) -> "ScheduleTask":
        """由任务实现构建，cron 表达式错误时抛出 CronParseError"""
        meta = schedulable.describe()
        return cls(
            key=key,
            meta=meta,
            schedulable=schedulable,
            schedule=CronExpression.parse(meta.cron_expr),
        )


@dataclass
class TaskSnapshot:
    """调度任务展示信息（inspect 快照）

    Attributes:
        name: 任务名称
        desc: 任务描述
        cron_expr: cron 表达式
        next_time: 下次触发时间（东八区）
        is_alive: 执行循环是否存活（参考值，执行中同样为 True）
        tag: 任务类型标签，未设置时为 "None"
        uuid: 任务 key
        state: 执行循环状态
        run_count: 累计执行次数
        fail_count: 累计失败次数
        last_run_at: 上次执行时间
        last_error: 上次错误信息
    """

    name: str
    desc: str
    cron_expr: str
    next_time: datetime | None
    is_alive: bool
    tag: str
    uuid: str
    state: str = RunnerState.SCHEDULED.value
    run_count: int = 0
    fail_count: int = 0
    last_run_at: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "desc": self.desc,
            "cron_expr": self.cron_expr,
            "next_time": self.next_time.isoformat() if self.next_time else None,
            "is_alive": self.is_alive,
            "tag": self.tag,
            "uuid": self.uuid,
            "state": self.state,
            "run_count": self.run_count,
            "fail_count": self.fail_count,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_error": self.last_error,
        }
