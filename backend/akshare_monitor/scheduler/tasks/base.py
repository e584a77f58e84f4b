"""调度任务抽象基类

定义所有调度任务必须实现的接口，确保调度器能统一处理。
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class ScheduleTaskType(str, Enum):
    """调度任务类型，用于 inspect 过滤"""

    SYSTEM = "System"  # 调度器自省任务
    ASTOCK = "AStock"  # A股数据监控任务
    ALL = "All"  # 所有类型（仅用于过滤）

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TaskMeta:
    """调度任务描述性元信息

    Attributes:
        name: 任务名称
        desc: 任务描述
        cron_expr: cron 表达式，6 段（秒 分 时 日 月 周）或 7 段（追加年）
        tag: 任务类型标签
    """

    name: str
    desc: str
    cron_expr: str
    tag: ScheduleTaskType | None = None


class Schedulable(ABC):
    """调度任务抽象基类

    所有调度任务必须继承此类并实现 describe 与 execute 方法。
    任务实例在注册后会被调度器与执行循环共享引用，构造完成后应视为不可变。

    Example:
        class MyTask(Schedulable):
            def describe(self) -> TaskMeta:
                return TaskMeta(
                    name="my_task",
                    desc="我的任务",
                    cron_expr="0 */10 * * * *",  # 每10分钟
                    tag=ScheduleTaskType.SYSTEM,
                )

            async def execute(self) -> None:
                ...
    """

    def gen_key(self) -> str:
        """生成任务 key，默认使用随机 uuid"""
        return str(uuid.uuid4())

    @abstractmethod
    def describe(self) -> TaskMeta:
        """调度任务相关描述性字段"""

    @abstractmethod
    async def execute(self) -> None:
        """在一次调度之中做什么"""

    async def should_cancel(self) -> bool:
        """是否取消当前的调度任务，返回 True 代表取消，默认永远不取消"""
        return False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
