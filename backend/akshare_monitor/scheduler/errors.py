"""调度器异常定义"""


class SchedulerError(Exception):
    """调度器异常基类"""


class CronParseError(SchedulerError, ValueError):
    """cron 表达式解析失败

    Attributes:
        expression: 原始表达式
        reason: 失败原因
    """

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"无效的 cron 表达式 '{expression}': {reason}")


class TaskNotFoundError(SchedulerError, KeyError):
    """调度任务不存在"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"调度任务不存在: {self.key}"
