"""cron 表达式计算

支持 6 段（秒 分 时 日 月 周）以及可选的第 7 段（年）格式，
字段语法（列表、范围、步长、MON-FRI 等英文缩写）由 APScheduler 的
CronTrigger 字段引擎负责解析。周字段的数字按 1=周日 … 7=周六 解释。

所有计算统一使用固定的东八区偏移（CST），与宿主机时区无关。
"""

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

from apscheduler.triggers.cron import CronTrigger

from akshare_monitor.scheduler.errors import CronParseError

CST = timezone(timedelta(hours=8), name="CST")

FIELD_NAMES = ("second", "minute", "hour", "day", "month", "day_of_week", "year")

# 周字段的数字按 1=周日 … 7=周六 解释
WEEKDAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def cst_now() -> datetime:
    """当前东八区时间"""
    return datetime.now(CST)


def to_cst(instant: datetime) -> datetime:
    """转换为东八区时间，naive 时间视为东八区时间"""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=CST)
    return instant.astimezone(CST)


class CronExpression:
    """已校验的 cron 表达式

    Example:
        expr = CronExpression.parse("*/30 * 9-11,13-14 * * MON-FRI")
        next_time = expr.next_after(cst_now())
    """

    __slots__ = ("expression", "_trigger")

    def __init__(self, expression: str, trigger: CronTrigger):
        self.expression = expression
        self._trigger = trigger

    @classmethod
    def parse(cls, expression: str) -> "CronExpression":
        """解析 cron 表达式

        Args:
            expression: cron 表达式字符串

        Returns:
            CronExpression 实例

        Raises:
            CronParseError: 表达式格式错误
        """
        if not isinstance(expression, str):
            raise CronParseError(repr(expression), "表达式必须是字符串")

        parts = expression.split()
        if len(parts) not in (6, 7):
            raise CronParseError(
                expression,
                f"需要 6 段（秒 分 时 日 月 周）或 7 段（追加年），实际 {len(parts)} 段",
            )

        # 日、周字段中的 '?' 等价于 '*'
        fields = dict(zip(FIELD_NAMES, parts))
        for name in ("day", "day_of_week"):
            if fields[name] == "?":
                fields[name] = "*"

        try:
            fields["day_of_week"] = _weekday_numbers_to_names(fields["day_of_week"])
            trigger = CronTrigger(timezone=CST, **fields)
        except (ValueError, TypeError) as e:
            raise CronParseError(expression, str(e)) from e

        return cls(expression, trigger)

    def next_after(self, instant: datetime) -> datetime | None:
        """计算严格晚于 instant 的最早触发时间

        Args:
            instant: 基准时间

        Returns:
            东八区时间，若不再有触发时间则返回 None
        """
        # 触发时间精度为秒，+1µs 后向上取整即为严格大于 instant 的第一个整秒
        start = to_cst(instant) + timedelta(microseconds=1)
        next_time = self._trigger.get_next_fire_time(None, start)
        if next_time is None:
            return None
        return next_time.astimezone(CST)

    def upcoming(self, after: datetime | None = None, limit: int | None = None) -> Iterator[datetime]:
        """依次产出后续触发时间"""
        current = after or cst_now()
        count = 0
        while limit is None or count < limit:
            next_time = self.next_after(current)
            if next_time is None:
                return
            yield next_time
            current = next_time
            count += 1

    def __str__(self) -> str:
        return self.expression

    def __repr__(self) -> str:
        return f"<CronExpression '{self.expression}'>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CronExpression):
            return NotImplemented
        return self.expression == other.expression

    def __hash__(self) -> int:
        return hash(self.expression)


def _weekday_numbers_to_names(field: str) -> str:
    """把周字段中的数字展开为英文缩写

    APScheduler 的周字段以 0 表示周一，这里统一按 1=周日 … 7=周六 解释，
    列表、范围和步长都会展开成缩写列表；纯英文缩写原样保留。

    Raises:
        ValueError: 数字超出 1-7 或范围倒置
    """
    parts = []
    for part in field.split(","):
        value, _, step_text = part.partition("/")
        if value == "*" and not step_text:
            parts.append(part)
            continue

        if value == "*":
            first, last = 1, 7
        else:
            first_text, _, last_text = value.partition("-")
            if not first_text.isdigit() or (last_text and not last_text.isdigit()):
                parts.append(part)
                continue
            first = int(first_text)
            # "3/2" 表示从周二开始到周六每隔一天
            last = int(last_text) if last_text else (7 if step_text else first)

        if step_text and not step_text.isdigit():
            raise ValueError(f"周字段步长无效: {part}")
        step = int(step_text) if step_text else 1
        if step < 1 or not 1 <= first <= last <= 7:
            raise ValueError(f"周字段取值必须在 1-7（1=周日）之间: {part}")

        parts.append(",".join(WEEKDAY_NAMES[day - 1] for day in range(first, last + 1, step)))
    return ",".join(parts)
