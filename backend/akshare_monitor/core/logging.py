"""日志系统 - 使用 loguru + rich

控制台输出三种模式:
- simple: 只显示模块和消息，适合本地调试调度节奏
- detailed: 带时间、位置和上下文字段，默认模式
- json: 单行 JSON，适合采集到日志平台

文件日志（LOG_FILE 非空时）始终使用 loguru 的 serialize 输出，按天轮转。

使用方式:
    from akshare_monitor.core.logging import get_logger

    logger = get_logger("scheduler.runner")
    logger.info("下次执行时间", task_key=key, next_time=next_time)
    logger.exception("任务执行异常", task_key=key)
"""

import dataclasses
import json
import sys
import traceback
from collections.abc import Callable
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger as loguru_logger
from rich.console import Console
from rich.traceback import install as install_rich_traceback

from akshare_monitor.core.config import settings
from akshare_monitor.core.paths import get_project_root


class LogLevel(str, Enum):
    """日志级别"""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogMode(str, Enum):
    """日志模式"""

    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


console = Console(force_terminal=True, color_system="auto")

DEFAULT_MODULE = "app"
MAX_DEPTH = 4
MAX_REPR = 2000

LEVEL_COLORS = {
    "DEBUG": "dim cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold red",
}


def to_loggable(value: Any, depth: int = 0) -> Any:
    """把上下文字段转换为可序列化的值

    控制台 sink 使用 enqueue=True，上下文会跨线程传递，
    asyncio.Task、httpx.Response 之类的对象需要先转为字符串。
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)

    if depth >= MAX_DEPTH:
        return "..."
    if isinstance(value, dict):
        return {str(k): to_loggable(v, depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_loggable(v, depth + 1) for v in value]
    # TaskMeta、TaskSnapshot 等 dataclass
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_loggable(getattr(value, f.name), depth + 1) for f in dataclasses.fields(value)}

    text = str(value) if isinstance(value, Exception) else repr(value)
    return text if len(text) <= MAX_REPR else text[:MAX_REPR] + "..."


def _escape(text: str) -> str:
    # formatter 的返回值会经过 loguru 的颜色标签解析和 format_map
    return text.replace("<", r"\<").replace("{", "{{").replace("}", "}}")


def _source_file(record: dict) -> str:
    file = record.get("file")
    path = getattr(file, "path", None)
    if path:
        try:
            return str(Path(path).resolve().relative_to(get_project_root()))
        except ValueError:
            pass
    return getattr(file, "name", "") or ""


def _context(record: dict) -> dict[str, Any]:
    return {k: v for k, v in record["extra"].items() if k != "module"}


def _traceback_text(record: dict) -> str | None:
    exception = record.get("exception")
    if not exception or exception.value is None:
        return None
    return "".join(traceback.format_exception(exception.type, exception.value, exception.traceback))


def format_simple(record: dict) -> str:
    """简洁格式: [module] message"""
    color = LEVEL_COLORS.get(record["level"].name, "white")
    module = record["extra"].get("module", DEFAULT_MODULE)
    return f"<{color}>[{module}]</{color}> {_escape(record['message'])}\n"


def format_detailed(record: dict) -> str:
    """详细格式: 时间 级别 [module] 文件:行号 | 上下文 换行 消息"""
    level = record["level"].name
    color = LEVEL_COLORS.get(level, "white")
    module = record["extra"].get("module", DEFAULT_MODULE)
    time = record["time"].strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

    line = (
        f"<dim>{time}</dim> <{color}>{level:8}</{color}> <magenta>[{module}]</magenta> "
        f"<cyan>{_source_file(record)}:{record['line']}</cyan> in <blue>{record['function']}</blue>"
    )
    context = _context(record)
    if context:
        fields = ", ".join(f"{k}={v!r}" for k, v in context.items())
        line += f" <dim>| {_escape(fields)}</dim>"
    line += f"\n    → {_escape(record['message'])}\n"

    tb = _traceback_text(record)
    if tb:
        line += f"<red>{_escape(tb)}</red>\n"
    return line


def format_json(record: dict) -> str:
    """JSON 格式，上下文字段平铺到顶层"""
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "module": record["extra"].get("module", DEFAULT_MODULE),
        "message": record["message"],
        "location": f"{_source_file(record)}:{record['line']}",
        **_context(record),
    }
    tb = _traceback_text(record)
    if tb:
        entry["exception"] = tb
    return json.dumps(entry, ensure_ascii=False, default=str).replace("{", "{{").replace("}", "}}") + "\n"


FORMATTERS: dict[LogMode, Callable[[dict], str]] = {
    LogMode.SIMPLE: format_simple,
    LogMode.DETAILED: format_detailed,
    LogMode.JSON: format_json,
}


class Logger:
    """统一日志接口

    第一次写日志时按 settings 自动配置；FastAPI lifespan 会在启动时显式配置一次。
    """

    def __init__(self) -> None:
        self.mode = LogMode.DETAILED
        self.level = LogLevel.INFO
        self._configured = False

    def configure(
        self,
        mode: LogMode | str | None = None,
        level: LogLevel | str | None = None,
        log_file: str | None = None,
    ) -> None:
        """配置日志系统

        Args:
            mode: 日志模式，默认 settings.LOG_MODE
            level: 日志级别，默认 settings.LOG_LEVEL
            log_file: 日志文件路径，默认 settings.LOG_FILE，空字符串表示不写文件
        """
        mode = mode or settings.LOG_MODE
        level = level or settings.LOG_LEVEL
        self.mode = mode if isinstance(mode, LogMode) else LogMode(mode.lower())
        self.level = level if isinstance(level, LogLevel) else LogLevel(level.upper())
        log_file = settings.LOG_FILE if log_file is None else log_file

        loguru_logger.remove()
        if self.mode == LogMode.DETAILED:
            install_rich_traceback(console=console, show_locals=False, width=120)

        loguru_logger.add(
            sys.stderr,
            format=FORMATTERS[self.mode],
            level=self.level.value,
            colorize=self.mode != LogMode.JSON,
            backtrace=False,
            diagnose=False,
            enqueue=True,
        )
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            loguru_logger.add(
                log_file,
                format="{message}",
                level=self.level.value,
                rotation=settings.LOG_FILE_ROTATION,
                retention=settings.LOG_FILE_RETENTION,
                compression="gz",
                serialize=True,
            )

        # 先置位再写日志，避免 info -> configure 递归
        self._configured = True
        self.info(
            "日志系统已配置",
            module="logging",
            mode=self.mode,
            log_level=self.level,
            file=log_file or "-",
        )

    def log(
        self,
        level_name: str,
        message: str,
        /,
        *,
        module: str = DEFAULT_MODULE,
        exc_info: bool = False,
        depth: int = 0,
        **context: Any,
    ) -> None:
        """写一条日志

        Args:
            level_name: 日志级别名
            message: 日志消息
            module: 模块名
            exc_info: 是否附带当前异常堆栈
            depth: 额外跳过的调用栈层数，用于把位置定位到真正的调用方
        """
        if not self._configured:
            self.configure()
        extra = {k: to_loggable(v) for k, v in context.items()}
        loguru_logger.bind(module=module, **extra).opt(depth=depth + 2, exception=exc_info).log(
            level_name.upper(), message
        )

    def debug(self, message: str, /, **context: Any) -> None:
        self.log("debug", message, **context)

    def info(self, message: str, /, **context: Any) -> None:
        self.log("info", message, **context)

    def warning(self, message: str, /, **context: Any) -> None:
        self.log("warning", message, **context)

    def error(self, message: str, /, exc_info: bool = False, **context: Any) -> None:
        self.log("error", message, exc_info=exc_info, **context)

    def exception(self, message: str, /, **context: Any) -> None:
        """错误日志，自动附带当前异常堆栈"""
        self.log("error", message, exc_info=True, **context)

    def bind(self, **context: Any) -> "BoundLogger":
        return BoundLogger(self, context)


class BoundLogger:
    """绑定了模块名和固定上下文的日志器"""

    def __init__(self, parent: Logger, context: dict[str, Any]) -> None:
        self._parent = parent
        self._context = context

    def bind(self, **context: Any) -> "BoundLogger":
        return BoundLogger(self._parent, {**self._context, **context})

    def _log(self, level_name: str, message: str, exc_info: bool, context: dict[str, Any]) -> None:
        self._parent.log(level_name, message, exc_info=exc_info, depth=1, **{**self._context, **context})

    def debug(self, message: str, /, **context: Any) -> None:
        self._log("debug", message, False, context)

    def info(self, message: str, /, **context: Any) -> None:
        self._log("info", message, False, context)

    def warning(self, message: str, /, **context: Any) -> None:
        self._log("warning", message, False, context)

    def error(self, message: str, /, exc_info: bool = False, **context: Any) -> None:
        self._log("error", message, exc_info, context)

    def exception(self, message: str, /, **context: Any) -> None:
        self._log("error", message, True, context)


# 全局日志实例
logger = Logger()


def get_logger(module: str) -> BoundLogger:
    """获取模块专用日志器

    Example:
        logger = get_logger("scheduler.runner")
        logger.info("下次执行时间", task_key=key, next_time=next_time)
    """
    return logger.bind(module=module)
