"""数据采集调度任务模块

- RealTimeStockMonitor: A股实时行情采集
- CleanUp: 过期采集数据清理
"""

import httpx

from akshare_monitor.core.config import Settings
from akshare_monitor.core.logging import get_logger
from akshare_monitor.monitor_tasks.a_stock import RealTimeStockMonitor
from akshare_monitor.monitor_tasks.clean_up import CleanUp
from akshare_monitor.monitor_tasks.sink import JsonlSink
from akshare_monitor.monitor_tasks.trade_time import TRADE_TIME_CRON, in_trade_time
from akshare_monitor.scheduler.manager import TaskManager

logger = get_logger("monitor")

__all__ = [
    "CleanUp",
    "JsonlSink",
    "RealTimeStockMonitor",
    "TRADE_TIME_CRON",
    "create_http_client",
    "in_trade_time",
    "start_up_monitor_tasks",
]


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """每个采集任务共享的 HTTP 客户端"""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.HTTP_TIMEOUT, connect=settings.HTTP_CONNECT_TIMEOUT),
    )


async def start_up_monitor_tasks(
    manager: TaskManager,
    client: httpx.AsyncClient,
    settings: Settings,
) -> list[str]:
    """将数据采集任务加入调度器

    Returns:
        注册的任务 key 列表
    """
    sink = JsonlSink(settings.DATA_DIR)
    keys = [
        await manager.add(CleanUp(sink, retention_days=settings.DATA_RETENTION_DAYS)),
        await manager.add(
            RealTimeStockMonitor(
                client=client,
                data_url=settings.with_base_url("/stock_zh_a_spot_em"),
                sink=sink,
            )
        ),
    ]
    logger.info("数据采集任务已注册", count=len(keys))
    return keys
