"""A股行情采集任务"""

from typing import Any

import httpx

from akshare_monitor.core.logging import get_logger
from akshare_monitor.monitor_tasks.sink import JsonlSink
from akshare_monitor.monitor_tasks.trade_time import TRADE_TIME_CRON, in_trade_time
from akshare_monitor.scheduler.cron import cst_now
from akshare_monitor.scheduler.tasks.base import Schedulable, ScheduleTaskType, TaskMeta

logger = get_logger("monitor.a_stock")


class RealTimeStockMonitor(Schedulable):
    """收集东方财富网-沪深京 A 股-实时行情数据

    cron 只能近似交易时间，执行时再用 in_trade_time 精确过滤。

    Attributes:
        client: 共享的 HTTP 客户端
        data_url: aktools 接口地址
        sink: 数据落盘
        data_table: 落盘表名
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        data_url: str,
        sink: JsonlSink,
        data_table: str = "astock_realtime_data",
        cron_expr: str = TRADE_TIME_CRON,
    ):
        self.client = client
        self.data_url = data_url
        self.sink = sink
        self.data_table = data_table
        self.cron_expr = cron_expr

    def describe(self) -> TaskMeta:
        return TaskMeta(
            name="stock_zh_a_spot_em",
            desc="东方财富网-沪深京 A 股-实时行情数据",
            cron_expr=self.cron_expr,
            tag=ScheduleTaskType.ASTOCK,
        )

    async def fetch(self) -> list[dict[str, Any]]:
        """请求实时行情数据"""
        response = await self.client.get(self.data_url)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, list):
            raise ValueError(f"行情接口返回格式错误: {type(data).__name__}")
        return data

    async def execute(self) -> None:
        ts = cst_now()
        if not in_trade_time(ts):
            logger.debug("非交易时间，跳过采集", ts=ts)
            return

        rows = await self.fetch()
        await self.sink.write(self.data_table, rows, ts)
