"""采集数据落盘

按 <数据目录>/<表名>/<YYYYMMDD>.jsonl 追加写入采集结果，日期按东八区计算。
"""

import asyncio
import json
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

from akshare_monitor.core.logging import get_logger
from akshare_monitor.scheduler.cron import cst_now, to_cst

logger = get_logger("monitor.sink")

DATE_FORMAT = "%Y%m%d"


class JsonlSink:
    """JSON Lines 数据落盘

    Attributes:
        root: 数据根目录
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path_for(self, table: str, ts: datetime) -> Path:
        """数据文件路径"""
        return self.root / table / f"{to_cst(ts).strftime(DATE_FORMAT)}.jsonl"

    async def write(self, table: str, rows: list[dict[str, Any]], ts: datetime) -> int:
        """追加写入一批记录，每条记录附带采集时间 ts

        Returns:
            写入条数
        """
        if not rows:
            return 0
        path = self.path_for(table, ts)
        await asyncio.to_thread(self._append, path, rows, to_cst(ts).isoformat())
        logger.info("采集数据已写入", table=table, count=len(rows), path=path)
        return len(rows)

    async def purge(self, retention_days: int, now: datetime | None = None) -> list[Path]:
        """删除早于保留期的数据文件

        Args:
            retention_days: 保留天数，今天之前 retention_days 天以前的文件会被删除
            now: 当前时间，默认东八区当前时间

        Returns:
            被删除的文件列表
        """
        cutoff = to_cst(now or cst_now()).date() - timedelta(days=retention_days)
        removed = await asyncio.to_thread(self._purge_before, cutoff)
        if removed:
            logger.info("过期数据已清理", count=len(removed), cutoff=cutoff.isoformat())
        return removed

    @staticmethod
    def _append(path: Path, rows: list[dict[str, Any]], ts: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            for row in rows:
                f.write(json.dumps({**row, "ts": ts}, ensure_ascii=False, default=str))
                f.write("\n")

    def _purge_before(self, cutoff: date) -> list[Path]:
        if not self.root.exists():
            return []
        removed = []
        for path in self.root.glob("*/*.jsonl"):
            try:
                file_date = datetime.strptime(path.stem, DATE_FORMAT).date()
            except ValueError:
                # 非本模块生成的文件
                continue
            if file_date < cutoff:
                path.unlink(missing_ok=True)
                removed.append(path)
        return removed
