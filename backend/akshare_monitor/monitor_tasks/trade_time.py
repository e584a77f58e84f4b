"""A股交易时间判断"""

from datetime import datetime

from akshare_monitor.scheduler.cron import to_cst

# 一个接近于交易时间的cron表达式
TRADE_TIME_CRON = "*/30 * 9-11,13-14 * * MON-FRI"

# 交易时间段（以分钟表示）
MORNING_START = 9 * 60 + 30  # 9:30
MORNING_END = 11 * 60 + 30  # 11:30
AFTERNOON_START = 13 * 60  # 13:00
AFTERNOON_END = 15 * 60  # 15:00


def in_trade_time(now: datetime) -> bool:
    """判断是否当前处于交易时间内（按东八区时间计算）"""
    dt = to_cst(now)
    current_minutes = dt.hour * 60 + dt.minute

    return (MORNING_START <= current_minutes < MORNING_END) or (
        AFTERNOON_START <= current_minutes < AFTERNOON_END
    )
