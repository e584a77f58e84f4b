"""Pytest 配置"""

import os
import tempfile

import pytest


# 测试环境下关闭文件日志与行情采集任务，采集数据写入临时目录。
# 这些值仅用于单测，不会触发任何真实网络调用。
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_MODE", "simple")
os.environ.setdefault("SCHEDULER_SYSTEM_TASKS_ENABLED", "true")
os.environ.setdefault("MONITOR_TASKS_ENABLED", "false")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="akshare-monitor-test-"))


@pytest.fixture
def anyio_backend():
    return "asyncio"
