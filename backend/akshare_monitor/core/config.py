"""应用配置管理"""

import json
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 服务配置
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:3000"

    # 日志配置
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_MODE: str = "detailed"  # simple, detailed, json
    LOG_FILE: str = "./logs/server.log"  # 日志文件路径，留空则不记录文件
    LOG_FILE_ROTATION: str = "1 day"  # 日志文件轮转周期
    LOG_FILE_RETENTION: str = "7 days"  # 日志文件保留时间

    # ========== 调度器配置 ==========
    SCHEDULER_COMMAND_QUEUE_SIZE: int = 100  # 指令队列容量
    SCHEDULER_SYSTEM_TASKS_ENABLED: bool = True  # 是否注册心跳与僵尸任务清理

    # ========== 数据采集任务配置 ==========
    MONITOR_TASKS_ENABLED: bool = False  # 是否注册行情采集任务
    AKTOOLS_BASE_URL: str = "http://127.0.0.1:8080/api/public"
    HTTP_CONNECT_TIMEOUT: float = 5.0  # 连接超时（秒）
    HTTP_TIMEOUT: float = 20.0  # 请求超时（秒）
    DATA_DIR: str = "./data"  # 采集数据落盘目录
    DATA_RETENTION_DAYS: int = 2  # 采集数据保留天数

    @property
    def cors_origins_list(self) -> list[str]:
        """
        CORS 允许的源列表

        支持 JSON 数组或逗号分隔字符串两种写法。
        """
        raw = (self.CORS_ORIGINS or "").strip()
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                return [str(origin).strip() for origin in parsed]
        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    def with_base_url(self, path: str) -> str:
        """拼接 aktools 接口地址"""
        return f"{self.AKTOOLS_BASE_URL.rstrip('/')}{path}"

    def ensure_data_dir(self) -> None:
        """确保数据目录存在"""
        Path(self.DATA_DIR).mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


settings = get_settings()
