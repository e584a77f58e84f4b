"""调度器路由"""

from akshare_monitor.scheduler.routers.tasks import router

__all__ = ["router"]
