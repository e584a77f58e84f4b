"""FastAPI 应用入口"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from akshare_monitor.core.config import settings
from akshare_monitor.core.errors import install_error_handlers
from akshare_monitor.core.logging import logger
from akshare_monitor.monitor_tasks import create_http_client, start_up_monitor_tasks
from akshare_monitor.scheduler import TaskManager
from akshare_monitor.scheduler.routers import router as scheduler_router
from akshare_monitor.scheduler.tasks import register_system_tasks

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理"""
    # 启动时配置日志（确保最先执行）
    logger.configure()

    logger.info("启动应用...", module="app")
    settings.ensure_data_dir()

    # 启动调度器（即使没有任务也启动，方便后续动态注册）
    task_manager = TaskManager(queue_size=settings.SCHEDULER_COMMAND_QUEUE_SIZE)
    task_manager.start()
    app.state.task_manager = task_manager

    http_client = None
    try:
        if settings.SCHEDULER_SYSTEM_TASKS_ENABLED:
            await register_system_tasks(task_manager)

        if settings.MONITOR_TASKS_ENABLED:
            http_client = create_http_client(settings)
            await start_up_monitor_tasks(task_manager, http_client, settings)

        await task_manager.join()
        logger.info(
            "任务调度器已启动",
            module="app",
            task_count=len(task_manager),
            tasks=[snapshot.to_dict() for snapshot in task_manager.inspect()],
        )

        logger.info("应用启动完成", module="app", host=settings.API_HOST, port=settings.API_PORT)

        yield

        logger.info("正在关闭应用...", module="app")
    finally:
        # 启动中途失败同样要停掉调度器
        # 1. 关闭任务调度器
        await task_manager.stop()
        logger.debug("任务调度器已关闭", module="app")

        # 2. 关闭 HTTP 客户端
        if http_client is not None:
            await http_client.aclose()
            logger.debug("HTTP 客户端已关闭", module="app")

    logger.info("应用已关闭", module="app")


app = FastAPI(
    title="AKShare Monitor",
    description="基于 cron 表达式的行情数据采集调度服务",
    version=VERSION,
    lifespan=lifespan,
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# 注册路由
app.include_router(scheduler_router)


@app.get("/health")
async def health_check():
    """健康检查"""
    return {"status": "ok", "version": VERSION}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "akshare_monitor.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True,
    )
