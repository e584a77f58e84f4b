"""调度器 API 路由

提供调度任务的查询与手动触发接口。
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel

from akshare_monitor.core.errors import AppError, raise_not_found
from akshare_monitor.scheduler.errors import TaskNotFoundError
from akshare_monitor.scheduler.manager import TaskManager
from akshare_monitor.scheduler.tasks.base import ScheduleTaskType

router = APIRouter(prefix="/scheduler", tags=["scheduler"])


# ==================== 依赖 ====================


def get_task_manager(request: Request) -> TaskManager:
    """从应用状态获取调度任务管理器"""
    manager = getattr(request.app.state, "task_manager", None)
    if manager is None:
        raise AppError(
            code="scheduler_unavailable",
            message="调度器尚未启动",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return manager


TaskManagerDep = Annotated[TaskManager, Depends(get_task_manager)]


# ==================== 响应模型 ====================


class TaskSnapshotResponse(BaseModel):
    """调度任务快照"""

    name: str
    desc: str
    cron_expr: str
    next_time: datetime | None
    is_alive: bool
    tag: str
    uuid: str
    state: str
    run_count: int
    fail_count: int
    last_run_at: datetime | None
    last_error: str | None


class TriggerResponse(BaseModel):
    """触发响应"""

    success: bool
    message: str


# ==================== 路由 ====================

# 未设置标签的任务在快照中显示为 "None"
UNTAGGED = "None"


def parse_tag(
    tag: str = Query(ScheduleTaskType.ALL.value, description="任务类型，All 返回全部，None 只返回未设置标签的任务"),
) -> ScheduleTaskType | None:
    """把查询参数转换为过滤标签"""
    if tag == UNTAGGED:
        return None
    try:
        return ScheduleTaskType(tag)
    except ValueError:
        raise AppError(
            code="invalid_tag",
            message=f"未知的任务类型: {tag}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            data={"tag": tag, "allowed": [t.value for t in ScheduleTaskType] + [UNTAGGED]},
        ) from None


@router.get("", response_model=list[TaskSnapshotResponse])
async def schedule_inspect(
    manager: TaskManagerDep,
    tag: Annotated[ScheduleTaskType | None, Depends(parse_tag)],
):
    """获取现在所有正在运行的调度任务

    tag=None 只返回未设置标签的任务。
    """
    return [TaskSnapshotResponse(**s.to_dict()) for s in manager.inspect(tag)]


@router.get("/{task_id}", response_model=TriggerResponse)
async def trigger_task(task_id: str, manager: TaskManagerDep):
    """手动触发任务

    任务在后台执行一次，接口不等待执行完成。

    Args:
        task_id: 任务 key
    """
    try:
        manager.trigger_now(task_id)
    except TaskNotFoundError:
        raise_not_found("task", task_id)

    return TriggerResponse(success=True, message=f"任务 {task_id} 已触发")
