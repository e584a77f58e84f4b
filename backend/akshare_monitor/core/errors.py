"""统一错误处理

所有接口错误都渲染为同一结构:

    {"error": {"code": ..., "message": ..., "data": ..., "timestamp": "...Z"}}
"""

from datetime import datetime, timezone
from typing import Any, NoReturn

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from akshare_monitor.core.logging import get_logger

logger = get_logger("errors")


class ErrorPayload(BaseModel):
    """标准错误响应结构"""

    code: str
    message: str
    data: dict[str, Any] | None = None
    timestamp: str


class AppError(HTTPException):
    """应用自定义异常

    使用示例:
        raise AppError(
            code="task_not_found",
            message="调度任务不存在",
            status_code=404,
            data={"task_id": task_id},
        )
    """

    def __init__(
        self,
        *,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        data: dict[str, Any] | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.error_message = message
        self.data = data

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content=create_error_response(self.code, self.error_message, self.data),
        )


def create_error_response(code: str, message: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """创建标准错误响应，时间戳为 UTC ISO 格式并以 Z 结尾"""
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    payload = ErrorPayload(code=code, message=message, data=data, timestamp=timestamp)
    return {"error": payload.model_dump()}


def raise_not_found(resource: str, resource_id: str | None = None) -> NoReturn:
    """抛出资源不存在错误"""
    data = {"resource": resource}
    if resource_id:
        data["id"] = resource_id
    raise AppError(
        code=f"{resource}_not_found",
        message=f"{resource} 不存在",
        status_code=status.HTTP_404_NOT_FOUND,
        data=data,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.warning("请求失败", path=request.url.path, code=exc.code, status_code=exc.status_code)
    return exc.to_response()


def install_error_handlers(app: FastAPI) -> None:
    """注册全局异常处理器"""
    app.add_exception_handler(AppError, app_error_handler)
