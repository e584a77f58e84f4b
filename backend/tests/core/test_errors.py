"""错误处理模块测试"""

import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient

from akshare_monitor.core.errors import (
    AppError,
    create_error_response,
    install_error_handlers,
    raise_not_found,
)


class TestAppError:
    """测试 AppError 自定义异常"""

    def test_basic_error(self):
        """测试基本错误创建"""
        error = AppError(
            code="test_error",
            message="测试错误消息",
        )
        assert error.code == "test_error"
        assert error.error_message == "测试错误消息"
        assert error.status_code == status.HTTP_400_BAD_REQUEST
        assert error.data is None

    def test_error_with_custom_status(self):
        """测试自定义状态码"""
        error = AppError(
            code="task_not_found",
            message="调度任务不存在",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        assert error.status_code == status.HTTP_404_NOT_FOUND

    def test_error_with_data(self):
        """测试带附加数据的错误"""
        error = AppError(
            code="validation_error",
            message="验证失败",
            data={"field": "cron_expr", "reason": "invalid"},
        )
        assert error.data == {"field": "cron_expr", "reason": "invalid"}


class TestCreateErrorResponse:
    """测试错误响应创建函数"""

    def test_basic_response(self):
        """测试基本响应结构"""
        response = create_error_response(
            code="test_code",
            message="测试消息",
        )
        assert "error" in response
        assert response["error"]["code"] == "test_code"
        assert response["error"]["message"] == "测试消息"
        assert response["error"]["data"] is None
        assert "timestamp" in response["error"]

    def test_response_with_data(self):
        """测试带数据的响应"""
        response = create_error_response(
            code="test_code",
            message="测试消息",
            data={"key": "value"},
        )
        assert response["error"]["data"] == {"key": "value"}

    def test_timestamp_format(self):
        """测试时间戳格式"""
        response = create_error_response(code="test", message="test")
        timestamp = response["error"]["timestamp"]
        assert timestamp.endswith("Z")
        assert "T" in timestamp


class TestRaiseHelpers:
    """测试快捷抛出函数"""

    def test_raise_not_found(self):
        with pytest.raises(AppError) as exc_info:
            raise_not_found("task", "abc")
        assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND
        assert exc_info.value.code == "task_not_found"
        assert exc_info.value.data == {"resource": "task", "id": "abc"}


class TestErrorHandler:
    """测试全局异常处理器"""

    def test_app_error_rendered(self):
        """测试 AppError 渲染为标准错误结构"""
        app = FastAPI()
        install_error_handlers(app)

        @app.get("/boom")
        async def boom():
            raise AppError(code="boom", message="出错了", status_code=418, data={"x": 1})

        client = TestClient(app)
        response = client.get("/boom")

        assert response.status_code == 418
        body = response.json()
        assert body["error"]["code"] == "boom"
        assert body["error"]["message"] == "出错了"
        assert body["error"]["data"] == {"x": 1}

