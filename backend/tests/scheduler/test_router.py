"""调度器路由测试"""

import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient

from akshare_monitor import main
from akshare_monitor.core.errors import install_error_handlers
from akshare_monitor.main import app
from akshare_monitor.scheduler.routers import router

NEVER = "0 0 0 1 1 * 2099"


class TestSchedulerRouter:
    """测试路由定义"""

    def test_router_prefix(self):
        assert router.prefix == "/scheduler"
        assert "scheduler" in router.tags

    def test_endpoints_exist(self):
        routes = [route.path for route in router.routes]
        assert "/scheduler" in routes
        assert "/scheduler/{task_id}" in routes


class TestInspectEndpoint:
    """测试任务查询接口"""

    def test_list_all(self):
        with TestClient(app) as client:
            response = client.get("/scheduler")

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 2
        assert {item["tag"] for item in body} == {"System"}
        assert all(item["is_alive"] for item in body)
        assert all(item["next_time"] for item in body)

    def test_filter_by_tag(self):
        with TestClient(app) as client:
            system = client.get("/scheduler", params={"tag": "System"})
            astock = client.get("/scheduler", params={"tag": "AStock"})

        assert len(system.json()) == 2
        assert astock.json() == []

    def test_invalid_tag(self):
        with TestClient(app) as client:
            response = client.get("/scheduler", params={"tag": "Bogus"})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "invalid_tag"

    def test_filter_untagged(self, make_task):
        """测试 tag=None 只返回未设置标签的任务"""
        with TestClient(app) as client:
            manager = app.state.task_manager
            client.portal.call(manager.add, make_task(cron_expr=NEVER, name="untagged"))
            client.portal.call(manager.join)

            untagged = client.get("/scheduler", params={"tag": "None"}).json()
            everything = client.get("/scheduler").json()

        assert [item["name"] for item in untagged] == ["untagged"]
        assert untagged[0]["tag"] == "None"
        assert len(everything) == 3


class TestTriggerEndpoint:
    """测试手动触发接口"""

    def test_trigger_known_task(self):
        with TestClient(app) as client:
            key = client.get("/scheduler").json()[0]["uuid"]
            response = client.get(f"/scheduler/{key}")

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_trigger_unknown_task(self):
        with TestClient(app) as client:
            response = client.get("/scheduler/does-not-exist")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        error = response.json()["error"]
        assert error["code"] == "task_not_found"
        assert error["data"] == {"resource": "task", "id": "does-not-exist"}


class TestSchedulerUnavailable:
    """测试调度器未启动"""

    def test_returns_503(self):
        bare = FastAPI()
        install_error_handlers(bare)
        bare.include_router(router)

        response = TestClient(bare).get("/scheduler")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error"]["code"] == "scheduler_unavailable"


class TestHealth:
    """测试健康检查"""

    def test_health(self):
        with TestClient(app) as client:
            response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestLifespan:
    """测试应用生命周期"""

    def test_startup_failure_stops_manager(self, monkeypatch, make_task):
        """测试启动中途注册失败时调度器被关闭"""
        managers = []

        async def failing_register(manager):
            managers.append(manager)
            await manager.add(make_task(name="registered-before-failure"))
            await manager.join()
            raise RuntimeError("注册失败")

        monkeypatch.setattr(main, "register_system_tasks", failing_register)

        with pytest.raises(RuntimeError):
            with TestClient(app):
                pass

        manager = managers[0]
        assert not manager.processor.is_running
        assert len(manager) == 0
