"""调度任务管理器测试"""

import asyncio
from contextlib import asynccontextmanager

import pytest

from akshare_monitor.scheduler.errors import CronParseError, TaskNotFoundError
from akshare_monitor.scheduler.manager import TaskManager
from akshare_monitor.scheduler.tasks.base import ScheduleTaskType

TRADE_CRON = "*/30 * 9-11,13-14 * * MON-FRI"


@asynccontextmanager
async def running_manager(**kwargs):
    manager = TaskManager(**kwargs)
    manager.start()
    try:
        yield manager
    finally:
        await manager.stop()


class TestAddAndCancel:
    """测试新增与取消"""

    @pytest.mark.anyio
    async def test_add_registers_and_runs(self, make_task):
        task = make_task()
        async with running_manager() as manager:
            key = await manager.add(task)
            await manager.join()

            assert key in manager
            await asyncio.sleep(2.5)
            assert task.count >= 1

    @pytest.mark.anyio
    async def test_add_with_explicit_key(self, make_task):
        async with running_manager() as manager:
            key = await manager.add(make_task(), key="my-key")
            await manager.join()
            assert key == "my-key"
            assert manager.get("my-key") is not None

    @pytest.mark.anyio
    async def test_add_then_cancel_never_executes(self, make_task):
        """测试新增后立即删除，任务一次也不执行"""
        task = make_task()
        async with running_manager() as manager:
            key = await manager.add(task)
            await manager.cancel(key)
            await manager.join()

            assert len(manager) == 0
            await asyncio.sleep(1.5)
            assert task.count == 0

    @pytest.mark.anyio
    async def test_cancel_unknown_key(self):
        async with running_manager() as manager:
            await manager.cancel("missing")
            await manager.join()
            assert len(manager) == 0

    @pytest.mark.anyio
    async def test_cancel_during_execution_lets_it_finish(self, make_task):
        """测试执行中取消不会打断本次执行"""
        task = make_task(duration=1.0)
        async with running_manager() as manager:
            key = await manager.add(task)
            await manager.join()
            runner = manager.get(key).runner

            await asyncio.wait_for(task.started.wait(), timeout=2)
            await manager.cancel(key)
            await manager.join()

            assert key not in manager
            assert await runner.wait_closed(timeout=3) is True
            assert task.finished == 1
            assert task.count == 1

    @pytest.mark.anyio
    async def test_concurrent_adds(self, make_task):
        """测试并发新增，所有任务都被注册"""
        async with running_manager() as manager:
            keys = await asyncio.gather(*(manager.add(make_task(name=f"t{i}")) for i in range(20)))
            await manager.join()

            assert len(set(keys)) == 20
            assert len(manager) == 20
            assert len(manager.inspect()) == 20

    @pytest.mark.anyio
    async def test_invalid_cron_rejected(self, make_task):
        """测试错误的 cron 表达式在入队前被拒绝"""
        async with running_manager() as manager:
            with pytest.raises(CronParseError):
                await manager.add(make_task(cron_expr="not a cron"))
            await manager.join()
            assert len(manager) == 0


class TestUpdate:
    """测试任务替换"""

    @pytest.mark.anyio
    async def test_update_switches_cron(self, make_task):
        old = make_task(cron_expr="0 0 0 1 1 * 2099")
        new = make_task()
        async with running_manager() as manager:
            key = await manager.add(old)
            await manager.join()
            old_runner = manager.get(key).runner

            await manager.update(key, new)
            await manager.join()

            assert await old_runner.wait_closed(timeout=2) is True
            snapshots = manager.inspect()
            assert len(snapshots) == 1
            assert snapshots[0].uuid == key
            assert snapshots[0].cron_expr == "* * * * * *"

            await asyncio.sleep(2.5)
            assert new.count >= 1
            assert old.count == 0

    @pytest.mark.anyio
    async def test_update_missing_key_adds(self, make_task):
        async with running_manager() as manager:
            await manager.update("fresh", make_task())
            await manager.join()
            assert "fresh" in manager

    @pytest.mark.anyio
    async def test_update_invalid_cron_keeps_old(self, make_task):
        async with running_manager() as manager:
            key = await manager.add(make_task(cron_expr="0 0 0 1 1 * 2099"))
            await manager.join()

            with pytest.raises(CronParseError):
                await manager.update(key, make_task(cron_expr="* * *"))
            await manager.join()

            entry = manager.get(key)
            assert entry is not None
            assert entry.task.meta.cron_expr == "0 0 0 1 1 * 2099"
            assert entry.is_alive


class TestInspect:
    """测试快照查询"""

    @pytest.mark.anyio
    async def test_two_tasks_distinct_next_times(self, make_task):
        async with running_manager() as manager:
            await manager.add(make_task(name="A", cron_expr="5 * * * * * *"))
            await manager.add(make_task(name="B", cron_expr=TRADE_CRON, tag=ScheduleTaskType.ASTOCK))
            await manager.join()

            snapshots = manager.inspect(ScheduleTaskType.ALL)
            assert len(snapshots) == 2
            assert snapshots[0].next_time != snapshots[1].next_time

            b = next(s for s in snapshots if s.name == "B")
            assert b.next_time.weekday() < 5
            assert b.next_time.hour in (9, 10, 11, 13, 14)

    @pytest.mark.anyio
    async def test_filter_by_tag(self, make_task):
        async with running_manager() as manager:
            await manager.add(make_task(tag=ScheduleTaskType.SYSTEM))
            await manager.add(make_task(tag=ScheduleTaskType.ASTOCK))
            await manager.add(make_task())
            await manager.join()

            assert len(manager.inspect(ScheduleTaskType.ALL)) == 3
            assert len(manager.inspect(ScheduleTaskType.SYSTEM)) == 1
            assert len(manager.inspect(ScheduleTaskType.ASTOCK)) == 1
            assert [s.tag for s in manager.inspect(None)] == ["None"]

    @pytest.mark.anyio
    async def test_empty(self):
        async with running_manager() as manager:
            assert manager.inspect() == []


class TestSweepZombies:
    """测试僵尸任务清理"""

    @pytest.mark.anyio
    async def test_sweeps_finished_runner(self, make_task):
        async with running_manager() as manager:
            finished_key = await manager.add(make_task(cron_expr="0 0 0 1 1 * 2020"))
            alive_key = await manager.add(make_task())
            await manager.join()
            await manager.get(finished_key).runner.wait_closed(timeout=1)

            zombie = next(s for s in manager.inspect() if s.uuid == finished_key)
            assert zombie.is_alive is False
            assert zombie.state == "completed"

            assert manager.sweep_zombies() == 1
            assert finished_key not in manager
            assert alive_key in manager
            assert manager.sweep_zombies() == 0


class TestTriggerNow:
    """测试手动触发"""

    @pytest.mark.anyio
    async def test_trigger_known_task(self, make_task):
        task = make_task(cron_expr="0 0 0 1 1 * 2099")
        async with running_manager() as manager:
            key = await manager.add(task)
            await manager.join()

            assert await manager.trigger_now(key) is True
            assert task.count == 1
            assert manager.get(key).runner.run_count == 1

    @pytest.mark.anyio
    async def test_trigger_failure_reported(self, make_task):
        task = make_task(cron_expr="0 0 0 1 1 * 2099", error=RuntimeError("boom"))
        async with running_manager() as manager:
            key = await manager.add(task)
            await manager.join()

            assert await manager.trigger_now(key) is False
            assert manager.inspect()[0].last_error == "boom"

    @pytest.mark.anyio
    async def test_trigger_unknown_task(self):
        async with running_manager() as manager:
            with pytest.raises(TaskNotFoundError) as exc_info:
                manager.trigger_now("missing")
            assert exc_info.value.key == "missing"
            assert isinstance(exc_info.value, KeyError)


class TestLifecycle:
    """测试启动与关闭"""

    @pytest.mark.anyio
    async def test_stop_cancels_all_runners(self, make_task):
        manager = TaskManager()
        manager.start()
        assert manager.is_running
        await manager.add(make_task())
        await manager.add(make_task())
        await manager.join()
        runners = [e.runner for e in manager.registry.entries()]

        await manager.stop()

        assert not manager.is_running
        assert len(manager) == 0
        assert all(not r.is_alive for r in runners)

    @pytest.mark.anyio
    async def test_stop_aborts_long_execution(self, make_task):
        """测试关闭超时后强制终止仍在执行的任务"""
        task = make_task(duration=30.0)
        manager = TaskManager(shutdown_timeout=0.2)
        manager.start()
        key = await manager.add(task)
        await manager.join()
        runner = manager.get(key).runner

        await asyncio.wait_for(task.started.wait(), timeout=2)
        await manager.stop()

        assert not runner.is_alive
        assert task.finished == 0

    @pytest.mark.anyio
    async def test_add_after_stop_is_dropped(self, make_task):
        manager = TaskManager()
        manager.start()
        await manager.stop()

        await manager.add(make_task())
        assert len(manager) == 0
