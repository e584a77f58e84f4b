"""任务注册中心

维护 key -> (已注册任务, 执行循环) 的映射。
写入只来自 CommandProcessor，读取（inspect、清理）可能来自任意协程或线程，
因此映射本身由一把短锁保护，锁只覆盖纯内存操作，不跨越任何 await。
"""

import threading
from dataclasses import dataclass

from akshare_monitor.core.logging import get_logger
from akshare_monitor.scheduler.cron import cst_now
from akshare_monitor.scheduler.runner import TaskRunner
from akshare_monitor.scheduler.state.models import ScheduleTask, TaskSnapshot
from akshare_monitor.scheduler.tasks.base import ScheduleTaskType

logger = get_logger("scheduler.registry")


@dataclass(frozen=True)
class RegistryEntry:
    """注册中心条目"""

    task: ScheduleTask
    runner: TaskRunner

    @property
    def key(self) -> str:
        return self.task.key

    @property
    def is_alive(self) -> bool:
        return self.runner.is_alive


class TaskRegistry:
    """任务注册中心

    职责：
    1. 保存任务与其执行循环
    2. 提供插入、替换、删除与快照查询
    3. 清除执行循环已退出的僵尸条目

    Example:
        registry = TaskRegistry()
        registry.insert(RegistryEntry(task, runner))
        for snapshot in registry.snapshot(ScheduleTaskType.ALL):
            print(snapshot.name, snapshot.next_time)
    """

    def __init__(self) -> None:
        self._entries: dict[str, RegistryEntry] = {}
        self._lock = threading.Lock()

    def insert(self, entry: RegistryEntry) -> RegistryEntry | None:
        """插入条目，同 key 条目存在时替换

        Returns:
            被替换的旧条目，不存在则返回 None
        """
        with self._lock:
            previous = self._entries.get(entry.key)
            self._entries[entry.key] = entry
        return previous

    def replace(self, entry: RegistryEntry) -> RegistryEntry | None:
        """替换同 key 条目，语义与 insert 相同，用于表达更新意图"""
        return self.insert(entry)

    def remove(self, key: str) -> RegistryEntry | None:
        """删除条目

        Returns:
            被删除的条目，不存在则返回 None
        """
        with self._lock:
            return self._entries.pop(key, None)

    def get(self, key: str) -> RegistryEntry | None:
        with self._lock:
            return self._entries.get(key)

    def entries(self) -> list[RegistryEntry]:
        """所有条目的浅拷贝"""
        with self._lock:
            return list(self._entries.values())

    def clear(self) -> list[RegistryEntry]:
        """清空并返回所有条目"""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        return entries

    def retain_alive(self) -> list[str]:
        """只保留执行循环仍存活的条目

        Returns:
            被清除的 key 列表
        """
        with self._lock:
            dead = [key for key, entry in self._entries.items() if not entry.is_alive]
            for key in dead:
                del self._entries[key]
        if dead:
            logger.info("清除僵尸任务", count=len(dead), task_keys=dead)
        return dead

    def snapshot(self, tag: ScheduleTaskType | None = ScheduleTaskType.ALL) -> list[TaskSnapshot]:
        """生成任务快照

        Args:
            tag: 过滤标签，ALL 返回全部；None 只返回未设置标签的任务

        Returns:
            快照列表（拷贝，不持有锁）
        """
        entries = self.entries()
        if tag != ScheduleTaskType.ALL:
            entries = [e for e in entries if e.task.meta.tag == tag]

        now = cst_now()
        snapshots = []
        for entry in entries:
            meta = entry.task.meta
            runner = entry.runner
            snapshots.append(
                TaskSnapshot(
                    name=meta.name,
                    desc=meta.desc,
                    cron_expr=meta.cron_expr,
                    next_time=entry.task.schedule.next_after(now),
                    is_alive=runner.is_alive,
                    tag=meta.tag.value if meta.tag else "None",
                    uuid=entry.key,
                    state=runner.state.value,
                    run_count=runner.run_count,
                    fail_count=runner.fail_count,
                    last_run_at=runner.last_run_at,
                    last_error=runner.last_error,
                )
            )
        return snapshots

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
