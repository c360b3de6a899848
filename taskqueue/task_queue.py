"""
TaskQueue - Handle object tying the registry, scheduler and node assignment together.
TaskQueue —— 将注册表、调度器与节点分配组合在一起的句柄对象。

Each TaskQueue owns its own state; there is no module-level registry, so any
number of independent queues can coexist. A single re-entrant lock guards
the registry, node pool and assignment table as one unit, since an
assignment pass reads across all three.

每个 TaskQueue 持有独立状态，没有模块级全局注册表，可同时存在多个互不影响的实例。
一把可重入锁把注册表、节点池与分配表作为一个整体保护，因为一次分配会同时读取三者。
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

import config
from schema import Task, TaskStatus
from taskqueue.assignment import NodeAssignmentManager
from taskqueue.ordering import ExecutionOrderScheduler, ScheduleResult
from taskqueue.registry import TaskRegistry
from taskqueue.state_machine import TaskStateMachine

logger = logging.getLogger(__name__)


class TaskQueue:
    """
    Public API of the scheduling core.
    调度核心的对外 API。

    Usage:
      1. add_task / update_task / remove_task to describe the work
      2. add_node / remove_node to describe the pool
      3. get_execution_order() or assign_tasks_to_nodes(), then get_assignments()

    用法：
      1. add_task / update_task / remove_task 描述任务
      2. add_node / remove_node 描述节点池
      3. get_execution_order() 或 assign_tasks_to_nodes()，然后 get_assignments()
    """

    def __init__(self, atomic_updates: bool | None = None):
        self._lock = threading.RLock()
        self._atomic_updates = config.ATOMIC_TASK_UPDATES if atomic_updates is None else atomic_updates
        self.registry = TaskRegistry()
        self.scheduler = ExecutionOrderScheduler()
        self.manager = NodeAssignmentManager(self.registry, self.scheduler, TaskStateMachine())

    # ------------------------------------------------------------------
    # Task mutations
    # 任务变更
    # ------------------------------------------------------------------

    def add_task(self, task_id: str, priority: int, dependencies: Iterable[str] = ()) -> Task:
        with self._lock:
            return self.registry.add_task(task_id, priority, dependencies)

    def update_task(
        self,
        task_id: str,
        priority: int,
        dependencies: Iterable[str] = (),
        atomic: bool | None = None,
    ) -> Task:
        """
        Replace a task's definition. `atomic=None` falls back to the queue default.
        替换任务定义。`atomic=None` 时使用队列默认设置。
        """
        if atomic is None:
            atomic = self._atomic_updates
        with self._lock:
            old = self.registry.tasks.get(task_id)
            try:
                return self.registry.update_task(task_id, priority, dependencies, atomic=atomic)
            finally:
                # 旧对象被替换或删除（含非原子更新失败）时，清除分配表中的引用
                if old is not None and self.registry.tasks.get(task_id) is not old:
                    self.manager.forget(task_id)

    def remove_task(self, task_id: str) -> None:
        with self._lock:
            self.registry.remove_task(task_id)
            self.manager.forget(task_id)

    # ------------------------------------------------------------------
    # Node mutations
    # 节点变更
    # ------------------------------------------------------------------

    def add_node(self, node_id: str) -> None:
        with self._lock:
            self.manager.add_node(node_id)

    def remove_node(self, node_id: str) -> None:
        with self._lock:
            self.manager.remove_node(node_id)

    # ------------------------------------------------------------------
    # Queries / actions
    # 查询与动作
    # ------------------------------------------------------------------

    def schedule(self) -> ScheduleResult:
        with self._lock:
            return self.scheduler.schedule(self.registry.tasks, self.registry.dependency_graph)

    def get_execution_order(self) -> list[str]:
        return self.schedule().order

    def get_unscheduled_tasks(self) -> list[str]:
        """
        Ids that cannot be ordered because of a dependency cycle.
        因依赖环而无法排序的任务 ID。
        """
        return self.schedule().unscheduled

    @property
    def unscheduled_count(self) -> int:
        return len(self.get_unscheduled_tasks())

    def assign_tasks_to_nodes(self) -> None:
        with self._lock:
            self.manager.assign_all()

    def mark_done(self, task_id: str) -> None:
        with self._lock:
            self.manager.mark_done(task_id)

    def get_assignments(self) -> dict[str, list[Task]]:
        with self._lock:
            return self.manager.get_assignments()

    def get_assignment_ids(self) -> dict[str, list[str]]:
        with self._lock:
            return self.manager.get_assignment_ids()

    def get_task(self, task_id: str) -> Task:
        with self._lock:
            return self.registry.get_task(task_id)

    def summary(self) -> str:
        """
        One-line summary for logging, e.g. TaskQueue[5 tasks: 3 assigned, 2 pending; 2 nodes]
        生成单行状态摘要，用于日志输出。
        """
        with self._lock:
            counts: dict[str, int] = {}
            for task in self.registry.tasks.values():
                counts[task.status.value] = counts.get(task.status.value, 0) + 1
            parts = [f"{counts[s.value]} {s.value}" for s in TaskStatus if s.value in counts]
            return f"TaskQueue[{len(self.registry)} tasks: {', '.join(parts)}; {len(self.manager.nodes)} nodes]"
