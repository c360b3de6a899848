"""
TaskRegistry - Canonical store of tasks and their dependency graph.
TaskRegistry —— 任务及其依赖图的权威存储。

The registry holds:
  - tasks:            dict of Task keyed by id (insertion ordered)
  - dependency graph: dict of id -> set of dependency ids, kept in lockstep

注册表包含：
  - tasks:  以 ID 为键的 Task 字典（保持插入顺序）
  - 依赖图: ID -> 依赖 ID 集合，与 tasks 同步维护

Validation happens before any mutation, so a rejected add never leaves a
partial insert behind.
所有校验都在修改之前完成，被拒绝的添加不会留下半成品。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from schema import Task

logger = logging.getLogger(__name__)


class TaskQueueError(Exception):
    """Base class for task queue errors. 任务队列异常基类。"""
    pass


class DuplicateTaskError(TaskQueueError):
    """
    Raised when a task id is already registered.
    任务 ID 已存在时抛出，调用方不应使用同一 ID 重试。
    """

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' already exists; task ids must be unique")


class UnknownDependencyError(TaskQueueError):
    """
    Raised when a dependency id is not a registered task.
    依赖的任务 ID 尚未注册时抛出，调用方需先注册依赖再注册下游任务。
    """

    def __init__(self, task_id: str, dependency_id: str):
        self.task_id = task_id
        self.dependency_id = dependency_id
        super().__init__(
            f"Task '{task_id}' depends on '{dependency_id}', which is not a registered task"
        )


class TaskRegistry:
    """
    Owns the set of tasks and the dependency relation between them.
    持有任务集合及任务间的依赖关系。
    """

    def __init__(self):
        self._tasks: dict[str, Task] = {}        # 所有任务，key 为任务 ID
        self._graph: dict[str, set[str]] = {}    # 任务 ID -> 依赖 ID 集合

    # ------------------------------------------------------------------
    # Mutations
    # 变更方法
    # ------------------------------------------------------------------

    def add_task(self, task_id: str, priority: int, dependencies: Iterable[str] = ()) -> Task:
        """
        Register a new task.
        注册新任务。

        Raises DuplicateTaskError if `task_id` exists, UnknownDependencyError if
        any dependency is not registered yet. Forward references are rejected.
        """
        deps = list(dependencies)
        if task_id in self._tasks:
            raise DuplicateTaskError(task_id)
        self._check_dependencies(task_id, deps)

        task = Task(id=task_id, priority=priority, dependencies=set(deps))
        self._tasks[task_id] = task
        self._graph[task_id] = set(deps)

        logger.info("[Registry] Task added: %s (priority=%d, deps=%s)", task_id, priority, sorted(deps))
        return task

    def remove_task(self, task_id: str) -> None:
        """
        Remove a task and scrub it from every other task's dependencies.
        Removing an absent id is a no-op.

        删除任务，并从所有其他任务的依赖中清除该 ID。
        删除不存在的 ID 不报错（幂等）。
        """
        removed = self._tasks.pop(task_id, None)
        self._graph.pop(task_id, None)

        # 任务已不存在，任何任务都不应再引用它
        for other_id, deps in self._graph.items():
            deps.discard(task_id)
            self._tasks[other_id].dependencies.discard(task_id)

        if removed is not None:
            logger.info("[Registry] Task removed: %s", task_id)
        else:
            logger.debug("[Registry] Remove ignored, no such task: %s", task_id)

    def update_task(
        self,
        task_id: str,
        priority: int,
        dependencies: Iterable[str] = (),
        atomic: bool = False,
    ) -> Task:
        """
        Replace a task's definition (replace semantics, not merge).
        替换任务定义（整体替换，而非合并）。

        atomic=False: remove then add. Dependants lose their edge to `task_id`
        and a failing add leaves the task deleted.
        atomic=True: validate against the registry without `task_id` itself,
        then swap priority/dependencies in place. Dependants keep their edge
        and a failed validation changes nothing.
        """
        deps = list(dependencies)
        if not atomic:
            self.remove_task(task_id)
            return self.add_task(task_id, priority, deps)

        if task_id not in self._tasks:
            return self.add_task(task_id, priority, deps)

        # 自身不算已注册任务：与 remove + add 的校验结果一致
        self._check_dependencies(task_id, deps, exclude=task_id)

        task = Task(id=task_id, priority=priority, dependencies=set(deps))
        self._tasks[task_id] = task
        self._graph[task_id] = set(deps)

        logger.info("[Registry] Task replaced: %s (priority=%d, deps=%s)", task_id, priority, sorted(deps))
        return task

    # ------------------------------------------------------------------
    # Queries
    # 查询方法
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Task:
        """Return the task for `task_id`. Raises KeyError if absent."""
        return self._tasks[task_id]

    @property
    def tasks(self) -> dict[str, Task]:
        """Insertion-ordered copy of id -> Task. 返回任务字典的浅拷贝。"""
        return dict(self._tasks)

    @property
    def dependency_graph(self) -> dict[str, set[str]]:
        """Copy of id -> dependency ids. 返回依赖图的拷贝。"""
        return {tid: set(deps) for tid, deps in self._graph.items()}

    def dependents_of(self, task_id: str) -> list[str]:
        """
        Return ids of tasks that directly depend on `task_id`, in registry order.
        返回直接依赖 `task_id` 的任务 ID（按注册顺序）。
        """
        return [tid for tid, deps in self._graph.items() if task_id in deps]

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Validation
    # 校验
    # ------------------------------------------------------------------

    def _check_dependencies(self, task_id: str, deps: list[str], exclude: str | None = None) -> None:
        for dep in deps:
            if dep == exclude or dep not in self._tasks:
                raise UnknownDependencyError(task_id, dep)
