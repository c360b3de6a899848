"""
Task State Machine - Validates and enforces task status transitions.
任务状态机 —— 校验并强制执行任务状态的合法转移。

Transition graph:
转移图：
    PENDING ──> ASSIGNED ──> DONE      (happy path / 正常路径)
    ASSIGNED ──> PENDING               (node failure or a new assignment pass / 节点失效或重新分配)
"""

from __future__ import annotations

import logging
from typing import Callable

from schema import Task, TaskStatus
from taskqueue.registry import TaskQueueError

logger = logging.getLogger(__name__)


class InvalidTransitionError(TaskQueueError):
    """
    Raised when an illegal status transition is attempted.
    当尝试非法状态转移时抛出此异常。
    """
    pass


VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING:  {TaskStatus.ASSIGNED},
    TaskStatus.ASSIGNED: {TaskStatus.PENDING, TaskStatus.DONE},
    # Terminal
    # 终态
    TaskStatus.DONE:     set(),
}


class TaskStateMachine:
    """
    Validates and applies task status transitions.
    校验并应用任务状态转移。
    """

    def __init__(self, on_transition: Callable[[str, TaskStatus, TaskStatus], None] | None = None):
        """
        Args:
            on_transition: Optional callback(task_id, old_status, new_status).
            on_transition: 可选回调 callback(任务 ID, 旧状态, 新状态)。
        """
        self._on_transition = on_transition

    def can_transition(self, task: Task, new_status: TaskStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(task.status, set())

    def transition(self, task: Task, new_status: TaskStatus) -> None:
        """
        Apply a transition. Raises InvalidTransitionError if illegal.
        应用状态转移。若转移非法则抛出 InvalidTransitionError。
        """
        if not self.can_transition(task, new_status):
            raise InvalidTransitionError(
                f"Task '{task.id}': cannot transition from {task.status.value} to {new_status.value}. "
                f"Valid targets: {sorted(s.value for s in VALID_TRANSITIONS.get(task.status, set()))}"
            )

        old_status = task.status
        task.status = new_status

        logger.debug("[SM] %s: %s -> %s", task.id, old_status.value, new_status.value)

        if self._on_transition:
            self._on_transition(task.id, old_status, new_status)
