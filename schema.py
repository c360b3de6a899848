"""
Pydantic data models for the task queue.
Defines the task structure shared by the registry, scheduler and node assignment.
任务队列的 Pydantic 数据模型。
定义了注册表、调度器与节点分配三层共用的任务结构。
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """
    Task lifecycle states, managed by TaskStateMachine.
    任务生命周期状态，由 TaskStateMachine 强制管理合法转移。

    Transition graph:
    转移图：
        PENDING <──> ASSIGNED ──> DONE
    """
    PENDING = "pending"     # 等待分配（新建、更新或节点失效后被释放）
    ASSIGNED = "assigned"   # 已分配到某个节点
    DONE = "done"           # 已完成（终态，不再参与分配）


class Task(BaseModel):
    """
    A single unit of work.
    单个工作单元。

    Priority is a small integer, higher is more urgent (3 == HIGH, 2 == MEDIUM,
    1 == LOW). It is not range-checked.
    优先级为小整数，数值越大越紧急，不做范围校验。
    """
    id: str = Field(description="Unique task identifier")                                          # 任务唯一 ID
    priority: int = Field(description="Higher value runs first among ready tasks")                 # 优先级
    dependencies: set[str] = Field(default_factory=set, description="IDs that must run earlier")   # 前置任务 ID 集合
    status: TaskStatus = TaskStatus.PENDING                                                        # 当前状态

    def __str__(self) -> str:
        deps = ", ".join(sorted(self.dependencies))
        return f"Task({self.id}, priority={self.priority}, deps=[{deps}])"
