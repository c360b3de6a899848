"""
Task queue module - In-memory dependency-aware scheduling core.
任务队列模块 —— 内存中的依赖感知调度核心。

Components:
  - registry.py:      TaskRegistry, tasks + dependency graph
  - ordering.py:      ExecutionOrderScheduler (priority-weighted Kahn's algorithm)
  - state_machine.py: Task status state machine
  - assignment.py:    NodeAssignmentManager (round-robin, failure reassignment)
  - task_queue.py:    TaskQueue handle combining all of the above

模块组成：
  - registry.py:      TaskRegistry，任务与依赖图
  - ordering.py:      ExecutionOrderScheduler（优先级加权的 Kahn 算法）
  - state_machine.py: 任务状态机
  - assignment.py:    NodeAssignmentManager（轮询分配、节点失效重新分配）
  - task_queue.py:    组合以上组件的 TaskQueue 句柄
"""

from taskqueue.registry import (                # 任务注册表与异常
    DuplicateTaskError,
    TaskQueueError,
    TaskRegistry,
    UnknownDependencyError,
)
from taskqueue.ordering import ExecutionOrderScheduler, ScheduleResult   # 执行顺序调度器
from taskqueue.state_machine import InvalidTransitionError, TaskStateMachine  # 任务状态机
from taskqueue.assignment import NodeAssignmentManager                   # 节点分配管理
from taskqueue.task_queue import TaskQueue                               # 对外句柄
