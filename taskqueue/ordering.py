"""
ExecutionOrderScheduler - Priority-weighted topological ordering.
ExecutionOrderScheduler —— 按优先级加权的拓扑排序。

Kahn's algorithm with a max-priority ready set:
  1. remaining[t] = number of dependencies of t
  2. seed the ready set with every task whose remaining count is 0
  3. pop the highest-priority ready task; equal priorities pop in the order
     they became ready (FIFO), so ties are deterministic
  4. append it to the order, decrement the remaining count of its dependants,
     and push any dependant that reaches 0
  5. stop when the ready set is empty

Kahn 算法 + 最大优先级就绪集合：
  1. remaining[t] = t 的依赖数量
  2. 将 remaining 为 0 的任务放入就绪集合
  3. 取出优先级最高的就绪任务；优先级相同时按进入就绪集合的先后顺序（FIFO），保证结果确定
  4. 追加到执行顺序，下游任务的 remaining 减 1，降到 0 时入就绪集合
  5. 就绪集合为空时结束

Tasks caught in a dependency cycle (and anything depending on them) never
reach 0 and are left out of the order. This is not an error: the result
reports them as `unscheduled` instead.
处于依赖环中的任务（及依赖它们的任务）永远无法就绪，会被排除在执行顺序之外。
这不是错误：结果中通过 `unscheduled` 报告它们。
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from schema import Task

logger = logging.getLogger(__name__)


@dataclass
class ScheduleResult:
    """Outcome of one ordering pass. 一次排序的结果。"""
    order: list[str] = field(default_factory=list)         # 合法执行顺序
    unscheduled: list[str] = field(default_factory=list)   # 未能排入的任务（依赖环）

    @property
    def is_complete(self) -> bool:
        return not self.unscheduled


class ExecutionOrderScheduler:
    """
    Computes a total order over task ids that respects dependencies and
    prefers higher priority.
    计算满足依赖约束、并优先高优先级任务的全序。

    Stateless: every call works from the mappings it is given.
    无状态：每次调用只依赖传入的数据。
    """

    def compute_order(self, tasks: Mapping[str, Task], dependency_graph: Mapping[str, set[str]]) -> list[str]:
        """Return only the execution order. 只返回执行顺序。"""
        return self.schedule(tasks, dependency_graph).order

    def schedule(self, tasks: Mapping[str, Task], dependency_graph: Mapping[str, set[str]]) -> ScheduleResult:
        remaining: dict[str, int] = {}
        dependents: dict[str, list[str]] = {tid: [] for tid in tasks}
        for tid in tasks:
            deps = dependency_graph.get(tid, set())
            remaining[tid] = len(deps)
            for dep in deps:
                if dep in dependents:
                    dependents[dep].append(tid)

        # heap entries are (-priority, ready_seq, id): max priority first, FIFO on ties
        ready: list[tuple[int, int, str]] = []
        seq = 0
        for tid, task in tasks.items():
            if remaining[tid] == 0:
                heapq.heappush(ready, (-task.priority, seq, tid))
                seq += 1

        result = ScheduleResult()
        while ready:
            _, _, tid = heapq.heappop(ready)
            result.order.append(tid)
            logger.debug("[Scheduler] Next: %s (priority=%d)", tid, tasks[tid].priority)

            for dependent in dependents[tid]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, (-tasks[dependent].priority, seq, dependent))
                    seq += 1

        scheduled = set(result.order)
        result.unscheduled = [tid for tid in tasks if tid not in scheduled]
        if result.unscheduled:
            logger.warning(
                "[Scheduler] %d task(s) left unscheduled, dependency cycle suspected: %s",
                len(result.unscheduled), result.unscheduled,
            )
        return result
