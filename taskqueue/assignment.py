"""
NodeAssignmentManager - Round-robin distribution of ordered work across nodes.
NodeAssignmentManager —— 将有序任务轮询分配到执行节点。

Every assignment pass is a full, stateless redistribution:
  1. reset the table so every available node has an empty list
  2. compute a fresh execution order over the whole registry
  3. deal the order to the nodes round-robin, in node insertion order

每次分配都是完整的、无状态的重新分配：
  1. 重置分配表，每个可用节点得到一个空列表
  2. 基于整个注册表重新计算执行顺序
  3. 按节点插入顺序轮询发放任务

Removing a node always triggers a new pass, even if the node held nothing.
Tasks marked DONE keep their place in the order but are never dealt.
删除节点总会触发重新分配，即使该节点上没有任务。
已标记 DONE 的任务仍保留在执行顺序中，但不会再被分配。
"""

from __future__ import annotations

import itertools
import logging

from schema import Task, TaskStatus
from taskqueue.ordering import ExecutionOrderScheduler
from taskqueue.registry import TaskRegistry
from taskqueue.state_machine import TaskStateMachine

logger = logging.getLogger(__name__)


class NodeAssignmentManager:
    """
    Owns the node pool and the node -> tasks assignment table.
    持有节点池以及「节点 -> 任务列表」分配表。

    Tasks are read by reference from the registry; identity is never copied
    or changed here, only status.
    任务通过引用从注册表读取；这里只修改状态，从不复制或修改任务身份。
    """

    def __init__(
        self,
        registry: TaskRegistry,
        scheduler: ExecutionOrderScheduler | None = None,
        state_machine: TaskStateMachine | None = None,
    ):
        self._registry = registry
        self._scheduler = scheduler or ExecutionOrderScheduler()
        self._sm = state_machine or TaskStateMachine()
        self._nodes: dict[str, None] = {}              # 有序节点集合（dict 保持插入顺序）
        self._assignments: dict[str, list[Task]] = {}  # 节点 ID -> 已分配任务
        self._released: list[Task] = []                # 节点失效后释放、等待重新分配的任务

    # ------------------------------------------------------------------
    # Node pool
    # 节点池
    # ------------------------------------------------------------------

    def add_node(self, node_id: str) -> None:
        if node_id in self._nodes:
            return
        self._nodes[node_id] = None
        logger.info("[Assign] Node added: %s", node_id)

    def remove_node(self, node_id: str) -> None:
        """
        Drop a node from the pool and redistribute all work.
        从节点池移除节点并重新分配全部任务。
        """
        if node_id in self._nodes:
            del self._nodes[node_id]
            logger.info("[Assign] Node removed: %s", node_id)
        self.handle_failure(node_id)

    @property
    def nodes(self) -> tuple[str, ...]:
        return tuple(self._nodes)

    # ------------------------------------------------------------------
    # Assignment
    # 分配
    # ------------------------------------------------------------------

    def assign_all(self) -> None:
        """
        Rebuild the assignment table from scratch.
        从零重建分配表。

        With an empty pool the order is still computed but nothing is placed.
        节点池为空时仍会计算执行顺序，但不分配任何任务。
        """
        self._assignments = {node_id: [] for node_id in self._nodes}

        for task in self._registry.tasks.values():
            if task.status == TaskStatus.ASSIGNED:
                self._sm.transition(task, TaskStatus.PENDING)

        order = self._scheduler.compute_order(self._registry.tasks, self._registry.dependency_graph)
        if not self._nodes:
            if order:
                logger.warning("[Assign] No available nodes; %d task(s) left unassigned", len(order))
            return

        node_cycle = itertools.cycle(self._nodes)
        placed = 0
        for task_id in order:
            task = self._registry.get_task(task_id)
            if task.status == TaskStatus.DONE:
                continue
            node_id = next(node_cycle)
            self._sm.transition(task, TaskStatus.ASSIGNED)
            self._assignments[node_id].append(task)
            placed += 1

        if self._released:
            logger.debug("[Assign] Redistributed %d released task(s)", len(self._released))
            self._released.clear()
        logger.info("[Assign] %d task(s) dealt across %d node(s)", placed, len(self._nodes))

    def handle_failure(self, node_id: str) -> None:
        """
        Release a failed node's tasks and redistribute everything.
        释放失效节点上的任务并重新分配全部任务。

        The released tasks are part of the recomputed order anyway; the full
        pass is kept so output does not depend on earlier assignments.
        被释放的任务本就会出现在重新计算的顺序中；保留全量重算，使结果与之前的分配无关。
        """
        failed = self._assignments.pop(node_id, [])
        for task in failed:
            if task.status == TaskStatus.ASSIGNED:
                self._sm.transition(task, TaskStatus.PENDING)
        self._released.extend(failed)
        if failed:
            logger.info("[Assign] Node %s failed, released %d task(s)", node_id, len(failed))

        self.assign_all()

    def mark_done(self, task_id: str) -> None:
        """
        Mark an assigned task as completed; it is skipped by later passes.
        将已分配任务标记为完成，之后的分配将跳过它。
        """
        self._sm.transition(self._registry.get_task(task_id), TaskStatus.DONE)

    def forget(self, task_id: str) -> None:
        """
        Drop every reference to `task_id` from the table and the pending pool.
        Called when the registry removes or replaces the task, so no stale
        object is reported as placed on a node.

        从分配表和待分配池中移除 `task_id` 的所有引用。
        注册表删除或替换任务时调用，避免旧对象仍显示在节点上。
        """
        for node_id, tasks in self._assignments.items():
            self._assignments[node_id] = [t for t in tasks if t.id != task_id]
        self._released = [t for t in self._released if t.id != task_id]
        logger.debug("[Assign] Forgot task %s", task_id)

    # ------------------------------------------------------------------
    # Queries
    # 查询
    # ------------------------------------------------------------------

    def get_assignments(self) -> dict[str, list[Task]]:
        return {node_id: list(tasks) for node_id, tasks in self._assignments.items()}

    def get_assignment_ids(self) -> dict[str, list[str]]:
        return {node_id: [t.id for t in tasks] for node_id, tasks in self._assignments.items()}

    def node_for(self, task_id: str) -> str | None:
        for node_id, tasks in self._assignments.items():
            if any(t.id == task_id for t in tasks):
                return node_id
        return None

    @property
    def released_tasks(self) -> list[Task]:
        """Tasks released by node failures that are still waiting for a node."""
        return list(self._released)
