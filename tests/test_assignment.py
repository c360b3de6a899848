"""
节点分配测试，覆盖:
  1. 轮询分配：每个节点得到 floor(N/M) 或 ceil(N/M) 个任务
  2. 节点失效：失效节点从分配表移除，任务重新分配到剩余节点
  3. 空节点池：计算顺序但不分配，不报错
  4. 任务状态机：PENDING / ASSIGNED / DONE

运行方式:
    python -m pytest tests/test_assignment.py -v
"""

from __future__ import annotations

import logging

import pytest

from schema import TaskStatus
from taskqueue.assignment import NodeAssignmentManager
from taskqueue.ordering import ExecutionOrderScheduler
from taskqueue.registry import TaskRegistry
from taskqueue.state_machine import InvalidTransitionError, TaskStateMachine


def _build_manager(nodes: list[str], n_tasks: int = 5) -> tuple[TaskRegistry, NodeAssignmentManager]:
    """n_tasks 个链式任务 t0 <- t1 <- ...，执行顺序即 t0, t1, ..."""
    reg = TaskRegistry()
    for i in range(n_tasks):
        reg.add_task(f"t{i}", 1, [f"t{i - 1}"] if i else [])
    manager = NodeAssignmentManager(reg, ExecutionOrderScheduler())
    for node_id in nodes:
        manager.add_node(node_id)
    return reg, manager


def _assigned_total(manager: NodeAssignmentManager) -> int:
    return sum(len(tasks) for tasks in manager.get_assignments().values())


class TestRoundRobin:

    @pytest.mark.parametrize("n_tasks,n_nodes", [(5, 3), (7, 3), (6, 2), (2, 4), (1, 1), (10, 4)])
    def test_balanced_counts(self, n_tasks, n_nodes):
        _, manager = _build_manager([f"n{i}" for i in range(n_nodes)], n_tasks)
        manager.assign_all()

        counts = [len(tasks) for tasks in manager.get_assignments().values()]
        assert len(counts) == n_nodes, "每个可用节点都应有条目（即使为空）"
        assert sum(counts) == n_tasks
        for c in counts:
            assert n_tasks // n_nodes <= c <= -(-n_tasks // n_nodes)

    def test_dealt_in_order_and_node_insertion_order(self):
        _, manager = _build_manager(["n1", "n2", "n3"], 5)
        manager.assign_all()

        assert manager.get_assignment_ids() == {
            "n1": ["t0", "t3"],
            "n2": ["t1", "t4"],
            "n3": ["t2"],
        }
        assert manager.node_for("t4") == "n2"
        assert manager.node_for("ghost") is None

    def test_empty_pool_places_nothing(self):
        reg, manager = _build_manager([], 3)
        manager.assign_all()

        assert manager.get_assignments() == {}
        assert all(t.status == TaskStatus.PENDING for t in reg.tasks.values())

    def test_table_rebuilt_on_each_pass(self):
        """每次分配都从零重建，新任务会出现在下一轮分配中."""
        reg, manager = _build_manager(["n1", "n2"], 2)
        manager.assign_all()
        reg.add_task("late", 3, [])
        manager.assign_all()

        assert manager.get_assignment_ids() == {"n1": ["late", "t1"], "n2": ["t0"]}

    def test_add_node_twice_is_noop(self):
        _, manager = _build_manager(["n1", "n2"])
        manager.add_node("n1")
        assert manager.nodes == ("n1", "n2")

    def test_get_assignments_returns_copy(self):
        _, manager = _build_manager(["n1"], 2)
        manager.assign_all()
        manager.get_assignments()["n1"].clear()
        assert len(manager.get_assignments()["n1"]) == 2


class TestNodeFailure:

    def test_remove_node_redistributes(self):
        """n1/n2/n3 分配后删除 n2：n2 不在分配表中，已分配任务总数不变."""
        reg, manager = _build_manager(["n1", "n2", "n3"], 5)
        manager.assign_all()
        former = [t.id for t in manager.get_assignments()["n2"]]

        manager.remove_node("n2")

        table = manager.get_assignment_ids()
        assert "n2" not in table
        assert manager.nodes == ("n1", "n3")
        assert _assigned_total(manager) == 5
        for tid in former:
            assert manager.node_for(tid) in ("n1", "n3"), f"{tid} 应被重新分配到剩余节点"
        assert table == {"n1": ["t0", "t2", "t4"], "n3": ["t1", "t3"]}

    def test_remove_idle_node_still_reassigns(self):
        """删除一个从未分配过任务的节点同样会触发完整的重新分配."""
        _, manager = _build_manager(["n1", "n2"], 3)
        assert manager.get_assignments() == {}

        manager.remove_node("n2")

        assert manager.get_assignment_ids() == {"n1": ["t0", "t1", "t2"]}

    def test_remove_absent_node_reassigns(self):
        _, manager = _build_manager(["n1"], 2)
        manager.remove_node("ghost")
        assert manager.get_assignment_ids() == {"n1": ["t0", "t1"]}

    def test_last_node_failure_keeps_released_tasks_pending(self):
        """最后一个节点失效：任务回到 PENDING 并留在待分配池，直到有新节点."""
        reg, manager = _build_manager(["n1"], 3)
        manager.assign_all()

        manager.remove_node("n1")

        assert manager.get_assignments() == {}
        assert [t.id for t in manager.released_tasks] == ["t0", "t1", "t2"]
        assert all(t.status == TaskStatus.PENDING for t in reg.tasks.values())

        manager.add_node("n2")
        manager.assign_all()
        assert manager.released_tasks == []
        assert manager.get_assignment_ids() == {"n2": ["t0", "t1", "t2"]}


class TestTaskStatus:

    def test_assign_marks_assigned(self):
        reg, manager = _build_manager(["n1"], 2)
        manager.assign_all()
        assert all(t.status == TaskStatus.ASSIGNED for t in reg.tasks.values())

    def test_done_tasks_are_not_redealt(self):
        """DONE 任务仍出现在执行顺序中，但不再分配给节点."""
        reg, manager = _build_manager(["n1", "n2"], 4)
        manager.assign_all()
        manager.mark_done("t0")
        manager.assign_all()

        assert manager.get_assignment_ids() == {"n1": ["t1", "t3"], "n2": ["t2"]}
        assert reg.get_task("t0").status == TaskStatus.DONE
        assert ExecutionOrderScheduler().compute_order(reg.tasks, reg.dependency_graph)[0] == "t0"

    def test_mark_done_requires_assignment(self):
        _, manager = _build_manager(["n1"], 1)
        with pytest.raises(InvalidTransitionError):
            manager.mark_done("t0")

    def test_mark_done_unknown_task(self):
        _, manager = _build_manager(["n1"], 1)
        with pytest.raises(KeyError):
            manager.mark_done("ghost")

    def test_state_machine_callback_and_terminal_state(self):
        seen = []
        reg, _ = _build_manager([], 1)
        task = reg.get_task("t0")
        sm = TaskStateMachine(on_transition=lambda tid, old, new: seen.append((tid, old, new)))

        sm.transition(task, TaskStatus.ASSIGNED)
        sm.transition(task, TaskStatus.DONE)

        assert seen == [
            ("t0", TaskStatus.PENDING, TaskStatus.ASSIGNED),
            ("t0", TaskStatus.ASSIGNED, TaskStatus.DONE),
        ]
        assert not sm.can_transition(task, TaskStatus.PENDING)
        with pytest.raises(InvalidTransitionError):
            sm.transition(task, TaskStatus.ASSIGNED)


class TestForget:

    def test_forget_drops_table_entry(self):
        reg, manager = _build_manager(["n1", "n2"], 3)
        manager.assign_all()

        manager.forget("t1")

        assert manager.node_for("t1") is None
        assert manager.get_assignment_ids() == {"n1": ["t0", "t2"], "n2": []}

    def test_forget_drops_released_task(self):
        """节点全部失效后删除任务：待分配池不应再报告已删除的任务."""
        reg, manager = _build_manager(["n1"], 2)
        manager.assign_all()
        manager.remove_node("n1")

        reg.remove_task("t1")
        manager.forget("t1")

        assert [t.id for t in manager.released_tasks] == ["t0"]

    def test_forget_unknown_is_noop(self):
        _, manager = _build_manager(["n1"], 2)
        manager.assign_all()
        manager.forget("ghost")
        assert manager.get_assignment_ids() == {"n1": ["t0", "t1"]}


class TestLogging:

    def test_remove_absent_node_from_empty_pool_is_quiet(self, caplog):
        """删除不存在的节点、且没有任务时，不记录「Node removed」也不告警."""
        caplog.set_level(logging.DEBUG, logger="taskqueue.assignment")
        _, manager = _build_manager([], 0)

        manager.remove_node("ghost")

        assert not any("Node removed" in r.getMessage() for r in caplog.records)
        assert not any(r.levelno >= logging.WARNING for r in caplog.records)

    def test_empty_pool_with_tasks_warns(self, caplog):
        caplog.set_level(logging.DEBUG, logger="taskqueue.assignment")
        _, manager = _build_manager([], 2)

        manager.assign_all()

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "2 task(s) left unassigned" in warnings[0].getMessage()

    def test_remove_known_node_logs_once(self, caplog):
        caplog.set_level(logging.INFO, logger="taskqueue.assignment")
        _, manager = _build_manager(["n1", "n2"], 1)

        manager.remove_node("n2")

        removed = [r for r in caplog.records if "Node removed" in r.getMessage()]
        assert [r.getMessage() for r in removed] == ["[Assign] Node removed: n2"]
