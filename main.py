"""
Task queue demo - Command line driver.
任务队列演示 —— 命令行入口。

Runs the reference scenario against a TaskQueue and renders the execution
order and the node assignment table with a rich console UI.
对 TaskQueue 运行参考场景，并通过 Rich 控制台展示执行顺序与节点分配表。
"""

from __future__ import annotations

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

import config
from taskqueue import TaskQueue

console = Console()

# Priority -> Rich style mapping
# 优先级 -> Rich 样式映射
_PRIORITY_STYLES = {
    3: "bold red",   # HIGH
    2: "yellow",     # MEDIUM
    1: "dim",        # LOW
}


# ======================================================================
# Rendering
# 渲染
# ======================================================================

def render_order(queue: TaskQueue) -> Panel:
    """
    Execution order as a single arrow-separated line, plus any unscheduled ids.
    用箭头连接的执行顺序；若存在未排入的任务一并显示。
    """
    result = queue.schedule()
    parts = []
    for task_id in result.order:
        style = _PRIORITY_STYLES.get(queue.get_task(task_id).priority, "white")
        parts.append(f"[{style}]{task_id}[/{style}]")
    body = " -> ".join(parts) or "[dim](empty)[/dim]"
    if result.unscheduled:
        body += f"\n[red]Unscheduled (cycle): {', '.join(result.unscheduled)}[/red]"
    return Panel(body, title="[bold]Execution Order[/bold]", border_style="blue")


def render_assignments(queue: TaskQueue) -> Table:
    """
    Node assignment table: one row per node.
    节点分配表：每个节点一行。
    """
    table = Table(title="Node Assignments", show_lines=False)
    table.add_column("Node", style="cyan")
    table.add_column("Tasks")
    table.add_column("Count", justify="right")
    for node_id, tasks in queue.get_assignments().items():
        table.add_row(node_id, ", ".join(str(t) for t in tasks) or "-", str(len(tasks)))
    return table


# ======================================================================
# Scenario
# 演示场景
# ======================================================================

def build_demo_queue() -> TaskQueue:
    """
    The reference scenario: five tasks, one update, three nodes, one node failure.
    参考场景：五个任务、一次更新、三个节点、一次节点失效。
    """
    queue = TaskQueue()

    queue.add_task("A", 3, [])
    queue.add_task("B", 2, ["A"])
    queue.add_task("C", 1, ["A"])
    queue.add_task("D", 3, ["B", "C"])
    queue.add_task("E", 2, ["C", "D"])

    queue.update_task("D", 2, ["B"])

    queue.add_node("node1")
    queue.add_node("node2")
    queue.add_node("node3")

    queue.remove_node("node2")

    queue.assign_tasks_to_nodes()
    return queue


# ======================================================================
# Main
# 主函数
# ======================================================================

def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging with rich handler.
    使用 Rich 处理器配置日志系统。
    verbose=True 时启用 DEBUG 级别，否则使用 config.LOG_LEVEL。
    """
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
    )


def main() -> None:
    """
    程序入口：-v / --verbose 启用调试日志。
    """
    verbose = "--verbose" in sys.argv or "-v" in sys.argv
    setup_logging(verbose)

    queue = build_demo_queue()
    console.print(render_order(queue))
    console.print(render_assignments(queue))
    console.print(f"[dim]{queue.summary()}[/dim]")


if __name__ == "__main__":
    main()
