"""依赖与就绪判定 -- 物化图上的纯查询

不修改图，也不访问存储。ready/blocked 的定义：
- ready: todo、未认领、所有直接前置已 done/canceled，
  且（若属于 epic）该 epic 依赖的每个 epic 都已完成
- blocked: 显式 blocked，或 todo 但前置未满足
"""

from .models.enums import SETTLED_STATES, TaskKind, TaskState, Worker, is_worker_allowed
from .models.graph import TaskGraph
from .models.task import Task


def is_epic_complete(graph: TaskGraph, epic_id: str) -> bool:
    """epic 下所有子任务均已 done/canceled 时为 True（无子任务也视为完成）"""
    return all(task.state in SETTLED_STATES for task in graph.children_of(epic_id))


def are_epic_deps_complete(graph: TaskGraph, epic_id: str) -> bool:
    """epic_id 依赖的每个 epic 是否都已完成"""
    for dep_id in graph.deps.forward(epic_id):
        dep = graph.tasks.get(dep_id)
        if dep is None or not dep.is_epic:
            continue
        if not is_epic_complete(graph, dep_id):
            return False
    return True


def _deps_satisfied(graph: TaskGraph, task: Task) -> bool:
    for dep_id in graph.deps.forward(task.id):
        dep = graph.tasks.get(dep_id)
        if dep is None:
            continue
        # 直接前置只看自身状态；epic 的状态不可设置，epic 间门控见 are_epic_deps_complete
        if dep.state not in SETTLED_STATES:
            return False
    if task.epic_id and not are_epic_deps_complete(graph, task.epic_id):
        return False
    return True


def is_ready(graph: TaskGraph, task: Task | None) -> bool:
    """任务当前是否可被领取"""
    if task is None:
        return False
    if task.state != TaskState.TODO or task.claimed_by:
        return False
    return _deps_satisfied(graph, task)


def is_blocked(graph: TaskGraph, task: Task | None) -> bool:
    """显式 blocked，或 todo 且前置未满足"""
    if task is None:
        return False
    if task.state == TaskState.BLOCKED:
        return True
    if task.state != TaskState.TODO or task.claimed_by:
        return False
    return not _deps_satisfied(graph, task)


def has_cycle(graph: TaskGraph, from_id: str, to_id: str) -> bool:
    """新增边 from_id -> to_id（from 依赖 to）是否会成环

    自环总是成环；否则从 to_id 沿现有正向边搜索，能到达 from_id 即成环。
    """
    if from_id == to_id:
        return True
    visited: set[str] = set()
    stack = [to_id]
    while stack:
        node = stack.pop()
        if node == from_id:
            return True
        if node in visited:
            continue
        visited.add(node)
        stack.extend(graph.deps.forward(node) - visited)
    return False


def _matches_kind(task: Task, kind: TaskKind | None) -> bool:
    return kind is None or kind == TaskKind.ANY or task.kind == kind


def list_tasks(
    graph: TaskGraph,
    epic_id: str | None = None,
    ready_only: bool = False,
    blocked_only: bool = False,
    kind: TaskKind | None = TaskKind.ANY,
) -> list[Task]:
    """按条件筛选任务，按 ID 排序

    Args:
        graph: 物化图
        epic_id: 只返回该 epic 的子任务
        ready_only: 只返回 ready 任务
        blocked_only: 只返回 blocked 任务
        kind: 条目类别过滤
    """
    tasks = []
    for task in graph.sorted_tasks():
        if epic_id and task.epic_id != epic_id:
            continue
        if not _matches_kind(task, kind):
            continue
        if ready_only and not is_ready(graph, task):
            continue
        if blocked_only and not is_blocked(graph, task):
            continue
        tasks.append(task)
    return tasks


def ready_tasks(
    graph: TaskGraph,
    epic_id: str | None = None,
    worker: Worker | None = None,
    kind: TaskKind | None = TaskKind.TASK,
) -> list[Task]:
    """ready 任务，按创建时间 FIFO 排序（同一时刻按 ID）

    第一个元素即 claim_next 的领取对象。
    """
    tasks = [
        task
        for task in list_tasks(graph, epic_id=epic_id, ready_only=True, kind=kind)
        if is_worker_allowed(task.worker, worker)
    ]
    tasks.sort(key=lambda t: (t.created_at, t.id))
    return tasks
