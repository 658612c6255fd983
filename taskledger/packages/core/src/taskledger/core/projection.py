"""Projection 回放模块 -- 事件序列 -> 物化图

纯函数式归约：相同的事件序列总是得到相同的 TaskGraph。
- 按事件类型穷举分派；引用未知任务 ID 的事件直接跳过（向前兼容）
- 同一 ID 的重复创建视为日志损坏，立即失败
- 进入 todo/done/canceled 时强制清空 claimed_by（回放期结构性不变量）
- 扫描期间只维护正向依赖边，扫描结束后一次性重建反向索引
"""

import time
from collections.abc import Callable, Iterable
from datetime import datetime

import structlog

from .exceptions import DuplicateTaskError, LedgerError
from .models.enums import CLAIM_CLEARING_STATES, DEPENDS_LINK_KIND, EventType
from .models.event import (
    BodyUpdatedEvent,
    DependencyLinkedEvent,
    DependencyUnlinkedEvent,
    EpicAssignedEvent,
    EpicCreatedEvent,
    LedgerEvent,
    ResultAttachedEvent,
    StateChangedEvent,
    TaskClaimedEvent,
    TaskCreatedEvent,
    TaskUnclaimedEvent,
    WorkerChangedEvent,
)
from .models.graph import TaskGraph
from .models.task import Task, TaskMeta, TaskResult
from .store.protocols import EventStore

log = structlog.get_logger()


def _advance(current: datetime, candidate: datetime) -> datetime:
    """updated_at 只前进不后退（容忍时钟偏差）"""
    return candidate if candidate > current else current


def _apply_created(graph: TaskGraph, event: TaskCreatedEvent | EpicCreatedEvent) -> None:
    data = event.payload
    if data.id in graph.tasks:
        raise DuplicateTaskError(data.id)
    is_epic = event.type == EventType.EPIC_CREATED
    epic_id = "" if is_epic else data.epic_id
    graph.tasks[data.id] = Task(
        id=data.id,
        uuid=data.uuid,
        epic_id=epic_id,
        is_epic=is_epic,
        state=data.state,
        body=data.body,
        worker=data.worker,
        created_at=data.created_at,
        updated_at=data.created_at,
    )
    graph.meta[data.id] = TaskMeta(
        created_body=data.body,
        created_state=data.state,
        created_worker=data.worker,
        created_epic_id=epic_id,
        created_at=data.created_at,
    )


def _apply_state(graph: TaskGraph, event: StateChangedEvent) -> None:
    data = event.payload
    task = graph.tasks.get(data.id)
    if task is None:
        return
    task.state = data.new_state
    task.updated_at = _advance(task.updated_at, data.timestamp)
    if data.new_state in CLAIM_CLEARING_STATES:
        task.claimed_by = ""
    graph.meta[data.id].last_state_at = data.timestamp


def _apply_claim(graph: TaskGraph, event: TaskClaimedEvent) -> None:
    data = event.payload
    task = graph.tasks.get(data.id)
    if task is None:
        return
    task.claimed_by = data.agent_id
    graph.meta[data.id].last_claim_at = data.timestamp


def _apply_unclaim(graph: TaskGraph, event: TaskUnclaimedEvent) -> None:
    task = graph.tasks.get(event.payload.id)
    if task is None:
        return
    task.claimed_by = ""


def _apply_link(graph: TaskGraph, event: DependencyLinkedEvent) -> None:
    data = event.payload
    if data.kind != DEPENDS_LINK_KIND:
        return
    if data.from_id not in graph.tasks or data.to_id not in graph.tasks:
        return
    graph.deps.add_edge(data.from_id, data.to_id)


def _apply_unlink(graph: TaskGraph, event: DependencyUnlinkedEvent) -> None:
    data = event.payload
    if data.kind != DEPENDS_LINK_KIND:
        return
    graph.deps.remove_edge(data.from_id, data.to_id)


def _apply_worker(graph: TaskGraph, event: WorkerChangedEvent) -> None:
    data = event.payload
    task = graph.tasks.get(data.id)
    if task is None:
        return
    task.worker = data.worker
    task.updated_at = _advance(task.updated_at, data.timestamp)
    graph.meta[data.id].last_worker_at = data.timestamp


def _apply_body(graph: TaskGraph, event: BodyUpdatedEvent) -> None:
    data = event.payload
    task = graph.tasks.get(data.id)
    if task is None:
        return
    task.body = data.body
    task.updated_at = _advance(task.updated_at, data.timestamp)
    graph.meta[data.id].last_body_at = data.timestamp


def _apply_epic(graph: TaskGraph, event: EpicAssignedEvent) -> None:
    data = event.payload
    task = graph.tasks.get(data.id)
    if task is None:
        return
    task.epic_id = data.epic_id
    task.updated_at = _advance(task.updated_at, data.timestamp)
    graph.meta[data.id].last_epic_at = data.timestamp


def _apply_result(graph: TaskGraph, event: ResultAttachedEvent) -> None:
    data = event.payload
    task = graph.tasks.get(data.task_id)
    if task is None:
        return
    result = TaskResult(
        summary=data.summary,
        path=data.path,
        sha256_at_attach=data.sha256_at_attach,
        mtime_at_attach=data.mtime_at_attach,
        git_commit_at_attach=data.git_commit_at_attach,
        created_at=data.timestamp,
    )
    task.results.insert(0, result)
    task.updated_at = _advance(task.updated_at, data.timestamp)


# 每个 EventType 必须恰好对应一个处理器
_HANDLERS: dict[EventType, Callable[[TaskGraph, LedgerEvent], None]] = {
    EventType.TASK_CREATED: _apply_created,
    EventType.EPIC_CREATED: _apply_created,
    EventType.STATE_CHANGED: _apply_state,
    EventType.DEP_LINKED: _apply_link,
    EventType.DEP_UNLINKED: _apply_unlink,
    EventType.TASK_CLAIMED: _apply_claim,
    EventType.TASK_UNCLAIMED: _apply_unclaim,
    EventType.WORKER_CHANGED: _apply_worker,
    EventType.BODY_UPDATED: _apply_body,
    EventType.EPIC_ASSIGNED: _apply_epic,
    EventType.RESULT_ATTACHED: _apply_result,
}

_missing = set(EventType) - set(_HANDLERS)
if _missing:
    raise RuntimeError(f"projection handlers missing for {sorted(_missing)}")


def apply_event(graph: TaskGraph, event: LedgerEvent) -> None:
    """将单个事件应用到物化图（就地修改，不重建 deps/rdeps 列表）

    Raises:
        DuplicateTaskError: 重复创建同一 ID
    """
    handler = _HANDLERS.get(EventType(event.type))
    if handler is None:
        raise LedgerError(f"no projection handler for event type {event.type}")
    handler(graph, event)


def finalize(graph: TaskGraph) -> TaskGraph:
    """扫描结束后：重建反向索引并物化每个任务的有序 deps/rdeps"""
    graph.deps.rebuild_reverse()
    for task_id, task in graph.tasks.items():
        task.deps = sorted(graph.deps.forward(task_id))
        task.rdeps = sorted(graph.deps.reverse(task_id))
    return graph


def replay(events: Iterable[LedgerEvent]) -> TaskGraph:
    """回放事件序列得到物化图"""
    graph = TaskGraph()
    for event in events:
        apply_event(graph, event)
    return finalize(graph)


def load_graph(store: EventStore) -> TaskGraph:
    """读取日志当前快照并回放

    Args:
        store: EventStore 实例

    Returns:
        物化图
    """
    start_time = time.monotonic()
    snapshot = store.read_all()
    graph = replay(snapshot.events)
    log.debug(
        "projection_replayed",
        event_count=len(snapshot.events),
        task_count=len(graph.tasks),
        edge_count=len(graph.deps),
        notice_count=len(snapshot.notices),
        elapsed_ms=int((time.monotonic() - start_time) * 1000),
    )
    return graph
