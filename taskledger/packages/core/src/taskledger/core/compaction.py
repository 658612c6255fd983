"""日志压缩 -- 物化图 -> 等价的最小事件序列

每个任务输出一条创建事件（使用创建时的原始取值），
随后仅在当前值与创建值不同、或该类事件在创建之后出现过时，
依次补一条 body / epic / worker / claim / state 事件，最后按时间顺序重放结果。
依赖边在所有任务之后各输出一条 DEP_LINKED，不需要任何 unlink。

回放 compact_events(g) 的输出应得到与 g 可观察等价的物化图。
"""

from datetime import UTC, datetime

from pydantic import BaseModel

from .models.enums import DEPENDS_LINK_KIND
from .models.event import (
    BodyUpdatedEvent,
    DependencyLinkedEvent,
    EpicAssignedEvent,
    EpicCreatedEvent,
    LedgerEvent,
    ResultAttachedEvent,
    StateChangedEvent,
    TaskClaimedEvent,
    TaskCreatedEvent,
    WorkerChangedEvent,
)
from .models.graph import TaskGraph
from .models.payloads import (
    BodyUpdatedPayload,
    DependencyPayload,
    EpicAssignedPayload,
    ResultAttachedPayload,
    StateChangedPayload,
    TaskClaimedPayload,
    TaskCreatedPayload,
    WorkerChangedPayload,
)
from .models.task import Task, TaskMeta


class CompactionReport(BaseModel):
    """一次压缩的统计"""

    events_before: int
    events_after: int
    task_count: int
    edge_count: int


def _pick_time(last_at: datetime | None, fallback: datetime) -> datetime:
    return last_at if last_at is not None else fallback


def _changed_since_creation(last_at: datetime | None, created_at: datetime) -> bool:
    return last_at is not None and last_at > created_at


def _task_events(task: Task, meta: TaskMeta) -> list[LedgerEvent]:
    created_at = meta.created_at
    events: list[LedgerEvent] = []

    creation = TaskCreatedPayload(
        id=task.id,
        uuid=task.uuid,
        epic_id=meta.created_epic_id,
        state=meta.created_state,
        body=meta.created_body,
        worker=meta.created_worker,
        created_at=created_at,
    )
    if task.is_epic:
        events.append(EpicCreatedEvent(timestamp=created_at, payload=creation))
    else:
        events.append(TaskCreatedEvent(timestamp=created_at, payload=creation))

    if task.body != meta.created_body or _changed_since_creation(meta.last_body_at, created_at):
        ts = _pick_time(meta.last_body_at, task.updated_at)
        events.append(
            BodyUpdatedEvent(
                timestamp=ts,
                payload=BodyUpdatedPayload(id=task.id, body=task.body, timestamp=ts),
            )
        )

    if not task.is_epic and (
        task.epic_id != meta.created_epic_id
        or _changed_since_creation(meta.last_epic_at, created_at)
    ):
        ts = _pick_time(meta.last_epic_at, task.updated_at)
        events.append(
            EpicAssignedEvent(
                timestamp=ts,
                payload=EpicAssignedPayload(id=task.id, epic_id=task.epic_id, timestamp=ts),
            )
        )

    if task.worker != meta.created_worker or _changed_since_creation(
        meta.last_worker_at, created_at
    ):
        ts = _pick_time(meta.last_worker_at, task.updated_at)
        events.append(
            WorkerChangedEvent(
                timestamp=ts,
                payload=WorkerChangedPayload(id=task.id, worker=task.worker, timestamp=ts),
            )
        )

    # claim 必须先于 state：进入 doing/error 时认领者已就位
    if task.claimed_by:
        ts = _pick_time(meta.last_claim_at, task.updated_at)
        events.append(
            TaskClaimedEvent(
                timestamp=ts,
                payload=TaskClaimedPayload(id=task.id, agent_id=task.claimed_by, timestamp=ts),
            )
        )

    if task.state != meta.created_state or _changed_since_creation(
        meta.last_state_at, created_at
    ):
        ts = _pick_time(meta.last_state_at, task.updated_at)
        events.append(
            StateChangedEvent(
                timestamp=ts,
                payload=StateChangedPayload(id=task.id, new_state=task.state, timestamp=ts),
            )
        )

    # results 新的在前，重放时需按时间正序输出
    for result in reversed(task.results):
        events.append(
            ResultAttachedEvent(
                timestamp=result.created_at,
                payload=ResultAttachedPayload(
                    task_id=task.id,
                    summary=result.summary,
                    path=result.path,
                    sha256_at_attach=result.sha256_at_attach,
                    mtime_at_attach=result.mtime_at_attach,
                    git_commit_at_attach=result.git_commit_at_attach,
                    timestamp=result.created_at,
                ),
            )
        )
    return events


def compact_events(graph: TaskGraph, now: datetime | None = None) -> list[LedgerEvent]:
    """生成可重建 graph 的最小事件序列

    Args:
        graph: 已回放的物化图
        now: 依赖边事件的时间戳，默认当前 UTC 时间
    """
    link_at = now or datetime.now(UTC)
    events: list[LedgerEvent] = []
    for task in graph.sorted_tasks():
        meta = graph.meta.get(task.id) or TaskMeta(
            created_body=task.body,
            created_state=task.state,
            created_worker=task.worker,
            created_epic_id=task.epic_id,
            created_at=task.created_at,
        )
        events.extend(_task_events(task, meta))

    for from_id, to_id in graph.deps.edges():
        events.append(
            DependencyLinkedEvent(
                timestamp=link_at,
                payload=DependencyPayload(from_id=from_id, to_id=to_id, kind=DEPENDS_LINK_KIND),
            )
        )
    return events
