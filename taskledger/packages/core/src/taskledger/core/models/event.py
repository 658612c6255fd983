"""Event Domain Model -- 事件日志记录

事件日志 append-only，不允许更新或删除（压缩除外）。
每条记录形如 {"type", "timestamp", "payload"}，type 决定 payload 结构。
所有事件类型组成一个封闭的带标签联合（discriminated union），
读取时一次性解码，回放器按类型穷举分派。
"""

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from .enums import EventType
from .payloads import (
    BodyUpdatedPayload,
    DependencyPayload,
    EpicAssignedPayload,
    ResultAttachedPayload,
    StateChangedPayload,
    TaskClaimedPayload,
    TaskCreatedPayload,
    TaskUnclaimedPayload,
    Timestamp,
    WorkerChangedPayload,
)


class _EventBase(BaseModel):
    """事件公共字段"""

    timestamp: Timestamp = Field(description="事件时间戳（UTC）")


class TaskCreatedEvent(_EventBase):
    type: Literal["TASK_CREATED"] = EventType.TASK_CREATED.value
    payload: TaskCreatedPayload


class EpicCreatedEvent(_EventBase):
    type: Literal["EPIC_CREATED"] = EventType.EPIC_CREATED.value
    payload: TaskCreatedPayload


class StateChangedEvent(_EventBase):
    type: Literal["STATE_CHANGED"] = EventType.STATE_CHANGED.value
    payload: StateChangedPayload


class DependencyLinkedEvent(_EventBase):
    type: Literal["DEP_LINKED"] = EventType.DEP_LINKED.value
    payload: DependencyPayload


class DependencyUnlinkedEvent(_EventBase):
    type: Literal["DEP_UNLINKED"] = EventType.DEP_UNLINKED.value
    payload: DependencyPayload


class TaskClaimedEvent(_EventBase):
    type: Literal["TASK_CLAIMED"] = EventType.TASK_CLAIMED.value
    payload: TaskClaimedPayload


class TaskUnclaimedEvent(_EventBase):
    type: Literal["TASK_UNCLAIMED"] = EventType.TASK_UNCLAIMED.value
    payload: TaskUnclaimedPayload


class WorkerChangedEvent(_EventBase):
    type: Literal["WORKER_CHANGED"] = EventType.WORKER_CHANGED.value
    payload: WorkerChangedPayload


class BodyUpdatedEvent(_EventBase):
    type: Literal["BODY_UPDATED"] = EventType.BODY_UPDATED.value
    payload: BodyUpdatedPayload


class EpicAssignedEvent(_EventBase):
    type: Literal["EPIC_ASSIGNED"] = EventType.EPIC_ASSIGNED.value
    payload: EpicAssignedPayload


class ResultAttachedEvent(_EventBase):
    type: Literal["RESULT_ATTACHED"] = EventType.RESULT_ATTACHED.value
    payload: ResultAttachedPayload


LedgerEvent = Annotated[
    TaskCreatedEvent
    | EpicCreatedEvent
    | StateChangedEvent
    | DependencyLinkedEvent
    | DependencyUnlinkedEvent
    | TaskClaimedEvent
    | TaskUnclaimedEvent
    | WorkerChangedEvent
    | BodyUpdatedEvent
    | EpicAssignedEvent
    | ResultAttachedEvent,
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[LedgerEvent] = TypeAdapter(LedgerEvent)

KNOWN_EVENT_TYPES: frozenset[str] = frozenset(t.value for t in EventType)


def decode_event(record: dict[str, Any]) -> LedgerEvent:
    """将一条已解析的 JSON 记录解码为具体事件类型

    Raises:
        pydantic.ValidationError: payload 结构或时间戳不合法
    """
    return _EVENT_ADAPTER.validate_python(record)


def encode_event(event: LedgerEvent) -> str:
    """序列化为单行 JSON（不含换行符）"""
    return json.dumps(
        event.model_dump(mode="json"),
        ensure_ascii=False,
        separators=(",", ":"),
    )
