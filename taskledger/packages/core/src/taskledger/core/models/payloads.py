"""Event Payload 子类型

所有事件的结构化 payload 定义。时间戳统一为带时区的 UTC datetime。
"""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, field_validator

from .enums import DEPENDS_LINK_KIND, TaskState, Worker, parse_worker


def _ensure_utc(value: datetime) -> datetime:
    """无时区的时间戳按 UTC 解释，其余统一换算到 UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


Timestamp = Annotated[datetime, AfterValidator(_ensure_utc)]


class TaskCreatedPayload(BaseModel):
    """TASK_CREATED / EPIC_CREATED 事件 payload"""

    id: str = Field(description="短 ID（面向人类）")
    uuid: str = Field(description="永久 UUID")
    epic_id: str = Field(default="", description="所属 epic；epic 本身为空")
    state: TaskState = Field(default=TaskState.TODO)
    body: str = Field(default="")
    worker: Worker = Field(default=Worker.ANY)
    created_at: Timestamp

    @field_validator("worker", mode="before")
    @classmethod
    def _normalize_worker(cls, value):
        if isinstance(value, str):
            return parse_worker(value)
        return value


class StateChangedPayload(BaseModel):
    """STATE_CHANGED 事件 payload"""

    id: str
    new_state: TaskState
    timestamp: Timestamp


class DependencyPayload(BaseModel):
    """DEP_LINKED / DEP_UNLINKED 事件 payload

    from_id 依赖 to_id（to_id 是 from_id 的前置）。
    """

    from_id: str
    to_id: str
    kind: str = Field(default=DEPENDS_LINK_KIND, description="依赖边类型")


class TaskClaimedPayload(BaseModel):
    """TASK_CLAIMED 事件 payload"""

    id: str
    agent_id: str
    timestamp: Timestamp


class TaskUnclaimedPayload(BaseModel):
    """TASK_UNCLAIMED 事件 payload"""

    id: str
    timestamp: Timestamp


class WorkerChangedPayload(BaseModel):
    """WORKER_CHANGED 事件 payload"""

    id: str
    worker: Worker
    timestamp: Timestamp

    @field_validator("worker", mode="before")
    @classmethod
    def _normalize_worker(cls, value):
        if isinstance(value, str):
            return parse_worker(value)
        return value


class BodyUpdatedPayload(BaseModel):
    """BODY_UPDATED 事件 payload"""

    id: str
    body: str
    timestamp: Timestamp


class EpicAssignedPayload(BaseModel):
    """EPIC_ASSIGNED 事件 payload（epic_id 为空表示移出 epic）"""

    id: str
    epic_id: str
    timestamp: Timestamp


class ResultAttachedPayload(BaseModel):
    """RESULT_ATTACHED 事件 payload

    只记录引用与证据，文件本身由外部存储负责。
    """

    task_id: str
    summary: str = Field(description="单行摘要，不超过 120 字符")
    path: str = Field(description="相对项目根目录的路径")
    sha256_at_attach: str
    mtime_at_attach: str = Field(default="")
    git_commit_at_attach: str = Field(default="")
    timestamp: Timestamp
