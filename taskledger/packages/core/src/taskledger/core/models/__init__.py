"""taskledger Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    CLAIM_CLEARING_STATES,
    CLAIM_REQUIRED_STATES,
    DEPENDS_LINK_KIND,
    SETTLED_STATES,
    VALID_TRANSITIONS,
    ClaimStatus,
    EventType,
    TaskKind,
    TaskState,
    Worker,
    is_worker_allowed,
    parse_state,
    parse_worker,
    validate_claim_invariant,
    validate_transition,
)
from .event import (
    KNOWN_EVENT_TYPES,
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
    decode_event,
    encode_event,
)
from .graph import DependencyGraph, TaskGraph
from .payloads import (
    BodyUpdatedPayload,
    DependencyPayload,
    EpicAssignedPayload,
    ResultAttachedPayload,
    StateChangedPayload,
    TaskClaimedPayload,
    TaskCreatedPayload,
    TaskUnclaimedPayload,
    WorkerChangedPayload,
)
from .task import PlanTaskInput, Task, TaskMeta, TaskResult

__all__ = [
    # 枚举
    "TaskState",
    "EventType",
    "Worker",
    "TaskKind",
    "ClaimStatus",
    "DEPENDS_LINK_KIND",
    "parse_state",
    "parse_worker",
    "is_worker_allowed",
    # 状态机
    "VALID_TRANSITIONS",
    "CLAIM_REQUIRED_STATES",
    "CLAIM_CLEARING_STATES",
    "SETTLED_STATES",
    "validate_transition",
    "validate_claim_invariant",
    # Task / Graph
    "Task",
    "TaskMeta",
    "TaskResult",
    "PlanTaskInput",
    "DependencyGraph",
    "TaskGraph",
    # Event
    "LedgerEvent",
    "KNOWN_EVENT_TYPES",
    "TaskCreatedEvent",
    "EpicCreatedEvent",
    "StateChangedEvent",
    "DependencyLinkedEvent",
    "DependencyUnlinkedEvent",
    "TaskClaimedEvent",
    "TaskUnclaimedEvent",
    "WorkerChangedEvent",
    "BodyUpdatedEvent",
    "EpicAssignedEvent",
    "ResultAttachedEvent",
    "decode_event",
    "encode_event",
    # Payloads
    "TaskCreatedPayload",
    "StateChangedPayload",
    "DependencyPayload",
    "TaskClaimedPayload",
    "TaskUnclaimedPayload",
    "WorkerChangedPayload",
    "BodyUpdatedPayload",
    "EpicAssignedPayload",
    "ResultAttachedPayload",
]
