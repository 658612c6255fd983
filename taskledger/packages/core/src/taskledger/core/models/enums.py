"""枚举定义 -- 任务状态机、事件类型、执行者类型

包含 TaskState 状态机、EventType、Worker、TaskKind 枚举，
以及 VALID_TRANSITIONS 合法流转映射和认领（claim）一致性约束。
"""

from enum import StrEnum


class TaskState(StrEnum):
    """Task 状态机"""

    TODO = "todo"
    DOING = "doing"
    DONE = "done"
    BLOCKED = "blocked"
    CANCELED = "canceled"
    ERROR = "error"


# 合法状态流转（from == to 的空操作另行放行）
# done/canceled 只能经由 todo 重新打开；error 必须回到 todo/doing 或放弃
VALID_TRANSITIONS: dict[TaskState, set[TaskState]] = {
    TaskState.TODO: {
        TaskState.DOING,
        TaskState.DONE,
        TaskState.BLOCKED,
        TaskState.CANCELED,
    },
    TaskState.DOING: {
        TaskState.TODO,
        TaskState.DONE,
        TaskState.BLOCKED,
        TaskState.CANCELED,
        TaskState.ERROR,
    },
    TaskState.BLOCKED: {
        TaskState.TODO,
        TaskState.DOING,
        TaskState.DONE,
        TaskState.CANCELED,
    },
    TaskState.DONE: {TaskState.TODO},
    TaskState.CANCELED: {TaskState.TODO},
    TaskState.ERROR: {TaskState.TODO, TaskState.DOING, TaskState.CANCELED},
}

# 必须持有认领者的状态
CLAIM_REQUIRED_STATES: set[TaskState] = {TaskState.DOING, TaskState.ERROR}

# 必须无认领者的状态；进入这些状态时回放会强制清空 claimed_by
CLAIM_CLEARING_STATES: set[TaskState] = {
    TaskState.TODO,
    TaskState.DONE,
    TaskState.CANCELED,
}

# 依赖被视为已满足的状态
SETTLED_STATES: set[TaskState] = {TaskState.DONE, TaskState.CANCELED}


class EventType(StrEnum):
    """事件类型"""

    TASK_CREATED = "TASK_CREATED"
    EPIC_CREATED = "EPIC_CREATED"
    STATE_CHANGED = "STATE_CHANGED"
    DEP_LINKED = "DEP_LINKED"
    DEP_UNLINKED = "DEP_UNLINKED"
    TASK_CLAIMED = "TASK_CLAIMED"
    TASK_UNCLAIMED = "TASK_UNCLAIMED"
    WORKER_CHANGED = "WORKER_CHANGED"
    BODY_UPDATED = "BODY_UPDATED"
    EPIC_ASSIGNED = "EPIC_ASSIGNED"
    RESULT_ATTACHED = "RESULT_ATTACHED"


class Worker(StrEnum):
    """执行者亲和性"""

    ANY = "any"
    AGENT = "agent"
    HUMAN = "human"


class TaskKind(StrEnum):
    """条目类别（用于列表过滤）"""

    ANY = "any"
    TASK = "task"
    EPIC = "epic"


class ClaimStatus(StrEnum):
    """claim_next 的结果分类"""

    CLAIMED = "claimed"
    NO_READY = "no_ready"


# 依赖边类型（目前只有 depends）
DEPENDS_LINK_KIND = "depends"


def parse_state(value: str) -> TaskState:
    """解析状态名（大小写、首尾空白不敏感）

    Raises:
        ValueError: 未知状态名
    """
    return TaskState(value.strip().lower())


def parse_worker(value: str | None) -> Worker:
    """解析执行者亲和性，空值视为 any

    Raises:
        ValueError: 未知执行者
    """
    normalized = (value or "").strip().lower()
    if normalized == "":
        return Worker.ANY
    return Worker(normalized)


def is_worker_allowed(task_worker: Worker, as_worker: Worker | None) -> bool:
    """判断以 as_worker 身份是否可领取 task_worker 亲和性的任务"""
    if as_worker is None or as_worker == Worker.ANY:
        return True
    return task_worker == Worker.ANY or task_worker == as_worker


def validate_transition(from_state: TaskState, to_state: TaskState) -> bool:
    """验证状态流转是否合法

    Args:
        from_state: 当前状态
        to_state: 目标状态

    Returns:
        True 如果流转合法（含空操作），否则 False
    """
    if from_state == to_state:
        return True
    allowed = VALID_TRANSITIONS.get(from_state, set())
    return to_state in allowed


def validate_claim_invariant(state: TaskState, claimed_by: str) -> bool:
    """验证状态与认领者的一致性

    doing/error 必须有认领者；todo/done/canceled 必须无认领者；
    blocked 不作约束。
    """
    if state in CLAIM_REQUIRED_STATES:
        return claimed_by != ""
    if state in CLAIM_CLEARING_STATES:
        return claimed_by == ""
    return True
