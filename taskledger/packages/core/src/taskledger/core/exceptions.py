"""taskledger 异常体系

四类错误：
- 校验错误：输入不合法，直接拒绝，不尝试写日志
- 不变量违反：非法流转、认领不一致、依赖成环等，拒绝且不写日志
- 并发错误：锁忙/等锁超时，recoverable=True，调用方可退避重试
- 损坏错误：回放时发现日志损坏，对当前命令致命
"""

from pathlib import Path


class LedgerError(Exception):
    """taskledger 基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class DataDirNotFoundError(LedgerError):
    """从起始目录向上未找到数据目录"""

    def __init__(self, start: Path, dir_name: str) -> None:
        super().__init__(f"no {dir_name} directory found from {start} (run init)")
        self.start = start


# ============================================================
# 校验错误
# ============================================================


class LedgerValidationError(LedgerError):
    """输入校验失败"""


class UnknownTaskError(LedgerValidationError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"unknown task id {task_id}")
        self.task_id = task_id


class InvalidStateError(LedgerValidationError):
    def __init__(self, value: str) -> None:
        super().__init__(f"invalid state: {value}")
        self.value = value


class InvalidWorkerError(LedgerValidationError):
    def __init__(self, value: str) -> None:
        super().__init__(f"invalid worker {value} (use any, agent, or human)")
        self.value = value


class InvalidInputError(LedgerValidationError):
    """其它格式错误（空更新、摘要超长等）"""


class EpicOperationError(LedgerValidationError):
    """对 epic 执行了不适用的操作（设置状态、认领、附加结果等）"""


# ============================================================
# 不变量违反
# ============================================================


class InvariantViolationError(LedgerError):
    """写入会破坏图不变量"""


class IllegalTransitionError(InvariantViolationError):
    def __init__(self, from_state: str, to_state: str) -> None:
        super().__init__(f"invalid transition: {from_state} -> {to_state}")
        self.from_state = from_state
        self.to_state = to_state


class ClaimInvariantError(InvariantViolationError):
    def __init__(self, state: str, claimed_by: str) -> None:
        if claimed_by:
            message = f"state={state} must have no claim (claimed by {claimed_by})"
        else:
            message = f"state={state} requires a claim"
        super().__init__(message)
        self.state = state
        self.claimed_by = claimed_by


class SelfDependencyError(InvariantViolationError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"{task_id} cannot depend on itself")
        self.task_id = task_id


class DependencyCycleError(InvariantViolationError):
    def __init__(self, from_id: str, to_id: str) -> None:
        super().__init__(f"dependency {from_id} -> {to_id} would create a cycle")
        self.from_id = from_id
        self.to_id = to_id


class DependencyKindError(InvariantViolationError):
    """依赖只允许 task->task 或 epic->epic"""


class EpicReferenceError(InvariantViolationError):
    """epic_id 未指向一个已存在的 epic"""


# ============================================================
# 并发错误
# ============================================================


class LockError(LedgerError):
    """目录锁获取失败"""

    def __init__(self, message: str, lock_path: Path) -> None:
        super().__init__(message, recoverable=True)
        self.lock_path = lock_path


class LockBusyError(LockError):
    """锁被其它进程持有（fail-fast 模式）"""

    def __init__(self, lock_path: Path) -> None:
        super().__init__(f"lock busy: {lock_path}", lock_path)


class LockTimeoutError(LockError):
    """在等待上限内未能获得锁"""

    def __init__(self, lock_path: Path, timeout_s: float) -> None:
        super().__init__(f"lock timeout after {timeout_s:g}s: {lock_path}", lock_path)
        self.timeout_s = timeout_s


# ============================================================
# 损坏错误
# ============================================================


class CorruptionError(LedgerError):
    """事件日志损坏"""


class DuplicateTaskError(CorruptionError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"duplicate task id {task_id} in event log")
        self.task_id = task_id


class MalformedEventError(CorruptionError):
    """日志中间行无法解析，或已知类型的 payload 不合法"""

    def __init__(self, path: Path, line_no: int, snippet: str, cause: str) -> None:
        stripped = snippet.strip()
        if stripped.startswith(("<<<<<<<", "=======", ">>>>>>>")):
            message = (
                f"{path}:{line_no}: git conflict markers in event log "
                f"(resolve then run compact): {_clip(stripped)}"
            )
        else:
            message = (
                f"{path}:{line_no}: invalid record in event log: "
                f"{_clip(stripped)} ({cause})"
            )
        super().__init__(message)
        self.path = path
        self.line_no = line_no


def _clip(text: str, limit: int = 160) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
