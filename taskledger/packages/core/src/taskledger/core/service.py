"""TaskLedger -- 并发协调器（所有写操作的唯一入口）

每个写操作都是一个原子单元：
1. 获取目录排他锁
2. 回放当前日志得到物化图
3. 校验（状态机、认领一致性、依赖规则、epic 引用）
4. 校验全部通过后一次性追加事件，再释放锁

任何校验失败都在追加之前抛出，日志保持不变。
只读查询不加锁，每次回放最新快照。
"""

import base64
import secrets
import time
from collections.abc import Callable, Container
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, ValidationError
from ulid import ULID

from .compaction import CompactionReport, compact_events
from .config import (
    DEFAULT_LOCK_TIMEOUT_S,
    RESULT_SUMMARY_MAX_LEN,
    SHORT_ID_LENGTH,
    SHORT_ID_MAX_ATTEMPTS,
    LedgerConfig,
    load_ledger_config,
    resolve_agent_id,
    resolve_data_dir,
)
from .exceptions import (
    ClaimInvariantError,
    DependencyCycleError,
    DependencyKindError,
    EpicOperationError,
    EpicReferenceError,
    IllegalTransitionError,
    InvalidInputError,
    InvalidStateError,
    InvalidWorkerError,
    LedgerError,
    SelfDependencyError,
    UnknownTaskError,
)
from .logging_config import ledger_log_context
from .models.enums import (
    CLAIM_CLEARING_STATES,
    DEPENDS_LINK_KIND,
    ClaimStatus,
    TaskKind,
    TaskState,
    Worker,
    parse_state,
    parse_worker,
    validate_claim_invariant,
    validate_transition,
)
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
from .models.payloads import (
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
from .models.task import PlanTaskInput, Task, TaskResult
from .projection import apply_event, finalize, load_graph, replay
from .readiness import has_cycle
from .readiness import list_tasks as _list_tasks
from .readiness import ready_tasks as _ready_tasks
from .store import create_event_store
from .store.protocols import EventStore

log = structlog.get_logger()


class ClaimResult(BaseModel):
    """claim_next 的结果；没有 ready 任务是正常结果而不是错误"""

    status: ClaimStatus
    task: Task | None = None
    agent_id: str = ""
    claimed_at: datetime | None = None


class PlanResult(BaseModel):
    """plan 的结果：新 epic、按 ref 索引的任务、新建的依赖边"""

    epic: Task
    tasks: dict[str, Task]
    edges: list[tuple[str, str]]


def _new_short_id(existing: Container[str]) -> str:
    """4 字节随机数 base32 编码后取前 6 位，与已有 ID 冲突则重试"""
    for _ in range(SHORT_ID_MAX_ATTEMPTS):
        encoded = base64.b32encode(secrets.token_bytes(4)).decode("ascii")
        candidate = encoded[:SHORT_ID_LENGTH].upper()
        if candidate not in existing:
            return candidate
    raise LedgerError("failed to generate unique id")


def _new_uuid() -> str:
    return str(ULID().to_uuid())


def _coerce_state(value: TaskState | str) -> TaskState:
    if isinstance(value, TaskState):
        return value
    try:
        return parse_state(value)
    except ValueError as e:
        raise InvalidStateError(value) from e


def _coerce_worker(value: Worker | str | None) -> Worker:
    if isinstance(value, Worker):
        return value
    try:
        return parse_worker(value)
    except ValueError as e:
        raise InvalidWorkerError(str(value)) from e


def _require_task(graph: TaskGraph, task_id: str) -> Task:
    task = graph.get(task_id)
    if task is None:
        raise UnknownTaskError(task_id)
    return task


def _require_epic(graph: TaskGraph, epic_id: str) -> Task:
    epic = graph.get(epic_id)
    if epic is None:
        raise EpicReferenceError(f"unknown epic id {epic_id}")
    if not epic.is_epic:
        raise EpicReferenceError(f"task {epic_id} is not an epic")
    return epic


def _validate_dependency(graph: TaskGraph, from_id: str, to_id: str) -> None:
    """依赖边规则：端点存在、非自环、同类（task-task 或 epic-epic）"""
    from_task = _require_task(graph, from_id)
    to_task = _require_task(graph, to_id)
    if from_id == to_id:
        raise SelfDependencyError(from_id)
    if from_task.is_epic != to_task.is_epic:
        if from_task.is_epic:
            raise DependencyKindError("epic cannot depend on task")
        raise DependencyKindError("task cannot depend on epic")


def _parse_plan_tasks(tasks: list[PlanTaskInput | dict]) -> list[PlanTaskInput]:
    """校验 plan 输入：ref 非空且唯一，after 只能引用本 plan 内的其它 ref"""
    if not tasks:
        raise InvalidInputError("plan requires at least one task")
    try:
        parsed = [
            t if isinstance(t, PlanTaskInput) else PlanTaskInput.model_validate(t) for t in tasks
        ]
    except ValidationError as e:
        raise InvalidInputError(f"invalid plan task: {e}") from e

    refs: set[str] = set()
    for i, task in enumerate(parsed):
        ref = task.ref
        if not ref.strip():
            raise InvalidInputError(f"tasks[{i}].ref cannot be empty")
        if ref in refs:
            raise InvalidInputError(f"duplicate ref {ref!r} at tasks[{i}]")
        refs.add(ref)

    for task in parsed:
        for dep in task.after:
            if dep == task.ref:
                raise SelfDependencyError(dep)
            if dep not in refs:
                raise InvalidInputError(f"unknown ref {dep!r} in after of {task.ref!r}")
    return parsed


def _validate_summary(summary: str) -> str:
    summary = summary.strip()
    if not summary:
        raise InvalidInputError("result summary required")
    if "\n" in summary or "\r" in summary:
        raise InvalidInputError("result summary must be single line")
    if len(summary) > RESULT_SUMMARY_MAX_LEN:
        raise InvalidInputError(
            f"result summary too long (max {RESULT_SUMMARY_MAX_LEN} chars)"
        )
    return summary


class TaskLedger:
    """任务图服务，作用域为一个数据目录"""

    def __init__(
        self,
        store: EventStore,
        lock_timeout_s: float = DEFAULT_LOCK_TIMEOUT_S,
        agent_id: str = "",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Args:
            store: EventStore 实例
            lock_timeout_s: 等锁上限，0 表示锁忙立即失败
            agent_id: 默认认领者身份（隐式认领与 claim 时使用）
            clock: 时间源，默认当前 UTC 时间
        """
        self._store = store
        self._lock_timeout_s = lock_timeout_s
        self._agent_id = agent_id
        self._clock = clock or (lambda: datetime.now(UTC))

    @classmethod
    def from_config(cls, config: LedgerConfig | None = None) -> "TaskLedger":
        """按配置（默认从环境变量加载）创建服务

        数据目录经 resolve_data_dir 确定（未显式设置时向上查找），
        默认认领者经 resolve_agent_id 解析（最终回退到 user@host）。

        Raises:
            DataDirNotFoundError: 找不到数据目录
        """
        config = config or load_ledger_config()
        return cls(
            create_event_store(resolve_data_dir(config)),
            lock_timeout_s=config.lock_timeout_s,
            agent_id=resolve_agent_id(config.agent_id),
        )

    @property
    def store(self) -> EventStore:
        return self._store

    def _now(self) -> datetime:
        return self._clock()

    def _commit(
        self,
        operation: str,
        build: Callable[[TaskGraph, datetime], list[LedgerEvent]],
    ) -> TaskGraph:
        """锁内 回放 -> 构建并校验 -> 追加；返回包含新事件的物化图"""
        start_time = time.monotonic()
        with ledger_log_context(self._store.data_dir, operation):
            with self._store.lock(self._lock_timeout_s):
                graph = load_graph(self._store)
                now = self._now()
                events = build(graph, now)
                self._store.append(events)

            for event in events:
                apply_event(graph, event)
            finalize(graph)
            log.info(
                "ledger_write_committed",
                event_count=len(events),
                elapsed_ms=int((time.monotonic() - start_time) * 1000),
            )
        return graph

    # ============================================================
    # 创建
    # ============================================================

    def create_epic(self, body: str = "", worker: Worker | str | None = Worker.ANY) -> Task:
        """创建 epic"""
        return self._create(body=body, epic_id="", is_epic=True, worker=worker)

    def create_task(
        self,
        body: str = "",
        epic_id: str | None = None,
        worker: Worker | str | None = Worker.ANY,
    ) -> Task:
        """创建任务

        Raises:
            EpicReferenceError: epic_id 不存在或不是 epic
            InvalidWorkerError: worker 不合法
        """
        return self._create(body=body, epic_id=epic_id or "", is_epic=False, worker=worker)

    def _create(self, body: str, epic_id: str, is_epic: bool, worker) -> Task:
        resolved_worker = _coerce_worker(worker)
        created: dict[str, str] = {}

        def build(graph: TaskGraph, now: datetime) -> list[LedgerEvent]:
            if epic_id:
                _require_epic(graph, epic_id)
            payload = TaskCreatedPayload(
                id=_new_short_id(graph.tasks),
                uuid=_new_uuid(),
                epic_id=epic_id,
                state=TaskState.TODO,
                body=body,
                worker=resolved_worker,
                created_at=now,
            )
            created["id"] = payload.id
            if is_epic:
                return [EpicCreatedEvent(timestamp=now, payload=payload)]
            return [TaskCreatedEvent(timestamp=now, payload=payload)]

        graph = self._commit("create_epic" if is_epic else "create_task", build)
        task = graph.tasks[created["id"]]
        log.info("task_created", task_id=task.id, kind=task.kind, epic_id=task.epic_id)
        return task

    # ============================================================
    # 依赖
    # ============================================================

    def link(self, from_id: str, to_id: str) -> None:
        """from_id 依赖 to_id

        Raises:
            UnknownTaskError / SelfDependencyError / DependencyKindError / DependencyCycleError
        """
        self.sequence([to_id, from_id])

    def unlink(self, from_id: str, to_id: str) -> None:
        """移除 from_id -> to_id（边不存在时不写日志）"""

        def build(graph: TaskGraph, now: datetime) -> list[LedgerEvent]:
            _validate_dependency(graph, from_id, to_id)
            if not graph.deps.has_edge(from_id, to_id):
                return []
            return [
                DependencyUnlinkedEvent(
                    timestamp=now,
                    payload=DependencyPayload(
                        from_id=from_id, to_id=to_id, kind=DEPENDS_LINK_KIND
                    ),
                )
            ]

        self._commit("unlink", build)
        log.info("dependency_unlinked", from_id=from_id, to_id=to_id)

    def sequence(self, ids: list[str]) -> list[tuple[str, str]]:
        """按顺序串联：ids[i+1] 依赖 ids[i]

        所有边在同一事务内累积校验，任一条失败则整体不写。

        Returns:
            (from_id, to_id) 边列表
        """
        if len(ids) < 2:
            raise InvalidInputError("sequence requires at least two ids")
        edges = [(ids[i + 1], ids[i]) for i in range(len(ids) - 1)]

        def build(graph: TaskGraph, now: datetime) -> list[LedgerEvent]:
            events: list[LedgerEvent] = []
            for from_id, to_id in edges:
                _validate_dependency(graph, from_id, to_id)
                if graph.deps.has_edge(from_id, to_id):
                    continue
                if has_cycle(graph, from_id, to_id):
                    raise DependencyCycleError(from_id, to_id)
                # 后续边的成环检查需要看到本事务内已接受的边
                graph.deps.add_edge(from_id, to_id)
                events.append(
                    DependencyLinkedEvent(
                        timestamp=now,
                        payload=DependencyPayload(
                            from_id=from_id, to_id=to_id, kind=DEPENDS_LINK_KIND
                        ),
                    )
                )
            return events

        self._commit("link", build)
        log.info("dependency_linked", edges=edges)
        return edges

    def unsequence(self, first_id: str, second_id: str) -> None:
        """撤销 sequence([first_id, second_id]) 建立的边"""
        self.unlink(second_id, first_id)

    def plan(
        self,
        epic_body: str,
        tasks: list[PlanTaskInput | dict],
        epic_worker: Worker | str | None = Worker.ANY,
    ) -> PlanResult:
        """一次性创建 epic、其下的任务以及任务间依赖

        任务之间用 plan 内的 ref 互相引用（after）。全部事件在同一个锁内
        构建并累积做成环检查，任一校验失败则什么都不写。

        Raises:
            InvalidInputError: 没有任务、ref 为空/重复、after 引用未知 ref
            SelfDependencyError: 任务 after 自身
            DependencyCycleError: after 关系成环
        """
        parsed = _parse_plan_tasks(tasks)
        resolved_worker = _coerce_worker(epic_worker)
        ref_to_id: dict[str, str] = {}
        edges: list[tuple[str, str]] = []
        created: dict[str, str] = {}

        def build(graph: TaskGraph, now: datetime) -> list[LedgerEvent]:
            taken = set(graph.tasks)

            epic_payload = TaskCreatedPayload(
                id=_new_short_id(taken),
                uuid=_new_uuid(),
                body=epic_body,
                worker=resolved_worker,
                created_at=now,
            )
            taken.add(epic_payload.id)
            created["epic"] = epic_payload.id
            events: list[LedgerEvent] = [EpicCreatedEvent(timestamp=now, payload=epic_payload)]

            for item in parsed:
                task_now = self._now()
                payload = TaskCreatedPayload(
                    id=_new_short_id(taken),
                    uuid=_new_uuid(),
                    epic_id=epic_payload.id,
                    body=item.body,
                    worker=item.worker,
                    created_at=task_now,
                )
                taken.add(payload.id)
                ref_to_id[item.ref] = payload.id
                events.append(TaskCreatedEvent(timestamp=task_now, payload=payload))

            link_now = self._now()
            for item in parsed:
                from_id = ref_to_id[item.ref]
                for dep_ref in item.after:
                    to_id = ref_to_id[dep_ref]
                    if graph.deps.has_edge(from_id, to_id):
                        continue
                    if has_cycle(graph, from_id, to_id):
                        raise DependencyCycleError(from_id, to_id)
                    graph.deps.add_edge(from_id, to_id)
                    edges.append((from_id, to_id))
                    events.append(
                        DependencyLinkedEvent(
                            timestamp=link_now,
                            payload=DependencyPayload(
                                from_id=from_id, to_id=to_id, kind=DEPENDS_LINK_KIND
                            ),
                        )
                    )
            return events

        graph = self._commit("plan", build)
        result = PlanResult(
            epic=graph.tasks[created["epic"]],
            tasks={ref: graph.tasks[task_id] for ref, task_id in ref_to_id.items()},
            edges=list(edges),
        )
        log.info(
            "plan_created",
            epic_id=result.epic.id,
            task_count=len(result.tasks),
            edge_count=len(result.edges),
        )
        return result

    # ============================================================
    # 更新与认领
    # ============================================================

    def update(
        self,
        task_id: str,
        *,
        state: TaskState | str | None = None,
        claim: str | None = None,
        body: str | None = None,
        worker: Worker | str | None = None,
        epic_id: str | None = None,
        agent_id: str | None = None,
    ) -> Task:
        """在一个事务内更新任务的若干字段

        - 进入 doing/error 且当前未认领、也未给出 claim 时，使用 agent_id 隐式认领
        - 只给出非空 claim 时隐含 state=doing（同样受流转表约束）
        - claim="" 表示释放认领
        - 进入 todo/done/canceled 时认领者自动清空

        Raises:
            UnknownTaskError: 任务不存在
            EpicOperationError: 对 epic 设置状态/认领/所属 epic
            IllegalTransitionError: 流转不在合法表内
            ClaimInvariantError: 更新后状态与认领者不一致
        """
        if all(v is None for v in (state, claim, body, worker, epic_id)):
            raise InvalidInputError("no updates given")
        new_state = _coerce_state(state) if state is not None else None
        new_worker = _coerce_worker(worker) if worker is not None else None
        acting_agent = (agent_id or self._agent_id).strip()

        def build(graph: TaskGraph, now: datetime) -> list[LedgerEvent]:
            task = _require_task(graph, task_id)
            return self._build_update_events(
                graph,
                task,
                now,
                state=new_state,
                claim=claim,
                body=body,
                worker=new_worker,
                epic_id=epic_id,
                agent_id=acting_agent,
            )

        graph = self._commit("update", build)
        task = graph.tasks[task_id]
        log.info(
            "task_updated",
            task_id=task_id,
            state=task.state,
            claimed_by=task.claimed_by,
        )
        return task

    def _build_update_events(
        self,
        graph: TaskGraph,
        task: Task,
        now: datetime,
        *,
        state: TaskState | None,
        claim: str | None,
        body: str | None,
        worker: Worker | None,
        epic_id: str | None,
        agent_id: str,
    ) -> list[LedgerEvent]:
        if task.is_epic:
            if state is not None:
                raise EpicOperationError("epics do not have state")
            if claim is not None:
                raise EpicOperationError("epics cannot be claimed")
            if epic_id is not None:
                raise EpicOperationError("epics cannot be assigned to other epics")

        if claim is not None:
            claim = claim.strip()

        # 隐式认领
        if (
            not task.is_epic
            and not task.claimed_by
            and state in (TaskState.DOING, TaskState.ERROR)
            and claim is None
        ):
            if not agent_id:
                raise ClaimInvariantError(state, "")
            claim = agent_id

        if epic_id:
            _require_epic(graph, epic_id)

        touches_claim_or_state = state is not None or claim is not None
        if touches_claim_or_state:
            target_state = state
            if target_state is None:
                target_state = TaskState.DOING if claim else task.state
            if not validate_transition(task.state, target_state):
                raise IllegalTransitionError(task.state, target_state)
            target_claim = claim if claim is not None else task.claimed_by
            if target_state in CLAIM_CLEARING_STATES:
                target_claim = ""
            if not validate_claim_invariant(target_state, target_claim):
                raise ClaimInvariantError(target_state, target_claim)

        events: list[LedgerEvent] = []
        if body is not None:
            events.append(
                BodyUpdatedEvent(
                    timestamp=now,
                    payload=BodyUpdatedPayload(id=task.id, body=body, timestamp=now),
                )
            )
        if epic_id is not None:
            events.append(
                EpicAssignedEvent(
                    timestamp=now,
                    payload=EpicAssignedPayload(id=task.id, epic_id=epic_id, timestamp=now),
                )
            )
        if worker is not None:
            events.append(
                WorkerChangedEvent(
                    timestamp=now,
                    payload=WorkerChangedPayload(id=task.id, worker=worker, timestamp=now),
                )
            )
        if claim is not None:
            if claim:
                events.append(
                    TaskClaimedEvent(
                        timestamp=now,
                        payload=TaskClaimedPayload(id=task.id, agent_id=claim, timestamp=now),
                    )
                )
            else:
                events.append(
                    TaskUnclaimedEvent(
                        timestamp=now,
                        payload=TaskUnclaimedPayload(id=task.id, timestamp=now),
                    )
                )
        # state 总在最后：认领者先就位
        if state is not None or claim:
            events.append(
                StateChangedEvent(
                    timestamp=now,
                    payload=StateChangedPayload(
                        id=task.id,
                        new_state=state if state is not None else TaskState.DOING,
                        timestamp=now,
                    ),
                )
            )
        return events

    def claim(self, task_id: str, agent_id: str | None = None) -> Task:
        """认领指定任务并进入 doing"""
        acting_agent = (agent_id or self._agent_id).strip()
        if not acting_agent:
            raise InvalidInputError("claim requires an agent id")
        task = self.update(task_id, state=TaskState.DOING, claim=acting_agent)
        log.info("task_claimed", task_id=task_id, agent_id=acting_agent)
        return task

    def claim_next(
        self,
        agent_id: str | None = None,
        epic_id: str | None = None,
        worker: Worker | str | None = None,
    ) -> ClaimResult:
        """原子地领取最早创建的 ready 任务

        锁内回放后选取 FIFO 第一个 ready 任务，写入 claim + doing；
        没有 ready 任务时返回 status=NO_READY，不写日志。
        """
        acting_agent = (agent_id or self._agent_id).strip()
        if not acting_agent:
            raise InvalidInputError("claim requires an agent id")
        as_worker = _coerce_worker(worker) if worker is not None else None
        chosen: dict[str, object] = {}

        def build(graph: TaskGraph, now: datetime) -> list[LedgerEvent]:
            ready = _ready_tasks(graph, epic_id=epic_id, worker=as_worker, kind=TaskKind.TASK)
            if not ready:
                return []
            task = ready[0]
            chosen["id"] = task.id
            chosen["at"] = now
            return [
                TaskClaimedEvent(
                    timestamp=now,
                    payload=TaskClaimedPayload(id=task.id, agent_id=acting_agent, timestamp=now),
                ),
                StateChangedEvent(
                    timestamp=now,
                    payload=StateChangedPayload(
                        id=task.id, new_state=TaskState.DOING, timestamp=now
                    ),
                ),
            ]

        graph = self._commit("claim_next", build)
        if not chosen:
            log.info("claim_no_ready", agent_id=acting_agent, epic_id=epic_id or "")
            return ClaimResult(status=ClaimStatus.NO_READY, agent_id=acting_agent)

        task = graph.tasks[chosen["id"]]
        log.info("task_claimed", task_id=task.id, agent_id=acting_agent)
        return ClaimResult(
            status=ClaimStatus.CLAIMED,
            task=task,
            agent_id=acting_agent,
            claimed_at=chosen["at"],
        )

    # ============================================================
    # 结果
    # ============================================================

    def attach_result(
        self,
        task_id: str,
        summary: str,
        path: str,
        sha256_at_attach: str,
        mtime_at_attach: str = "",
        git_commit_at_attach: str = "",
    ) -> TaskResult:
        """为任务附加结果引用（文件本身由外部存储负责）

        Raises:
            InvalidInputError: 摘要为空/多行/超长，或缺少 path/sha256
            EpicOperationError: epic 不能附加结果
        """
        summary = _validate_summary(summary)
        if not path.strip():
            raise InvalidInputError("result path required")
        if not sha256_at_attach.strip():
            raise InvalidInputError("result sha256 required")

        def build(graph: TaskGraph, now: datetime) -> list[LedgerEvent]:
            task = _require_task(graph, task_id)
            if task.is_epic:
                raise EpicOperationError("epics cannot have results")
            return [
                ResultAttachedEvent(
                    timestamp=now,
                    payload=ResultAttachedPayload(
                        task_id=task_id,
                        summary=summary,
                        path=path.strip(),
                        sha256_at_attach=sha256_at_attach.strip(),
                        mtime_at_attach=mtime_at_attach,
                        git_commit_at_attach=git_commit_at_attach,
                        timestamp=now,
                    ),
                )
            ]

        graph = self._commit("attach_result", build)
        result = graph.tasks[task_id].results[0]
        log.info("result_attached", task_id=task_id, path=result.path)
        return result

    # ============================================================
    # 压缩
    # ============================================================

    def compact(self) -> CompactionReport:
        """锁内将日志重写为等价的最小事件序列"""
        start_time = time.monotonic()
        with ledger_log_context(self._store.data_dir, "compact"):
            with self._store.lock(self._lock_timeout_s):
                snapshot = self._store.read_all()
                graph = replay(snapshot.events)
                events = compact_events(graph, now=self._now())
                self._store.replace_all(events)

            report = CompactionReport(
                events_before=len(snapshot.events),
                events_after=len(events),
                task_count=len(graph.tasks),
                edge_count=len(graph.deps),
            )
            log.info(
                "event_log_compacted",
                **report.model_dump(),
                elapsed_ms=int((time.monotonic() - start_time) * 1000),
            )
        return report

    # ============================================================
    # 只读查询（不加锁）
    # ============================================================

    def load_graph(self) -> TaskGraph:
        return load_graph(self._store)

    def get_task(self, task_id: str) -> Task:
        return _require_task(self.load_graph(), task_id)

    def list_tasks(
        self,
        epic_id: str | None = None,
        ready_only: bool = False,
        blocked_only: bool = False,
        kind: TaskKind | None = TaskKind.ANY,
    ) -> list[Task]:
        return _list_tasks(
            self.load_graph(),
            epic_id=epic_id,
            ready_only=ready_only,
            blocked_only=blocked_only,
            kind=kind,
        )

    def ready_tasks(
        self,
        epic_id: str | None = None,
        worker: Worker | str | None = None,
        kind: TaskKind | None = TaskKind.TASK,
    ) -> list[Task]:
        as_worker = _coerce_worker(worker) if worker is not None else None
        return _ready_tasks(self.load_graph(), epic_id=epic_id, worker=as_worker, kind=kind)
