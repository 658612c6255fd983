"""依赖与就绪判定单元测试

测试内容：
1. ready / blocked 判定
2. epic 级依赖门控
3. 成环检测（含随机 DAG 性质测试）
4. FIFO 领取顺序、执行者与类别过滤
"""

import random
from collections import deque
from datetime import UTC, datetime, timedelta

import pytest
from taskledger.core.models import (
    DependencyLinkedEvent,
    DependencyPayload,
    EpicCreatedEvent,
    SETTLED_STATES,
    StateChangedEvent,
    StateChangedPayload,
    TaskClaimedEvent,
    TaskClaimedPayload,
    TaskCreatedEvent,
    TaskCreatedPayload,
    TaskGraph,
    TaskKind,
    TaskState,
    Worker,
)
from taskledger.core.projection import replay
from taskledger.core.readiness import (
    are_epic_deps_complete,
    has_cycle,
    is_blocked,
    is_epic_complete,
    is_ready,
    list_tasks,
    ready_tasks,
)

BASE_TS = datetime(2026, 1, 1, tzinfo=UTC)


def _ts(offset: int) -> datetime:
    return BASE_TS + timedelta(seconds=offset)


def _task(task_id, offset=0, epic_id="", worker=Worker.ANY) -> TaskCreatedEvent:
    return TaskCreatedEvent(
        timestamp=_ts(offset),
        payload=TaskCreatedPayload(
            id=task_id,
            uuid=f"uuid-{task_id}",
            epic_id=epic_id,
            worker=worker,
            created_at=_ts(offset),
        ),
    )


def _epic(epic_id, offset=0) -> EpicCreatedEvent:
    return EpicCreatedEvent(
        timestamp=_ts(offset),
        payload=TaskCreatedPayload(id=epic_id, uuid=f"uuid-{epic_id}", created_at=_ts(offset)),
    )


def _state(task_id, state, offset=100) -> StateChangedEvent:
    return StateChangedEvent(
        timestamp=_ts(offset),
        payload=StateChangedPayload(id=task_id, new_state=state, timestamp=_ts(offset)),
    )


def _claim(task_id, agent="agent-1", offset=100) -> TaskClaimedEvent:
    return TaskClaimedEvent(
        timestamp=_ts(offset),
        payload=TaskClaimedPayload(id=task_id, agent_id=agent, timestamp=_ts(offset)),
    )


def _link(from_id, to_id) -> DependencyLinkedEvent:
    return DependencyLinkedEvent(
        timestamp=BASE_TS,
        payload=DependencyPayload(from_id=from_id, to_id=to_id),
    )


class TestReadiness:
    """ready / blocked"""

    def test_todo_without_deps_is_ready(self):
        """无依赖的 todo 任务 ready"""
        graph = replay([_task("AAAAAA")])
        task = graph.tasks["AAAAAA"]
        assert is_ready(graph, task) is True
        assert is_blocked(graph, task) is False

    def test_unsettled_dep_blocks(self):
        """前置未完成时 blocked"""
        graph = replay([_task("AAAAAA"), _task("BBBBBB", 1), _link("BBBBBB", "AAAAAA")])
        task = graph.tasks["BBBBBB"]
        assert is_ready(graph, task) is False
        assert is_blocked(graph, task) is True

    @pytest.mark.parametrize("settled", [TaskState.DONE, TaskState.CANCELED])
    def test_settled_dep_unblocks(self, settled: TaskState):
        """前置 done/canceled 后 ready"""
        graph = replay(
            [_task("AAAAAA"), _task("BBBBBB", 1), _link("BBBBBB", "AAAAAA"), _state("AAAAAA", settled)]
        )
        assert is_ready(graph, graph.tasks["BBBBBB"]) is True

    @pytest.mark.parametrize("dep_state", [TaskState.BLOCKED, TaskState.ERROR])
    def test_other_dep_states_block(self, dep_state: TaskState):
        """前置处于 blocked/error 仍然阻塞"""
        graph = replay(
            [
                _task("AAAAAA"),
                _task("BBBBBB", 1),
                _link("BBBBBB", "AAAAAA"),
                _claim("AAAAAA"),
                _state("AAAAAA", TaskState.DOING),
                _state("AAAAAA", dep_state, 101),
            ]
        )
        assert is_ready(graph, graph.tasks["BBBBBB"]) is False

    def test_explicit_blocked(self):
        """显式 blocked 即使无依赖也算 blocked"""
        graph = replay([_task("AAAAAA"), _state("AAAAAA", TaskState.BLOCKED)])
        task = graph.tasks["AAAAAA"]
        assert is_blocked(graph, task) is True
        assert is_ready(graph, task) is False

    def test_claimed_todo_neither_ready_nor_blocked(self):
        """已认领的 todo 既不 ready 也不 blocked"""
        graph = replay([_task("AAAAAA"), _claim("AAAAAA")])
        task = graph.tasks["AAAAAA"]
        assert is_ready(graph, task) is False
        assert is_blocked(graph, task) is False

    @pytest.mark.parametrize("state", [TaskState.DONE, TaskState.CANCELED])
    def test_settled_task_not_ready(self, state: TaskState):
        """已完成的任务不 ready"""
        graph = replay([_task("AAAAAA"), _state("AAAAAA", state)])
        assert is_ready(graph, graph.tasks["AAAAAA"]) is False
        assert is_blocked(graph, graph.tasks["AAAAAA"]) is False

    def test_none_task(self):
        """None 任务既不 ready 也不 blocked"""
        graph = TaskGraph()
        assert is_ready(graph, None) is False
        assert is_blocked(graph, None) is False


class TestEpicGating:
    """epic 级依赖门控"""

    def _two_epics(self, *extra):
        return replay(
            [
                _epic("EPIC01"),
                _epic("EPIC02", 1),
                _link("EPIC02", "EPIC01"),
                _task("TASK01", 2, epic_id="EPIC01"),
                _task("TASK02", 3, epic_id="EPIC02"),
                *extra,
            ]
        )

    def test_task_waits_for_prerequisite_epic(self):
        """所属 epic 依赖的 epic 未完成时任务 blocked"""
        graph = self._two_epics()
        task = graph.tasks["TASK02"]
        assert is_ready(graph, task) is False
        assert is_blocked(graph, task) is True
        assert is_ready(graph, graph.tasks["TASK01"]) is True

    def test_task_released_when_epic_completes(self):
        """前置 epic 的子任务全部完成后任务 ready"""
        graph = self._two_epics(_state("TASK01", TaskState.DONE))
        assert is_epic_complete(graph, "EPIC01") is True
        assert are_epic_deps_complete(graph, "EPIC02") is True
        assert is_ready(graph, graph.tasks["TASK02"]) is True

    def test_epic_without_children_is_complete(self):
        """没有子任务的 epic 视为已完成"""
        graph = replay(
            [
                _epic("EPIC01"),
                _epic("EPIC02", 1),
                _link("EPIC02", "EPIC01"),
                _task("TASK02", 2, epic_id="EPIC02"),
            ]
        )
        assert is_epic_complete(graph, "EPIC01") is True
        assert is_ready(graph, graph.tasks["TASK02"]) is True

    def test_epic_complete_mixed_children(self):
        """部分子任务未完成时 epic 未完成"""
        graph = replay(
            [
                _epic("EPIC01"),
                _task("TASK01", 1, epic_id="EPIC01"),
                _task("TASK02", 2, epic_id="EPIC01"),
                _state("TASK01", TaskState.CANCELED),
            ]
        )
        assert is_epic_complete(graph, "EPIC01") is False

    def test_epic_dependency_uses_raw_state(self):
        """epic 依赖 epic 时按前置的自身状态判定：epic 状态恒为 todo，不随子任务完成而 ready"""
        graph = self._two_epics()
        assert is_ready(graph, graph.tasks["EPIC02"]) is False
        assert is_blocked(graph, graph.tasks["EPIC02"]) is True
        graph = self._two_epics(_state("TASK01", TaskState.DONE))
        assert is_epic_complete(graph, "EPIC01") is True
        assert is_ready(graph, graph.tasks["EPIC02"]) is False
        assert is_ready(graph, graph.tasks["TASK02"]) is True
        assert [t.id for t in list_tasks(graph, ready_only=True)] == ["EPIC01", "TASK02"]


class TestCycleDetection:
    """成环检测"""

    def test_self_loop(self):
        """自环总是成环"""
        graph = replay([_task("AAAAAA")])
        assert has_cycle(graph, "AAAAAA", "AAAAAA") is True

    def test_direct_back_edge(self):
        """A->B 存在时 B->A 成环"""
        graph = replay([_task("AAAAAA"), _task("BBBBBB"), _link("AAAAAA", "BBBBBB")])
        assert has_cycle(graph, "BBBBBB", "AAAAAA") is True
        assert has_cycle(graph, "AAAAAA", "BBBBBB") is False

    def test_transitive_back_edge(self):
        """A->B->C 存在时 C->A 成环，A->C 不成环"""
        graph = replay(
            [
                _task("AAAAAA"),
                _task("BBBBBB"),
                _task("CCCCCC"),
                _link("AAAAAA", "BBBBBB"),
                _link("BBBBBB", "CCCCCC"),
            ]
        )
        assert has_cycle(graph, "CCCCCC", "AAAAAA") is True
        assert has_cycle(graph, "AAAAAA", "CCCCCC") is False

    @pytest.mark.parametrize("seed", range(8))
    def test_random_graph_stays_acyclic(self, seed: int):
        """只接受不成环的边，最终图可拓扑排序；被拒绝的边确实会闭合回路"""
        rng = random.Random(seed)
        ids = [f"N{i:05d}" for i in range(12)]
        graph = replay([_task(node_id, i) for i, node_id in enumerate(ids)])
        for _ in range(60):
            from_id, to_id = rng.choice(ids), rng.choice(ids)
            if has_cycle(graph, from_id, to_id):
                assert from_id == to_id or _reachable(graph, to_id, from_id)
                continue
            graph.deps.add_edge(from_id, to_id)
        assert _is_acyclic(graph, ids)


def _reachable(graph: TaskGraph, start: str, target: str) -> bool:
    seen = {start}
    queue = deque([start])
    while queue:
        node = queue.popleft()
        if node == target:
            return True
        for nxt in graph.deps.forward(node):
            if nxt not in seen:
                seen.add(nxt)
                queue.append(nxt)
    return False


def _is_acyclic(graph: TaskGraph, ids: list[str]) -> bool:
    indegree = {node_id: 0 for node_id in ids}
    for _, to_id in graph.deps.edges():
        indegree[to_id] += 1
    queue = deque(n for n, d in indegree.items() if d == 0)
    visited = 0
    while queue:
        node = queue.popleft()
        visited += 1
        for nxt in graph.deps.forward(node):
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                queue.append(nxt)
    return visited == len(ids)


class TestReadinessProperty:
    """随机图上的 ready 判定与定义一致"""

    @pytest.mark.parametrize("seed", range(6))
    def test_ready_matches_definition(self, seed: int):
        """is_ready == todo ∧ 未认领 ∧ 前置已完成 ∧ epic 级前置已完成"""
        rng = random.Random(seed)
        events = [_epic("EPIC01"), _epic("EPIC02", 1), _link("EPIC02", "EPIC01")]
        ids = [f"T{i:05d}" for i in range(10)]
        for i, task_id in enumerate(ids):
            events.append(_task(task_id, i + 2, epic_id=rng.choice(["", "EPIC01", "EPIC02"])))
        for i, task_id in enumerate(ids):
            for earlier in ids[:i]:
                if rng.random() < 0.2:
                    events.append(_link(task_id, earlier))
            roll = rng.random()
            if roll < 0.3:
                events.append(_state(task_id, rng.choice([TaskState.DONE, TaskState.CANCELED])))
            elif roll < 0.4:
                events.extend([_claim(task_id), _state(task_id, TaskState.DOING)])
            elif roll < 0.5:
                events.append(_state(task_id, TaskState.BLOCKED))
        graph = replay(events)

        def epic_done(epic_id):
            return all(
                t.state in SETTLED_STATES
                for t in graph.tasks.values()
                if not t.is_epic and t.epic_id == epic_id
            )

        for task_id in ids:
            task = graph.tasks[task_id]
            expected = (
                task.state == TaskState.TODO
                and task.claimed_by == ""
                and all(graph.tasks[d].state in SETTLED_STATES for d in task.deps)
                and (task.epic_id != "EPIC02" or epic_done("EPIC01"))
            )
            assert is_ready(graph, task) is expected


class TestOrderingAndFilters:
    """领取顺序与过滤"""

    def test_fifo_by_created_at_then_id(self):
        """按创建时间升序，同一时刻按 ID"""
        graph = replay([_task("CCCCCC", 5), _task("BBBBBB", 1), _task("ZZZZZZ", 3), _task("AAAAAA", 3)])
        assert [t.id for t in ready_tasks(graph)] == ["BBBBBB", "AAAAAA", "ZZZZZZ", "CCCCCC"]

    def test_worker_filter(self):
        """按执行者身份过滤，any 任务对所有人可见"""
        graph = replay(
            [
                _task("AAAAAA", 0, worker=Worker.HUMAN),
                _task("BBBBBB", 1, worker=Worker.AGENT),
                _task("CCCCCC", 2),
            ]
        )
        assert [t.id for t in ready_tasks(graph, worker=Worker.AGENT)] == ["BBBBBB", "CCCCCC"]
        assert [t.id for t in ready_tasks(graph, worker=Worker.HUMAN)] == ["AAAAAA", "CCCCCC"]
        assert len(ready_tasks(graph, worker=Worker.ANY)) == 3

    def test_ready_excludes_epics_by_default(self):
        """ready_tasks 默认只返回任务"""
        graph = replay([_epic("EPIC01"), _task("AAAAAA", 1)])
        assert [t.id for t in ready_tasks(graph)] == ["AAAAAA"]
        assert [t.id for t in ready_tasks(graph, kind=TaskKind.EPIC)] == ["EPIC01"]

    def test_epic_filter(self):
        """按 epic 过滤"""
        graph = replay([_epic("EPIC01"), _task("AAAAAA", 1, epic_id="EPIC01"), _task("BBBBBB", 2)])
        assert [t.id for t in ready_tasks(graph, epic_id="EPIC01")] == ["AAAAAA"]

    def test_list_tasks_sorted_and_filtered(self):
        """list_tasks 按 ID 排序，支持 ready/blocked/类别过滤"""
        graph = replay(
            [
                _epic("EPIC01"),
                _task("CCCCCC", 1),
                _task("AAAAAA", 2),
                _task("BBBBBB", 3),
                _link("BBBBBB", "AAAAAA"),
            ]
        )
        assert [t.id for t in list_tasks(graph)] == ["AAAAAA", "BBBBBB", "CCCCCC", "EPIC01"]
        assert [t.id for t in list_tasks(graph, kind=TaskKind.TASK)] == [
            "AAAAAA",
            "BBBBBB",
            "CCCCCC",
        ]
        assert [t.id for t in list_tasks(graph, ready_only=True, kind=TaskKind.TASK)] == [
            "AAAAAA",
            "CCCCCC",
        ]
        assert [t.id for t in list_tasks(graph, blocked_only=True)] == ["BBBBBB"]
