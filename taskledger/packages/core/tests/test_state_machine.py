"""状态机流转单元测试

测试内容：
1. 6x6 全部状态对：表内流转通过，表外流转拒绝，空操作总是通过
2. 认领一致性约束
3. 状态/执行者名称解析
"""

import itertools

import pytest
from taskledger.core.models.enums import (
    VALID_TRANSITIONS,
    TaskState,
    Worker,
    is_worker_allowed,
    parse_state,
    parse_worker,
    validate_claim_invariant,
    validate_transition,
)

T = TaskState

# 独立写出的期望流转表（不从实现中读取）
EXPECTED_ALLOWED: set[tuple[TaskState, TaskState]] = {
    (T.TODO, T.DOING),
    (T.TODO, T.DONE),
    (T.TODO, T.BLOCKED),
    (T.TODO, T.CANCELED),
    (T.DOING, T.TODO),
    (T.DOING, T.DONE),
    (T.DOING, T.BLOCKED),
    (T.DOING, T.CANCELED),
    (T.DOING, T.ERROR),
    (T.BLOCKED, T.TODO),
    (T.BLOCKED, T.DOING),
    (T.BLOCKED, T.DONE),
    (T.BLOCKED, T.CANCELED),
    (T.DONE, T.TODO),
    (T.CANCELED, T.TODO),
    (T.ERROR, T.TODO),
    (T.ERROR, T.DOING),
    (T.ERROR, T.CANCELED),
}

ALL_PAIRS = list(itertools.product(TaskState, TaskState))


class TestStateMachineTransitions:
    """状态机流转验证"""

    @pytest.mark.parametrize("from_state,to_state", ALL_PAIRS)
    def test_transition_grid(self, from_state: TaskState, to_state: TaskState):
        """每个状态对的判定与期望表一致"""
        expected = from_state == to_state or (from_state, to_state) in EXPECTED_ALLOWED
        assert validate_transition(from_state, to_state) is expected

    @pytest.mark.parametrize("state", list(TaskState))
    def test_noop_always_valid(self, state: TaskState):
        """from == to 的空操作总是合法"""
        assert validate_transition(state, state) is True

    def test_table_matches_expected(self):
        """VALID_TRANSITIONS 与期望表完全一致"""
        actual = {(f, t) for f, targets in VALID_TRANSITIONS.items() for t in targets}
        assert actual == EXPECTED_ALLOWED

    def test_every_state_has_entry(self):
        """所有状态都在流转表中定义"""
        for state in TaskState:
            assert state in VALID_TRANSITIONS

    @pytest.mark.parametrize("target", [T.DONE, T.BLOCKED])
    def test_error_cannot_jump_forward(self, target: TaskState):
        """error 不能直接跳到 done/blocked"""
        assert validate_transition(T.ERROR, target) is False

    @pytest.mark.parametrize("settled", [T.DONE, T.CANCELED])
    def test_settled_only_reopen_to_todo(self, settled: TaskState):
        """done/canceled 只能重新打开到 todo"""
        reachable = {t for t in TaskState if t != settled and validate_transition(settled, t)}
        assert reachable == {T.TODO}


class TestClaimInvariant:
    """状态与认领者一致性"""

    @pytest.mark.parametrize("state", [T.DOING, T.ERROR])
    def test_active_states_require_claim(self, state: TaskState):
        """doing/error 必须有认领者"""
        assert validate_claim_invariant(state, "") is False
        assert validate_claim_invariant(state, "agent-1") is True

    @pytest.mark.parametrize("state", [T.TODO, T.DONE, T.CANCELED])
    def test_clearing_states_forbid_claim(self, state: TaskState):
        """todo/done/canceled 必须无认领者"""
        assert validate_claim_invariant(state, "") is True
        assert validate_claim_invariant(state, "agent-1") is False

    def test_blocked_unconstrained(self):
        """blocked 认领与否都合法"""
        assert validate_claim_invariant(T.BLOCKED, "") is True
        assert validate_claim_invariant(T.BLOCKED, "agent-1") is True


class TestParsing:
    """名称解析"""

    def test_parse_state_normalizes(self):
        """状态名大小写与空白不敏感"""
        assert parse_state("  DOING ") == T.DOING

    def test_parse_state_rejects_unknown(self):
        """未知状态名抛出 ValueError"""
        with pytest.raises(ValueError):
            parse_state("finished")

    @pytest.mark.parametrize("raw", [None, "", "  "])
    def test_parse_worker_empty_is_any(self, raw):
        """空执行者视为 any"""
        assert parse_worker(raw) == Worker.ANY

    def test_parse_worker_rejects_unknown(self):
        """未知执行者抛出 ValueError"""
        with pytest.raises(ValueError):
            parse_worker("robot")

    @pytest.mark.parametrize(
        "task_worker,as_worker,expected",
        [
            (Worker.ANY, Worker.AGENT, True),
            (Worker.AGENT, Worker.AGENT, True),
            (Worker.HUMAN, Worker.AGENT, False),
            (Worker.AGENT, Worker.HUMAN, False),
            (Worker.HUMAN, Worker.ANY, True),
            (Worker.HUMAN, None, True),
        ],
    )
    def test_worker_filter(self, task_worker, as_worker, expected):
        """执行者亲和性过滤"""
        assert is_worker_allowed(task_worker, as_worker) is expected
