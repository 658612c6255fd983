"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
from taskledger.core.service import TaskLedger
from taskledger.core.store import JsonlEventStore


class StepClock:
    """每次调用前进固定步长的时钟，保证事件时间戳严格递增"""

    def __init__(self, start: datetime, step: timedelta) -> None:
        self._current = start
        self._step = step

    def __call__(self) -> datetime:
        value = self._current
        self._current += self._step
        return value


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """从 2026-01-01 起每次前进 1 秒"""
    return StepClock(datetime(2026, 1, 1, tzinfo=UTC), timedelta(seconds=1))


@pytest.fixture
def ledger(store: JsonlEventStore, clock) -> TaskLedger:
    """默认身份为 agent-1、锁忙立即失败的 TaskLedger"""
    return TaskLedger(store, lock_timeout_s=0, agent_id="agent-1", clock=clock)
