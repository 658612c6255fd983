"""目录级排他锁 -- 基于 fcntl.flock 的建议锁

锁文件是零长度的同步原语，不承载状态；缺失时按需创建。
获取失败时按指数退避重试，直到超出等待上限。
"""

import fcntl
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

from ..exceptions import LockBusyError, LockTimeoutError

log = structlog.get_logger()

_INITIAL_BACKOFF_S = 0.01
_MAX_BACKOFF_S = 0.5


class DirectoryLock:
    """作用于单个数据目录的跨进程排他锁"""

    def __init__(self, lock_path: Path) -> None:
        self._lock_path = lock_path

    @property
    def path(self) -> Path:
        return self._lock_path

    @contextmanager
    def hold(self, timeout_s: float) -> Iterator[None]:
        """持有锁直至退出上下文（包括异常路径）

        Args:
            timeout_s: 等锁上限；0 表示只尝试一次

        Raises:
            LockBusyError: timeout_s 为 0 且锁被占用
            LockTimeoutError: 超出等待上限
        """
        with self._lock_path.open("a") as handle:
            waited_ms = self._acquire(handle.fileno(), timeout_s)
            log.debug("lock_acquired", lock_path=str(self._lock_path), waited_ms=waited_ms)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
                log.debug("lock_released", lock_path=str(self._lock_path))

    def _acquire(self, fd: int, timeout_s: float) -> int:
        """非阻塞尝试 + 指数退避，返回等待毫秒数"""
        start = time.monotonic()
        backoff = _INITIAL_BACKOFF_S
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return int((time.monotonic() - start) * 1000)
            except BlockingIOError:
                pass

            if timeout_s <= 0:
                raise LockBusyError(self._lock_path)

            elapsed = time.monotonic() - start
            if elapsed >= timeout_s:
                log.warning(
                    "lock_wait_timeout",
                    lock_path=str(self._lock_path),
                    timeout_s=timeout_s,
                )
                raise LockTimeoutError(self._lock_path, timeout_s)

            time.sleep(min(backoff, timeout_s - elapsed))
            backoff = min(backoff * 2, _MAX_BACKOFF_S)
