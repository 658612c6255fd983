"""Store Protocol 接口定义

使用 Python Protocol 实现结构化子类型（duck typing），
协调器只依赖此接口，不依赖具体的文件实现。
"""

from contextlib import AbstractContextManager
from pathlib import Path
from typing import Protocol

from ..models.event import LedgerEvent
from .event_store import LogSnapshot


class EventStore(Protocol):
    """Event 存储接口

    事件日志 append-only：只允许追加；整体替换仅供压缩使用。
    """

    @property
    def data_dir(self) -> Path:
        """数据目录"""
        ...

    def read_all(self) -> LogSnapshot:
        """按追加顺序读取全部事件"""
        ...

    def append(self, events: list[LedgerEvent]) -> None:
        """追加完整记录并落盘"""
        ...

    def replace_all(self, events: list[LedgerEvent]) -> None:
        """原子替换整个日志"""
        ...

    def lock(self, timeout_s: float) -> AbstractContextManager[None]:
        """获取目录排他锁"""
        ...
