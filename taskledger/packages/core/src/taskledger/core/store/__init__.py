"""taskledger Core Store -- JSONL 事件日志 + 目录锁

提供工厂函数按数据目录创建 Store。
"""

from pathlib import Path

from .event_store import CorruptionNotice, JsonlEventStore, LogSnapshot
from .lock import DirectoryLock
from .protocols import EventStore


def create_event_store(data_dir: str | Path, init: bool = False) -> JsonlEventStore:
    """创建数据目录对应的 EventStore

    Args:
        data_dir: 数据目录
        init: 为 True 时创建目录、空日志与锁文件

    Returns:
        JsonlEventStore 实例
    """
    store = JsonlEventStore(data_dir)
    if init:
        store.init()
    return store


__all__ = [
    "EventStore",
    "JsonlEventStore",
    "LogSnapshot",
    "CorruptionNotice",
    "DirectoryLock",
    "create_event_store",
]
