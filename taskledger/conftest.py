"""全局 pytest 配置 -- 临时数据目录 fixture + 日志配置复位"""

import logging
from pathlib import Path

import pytest
import structlog
from taskledger.core.store import JsonlEventStore, create_event_store


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """提供临时数据目录路径（尚未创建）"""
    return tmp_path / ".taskledger"


@pytest.fixture
def store(data_dir: Path) -> JsonlEventStore:
    """提供已初始化的临时事件存储"""
    return create_event_store(data_dir, init=True)


@pytest.fixture
def reset_logging():
    """测试结束后撤销 setup_logging 对全局日志配置的修改"""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
