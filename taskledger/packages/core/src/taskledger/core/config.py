"""LedgerConfig -- 配置加载，可通过环境变量覆盖

环境变量:
    TASKLEDGER_DIR: 数据目录名或路径（默认 .taskledger）
    TASKLEDGER_LOCK_TIMEOUT_S: 等锁上限（秒，默认 30；0 表示锁忙立即失败）
    TASKLEDGER_AGENT_ID: 默认认领者身份
"""

import getpass
import os
import socket
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from .exceptions import DataDirNotFoundError

log = structlog.get_logger()

DEFAULT_DATA_DIR_NAME = ".taskledger"

# 数据目录内的文件名
EVENTS_FILE_NAME = "events.jsonl"
LOCK_FILE_NAME = "lock"

DEFAULT_LOCK_TIMEOUT_S: float = 30.0

# 结果摘要最大长度
RESULT_SUMMARY_MAX_LEN: int = 120

# 短 ID 长度与生成重试上限
SHORT_ID_LENGTH: int = 6
SHORT_ID_MAX_ATTEMPTS: int = 64


class LedgerConfig(BaseModel):
    """taskledger 配置"""

    data_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR_NAME),
        description="事件日志与锁文件所在目录",
    )
    lock_timeout_s: float = Field(
        default=DEFAULT_LOCK_TIMEOUT_S,
        ge=0,
        description="等锁上限（秒），0 为 fail-fast",
    )
    agent_id: str = Field(default="", description="默认认领者身份")


def load_ledger_config() -> LedgerConfig:
    """从环境变量加载配置

    Returns:
        LedgerConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("TASKLEDGER_DIR"):
        kwargs["data_dir"] = Path(val)

    if val := os.environ.get("TASKLEDGER_LOCK_TIMEOUT_S"):
        try:
            timeout = float(val)
            if timeout < 0:
                raise ValueError(val)
            kwargs["lock_timeout_s"] = timeout
        except ValueError:
            log.warning(
                "invalid_lock_timeout_config",
                env_var="TASKLEDGER_LOCK_TIMEOUT_S",
                value=val,
                fallback=DEFAULT_LOCK_TIMEOUT_S,
            )

    if val := os.environ.get("TASKLEDGER_AGENT_ID"):
        kwargs["agent_id"] = val

    return LedgerConfig(**kwargs)


def resolve_agent_id(explicit: str | None = None) -> str:
    """认领者身份解析：显式值 > TASKLEDGER_AGENT_ID > user@host"""
    if explicit and explicit.strip():
        return explicit.strip()
    if val := os.environ.get("TASKLEDGER_AGENT_ID", "").strip():
        return val
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "unknown"
    return f"{user}@{socket.gethostname()}"


def discover_data_dir(start: Path | None = None, dir_name: str = DEFAULT_DATA_DIR_NAME) -> Path:
    """从 start 向上查找数据目录

    start 本身就是数据目录时直接返回。

    Raises:
        DataDirNotFoundError: 直到根目录都没有找到
    """
    origin = (start or Path.cwd()).resolve()
    if origin.name == dir_name and origin.is_dir():
        return origin
    for current in (origin, *origin.parents):
        candidate = current / dir_name
        if candidate.is_dir():
            return candidate
    raise DataDirNotFoundError(origin, dir_name)


def resolve_data_dir(config: LedgerConfig, start: Path | None = None) -> Path:
    """确定实际使用的数据目录

    显式设置的 data_dir（TASKLEDGER_DIR 或直接构造）原样使用；
    否则从 start（默认当前目录）向上查找同名目录。

    Raises:
        DataDirNotFoundError: 显式目录不存在，或向上查找失败
    """
    if "data_dir" in config.model_fields_set:
        if not config.data_dir.is_dir():
            raise DataDirNotFoundError(config.data_dir, config.data_dir.name)
        return config.data_dir
    return discover_data_dir(start, dir_name=config.data_dir.name)
