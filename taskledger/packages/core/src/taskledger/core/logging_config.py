"""structlog 配置模块

dev 模式：pretty print 可读输出（默认，写 stderr）
json 模式：结构化 JSON 输出，每行一条

每次写事务通过 ledger_log_context 绑定 data_dir / operation / write_id，
事务内产生的所有日志（锁、追加、回放）都带上这三个字段。
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

import structlog
from ulid import ULID


def setup_logging(
    log_format: str | None = None,
    log_level: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """初始化 structlog 配置

    Args:
        log_format: "json" 或 "dev"；默认读 TASKLEDGER_LOG_FORMAT，再默认 "dev"
        log_level: 日志级别名；默认读 TASKLEDGER_LOG_LEVEL，再默认 WARNING
        stream: 输出流，默认 stderr
    """
    log_format = log_format or os.environ.get("TASKLEDGER_LOG_FORMAT", "dev")
    log_level = log_level or os.environ.get("TASKLEDGER_LOG_LEVEL", "WARNING")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.WARNING))


@contextmanager
def ledger_log_context(data_dir: str | Path, operation: str) -> Iterator[str]:
    """为一次写事务绑定日志上下文，退出时恢复原值

    Yields:
        本次事务的 write_id
    """
    write_id = str(ULID())
    with structlog.contextvars.bound_contextvars(
        data_dir=str(data_dir),
        operation=operation,
        write_id=write_id,
    ):
        yield write_id
