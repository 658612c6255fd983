"""CLI 入口模块 -- python -m taskledger.core <command>

支持的命令：
  init     创建数据目录（事件日志 + 锁文件）
  compact  将事件日志重写为等价的最小事件序列
  verify   回放事件日志并报告统计

数据目录由 TASKLEDGER_DIR 指定；未设置时从当前目录向上查找 .taskledger
（init 则在当前目录创建）。
"""

import sys

from .config import load_ledger_config, resolve_data_dir
from .exceptions import LedgerError
from .logging_config import setup_logging
from .projection import replay
from .service import TaskLedger
from .store import create_event_store

_USAGE = """用法: python -m taskledger.core <command>
命令:
  init     创建数据目录（事件日志 + 锁文件）
  compact  将事件日志重写为等价的最小事件序列
  verify   回放事件日志并报告统计"""


def main() -> None:
    """CLI 主入口"""
    setup_logging()
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]
    commands = {
        "init": run_init,
        "compact": run_compact,
        "verify": run_verify,
    }
    handler = commands.get(command)
    if handler is None:
        print(f"未知命令: {command}")
        print("可用命令: " + ", ".join(commands))
        sys.exit(1)

    try:
        handler()
    except LedgerError as e:
        print(f"错误: {e}", file=sys.stderr)
        sys.exit(2 if e.recoverable else 1)


def run_init() -> None:
    config = load_ledger_config()
    store = create_event_store(config.data_dir, init=True)
    print(f"数据目录: {store.data_dir}")


def run_compact() -> None:
    config = load_ledger_config()
    ledger = TaskLedger.from_config(config)
    print(f"数据目录: {ledger.store.data_dir}")
    report = ledger.compact()
    print(
        f"压缩完成: {report.events_before} -> {report.events_after} 条事件，"
        f"{report.task_count} 个任务，{report.edge_count} 条依赖"
    )


def run_verify() -> None:
    config = load_ledger_config()
    store = create_event_store(resolve_data_dir(config))
    snapshot = store.read_all()
    graph = replay(snapshot.events)
    print(f"数据目录: {store.data_dir}")
    print(f"事件: {len(snapshot.events)}")
    print(f"任务: {len(graph.tasks)}，依赖: {len(graph.deps)}")
    for notice in snapshot.notices:
        print(f"警告: {notice.path}:{notice.line_no}: {notice.reason}")


if __name__ == "__main__":
    main()
