"""EventStore JSONL 实现

事件日志 append-only：每行一条 {"type","timestamp","payload"} 记录。
- append 只写完整且以换行结尾的记录，返回前 flush + fsync
- read_all 容忍被截断的最后一行（崩溃于追加途中），中间行损坏则致命
- replace_all 先写临时文件再原子 rename，外部永远看不到中间状态
"""

import json
import os
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import pydantic
import structlog
from pydantic import BaseModel, Field

from ..config import EVENTS_FILE_NAME, LOCK_FILE_NAME
from ..exceptions import DataDirNotFoundError, MalformedEventError
from ..models.event import KNOWN_EVENT_TYPES, LedgerEvent, decode_event, encode_event
from .lock import DirectoryLock

log = structlog.get_logger()

_TAIL_SCAN_CHUNK = 64 * 1024


class CorruptionNotice(BaseModel):
    """非致命的日志异常（被丢弃的截断尾行、未知事件类型）"""

    path: str
    line_no: int
    reason: str


class LogSnapshot(BaseModel):
    """一次读取得到的事件序列"""

    events: list[LedgerEvent] = Field(default_factory=list)
    notices: list[CorruptionNotice] = Field(default_factory=list)


class JsonlEventStore:
    """EventStore 的 JSONL 文件实现，作用域为一个数据目录"""

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)
        self._events_path = self._data_dir / EVENTS_FILE_NAME
        self._lock = DirectoryLock(self._data_dir / LOCK_FILE_NAME)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def events_path(self) -> Path:
        return self._events_path

    @property
    def lock_path(self) -> Path:
        return self._lock.path

    def init(self) -> None:
        """创建数据目录、空事件日志与锁文件（已存在则保持不变）"""
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._events_path.touch(exist_ok=True)
        self._lock.path.touch(exist_ok=True)

    @contextmanager
    def lock(self, timeout_s: float) -> Iterator[None]:
        """获取目录排他锁

        Raises:
            DataDirNotFoundError: 数据目录不存在（未 init）
        """
        if not self._data_dir.is_dir():
            raise DataDirNotFoundError(self._data_dir, self._data_dir.name)
        with self._lock.hold(timeout_s):
            yield

    def read_all(self) -> LogSnapshot:
        """读取全部事件（按追加顺序）

        Raises:
            MalformedEventError: 中间行或已换行终止的尾行无法解析
        """
        if not self._events_path.exists():
            return LogSnapshot()

        data = self._events_path.read_bytes()
        ends_with_newline = data.endswith(b"\n")
        lines = data.split(b"\n")
        if ends_with_newline:
            lines.pop()
        last_index = len(lines) - 1

        snapshot = LogSnapshot()
        for index, raw in enumerate(lines):
            line_no = index + 1
            if not raw.strip():
                continue
            is_torn_tail = index == last_index and not ends_with_newline
            try:
                event = self._decode_line(raw, line_no, snapshot)
            except MalformedEventError:
                if not is_torn_tail:
                    raise
                snapshot.notices.append(
                    CorruptionNotice(
                        path=str(self._events_path),
                        line_no=line_no,
                        reason="truncated final line ignored",
                    )
                )
                log.warning(
                    "event_log_truncated_tail",
                    path=str(self._events_path),
                    line_no=line_no,
                )
                continue
            if event is not None:
                snapshot.events.append(event)
        return snapshot

    def append(self, events: list[LedgerEvent]) -> None:
        """追加事件；调用方必须持有目录锁"""
        if not events:
            return
        buffer = "".join(encode_event(event) + "\n" for event in events).encode("utf-8")
        self._repair_tail()
        with self._events_path.open("ab") as fh:
            fh.write(buffer)
            fh.flush()
            os.fsync(fh.fileno())
        log.debug(
            "event_log_appended",
            path=str(self._events_path),
            event_count=len(events),
            event_types=[event.type for event in events],
        )

    def replace_all(self, events: list[LedgerEvent]) -> None:
        """用 events 整体替换日志（临时文件 + 原子 rename）；调用方必须持有目录锁"""
        start_time = time.monotonic()
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self._data_dir),
            prefix=".events.",
            suffix=".tmp",
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as fh:
                for event in events:
                    fh.write((encode_event(event) + "\n").encode("utf-8"))
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self._events_path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        self._fsync_dir()
        log.info(
            "event_log_replaced",
            path=str(self._events_path),
            event_count=len(events),
            elapsed_ms=int((time.monotonic() - start_time) * 1000),
        )

    def _decode_line(
        self,
        raw: bytes,
        line_no: int,
        snapshot: LogSnapshot,
    ) -> LedgerEvent | None:
        """解析单行；未知事件类型返回 None 并记录 notice"""
        text = raw.decode("utf-8", errors="replace")
        try:
            record = json.loads(raw)
        except ValueError as e:
            raise MalformedEventError(self._events_path, line_no, text, str(e)) from e
        if not isinstance(record, dict) or not isinstance(record.get("type"), str):
            raise MalformedEventError(
                self._events_path, line_no, text, "record is not a typed event object"
            )

        if record["type"] not in KNOWN_EVENT_TYPES:
            snapshot.notices.append(
                CorruptionNotice(
                    path=str(self._events_path),
                    line_no=line_no,
                    reason=f"unknown event type {record['type']} skipped",
                )
            )
            log.warning(
                "event_log_unknown_type",
                path=str(self._events_path),
                line_no=line_no,
                event_type=record["type"],
            )
            return None

        try:
            return decode_event(record)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            cause = f"{'.'.join(str(p) for p in first['loc'])}: {first['msg']}"
            raise MalformedEventError(self._events_path, line_no, text, cause) from e

    def _repair_tail(self) -> None:
        """追加前修复崩溃留下的尾行，避免新记录与之粘连

        尾行是完整 JSON 只是缺换行：补换行；否则截掉（读取时本就忽略它）。
        """
        if not self._events_path.exists():
            return
        with self._events_path.open("rb+") as fh:
            size = fh.seek(0, os.SEEK_END)
            if size == 0:
                return
            fh.seek(size - 1)
            if fh.read(1) == b"\n":
                return

            line_start = self._find_tail_start(fh, size)
            fh.seek(line_start)
            tail = fh.read()
            try:
                json.loads(tail)
            except ValueError:
                fh.truncate(line_start)
                log.warning(
                    "event_log_torn_tail_discarded",
                    path=str(self._events_path),
                    discarded_bytes=size - line_start,
                )
            else:
                fh.seek(0, os.SEEK_END)
                fh.write(b"\n")
                log.warning("event_log_tail_terminated", path=str(self._events_path))
            fh.flush()
            os.fsync(fh.fileno())

    @staticmethod
    def _find_tail_start(fh, size: int) -> int:
        """返回最后一个换行符之后的偏移（无换行则为 0）"""
        end = size
        while end > 0:
            start = max(0, end - _TAIL_SCAN_CHUNK)
            fh.seek(start)
            chunk = fh.read(end - start)
            pos = chunk.rfind(b"\n")
            if pos != -1:
                return start + pos + 1
            end = start
        return 0

    def _fsync_dir(self) -> None:
        dir_fd = os.open(self._data_dir, os.O_RDONLY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)
