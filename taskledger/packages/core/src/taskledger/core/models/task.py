"""Task Domain Model -- 事件日志的物化视图

Task 只能由回放事件得到，所有状态更新都必须通过追加事件完成。
deps/rdeps 是回放结束后从邻接表派生的有序列表，不是一手数据。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import TaskKind, TaskState, Worker


class TaskResult(BaseModel):
    """附加到任务上的结果引用"""

    summary: str
    path: str = Field(description="相对项目根目录的路径")
    sha256_at_attach: str
    mtime_at_attach: str = Field(default="")
    git_commit_at_attach: str = Field(default="")
    created_at: datetime


class Task(BaseModel):
    """Task 数据模型

    epic 也是 Task：is_epic=True 且 epic_id 为空，仅作分组与依赖单元，
    其状态由子任务推导，不能直接设置。
    """

    id: str = Field(description="短 ID，日志生命周期内唯一")
    uuid: str = Field(description="永久 UUID")
    epic_id: str = Field(default="", description="所属 epic ID")
    is_epic: bool = Field(default=False)
    state: TaskState = Field(default=TaskState.TODO, description="当前状态")
    body: str = Field(default="")
    worker: Worker = Field(default=Worker.ANY, description="执行者亲和性")
    claimed_by: str = Field(default="", description="认领者身份，空表示未认领")
    created_at: datetime
    updated_at: datetime
    deps: list[str] = Field(default_factory=list, description="前置任务 ID（有序）")
    rdeps: list[str] = Field(default_factory=list, description="后置任务 ID（有序）")
    results: list[TaskResult] = Field(default_factory=list, description="结果，新的在前")

    @property
    def kind(self) -> TaskKind:
        return TaskKind.EPIC if self.is_epic else TaskKind.TASK


class TaskMeta(BaseModel):
    """压缩所需的簿记信息

    记录创建时的原始取值，以及每类事件最后一次出现的时间，
    当前值与创建值分叉后压缩器据此重建最小事件序列。
    """

    created_body: str = ""
    created_state: TaskState = TaskState.TODO
    created_worker: Worker = Worker.ANY
    created_epic_id: str = ""
    created_at: datetime
    last_state_at: datetime | None = None
    last_claim_at: datetime | None = None
    last_worker_at: datetime | None = None
    last_body_at: datetime | None = None
    last_epic_at: datetime | None = None


class PlanTaskInput(BaseModel):
    """plan 中的单个任务

    ref 只在本次 plan 内有效，after 通过 ref 引用同一 plan 中的其它任务。
    """

    ref: str = Field(min_length=1, description="plan 内的本地引用名")
    body: str = Field(default="")
    worker: Worker = Field(default=Worker.ANY)
    after: list[str] = Field(default_factory=list, description="本任务依赖的 ref 列表")
