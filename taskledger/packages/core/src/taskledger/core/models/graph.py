"""物化图模型 -- 任务表 + 依赖有向图 + 压缩簿记

DependencyGraph 只在扫描期间维护正向边；反向索引在整段回放结束后
由 rebuild_reverse() 一次性从正向边反转得到，不做增量维护。
"""

from .task import Task, TaskMeta


class DependencyGraph:
    """依赖有向图：边 a -> b 表示 a 依赖 b"""

    def __init__(self) -> None:
        self._forward: dict[str, set[str]] = {}
        self._reverse: dict[str, set[str]] = {}

    def add_edge(self, from_id: str, to_id: str) -> None:
        self._forward.setdefault(from_id, set()).add(to_id)

    def remove_edge(self, from_id: str, to_id: str) -> None:
        targets = self._forward.get(from_id)
        if targets is None:
            return
        targets.discard(to_id)
        if not targets:
            del self._forward[from_id]

    def has_edge(self, from_id: str, to_id: str) -> bool:
        return to_id in self._forward.get(from_id, ())

    def forward(self, node_id: str) -> frozenset[str]:
        """node_id 的直接前置"""
        return frozenset(self._forward.get(node_id, ()))

    def reverse(self, node_id: str) -> frozenset[str]:
        """直接依赖 node_id 的节点（需先 rebuild_reverse）"""
        return frozenset(self._reverse.get(node_id, ()))

    def rebuild_reverse(self) -> None:
        """从当前正向边整体重建反向索引"""
        reverse: dict[str, set[str]] = {}
        for from_id, targets in self._forward.items():
            for to_id in targets:
                reverse.setdefault(to_id, set()).add(from_id)
        self._reverse = reverse

    def edges(self) -> list[tuple[str, str]]:
        """所有边，按 (from, to) 排序"""
        return sorted(
            (from_id, to_id)
            for from_id, targets in self._forward.items()
            for to_id in targets
        )

    def __len__(self) -> int:
        return sum(len(targets) for targets in self._forward.values())


class TaskGraph:
    """物化图：回放事件日志得到的当前状态"""

    def __init__(self) -> None:
        self.tasks: dict[str, Task] = {}
        self.deps = DependencyGraph()
        self.meta: dict[str, TaskMeta] = {}

    def get(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)

    def children_of(self, epic_id: str) -> list[Task]:
        """epic 的子任务，按 ID 排序"""
        return sorted(
            (t for t in self.tasks.values() if not t.is_epic and t.epic_id == epic_id),
            key=lambda t: t.id,
        )

    def sorted_tasks(self) -> list[Task]:
        return [self.tasks[task_id] for task_id in sorted(self.tasks)]
