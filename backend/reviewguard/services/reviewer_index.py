from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Iterable, Optional

from reviewguard.models.context import ReviewAssignment

logger = logging.getLogger("reviewguard.reviewer_index")

AssignmentLoader = Callable[[str], Iterable[ReviewAssignment]]

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def letter_for(ordinal: int) -> str:
    """
    序号 -> 字母：1->A, 2->B, ..., 26->Z, 27->AA（与表格列名同规则）。
    """
    n = int(ordinal)
    if n < 1:
        raise ValueError(f"reviewer ordinal must be positive, got {ordinal!r}")
    letters = ""
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def reviewer_pseudonym(ordinal: int) -> str:
    return f"Reviewer {letter_for(ordinal)}"


def _assigned_at_key(assignment: ReviewAssignment) -> datetime:
    ts = assignment.assigned_at
    if ts is None:
        return _FAR_FUTURE
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


class ReviewerIndexStore:
    """
    进程内“稿件 -> (审稿人 -> 序号)”存储，附带每稿件的版本号。

    中文注释:
    - 序号一经分配，在显式失效（drop）之前永不改变，也不会被容量淘汰；
    - 只有完整加载过的稿件才会接受追加，避免在空行上按请求顺序编号；
    - 版本号只增不减，每次失效 +1，便于观测缓存代际。
    """

    def __init__(self) -> None:
        self._ordinals: dict[str, dict[str, int]] = {}
        self._versions: dict[str, int] = {}
        self._lock = Lock()

    def get(self, manuscript_id: str, reviewer_id: str) -> Optional[int]:
        with self._lock:
            row = self._ordinals.get(manuscript_id)
            return None if row is None else row.get(reviewer_id)

    def has(self, manuscript_id: str) -> bool:
        with self._lock:
            return manuscript_id in self._ordinals

    def snapshot(self, manuscript_id: str) -> dict[str, int]:
        with self._lock:
            return dict(self._ordinals.get(manuscript_id) or {})

    def allocate(
        self,
        manuscript_id: str,
        reviewer_id: str,
        loaded: Optional[dict[str, int]] = None,
    ) -> Optional[int]:
        """
        在同一把锁内完成“安装加载结果 / 查找 / 追加”。

        稿件尚未加载且未提供 loaded 时返回 None，调用方需先加载再重试。
        并发首次加载时先写入者胜出，两者顺序一致。
        """
        with self._lock:
            row = self._ordinals.get(manuscript_id)
            if row is None:
                if loaded is None:
                    return None
                row = dict(loaded)
                self._ordinals[manuscript_id] = row
            existing = row.get(reviewer_id)
            if existing is not None:
                return existing
            ordinal = len(row) + 1
            row[reviewer_id] = ordinal
            return ordinal

    def drop(self, manuscript_id: Optional[str] = None) -> None:
        with self._lock:
            if manuscript_id:
                self._ordinals.pop(manuscript_id, None)
                self._versions[manuscript_id] = self._versions.get(manuscript_id, 0) + 1
                return
            touched = set(self._ordinals) | set(self._versions)
            self._ordinals.clear()
            for mid in touched:
                self._versions[mid] = self._versions.get(mid, 0) + 1

    def version(self, manuscript_id: str) -> int:
        with self._lock:
            return self._versions.get(manuscript_id, 0)


class ReviewerIndexAllocator:
    """
    审稿人序号分配器（用于生成 "Reviewer A/B/..." 化名）。

    中文注释:
    - 首次引用某稿件时，通过注入的 loader 读取全部审稿任务，按 assigned_at 升序分配 1..N；
    - 之后命中缓存，不再查库；
    - 缓存填充后才出现的审稿人，追加为 size+1，已分配的序号从不重排；
    - 审稿任务变更方必须调用 invalidate()，否则新序号可能与 assigned_at 顺序不一致。
    """

    def __init__(self, loader: AssignmentLoader, *, store: Optional[ReviewerIndexStore] = None) -> None:
        self._loader = loader
        self._store = store if store is not None else ReviewerIndexStore()

    @property
    def store(self) -> ReviewerIndexStore:
        return self._store

    def _load_ordinals(self, manuscript_id: str) -> dict[str, int]:
        assignments = sorted(self._loader(manuscript_id), key=_assigned_at_key)
        ordinals: dict[str, int] = {}
        for assignment in assignments:
            rid = str(assignment.reviewer_id or "").strip()
            if rid and rid not in ordinals:
                ordinals[rid] = len(ordinals) + 1
        return ordinals

    def index_of(self, reviewer_id: str, manuscript_id: str) -> int:
        rid = str(reviewer_id)
        mid = str(manuscript_id)

        ordinal = self._store.allocate(mid, rid)
        if ordinal is not None:
            return ordinal

        # 加载在锁外进行；安装与分配在 allocate 内原子完成
        ordinals = self._load_ordinals(mid)
        logger.debug("reviewer index loaded manuscript=%s reviewers=%d", mid, len(ordinals))
        ordinal = self._store.allocate(mid, rid, ordinals)
        if ordinal is None:
            raise RuntimeError(f"reviewer index allocation failed for manuscript={mid}")
        return ordinal

    def pseudonym_for(self, reviewer_id: str, manuscript_id: str) -> str:
        return reviewer_pseudonym(self.index_of(reviewer_id, manuscript_id))

    def invalidate(self, manuscript_id: Optional[str] = None) -> None:
        self._store.drop(str(manuscript_id) if manuscript_id else None)
        logger.info("reviewer index invalidated manuscript=%s", manuscript_id or "*")

    def version(self, manuscript_id: str) -> int:
        return self._store.version(str(manuscript_id))
