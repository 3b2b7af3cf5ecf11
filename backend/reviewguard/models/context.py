from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional

from reviewguard.models.workflow import (
    GlobalRole,
    MessagePrivacy,
    ReviewStatus,
    WorkflowConfig,
    WorkflowPhase,
)


@dataclass(frozen=True)
class ManuscriptContext:
    id: str
    workflow_phase: Optional[WorkflowPhase]
    workflow_round: int = 1
    journal_id: Optional[str] = None


@dataclass(frozen=True)
class ReviewAssignment:
    reviewer_id: str
    status: Optional[ReviewStatus]
    assigned_at: Optional[datetime] = None


@dataclass(frozen=True)
class Viewer:
    """
    当前请求的观察者；user_id 缺省即匿名（public）。
    """

    user_id: Optional[str] = None
    global_role: Optional[GlobalRole] = None


@dataclass(frozen=True)
class MessageAuthor:
    id: str
    username: str
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class Message:
    id: str
    conversation_id: str
    author: MessageAuthor
    privacy: Optional[MessagePrivacy]
    content: str = ""
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class DecisionContext:
    """
    单次请求的“决策上下文”：由数据加载层一次性解析，策略函数只读不查库。

    中文注释:
    - global_roles 只需覆盖本页消息作者（含 BOT 账号），缺失即视为普通用户。
    - config 为 None 表示期刊未配置 workflow 策略（简单模式）。
    """

    manuscript: ManuscriptContext
    author_ids: frozenset[str] = frozenset()
    assignments: tuple[ReviewAssignment, ...] = ()
    global_roles: Mapping[str, GlobalRole] = field(default_factory=dict)
    config: Optional[WorkflowConfig] = None
    has_author_invitation: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "global_roles", MappingProxyType(dict(self.global_roles)))

    @property
    def manuscript_id(self) -> str:
        return self.manuscript.id

    @property
    def phase(self) -> Optional[WorkflowPhase]:
        return self.manuscript.workflow_phase

    @property
    def reviewer_ids(self) -> frozenset[str]:
        return frozenset(a.reviewer_id for a in self.assignments)

    def global_role_of(self, user_id: Optional[str]) -> Optional[GlobalRole]:
        if not user_id:
            return None
        return self.global_roles.get(user_id)
