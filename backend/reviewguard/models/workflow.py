from __future__ import annotations

from enum import Enum
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

E = TypeVar("E", bound=Enum)


class ViewerRole(str, Enum):
    """
    观察者相对于某一稿件的角色（每次请求重新解析，不做缓存）。
    """

    PUBLIC = "public"
    AUTHOR = "author"
    REVIEWER = "reviewer"
    EDITOR = "editor"
    ADMIN = "admin"


class GlobalRole(str, Enum):
    ADMIN = "ADMIN"
    EDITOR_IN_CHIEF = "EDITOR_IN_CHIEF"
    ACTION_EDITOR = "ACTION_EDITOR"
    USER = "USER"
    BOT = "BOT"


EDITORIAL_GLOBAL_ROLES = frozenset({GlobalRole.EDITOR_IN_CHIEF, GlobalRole.ACTION_EDITOR})


class WorkflowPhase(str, Enum):
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    DELIBERATION = "DELIBERATION"
    RELEASED = "RELEASED"
    AUTHOR_RESPONDING = "AUTHOR_RESPONDING"
    PUBLISHED = "PUBLISHED"


# 审稿意见对作者“已释放”的阶段
RELEASED_PHASES = frozenset({WorkflowPhase.RELEASED, WorkflowPhase.AUTHOR_RESPONDING})

# after_all_submit 模式下，进入这些阶段即视为审稿人互相可见
PEER_DISCLOSED_PHASES = frozenset(
    {WorkflowPhase.DELIBERATION, WorkflowPhase.RELEASED, WorkflowPhase.AUTHOR_RESPONDING}
)


class ReviewStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# 未退出（未拒绝、已接受）的审稿任务
ACTIVE_REVIEW_STATUSES = frozenset(
    {ReviewStatus.ACCEPTED, ReviewStatus.IN_PROGRESS, ReviewStatus.COMPLETED}
)


class MessagePrivacy(str, Enum):
    PUBLIC = "PUBLIC"
    AUTHOR_VISIBLE = "AUTHOR_VISIBLE"
    REVIEWER_ONLY = "REVIEWER_ONLY"
    EDITOR_ONLY = "EDITOR_ONLY"
    ADMIN_ONLY = "ADMIN_ONLY"


class ReviewDisclosure(str, Enum):
    REALTIME = "realtime"
    ON_RELEASE = "on_release"
    NEVER = "never"


class ReviewerIdentityDisclosure(str, Enum):
    ALWAYS = "always"
    ON_RELEASE = "on_release"
    NEVER = "never"


class PeerReviewDisclosure(str, Enum):
    REALTIME = "realtime"
    AFTER_ALL_SUBMIT = "after_all_submit"
    NEVER = "never"


class ResponseDisclosure(str, Enum):
    REALTIME = "realtime"
    ON_RELEASE = "on_release"


class AuthorIdentityDisclosure(str, Enum):
    ALWAYS = "always"
    NEVER = "never"


class AuthorParticipation(str, Enum):
    ANYTIME = "anytime"
    ON_RELEASE = "on_release"
    INVITED = "invited"


def _normalize_enum(enum_cls: Type[E], value: object) -> Optional[E]:
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    v = str(value).strip()
    if not v:
        return None
    v = v.upper()
    try:
        return enum_cls(v)
    except ValueError:
        return None


def normalize_global_role(value: object) -> Optional[GlobalRole]:
    return _normalize_enum(GlobalRole, value)


def normalize_phase(value: object) -> Optional[WorkflowPhase]:
    """
    将存储中的 workflow_phase 归一化为 WorkflowPhase。

    中文注释:
    - 兼容旧数据：历史上审稿阶段存为 `REVIEW`，这里映射为 UNDER_REVIEW。
    - 无法识别的阶段返回 None，上层视为“未释放”。
    """
    if isinstance(value, WorkflowPhase):
        return value
    legacy_map = {"REVIEW": WorkflowPhase.UNDER_REVIEW.value}
    raw = str(value or "").strip().upper()
    return _normalize_enum(WorkflowPhase, legacy_map.get(raw, raw))


def normalize_review_status(value: object) -> Optional[ReviewStatus]:
    return _normalize_enum(ReviewStatus, value)


def normalize_privacy(value: object) -> Optional[MessagePrivacy]:
    return _normalize_enum(MessagePrivacy, value)


class _CamelModel(BaseModel):
    # 存储层为 camelCase JSON（journal_settings.settings.workflowConfig）
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class AuthorPolicy(_CamelModel):
    sees_reviews: ReviewDisclosure = Field(alias="seesReviews")
    sees_reviewer_identity: ReviewerIdentityDisclosure = Field(alias="seesReviewerIdentity")
    can_participate: AuthorParticipation = Field(
        default=AuthorParticipation.ANYTIME, alias="canParticipate"
    )


class ReviewerPolicy(_CamelModel):
    see_each_other: PeerReviewDisclosure = Field(alias="seeEachOther")
    see_author_identity: AuthorIdentityDisclosure = Field(alias="seeAuthorIdentity")
    see_author_responses: ResponseDisclosure = Field(alias="seeAuthorResponses")


class PhasePolicy(_CamelModel):
    enabled: bool = False
    author_response_starts_new_cycle: bool = Field(
        default=False, alias="authorResponseStartsNewCycle"
    )
    require_all_reviews_before_release: bool = Field(
        default=False, alias="requireAllReviewsBeforeRelease"
    )


class WorkflowConfig(_CamelModel):
    """
    期刊级披露策略（每刊一份，由管理端配置）。
    """

    author: AuthorPolicy
    reviewers: ReviewerPolicy
    phases: PhasePolicy = Field(default_factory=PhasePolicy)
