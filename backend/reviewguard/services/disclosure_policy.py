from __future__ import annotations

from typing import Iterable, Optional

from reviewguard.models.context import ReviewAssignment
from reviewguard.models.workflow import (
    ACTIVE_REVIEW_STATUSES,
    PEER_DISCLOSED_PHASES,
    RELEASED_PHASES,
    AuthorIdentityDisclosure,
    MessagePrivacy,
    PeerReviewDisclosure,
    ResponseDisclosure,
    ReviewDisclosure,
    ReviewerIdentityDisclosure,
    ReviewStatus,
    WorkflowConfig,
    WorkflowPhase,
)

# 中文注释:
# - 本模块全部为纯函数：阶段与审稿状态变化频繁，每次调用都按传入数据重新计算，禁止缓存。
# - 对 Enum 的分支全部显式列出，未覆盖的取值统一返回 False（不披露）。

_AUTHOR_READABLE_PRIVACY = frozenset({MessagePrivacy.AUTHOR_VISIBLE, MessagePrivacy.PUBLIC})


def is_released(phase: Optional[WorkflowPhase]) -> bool:
    return phase in RELEASED_PHASES


def all_reviews_complete(assignments: Iterable[ReviewAssignment]) -> bool:
    """
    所有未退出的审稿任务（ACCEPTED / IN_PROGRESS / COMPLETED）均已 COMPLETED。

    没有任何此类任务时返回 False（尚无可披露的审稿意见）。
    """
    active = [a for a in assignments if a.status in ACTIVE_REVIEW_STATUSES]
    if not active:
        return False
    return all(a.status == ReviewStatus.COMPLETED for a in active)


def author_can_see_review(
    config: WorkflowConfig,
    phase: Optional[WorkflowPhase],
    message_privacy: Optional[MessagePrivacy],
) -> bool:
    if message_privacy not in _AUTHOR_READABLE_PRIVACY:
        return False
    mode = config.author.sees_reviews
    if mode == ReviewDisclosure.REALTIME:
        return True
    if mode == ReviewDisclosure.ON_RELEASE:
        return is_released(phase)
    return False


def author_can_see_reviewer_identity(config: WorkflowConfig, phase: Optional[WorkflowPhase]) -> bool:
    mode = config.author.sees_reviewer_identity
    if mode == ReviewerIdentityDisclosure.ALWAYS:
        return True
    if mode == ReviewerIdentityDisclosure.ON_RELEASE:
        return is_released(phase)
    return False


def reviewers_can_see_each_other(
    config: WorkflowConfig,
    phase: Optional[WorkflowPhase],
    assignments: Iterable[ReviewAssignment],
) -> bool:
    """
    审稿人之间是否互相可见（内容与身份共用此判定）。

    after_all_submit：进入 DELIBERATION / RELEASED / AUTHOR_RESPONDING，
    或所有未退出的审稿任务均已完成（与阶段无关）。
    """
    mode = config.reviewers.see_each_other
    if mode == PeerReviewDisclosure.REALTIME:
        return True
    if mode == PeerReviewDisclosure.AFTER_ALL_SUBMIT:
        return phase in PEER_DISCLOSED_PHASES or all_reviews_complete(assignments)
    return False


def reviewers_can_see_author_responses(config: WorkflowConfig, phase: Optional[WorkflowPhase]) -> bool:
    # 作者回复从不对审稿人永久隐藏，只是可能延后到释放阶段
    if config.reviewers.see_author_responses == ResponseDisclosure.REALTIME:
        return True
    return is_released(phase)


def reviewers_can_see_author_identity(config: WorkflowConfig) -> bool:
    return config.reviewers.see_author_identity == AuthorIdentityDisclosure.ALWAYS
