from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from reviewguard.core.roles import resolve_author_role
from reviewguard.models.context import DecisionContext
from reviewguard.models.workflow import (
    MessagePrivacy,
    PeerReviewDisclosure,
    ReviewDisclosure,
    ViewerRole,
    WorkflowConfig,
    normalize_privacy,
)
from reviewguard.services.disclosure_policy import (
    author_can_see_review,
    reviewers_can_see_author_responses,
    reviewers_can_see_each_other,
)


@dataclass(frozen=True)
class PendingChange:
    will_be_visible_to: str
    when: str


@dataclass(frozen=True)
class EffectiveVisibility:
    """
    消息“当前实际可见范围”的描述（供前端 VisibilityLegend 使用）。

    中文注释:
    - level 为机器可读的范围；label/description 为展示文案；
    - phase_restricted=True 表示仅因当前阶段受限，pending_change 说明何时放开；
    - 永久性限制（策略为 never）不带 pending_change。
    """

    level: str
    label: str
    description: str
    phase_restricted: bool = False
    pending_change: Optional[PendingChange] = None


_BY_PRIVACY: dict[MessagePrivacy, EffectiveVisibility] = {
    MessagePrivacy.PUBLIC: EffectiveVisibility(
        level="everyone", label="Public", description="Visible to everyone, including the public."
    ),
    MessagePrivacy.AUTHOR_VISIBLE: EffectiveVisibility(
        level="participants",
        label="All Participants",
        description="Visible to authors, reviewers and editors of this manuscript.",
    ),
    MessagePrivacy.REVIEWER_ONLY: EffectiveVisibility(
        level="reviewers_editors",
        label="Reviewers & Editors",
        description="Visible to assigned reviewers and editors.",
    ),
    MessagePrivacy.EDITOR_ONLY: EffectiveVisibility(
        level="editors_only", label="Editors Only", description="Visible to editors and admins only."
    ),
    MessagePrivacy.ADMIN_ONLY: EffectiveVisibility(
        level="admins_only", label="Admins Only", description="Visible to admins only."
    ),
}

_WORKFLOW_SCOPED_PRIVACY = frozenset({MessagePrivacy.PUBLIC, MessagePrivacy.AUTHOR_VISIBLE})


def _privacy_based(privacy: Optional[MessagePrivacy]) -> EffectiveVisibility:
    if privacy is None:
        return _BY_PRIVACY[MessagePrivacy.ADMIN_ONLY]
    return _BY_PRIVACY[privacy]


def _reviewer_message(
    ctx: DecisionContext, config: WorkflowConfig, privacy: MessagePrivacy
) -> EffectiveVisibility:
    authors_see = author_can_see_review(config, ctx.phase, privacy)
    peers_see = reviewers_can_see_each_other(config, ctx.phase, ctx.assignments)

    if not authors_see:
        if config.author.sees_reviews == ReviewDisclosure.ON_RELEASE:
            return EffectiveVisibility(
                level="reviewers_editors",
                label="Reviewers & Editors",
                description="Authors will see this message once reviews are released.",
                phase_restricted=True,
                pending_change=PendingChange(will_be_visible_to="authors", when="when reviews are released"),
            )
        return EffectiveVisibility(
            level="reviewers_editors",
            label="Reviewers & Editors",
            description="Authors cannot see reviewer messages under this journal's policy.",
        )

    if not peers_see:
        pending = None
        if config.reviewers.see_each_other == PeerReviewDisclosure.AFTER_ALL_SUBMIT:
            pending = PendingChange(will_be_visible_to="reviewers", when="when all reviews are submitted")
        return EffectiveVisibility(
            level="participants",
            label="Authors & Editors",
            description="Other reviewers cannot see this message.",
            phase_restricted=pending is not None,
            pending_change=pending,
        )

    return _privacy_based(privacy)


def _author_message(
    ctx: DecisionContext, config: WorkflowConfig, privacy: MessagePrivacy
) -> EffectiveVisibility:
    if reviewers_can_see_author_responses(config, ctx.phase):
        return _privacy_based(privacy)
    return EffectiveVisibility(
        level="editors_only",
        label="Editors Only",
        description="Reviewers will see this response once reviews are released.",
        phase_restricted=True,
        pending_change=PendingChange(will_be_visible_to="reviewers", when="when reviews are released"),
    )


def describe_visibility(ctx: DecisionContext, *, author_id: str, privacy: object) -> EffectiveVisibility:
    normalized = normalize_privacy(privacy)
    config = ctx.config
    if config is None or normalized not in _WORKFLOW_SCOPED_PRIVACY:
        return _privacy_based(normalized)

    author_role = resolve_author_role(ctx, author_id)
    if author_role == ViewerRole.REVIEWER:
        return _reviewer_message(ctx, config, normalized)
    if author_role == ViewerRole.AUTHOR:
        return _author_message(ctx, config, normalized)
    return _privacy_based(normalized)
