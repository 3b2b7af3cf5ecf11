from __future__ import annotations

from typing import Optional

from reviewguard.core.roles import resolve_author_role, resolve_role
from reviewguard.models.context import DecisionContext, Viewer
from reviewguard.models.workflow import MessagePrivacy, ViewerRole, WorkflowConfig, normalize_privacy
from reviewguard.services.disclosure_policy import (
    author_can_see_review,
    reviewers_can_see_author_responses,
    reviewers_can_see_each_other,
)

# 简单模式（无 workflow 策略）：privacy -> 允许的观察者角色
_SIMPLE_MODE_AUDIENCE: dict[MessagePrivacy, frozenset[ViewerRole]] = {
    MessagePrivacy.PUBLIC: frozenset(ViewerRole),
    MessagePrivacy.AUTHOR_VISIBLE: frozenset(
        {ViewerRole.ADMIN, ViewerRole.EDITOR, ViewerRole.AUTHOR, ViewerRole.REVIEWER}
    ),
    MessagePrivacy.REVIEWER_ONLY: frozenset({ViewerRole.ADMIN, ViewerRole.EDITOR, ViewerRole.REVIEWER}),
    MessagePrivacy.EDITOR_ONLY: frozenset({ViewerRole.ADMIN, ViewerRole.EDITOR}),
    MessagePrivacy.ADMIN_ONLY: frozenset({ViewerRole.ADMIN}),
}


def can_see_simple(viewer_role: ViewerRole, privacy: Optional[MessagePrivacy]) -> bool:
    if privacy is None:
        return False
    return viewer_role in _SIMPLE_MODE_AUDIENCE.get(privacy, frozenset())


def can_see_with_workflow(
    ctx: DecisionContext,
    config: WorkflowConfig,
    *,
    viewer_role: ViewerRole,
    viewer_id: Optional[str],
    author_role: ViewerRole,
    author_id: str,
    privacy: Optional[MessagePrivacy],
) -> bool:
    if viewer_role in (ViewerRole.ADMIN, ViewerRole.EDITOR):
        return True

    if viewer_role == ViewerRole.AUTHOR:
        if author_role == ViewerRole.REVIEWER:
            return author_can_see_review(config, ctx.phase, privacy)
        return True

    if viewer_role == ViewerRole.REVIEWER:
        if author_role == ViewerRole.REVIEWER and author_id != viewer_id:
            return reviewers_can_see_each_other(config, ctx.phase, ctx.assignments)
        if author_role == ViewerRole.AUTHOR:
            return reviewers_can_see_author_responses(config, ctx.phase)
        return True

    return privacy == MessagePrivacy.PUBLIC


def can_see(
    ctx: DecisionContext,
    viewer: Viewer,
    *,
    author_id: str,
    privacy: object,
) -> bool:
    """
    观察者能否看到某条消息（存在与内容）。

    中文注释:
    - 无 workflow 策略：只看 privacy 与观察者角色，与阶段无关；未知 privacy 一律拒绝；
    - 有 workflow 策略：按阶段与期刊披露规则判定；
    - 身份遮蔽由 identity_masking 独立判定，二者不合并。
    """
    normalized = normalize_privacy(privacy)
    viewer_role = resolve_role(ctx, viewer.user_id, viewer.global_role)

    config = ctx.config
    if config is None:
        return can_see_simple(viewer_role, normalized)

    return can_see_with_workflow(
        ctx,
        config,
        viewer_role=viewer_role,
        viewer_id=viewer.user_id,
        author_role=resolve_author_role(ctx, author_id),
        author_id=author_id,
        privacy=normalized,
    )
