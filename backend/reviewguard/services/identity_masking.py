from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from reviewguard.core.roles import resolve_author_role, resolve_role
from reviewguard.models.context import DecisionContext, MessageAuthor, Viewer
from reviewguard.models.workflow import ViewerRole, WorkflowConfig
from reviewguard.services.disclosure_policy import (
    author_can_see_reviewer_identity,
    reviewers_can_see_author_identity,
    reviewers_can_see_each_other,
)
from reviewguard.services.reviewer_index import ReviewerIndexAllocator

AUTHOR_PSEUDONYM = "Author"

_PRIVILEGED_VIEWERS = frozenset({ViewerRole.ADMIN, ViewerRole.EDITOR})


@dataclass(frozen=True)
class MaskDecision:
    masked: bool
    pseudonym: Optional[str] = None


_UNMASKED = MaskDecision(masked=False)


@dataclass(frozen=True)
class AuthorView:
    """
    展示给观察者的作者身份：真实身份，或化名身份。

    original_id 仅供 editor/admin 下游使用，禁止序列化给被遮蔽的观察者。
    """

    id: str
    username: str
    name: str
    is_masked: bool = False
    email: Optional[str] = None
    original_id: Optional[str] = None


def slugify_pseudonym(pseudonym: str) -> str:
    return re.sub(r"\s+", "-", pseudonym.strip().lower())


def should_mask_identity(
    ctx: DecisionContext,
    allocator: ReviewerIndexAllocator,
    *,
    config: WorkflowConfig,
    viewer_role: ViewerRole,
    author_role: ViewerRole,
    author_id: str,
    viewer_id: Optional[str],
) -> MaskDecision:
    """
    判定 (观察者, 消息作者) 是否需要遮蔽身份，以及替换成什么化名。

    中文注释（按顺序，先命中先返回）:
    1) admin / editor 永不遮蔽；
    2) 自己永远看得到自己；
    3) 作者看审稿人：除 always 或 on_release 且已释放外，一律 "Reviewer X"；
    4) 审稿人看作者：seeAuthorIdentity=never 时显示 "Author"；
    5) 审稿人看其他审稿人：互相不可见时显示 "Reviewer X"；
    6) 其余不遮蔽。
    """
    if viewer_role in _PRIVILEGED_VIEWERS:
        return _UNMASKED

    if viewer_id and author_id == viewer_id:
        return _UNMASKED

    if viewer_role == ViewerRole.AUTHOR and author_role == ViewerRole.REVIEWER:
        if author_can_see_reviewer_identity(config, ctx.phase):
            return _UNMASKED
        return MaskDecision(masked=True, pseudonym=allocator.pseudonym_for(author_id, ctx.manuscript_id))

    if viewer_role == ViewerRole.REVIEWER and author_role == ViewerRole.AUTHOR:
        if reviewers_can_see_author_identity(config):
            return _UNMASKED
        return MaskDecision(masked=True, pseudonym=AUTHOR_PSEUDONYM)

    if viewer_role == ViewerRole.REVIEWER and author_role == ViewerRole.REVIEWER:
        if reviewers_can_see_each_other(config, ctx.phase, ctx.assignments):
            return _UNMASKED
        return MaskDecision(masked=True, pseudonym=allocator.pseudonym_for(author_id, ctx.manuscript_id))

    return _UNMASKED


def _real_author(author: MessageAuthor) -> AuthorView:
    return AuthorView(
        id=author.id,
        username=author.username,
        name=author.name or author.username,
        email=author.email,
        is_masked=False,
    )


def mask_message_author(
    ctx: DecisionContext,
    allocator: ReviewerIndexAllocator,
    author: MessageAuthor,
    viewer: Viewer,
) -> AuthorView:
    """
    对单条消息作者应用身份遮蔽。

    期刊未配置 workflow 策略时不做遮蔽（简单模式无匿名承诺）。
    """
    config = ctx.config
    if config is None:
        return _real_author(author)

    decision = should_mask_identity(
        ctx,
        allocator,
        config=config,
        viewer_role=resolve_role(ctx, viewer.user_id, viewer.global_role),
        author_role=resolve_author_role(ctx, author.id),
        author_id=author.id,
        viewer_id=viewer.user_id,
    )
    if not decision.masked or not decision.pseudonym:
        return _real_author(author)

    return AuthorView(
        id=f"masked-{author.id[:8]}",
        username=slugify_pseudonym(decision.pseudonym),
        name=decision.pseudonym,
        is_masked=True,
        original_id=author.id,
    )
