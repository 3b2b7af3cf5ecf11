from __future__ import annotations

from typing import Optional

from reviewguard.models.context import DecisionContext
from reviewguard.models.workflow import (
    EDITORIAL_GLOBAL_ROLES,
    GlobalRole,
    ViewerRole,
    normalize_global_role,
)


def _role_from_global(global_role: Optional[GlobalRole]) -> Optional[ViewerRole]:
    if global_role == GlobalRole.ADMIN:
        return ViewerRole.ADMIN
    if global_role in EDITORIAL_GLOBAL_ROLES:
        return ViewerRole.EDITOR
    return None


def _role_from_membership(ctx: DecisionContext, user_id: str) -> ViewerRole:
    if user_id in ctx.author_ids:
        return ViewerRole.AUTHOR
    # 任意状态的审稿任务都算（含 PENDING / DECLINED）
    if user_id in ctx.reviewer_ids:
        return ViewerRole.REVIEWER
    return ViewerRole.PUBLIC


def resolve_role(
    ctx: DecisionContext,
    user_id: Optional[str],
    global_role: object = None,
) -> ViewerRole:
    """
    解析观察者相对于稿件的角色。

    中文注释:
    - 优先级：admin > editor（EIC/AE）> 作者 > 审稿人 > public，先匹配先返回；
    - 全局角色短路，不再查稿件级关系；
    - 匿名或无法识别的输入一律降级为 public，不抛异常。
    """
    if not user_id:
        return ViewerRole.PUBLIC
    by_global = _role_from_global(normalize_global_role(global_role))
    if by_global is not None:
        return by_global
    return _role_from_membership(ctx, str(user_id))


def resolve_author_role(ctx: DecisionContext, author_id: Optional[str]) -> ViewerRole:
    """
    解析“消息作者”的角色：与 resolve_role 同优先级，BOT 账号按 editor 对待。
    """
    if not author_id:
        return ViewerRole.PUBLIC
    global_role = ctx.global_role_of(author_id)
    if global_role == GlobalRole.BOT:
        return ViewerRole.EDITOR
    return resolve_role(ctx, author_id, global_role)
