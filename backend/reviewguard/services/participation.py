from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from reviewguard.core.roles import resolve_role
from reviewguard.models.context import DecisionContext, Viewer
from reviewguard.models.workflow import (
    AuthorParticipation,
    ViewerRole,
    WorkflowConfig,
    WorkflowPhase,
)
from reviewguard.services.disclosure_policy import is_released


@dataclass(frozen=True)
class ParticipationResult:
    allowed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class PhaseChange:
    new_phase: WorkflowPhase
    new_round: int


_ALLOWED = ParticipationResult(allowed=True)


def _author_participation(ctx: DecisionContext, config: WorkflowConfig) -> ParticipationResult:
    mode = config.author.can_participate
    if mode == AuthorParticipation.ANYTIME:
        return _ALLOWED
    if mode == AuthorParticipation.ON_RELEASE:
        if is_released(ctx.phase):
            return _ALLOWED
        return ParticipationResult(
            allowed=False,
            reason=(
                "Authors can only participate after reviews have been released. "
                "Please wait for the editorial decision."
            ),
        )
    if mode == AuthorParticipation.INVITED:
        if ctx.has_author_invitation:
            return _ALLOWED
        return ParticipationResult(
            allowed=False,
            reason=(
                "Authors can only participate when explicitly invited by the editor. "
                "Please wait for an invitation to respond."
            ),
        )
    return ParticipationResult(allowed=False, reason="Participation not allowed in current workflow state")


def can_user_participate(ctx: DecisionContext, viewer: Viewer) -> ParticipationResult:
    """
    观察者能否在当前稿件讨论中发言。

    中文注释:
    - 匿名用户一律拒绝；无 workflow 策略时登录用户均可发言；
    - admin / editor / reviewer 任意阶段可发言；
    - 作者按 author.canParticipate 判定（invited 需本轮释放后的编辑邀请）。
    """
    if not viewer.user_id:
        return ParticipationResult(allowed=False, reason="Authentication required to participate in discussions")

    config = ctx.config
    if config is None:
        return _ALLOWED

    role = resolve_role(ctx, viewer.user_id, viewer.global_role)
    if role in (ViewerRole.ADMIN, ViewerRole.EDITOR, ViewerRole.REVIEWER):
        return _ALLOWED
    if role == ViewerRole.AUTHOR:
        return _author_participation(ctx, config)
    return ParticipationResult(
        allowed=False, reason="You do not have permission to participate in this discussion"
    )


def participation_status(ctx: DecisionContext, viewer: Viewer) -> dict[str, Any]:
    result = can_user_participate(ctx, viewer)
    phase = ctx.phase
    return {
        "can_participate": result.allowed,
        "reason": result.reason,
        "viewer_role": resolve_role(ctx, viewer.user_id, viewer.global_role).value,
        "phase": phase.value if phase else None,
        "round": ctx.manuscript.workflow_round,
    }


def next_phase_after_author_response(
    config: Optional[WorkflowConfig],
    phase: Optional[WorkflowPhase],
    *,
    author_role: ViewerRole,
    current_round: int,
) -> Optional[PhaseChange]:
    """
    作者在 RELEASED 阶段回复时是否开启新一轮（由调用方落库）。
    """
    if config is None or not config.phases.enabled:
        return None
    if author_role != ViewerRole.AUTHOR:
        return None
    if phase == WorkflowPhase.RELEASED and config.phases.author_response_starts_new_cycle:
        return PhaseChange(new_phase=WorkflowPhase.AUTHOR_RESPONDING, new_round=int(current_round) + 1)
    return None
