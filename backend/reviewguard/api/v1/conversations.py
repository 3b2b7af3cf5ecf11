from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from reviewguard.core.auth_utils import get_viewer
from reviewguard.models.context import Viewer
from reviewguard.schemas.conversation import (
    AuthorOut,
    ConversationMessagesResponse,
    EffectiveVisibilityOut,
    MessageOut,
    ParticipationStatusOut,
    PendingChangeOut,
)
from reviewguard.services.conversation_view_service import ConversationViewService
from reviewguard.services.decision_context import DecisionContextLoader
from reviewguard.services.message_visibility import can_see
from reviewguard.services.participation import participation_status
from reviewguard.services.reviewer_index import ReviewerIndexAllocator
from reviewguard.services.visibility_legend import describe_visibility
from reviewguard.services.workflow_config_service import WorkflowConfigService
from reviewguard.api.v1.visibility_common import (
    get_context_loader,
    get_reviewer_index,
    get_workflow_config_service,
)

router = APIRouter(tags=["Conversations"])


@router.get(
    "/manuscripts/{manuscript_id}/conversations/{conversation_id}/messages",
    response_model=ConversationMessagesResponse,
)
async def list_conversation_messages(
    manuscript_id: str,
    conversation_id: str,
    viewer: Viewer = Depends(get_viewer),
    loader: DecisionContextLoader = Depends(get_context_loader),
    allocator: ReviewerIndexAllocator = Depends(get_reviewer_index),
    config_service: WorkflowConfigService = Depends(get_workflow_config_service),
):
    """
    按观察者身份渲染会话消息。

    中文注释:
    - 逐条判定可见性，不可见的消息直接不返回（连存在与否都不暴露）；
    - 可见消息再独立做身份遮蔽，被遮蔽的作者只返回化名身份。
    """
    manuscript = loader.load_manuscript(manuscript_id)
    config = config_service.get(manuscript.journal_id)
    messages = loader.load_messages(manuscript.id, conversation_id)
    ctx = loader.build(
        manuscript,
        config=config,
        author_user_ids={m.author.id for m in messages},
    )

    rendered = ConversationViewService(allocator).visible_messages(ctx, viewer, messages)
    phase = ctx.phase
    return ConversationMessagesResponse(
        manuscript_id=manuscript.id,
        conversation_id=conversation_id,
        phase=phase.value if phase else None,
        round=manuscript.workflow_round,
        messages=[
            MessageOut(
                id=r.message.id,
                conversation_id=r.message.conversation_id,
                privacy=r.message.privacy.value if r.message.privacy else None,
                content=r.message.content,
                created_at=r.message.created_at,
                author=AuthorOut(
                    id=r.author.id,
                    username=r.author.username,
                    name=r.author.name,
                    is_masked=r.author.is_masked,
                ),
            )
            for r in rendered
            if r.author is not None
        ],
    )


@router.get(
    "/manuscripts/{manuscript_id}/participation",
    response_model=ParticipationStatusOut,
)
async def get_participation_status(
    manuscript_id: str,
    viewer: Viewer = Depends(get_viewer),
    loader: DecisionContextLoader = Depends(get_context_loader),
    config_service: WorkflowConfigService = Depends(get_workflow_config_service),
):
    manuscript = loader.load_manuscript(manuscript_id)
    config = config_service.get(manuscript.journal_id)
    ctx = loader.build(manuscript, config=config, include_invitation=True)
    return ParticipationStatusOut(**participation_status(ctx, viewer))


@router.get(
    "/manuscripts/{manuscript_id}/messages/{message_id}/visibility",
    response_model=EffectiveVisibilityOut,
)
async def get_message_visibility(
    manuscript_id: str,
    message_id: str,
    viewer: Viewer = Depends(get_viewer),
    loader: DecisionContextLoader = Depends(get_context_loader),
    config_service: WorkflowConfigService = Depends(get_workflow_config_service),
):
    """
    返回消息的“实际可见范围”说明（前端可见性图例）。

    看不到该消息的观察者得到 404，与消息不存在无法区分。
    """
    manuscript = loader.load_manuscript(manuscript_id)
    config = config_service.get(manuscript.journal_id)
    row = loader.load_message(manuscript.id, message_id)
    author_id = str(row.get("author_id") or "")
    ctx = loader.build(manuscript, config=config, author_user_ids=[author_id])

    if not can_see(ctx, viewer, author_id=author_id, privacy=row.get("privacy")):
        raise HTTPException(status_code=404, detail="Message not found")

    result = describe_visibility(ctx, author_id=author_id, privacy=row.get("privacy"))
    pending = result.pending_change
    return EffectiveVisibilityOut(
        level=result.level,
        label=result.label,
        description=result.description,
        phase_restricted=result.phase_restricted,
        pending_change=(
            PendingChangeOut(will_be_visible_to=pending.will_be_visible_to, when=pending.when)
            if pending
            else None
        ),
    )
