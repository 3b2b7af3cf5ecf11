from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class AuthorOut(BaseModel):
    """
    对外展示的消息作者。

    中文注释: 不包含 original_id，被遮蔽的观察者永远拿不到真实 id。
    """

    id: str
    username: str
    name: str
    is_masked: bool = False


class MessageOut(BaseModel):
    id: str
    conversation_id: str
    privacy: Optional[str] = None
    content: str = ""
    created_at: Optional[datetime] = None
    author: AuthorOut


class ConversationMessagesResponse(BaseModel):
    manuscript_id: str
    conversation_id: str
    phase: Optional[str] = None
    round: int = 1
    messages: List[MessageOut] = Field(default_factory=list)


class ParticipationStatusOut(BaseModel):
    can_participate: bool
    reason: Optional[str] = None
    viewer_role: str
    phase: Optional[str] = None
    round: int = 1


class PendingChangeOut(BaseModel):
    will_be_visible_to: str
    when: str


class EffectiveVisibilityOut(BaseModel):
    level: str
    label: str
    description: str
    phase_restricted: bool = False
    pending_change: Optional[PendingChangeOut] = None


class ReviewerIndexInvalidateRequest(BaseModel):
    manuscript_id: Optional[str] = Field(None, description="缺省则清空全部稿件的序号缓存")


class WorkflowConfigInvalidateRequest(BaseModel):
    journal_id: Optional[str] = Field(None, description="缺省则清空全部期刊的策略缓存")


class InvalidateResponse(BaseModel):
    success: bool = True
    scope: str
    version: Optional[int] = None
