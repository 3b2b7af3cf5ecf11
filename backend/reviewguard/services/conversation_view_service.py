from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from reviewguard.models.context import DecisionContext, Message, Viewer
from reviewguard.services.identity_masking import AuthorView, mask_message_author
from reviewguard.services.message_visibility import can_see
from reviewguard.services.reviewer_index import ReviewerIndexAllocator

logger = logging.getLogger("reviewguard.conversation_view")


@dataclass(frozen=True)
class RenderedMessage:
    """
    单条消息的渲染结果。

    中文注释: visible=False 时 author 为 None，表示“未做遮蔽计算”（消息不会下发），
    不代表匿名作者；调用方只能在 visible=True 时读取 author。
    """

    message: Message
    visible: bool
    author: Optional[AuthorView]


class ConversationViewService:
    """
    会话渲染：对每条消息分别判定可见性与身份遮蔽。

    中文注释:
    - 可见性与遮蔽相互独立，逐条计算，不合并为一个判定；
    - 只对可见消息做遮蔽，不可见消息的 author 为 None，不会触发审稿人序号分配。
    """

    def __init__(self, allocator: ReviewerIndexAllocator) -> None:
        self.allocator = allocator

    def render(
        self,
        ctx: DecisionContext,
        viewer: Viewer,
        messages: Iterable[Message],
    ) -> list[RenderedMessage]:
        out: list[RenderedMessage] = []
        for message in messages:
            visible = can_see(ctx, viewer, author_id=message.author.id, privacy=message.privacy)
            author = mask_message_author(ctx, self.allocator, message.author, viewer) if visible else None
            out.append(RenderedMessage(message=message, visible=visible, author=author))
        return out

    def visible_messages(
        self,
        ctx: DecisionContext,
        viewer: Viewer,
        messages: Iterable[Message],
    ) -> list[RenderedMessage]:
        rendered = self.render(ctx, viewer, messages)
        visible = [r for r in rendered if r.visible]
        logger.debug(
            "conversation rendered manuscript=%s visible=%d total=%d",
            ctx.manuscript_id,
            len(visible),
            len(rendered),
        )
        return visible
