from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from fastapi import HTTPException

from reviewguard.lib.api_client import supabase_admin
from reviewguard.models.context import (
    DecisionContext,
    ManuscriptContext,
    Message,
    MessageAuthor,
    ReviewAssignment,
)
from reviewguard.models.workflow import (
    GlobalRole,
    WorkflowConfig,
    normalize_global_role,
    normalize_phase,
    normalize_privacy,
    normalize_review_status,
)

logger = logging.getLogger("reviewguard.decision_context")


def _parse_iso_datetime(raw: Any) -> datetime | None:
    text = str(raw or "").strip()
    if not text:
        return None
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _rows(resp: Any) -> list[dict]:
    data = getattr(resp, "data", None) or []
    if isinstance(data, dict):
        return [data]
    return list(data)


class DecisionContextLoader:
    """
    数据加载层：把一次请求所需的全部事实读出来，组装成不可变的 DecisionContext。

    中文注释:
    - 策略函数（disclosure / masking / visibility）不再内联查库，只消费本层的结果；
    - 唯一例外是审稿人序号分配器，它通过 load_review_assignments 自行填充缓存；
    - 稿件不存在返回 404（调用方职责），其余可选数据缺失时降级为空集合。
    """

    def __init__(self, client: Any = None) -> None:
        self.client = client if client is not None else supabase_admin

    def load_manuscript(self, manuscript_id: str) -> ManuscriptContext:
        try:
            resp = (
                self.client.table("manuscripts")
                .select("id,journal_id,workflow_phase,workflow_round")
                .eq("id", str(manuscript_id))
                .single()
                .execute()
            )
        except Exception as e:
            raise HTTPException(status_code=404, detail="Manuscript not found") from e

        row = getattr(resp, "data", None) or {}
        if not row:
            raise HTTPException(status_code=404, detail="Manuscript not found")

        try:
            workflow_round = max(1, int(row.get("workflow_round") or 1))
        except (TypeError, ValueError):
            workflow_round = 1

        return ManuscriptContext(
            id=str(row.get("id") or manuscript_id),
            workflow_phase=normalize_phase(row.get("workflow_phase")),
            workflow_round=workflow_round,
            journal_id=str(row.get("journal_id") or "").strip() or None,
        )

    def load_author_ids(self, manuscript_id: str) -> frozenset[str]:
        resp = (
            self.client.table("manuscript_authors")
            .select("user_id")
            .eq("manuscript_id", str(manuscript_id))
            .execute()
        )
        return frozenset(
            str(row.get("user_id")).strip() for row in _rows(resp) if str(row.get("user_id") or "").strip()
        )

    def load_review_assignments(self, manuscript_id: str) -> list[ReviewAssignment]:
        resp = (
            self.client.table("review_assignments")
            .select("reviewer_id,status,assigned_at")
            .eq("manuscript_id", str(manuscript_id))
            .order("assigned_at")
            .execute()
        )
        out: list[ReviewAssignment] = []
        for row in _rows(resp):
            reviewer_id = str(row.get("reviewer_id") or "").strip()
            if not reviewer_id:
                continue
            out.append(
                ReviewAssignment(
                    reviewer_id=reviewer_id,
                    status=normalize_review_status(row.get("status")),
                    assigned_at=_parse_iso_datetime(row.get("assigned_at")),
                )
            )
        return out

    def _load_profiles(self, user_ids: Iterable[str]) -> list[dict]:
        ids = sorted({str(x).strip() for x in user_ids if str(x or "").strip()})
        if not ids:
            return []
        resp = (
            self.client.table("user_profiles")
            .select("id,username,full_name,email,global_role")
            .in_("id", ids)
            .execute()
        )
        return _rows(resp)

    def load_global_roles(self, user_ids: Iterable[str]) -> dict[str, GlobalRole]:
        out: dict[str, GlobalRole] = {}
        for row in self._load_profiles(user_ids):
            role = normalize_global_role(row.get("global_role"))
            if role is not None:
                out[str(row.get("id"))] = role
        return out

    def has_author_invitation(self, manuscript_id: str) -> bool:
        """
        本轮释放之后是否存在编辑发出的“邀请作者回复”消息。

        中文注释: 任一查询失败都按“未邀请”处理（不放开作者发言）。
        """
        mid = str(manuscript_id)
        try:
            release_resp = (
                self.client.table("workflow_releases")
                .select("released_at")
                .eq("manuscript_id", mid)
                .order("released_at", desc=True)
                .limit(1)
                .execute()
            )
            releases = _rows(release_resp)
            since = _parse_iso_datetime(releases[0].get("released_at")) if releases else None

            conv_resp = self.client.table("conversations").select("id").eq("manuscript_id", mid).execute()
            conversation_ids = [str(r.get("id")) for r in _rows(conv_resp) if r.get("id")]
            if not conversation_ids:
                return False

            query = (
                self.client.table("messages")
                .select("id")
                .in_("conversation_id", conversation_ids)
                .eq("metadata->>authorInvitation", "true")
            )
            if since is not None:
                query = query.gte("created_at", since.isoformat())
            resp = query.limit(1).execute()
            return bool(_rows(resp))
        except Exception as e:
            logger.warning("author invitation lookup failed manuscript=%s: %s", mid, e)
            return False

    def load_messages(self, manuscript_id: str, conversation_id: str) -> list[Message]:
        conv_resp = (
            self.client.table("conversations")
            .select("id,manuscript_id")
            .eq("id", str(conversation_id))
            .execute()
        )
        conversations = _rows(conv_resp)
        if not conversations or str(conversations[0].get("manuscript_id")) != str(manuscript_id):
            raise HTTPException(status_code=404, detail="Conversation not found")

        msg_resp = (
            self.client.table("messages")
            .select("id,conversation_id,author_id,privacy,content,created_at")
            .eq("conversation_id", str(conversation_id))
            .order("created_at")
            .execute()
        )
        rows = _rows(msg_resp)
        profiles = {str(p.get("id")): p for p in self._load_profiles(r.get("author_id") for r in rows)}

        messages: list[Message] = []
        for row in rows:
            author_id = str(row.get("author_id") or "").strip()
            if not author_id:
                continue
            profile = profiles.get(author_id) or {}
            username = str(profile.get("username") or profile.get("email") or author_id)
            messages.append(
                Message(
                    id=str(row.get("id")),
                    conversation_id=str(row.get("conversation_id") or conversation_id),
                    author=MessageAuthor(
                        id=author_id,
                        username=username,
                        name=profile.get("full_name") or None,
                        email=profile.get("email") or None,
                    ),
                    privacy=normalize_privacy(row.get("privacy")),
                    content=str(row.get("content") or ""),
                    created_at=_parse_iso_datetime(row.get("created_at")),
                )
            )
        return messages

    def load_message(self, manuscript_id: str, message_id: str) -> dict:
        resp = (
            self.client.table("messages")
            .select("id,author_id,privacy,conversation_id,conversations(manuscript_id)")
            .eq("id", str(message_id))
            .execute()
        )
        rows = _rows(resp)
        row = rows[0] if rows else None
        conversation = (row or {}).get("conversations") or {}
        if not row or str(conversation.get("manuscript_id")) != str(manuscript_id):
            raise HTTPException(status_code=404, detail="Message not found")
        return row

    def build(
        self,
        manuscript: ManuscriptContext,
        *,
        config: Optional[WorkflowConfig],
        author_user_ids: Iterable[str] = (),
        include_invitation: bool = False,
    ) -> DecisionContext:
        return DecisionContext(
            manuscript=manuscript,
            author_ids=self.load_author_ids(manuscript.id),
            assignments=tuple(self.load_review_assignments(manuscript.id)),
            global_roles=self.load_global_roles(author_user_ids),
            config=config,
            has_author_invitation=self.has_author_invitation(manuscript.id) if include_invitation else False,
        )
