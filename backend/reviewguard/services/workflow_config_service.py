from __future__ import annotations

import logging
from threading import Lock
from time import monotonic
from typing import Any, Optional

from pydantic import ValidationError

from reviewguard.core.config import VisibilityConfig
from reviewguard.lib.api_client import supabase_admin
from reviewguard.models.workflow import WorkflowConfig
from reviewguard.models.workflow_templates import STRICTEST_TEMPLATE_ID, get_workflow_template_config

logger = logging.getLogger("reviewguard.workflow_config")

# journal_id 缺省时的缓存键（单刊部署：journal_settings 只有一行）
_DEFAULT_JOURNAL_KEY = "__default__"


def parse_workflow_settings(settings: Any) -> Optional[WorkflowConfig]:
    """
    从 journal_settings.settings 解析披露策略。

    中文注释:
    - 优先 `workflowConfig` 对象；缺省时回退到 `workflowTemplate`（预设 id）；都没有 -> None（简单模式）。
    - 存储的策略无法解析时，使用最严格预设兜底：策略损坏绝不能导致身份泄露。
    """
    if not isinstance(settings, dict):
        return None

    raw = settings.get("workflowConfig")
    if isinstance(raw, dict):
        try:
            return WorkflowConfig.model_validate(raw)
        except ValidationError as e:
            logger.error("invalid workflowConfig, falling back to %s: %s", STRICTEST_TEMPLATE_ID, e)
            return get_workflow_template_config(STRICTEST_TEMPLATE_ID)
    if raw is not None:
        logger.error("workflowConfig is not an object, falling back to %s", STRICTEST_TEMPLATE_ID)
        return get_workflow_template_config(STRICTEST_TEMPLATE_ID)

    template_id = settings.get("workflowTemplate")
    if template_id:
        config = get_workflow_template_config(str(template_id))
        if config is None:
            logger.error("unknown workflowTemplate=%s, falling back to %s", template_id, STRICTEST_TEMPLATE_ID)
            return get_workflow_template_config(STRICTEST_TEMPLATE_ID)
        return config
    return None


class WorkflowConfigService:
    """
    期刊披露策略加载（带进程内短缓存）。

    中文注释:
    - 缓存结果包含 None（未配置），避免未配置期刊每次请求都查库；
    - 读取失败时记录日志并返回 None，按简单模式继续（与旧版行为一致），且不写入缓存；
    - 管理端修改策略后调用 invalidate() 立即生效。
    """

    def __init__(self, client: Any = None, *, ttl_sec: Optional[float] = None) -> None:
        self.client = client if client is not None else supabase_admin
        self._ttl = float(ttl_sec if ttl_sec is not None else VisibilityConfig.from_env().workflow_config_ttl_sec)
        self._store: dict[str, tuple[float, Optional[WorkflowConfig]]] = {}
        self._lock = Lock()

    def _cached(self, key: str) -> tuple[bool, Optional[WorkflowConfig]]:
        now = monotonic()
        with self._lock:
            row = self._store.get(key)
            if row is None:
                return False, None
            expires_at, value = row
            if expires_at <= now:
                self._store.pop(key, None)
                return False, None
            return True, value

    def _remember(self, key: str, value: Optional[WorkflowConfig]) -> None:
        if self._ttl <= 0:
            return
        with self._lock:
            self._store[key] = (monotonic() + self._ttl, value)

    def _fetch_settings(self, journal_id: Optional[str]) -> Any:
        query = self.client.table("journal_settings").select("settings")
        if journal_id:
            query = query.eq("journal_id", journal_id)
        resp = query.limit(1).execute()
        rows = getattr(resp, "data", None) or []
        if isinstance(rows, dict):
            rows = [rows]
        return (rows[0] or {}).get("settings") if rows else None

    def get(self, journal_id: Optional[str] = None) -> Optional[WorkflowConfig]:
        key = str(journal_id or "").strip() or _DEFAULT_JOURNAL_KEY
        hit, value = self._cached(key)
        if hit:
            return value

        try:
            settings = self._fetch_settings(None if key == _DEFAULT_JOURNAL_KEY else key)
        except Exception as e:
            logger.error("failed to load workflow config journal=%s: %s", key, e)
            return None

        config = parse_workflow_settings(settings)
        self._remember(key, config)
        return config

    def invalidate(self, journal_id: Optional[str] = None) -> None:
        with self._lock:
            if journal_id:
                self._store.pop(str(journal_id).strip(), None)
            else:
                self._store.clear()
        logger.info("workflow config cache invalidated journal=%s", journal_id or "*")
