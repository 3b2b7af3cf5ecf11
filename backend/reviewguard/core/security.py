from __future__ import annotations

import logging
import secrets

from fastapi import Header, HTTPException

from reviewguard.core.config import get_admin_api_key

logger = logging.getLogger("reviewguard.security")


async def require_admin_key(x_admin_key: str | None = Header(default=None, alias="X-Admin-Key")) -> None:
    """
    缓存失效钩子的鉴权依赖（/api/v1/internal/*）

    中文注释:
    - 调用方是审稿任务 / 期刊设置的写入服务，不是终端用户；
    - 服务端未配置 ADMIN_API_KEY 时一律拒绝；
    - 使用常量时间比较。
    """

    expected = get_admin_api_key()
    if not expected:
        logger.warning("internal endpoint called but ADMIN_API_KEY is not configured")
        raise HTTPException(status_code=401, detail="Admin key not configured")
    if not x_admin_key or not secrets.compare_digest(x_admin_key.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid admin key")
