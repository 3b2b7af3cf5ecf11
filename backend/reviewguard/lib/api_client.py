import os
from typing import Any, Callable, Optional

from supabase import Client, create_client

from reviewguard.core.config import AppConfig


def _service_credentials() -> tuple[str, str]:
    """
    读取 service role 连接参数（每次创建时读取，便于测试通过环境变量切换）。

    中文注释:
    - 可见性判定需要跨 RLS 读取审稿任务、作者关系与期刊设置，因此只使用 service role；
    - 未配置 service role 时回退到 SUPABASE_KEY（本地开发环境常见）。
    """
    cfg = AppConfig.from_env()
    url = cfg.supabase_url
    key = cfg.supabase_key or (os.environ.get("SUPABASE_KEY") or "").strip()
    if not url:
        raise RuntimeError("SUPABASE_URL is required")
    if not key:
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY) is required")
    return url, key


def _create_supabase_admin() -> Client:
    url, key = _service_credentials()
    return create_client(url, key)


class _LazySupabaseClient:
    """
    首次访问属性时才创建真实 Client。

    中文注释: 模块导入阶段不触碰网络与环境变量，缺少配置只在真正查库时报错。
    """

    def __init__(self, factory: Callable[[], Client]):
        self._factory = factory
        self._client: Optional[Client] = None

    def reset(self) -> None:
        self._client = None

    def __getattr__(self, item: str) -> Any:
        if self._client is None:
            self._client = self._factory()
        return getattr(self._client, item)


supabase_admin: Client = _LazySupabaseClient(_create_supabase_admin)  # type: ignore[assignment]
