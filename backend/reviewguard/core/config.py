import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    return lowered in {"1", "true", "yes", "y", "on"}


def _env_float(key: str, default: float) -> float:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    """
    Application Environment Config
    """
    env: str  # 'development', 'staging', 'production'
    is_staging: bool
    supabase_url: str
    supabase_key: str

    @staticmethod
    def from_env() -> "AppConfig":
        env = (os.environ.get("APP_ENV") or "development").strip().lower()

        supabase_url = (os.environ.get("SUPABASE_URL") or "").strip()
        supabase_key = (os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or "").strip()

        return AppConfig(
            env=env,
            is_staging=env == "staging",
            supabase_url=supabase_url,
            supabase_key=supabase_key,
        )

# Global Config Instance
app_config = AppConfig.from_env()


@dataclass(frozen=True)
class VisibilityConfig:
    """
    可见性 / 身份遮蔽引擎配置

    中文注释:
    - workflow_config_ttl_sec：期刊披露策略的进程内缓存秒数（<=0 表示不缓存）。
    - 审稿人序号缓存没有容量上限：已分配的序号只能通过显式失效清除。
    """

    workflow_config_ttl_sec: float

    @staticmethod
    def from_env() -> "VisibilityConfig":
        return VisibilityConfig(
            workflow_config_ttl_sec=_env_float("WORKFLOW_CONFIG_TTL_SEC", 60.0),
        )


def get_admin_api_key() -> Optional[str]:
    """
    内部接口鉴权 Key

    中文注释:
    - 仅用于 `/api/v1/internal/*`（缓存失效钩子），不属于用户体系。
    """

    raw = os.environ.get("ADMIN_API_KEY")
    return raw.strip() if raw else None


@dataclass(frozen=True)
class SentryConfig:
    enabled: bool
    dsn: Optional[str]
    environment: str
    traces_sample_rate: float

    @staticmethod
    def from_env() -> "SentryConfig":
        dsn = (os.environ.get("SENTRY_DSN") or "").strip() or None
        environment = (
            os.environ.get("SENTRY_ENVIRONMENT") or os.environ.get("APP_ENV") or "development"
        ).strip()
        rate = _env_float("SENTRY_TRACES_SAMPLE_RATE", 0.0)
        return SentryConfig(
            enabled=_env_bool("SENTRY_ENABLED", bool(dsn)),
            dsn=dsn,
            environment=environment,
            traces_sample_rate=min(1.0, max(0.0, rate)),
        )
