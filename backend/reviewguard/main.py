import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# 在应用启动前加载环境变量
load_dotenv()

from reviewguard.api.v1 import conversations, internal
from reviewguard.core.config import VisibilityConfig, app_config
from reviewguard.core.middleware import ExceptionHandlerMiddleware
from reviewguard.services.decision_context import DecisionContextLoader
from reviewguard.services.reviewer_index import ReviewerIndexAllocator
from reviewguard.services.workflow_config_service import WorkflowConfigService

logger = logging.getLogger("reviewguard")

_SENTRY_ENABLED = False
try:
    from reviewguard.core.sentry_init import init_sentry

    _SENTRY_ENABLED = init_sentry()
    if _SENTRY_ENABLED:
        logger.info("[sentry] enabled")
except Exception as e:
    # 中文注释: 零崩溃原则：Sentry 任何异常不得阻塞启动
    logger.warning(f"[sentry] init failed (ignored): {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"ReviewGuard API starting env={app_config.env}")
    yield


app = FastAPI(
    title="ReviewGuard API",
    description="Visibility & identity-masking policy engine for peer-review discussions",
    version="1.0.0",
    lifespan=lifespan,
)


def _init_state(target: FastAPI) -> None:
    """
    挂载进程级共享对象（不依赖 lifespan，保证 ASGITransport 测试同样可用）。
    """
    cfg = VisibilityConfig.from_env()
    loader = DecisionContextLoader()
    target.state.context_loader = loader
    target.state.reviewer_index = ReviewerIndexAllocator(loader.load_review_assignments)
    target.state.workflow_config = WorkflowConfigService(ttl_sec=cfg.workflow_config_ttl_sec)


_init_state(app)

if _SENTRY_ENABLED:
    try:
        from sentry_sdk.integrations.asgi import SentryAsgiMiddleware

        app.add_middleware(SentryAsgiMiddleware)
    except Exception as e:
        logger.warning(f"[sentry] middleware attach failed (ignored): {e}")


def _parse_frontend_origins() -> list[str]:
    """
    解析允许跨域的前端 Origins。

    中文注释:
    - 本地默认: http://localhost:3000
    - 生产/预发: 通过 FRONTEND_ORIGIN 或 FRONTEND_ORIGINS 注入（逗号分隔）
    """
    origins: list[str] = []

    single = (os.environ.get("FRONTEND_ORIGIN") or "").strip()
    if single:
        origins.append(single.rstrip("/"))

    many = (os.environ.get("FRONTEND_ORIGINS") or "").strip()
    if many:
        for part in many.split(","):
            o = (part or "").strip().rstrip("/")
            if o:
                origins.append(o)

    if not origins:
        origins = ["http://localhost:3000"]

    # 去重保持顺序
    return list(dict.fromkeys(origins))


# === 中间件配置 ===
# 1. 跨域资源共享 (CORS) - 允许前端访问
app.add_middleware(
    CORSMiddleware,
    allow_origins=_parse_frontend_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 2. 统一异常处理
app.add_middleware(ExceptionHandlerMiddleware)

# === 路由注册 ===
app.include_router(conversations.router, prefix="/api/v1")
app.include_router(internal.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "ReviewGuard API is running", "docs": "/docs"}
