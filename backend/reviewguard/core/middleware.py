import logging
import time
import uuid

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

# === 结构化日志配置 ===
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("reviewguard")
access_logger = logging.getLogger("reviewguard.access")


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """
    统一异常捕获 + 访问日志中间件

    中文注释:
    - 访问日志只记录 method / path / status / 耗时，不记录查询参数、请求体与 X-User-Id；
    - 每个请求带一个 request id（沿用上游的 X-Request-Id），便于串联日志；
    - 未处理异常统一返回 500，响应体不包含异常信息，避免泄露被遮蔽的身份。
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex[:12]
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except HTTPException as exc:
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.detail, "type": "http_exception"},
                headers={"X-Request-Id": request_id},
            )
        except Exception:
            logger.exception("unhandled error request_id=%s path=%s", request_id, request.url.path)
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error", "type": "server_error"},
                headers={"X-Request-Id": request_id},
            )

        elapsed = time.perf_counter() - started
        access_logger.info(
            "%s %s status=%s time=%.4fs request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
            request_id,
        )
        response.headers["X-Request-Id"] = request_id
        return response
