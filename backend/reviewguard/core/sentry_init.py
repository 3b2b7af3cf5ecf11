from typing import Any

from reviewguard.core.config import SentryConfig

_SENSITIVE_KEYS = {
    "password",
    "access_token",
    "refresh_token",
    "token",
    "jwt",
    "authorization",
    "cookie",
    "set-cookie",
    "x-admin-key",
    "supabase_key",
    "service_role_key",
}

# 中文注释: 身份字段同样按敏感信息过滤，错误上报中不得出现审稿人或作者的真实身份。
_IDENTITY_KEYS = {
    "original_id",
    "originalid",
    "reviewer_id",
    "author_id",
    "user_id",
    "x-user-id",
    "email",
}


def _scrub(value: Any) -> Any:
    """
    隐私清洗：递归去除敏感字段与身份字段。
    """
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            key_lower = str(k).strip().lower()
            if key_lower in _SENSITIVE_KEYS or key_lower in _IDENTITY_KEYS:
                out[str(k)] = "[Filtered]"
                continue
            out[str(k)] = _scrub(v)
        return out

    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]

    return value


def _before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    # 中文注释: 不上传请求体与 Cookie，只保留必要的诊断信息。
    request = event.get("request")
    if isinstance(request, dict):
        headers = request.get("headers")
        if isinstance(headers, dict):
            filtered_headers: dict[str, Any] = {}
            for k, v in headers.items():
                key_lower = str(k).strip().lower()
                if key_lower in _SENSITIVE_KEYS or key_lower in _IDENTITY_KEYS:
                    continue
                filtered_headers[k] = v
            request["headers"] = filtered_headers

        if "cookies" in request:
            request["cookies"] = "[Filtered]"
        if "data" in request:
            request["data"] = "[Filtered]"
        if "body" in request:
            request["body"] = "[Filtered]"
        if "query_string" in request:
            request["query_string"] = "[Filtered]"

        event["request"] = request

    if "user" in event:
        event["user"] = "[Filtered]"

    for section in ("extra", "contexts"):
        obj = event.get(section)
        if isinstance(obj, dict):
            event[section] = _scrub(obj)

    return event


def init_sentry() -> bool:
    """
    初始化 Sentry（可选）。

    零崩溃原则：
    - 若未配置 DSN / 显式禁用，则直接返回 False。
    - 任何初始化异常都应在调用方 try/except 处理，不得阻塞启动。
    """
    cfg = SentryConfig.from_env()
    if not cfg.enabled:
        return False
    if not cfg.dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=cfg.dsn,
        environment=cfg.environment,
        traces_sample_rate=cfg.traces_sample_rate,
        integrations=[FastApiIntegration()],
        send_default_pii=False,
        max_request_body_size="never",
        include_local_variables=False,
        before_send=_before_send,
    )
    return True
