from typing import Optional

from fastapi import Header

from reviewguard.models.context import Viewer
from reviewguard.models.workflow import normalize_global_role

# === 观察者身份注入 ===
# 中文注释:
# 1. Token 校验由上游网关完成，本服务只信任网关写入的 X-User-Id / X-User-Role。
# 2. 两个头都可缺省：缺 X-User-Id 即匿名（public）；无法识别的 X-User-Role 按普通用户处理。


async def get_viewer(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
) -> Viewer:
    user_id = (x_user_id or "").strip() or None
    if user_id is None:
        return Viewer()
    return Viewer(user_id=user_id, global_role=normalize_global_role(x_user_role))
