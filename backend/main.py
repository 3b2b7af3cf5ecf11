"""
兼容入口：在 backend/ 目录下可直接 `uvicorn main:app` 启动。

真实 FastAPI 实例定义在 `reviewguard.main`，这里仅做转发，避免重复创建应用对象。
"""

from reviewguard.main import app

__all__ = ["app"]
