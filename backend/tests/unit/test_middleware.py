import pytest
from fastapi import FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient

from reviewguard.core.middleware import ExceptionHandlerMiddleware


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(ExceptionHandlerMiddleware)

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    @app.get("/boom")
    async def boom():
        raise RuntimeError("reviewer-1 is Dr Smith")

    @app.get("/gone")
    async def gone():
        raise HTTPException(status_code=404, detail="Message not found")

    return app


@pytest.mark.asyncio
async def test_unhandled_error_is_opaque_500():
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://t") as ac:
        response = await ac.get("/boom")
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error", "type": "server_error"}
    assert "Dr Smith" not in response.text
    assert response.headers.get("X-Request-Id")


@pytest.mark.asyncio
async def test_request_id_is_propagated():
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://t") as ac:
        response = await ac.get("/ok", headers={"X-Request-Id": "abc123"})
    assert response.status_code == 200
    assert response.headers["X-Request-Id"] == "abc123"


@pytest.mark.asyncio
async def test_http_exception_passes_through():
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://t") as ac:
        response = await ac.get("/gone")
    assert response.status_code == 404
    assert response.json()["detail"] == "Message not found"
