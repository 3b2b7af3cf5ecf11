import pytest

from reviewguard.api.v1.visibility_common import get_reviewer_index, get_workflow_config_service
from reviewguard.main import app
from reviewguard.services.reviewer_index import ReviewerIndexAllocator


class _FakeConfigService:
    def __init__(self):
        self.invalidated = []

    def invalidate(self, journal_id=None):
        self.invalidated.append(journal_id)


@pytest.fixture
def services():
    allocator = ReviewerIndexAllocator(lambda _mid: [])
    config_service = _FakeConfigService()
    app.dependency_overrides[get_reviewer_index] = lambda: allocator
    app.dependency_overrides[get_workflow_config_service] = lambda: config_service
    yield allocator, config_service
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_requires_configured_admin_key(client, services, monkeypatch):
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)
    response = await client.post("/api/v1/internal/reviewer-index/invalidate", json={}, headers={"X-Admin-Key": "x"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_rejects_wrong_admin_key(client, services, monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEY", "secret")
    response = await client.post("/api/v1/internal/workflow-config/invalidate", json={}, headers={"X-Admin-Key": "nope"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalidate_reviewer_index_for_manuscript(client, services, monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEY", "secret")
    allocator, _ = services
    response = await client.post(
        "/api/v1/internal/reviewer-index/invalidate",
        json={"manuscript_id": "ms-1"},
        headers={"X-Admin-Key": "secret"},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "scope": "ms-1", "version": 1}
    assert allocator.version("ms-1") == 1


@pytest.mark.asyncio
async def test_invalidate_reviewer_index_everything(client, services, monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEY", "secret")
    response = await client.post(
        "/api/v1/internal/reviewer-index/invalidate", json={}, headers={"X-Admin-Key": "secret"}
    )
    assert response.status_code == 200
    assert response.json()["scope"] == "*"


@pytest.mark.asyncio
async def test_invalidate_workflow_config(client, services, monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEY", "secret")
    _, config_service = services
    response = await client.post(
        "/api/v1/internal/workflow-config/invalidate",
        json={"journal_id": " journal-1 "},
        headers={"X-Admin-Key": "secret"},
    )
    assert response.status_code == 200
    assert response.json()["scope"] == "journal-1"
    assert config_service.invalidated == ["journal-1"]
