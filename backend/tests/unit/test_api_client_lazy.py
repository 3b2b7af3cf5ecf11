import pytest

import reviewguard.lib.api_client as api_client


@pytest.fixture(autouse=True)
def _fresh_client():
    api_client.supabase_admin.reset()
    yield
    api_client.supabase_admin.reset()


def test_lazy_admin_client_requires_url(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "k")

    with pytest.raises(RuntimeError, match="SUPABASE_URL is required"):
        api_client.supabase_admin.table("any")


def test_lazy_admin_client_requires_service_or_fallback_key(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)

    with pytest.raises(RuntimeError, match="SUPABASE_SERVICE_ROLE_KEY"):
        api_client.supabase_admin.table("any")


def test_import_does_not_create_client():
    assert api_client.supabase_admin._client is None
