import pytest
from services.api.app.services.order_api_factory import get_order_api
from services.api.app.services.order_api_http import HttpOrderApi, close_shared_clients


def test_get_order_api_defaults_to_mock(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BACKOFFICE_ORDER_API", raising=False)
    api = get_order_api()
    assert api.vendor == "ORDER_API_MOCK"


def test_get_order_api_rejects_unknown(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BACKOFFICE_ORDER_API", "nope")
    with pytest.raises(ValueError, match="Unknown BACKOFFICE_ORDER_API"):
        get_order_api()


def test_http_mode_requires_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BACKOFFICE_ORDER_API", "http")
    monkeypatch.delenv("BACKOFFICE_ORDER_API_URL", raising=False)
    with pytest.raises(ValueError, match="BACKOFFICE_ORDER_API_URL"):
        get_order_api()


def test_http_mode_builds_client_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BACKOFFICE_ORDER_API", "http")
    monkeypatch.setenv("BACKOFFICE_ORDER_API_URL", "https://orders.example.test/")
    monkeypatch.setenv("BACKOFFICE_ORDER_API_TOKEN", "secret")

    api = get_order_api()
    assert isinstance(api, HttpOrderApi)
    assert api.vendor == "ORDER_API_HTTP"
    assert get_order_api() is api
    close_shared_clients()
