import pytest
import requests

from etl.auth import fetch_tenant_access_token
from etl.client import FeishuClient
from etl.errors import AuthenticationError, ErrorKind

from conftest import FakeResponse, FakeSession


def make_client(response):
    session = FakeSession([("POST", "/auth/v3/tenant_access_token/internal", response)])
    return FeishuClient(base_url="https://open.feishu.cn/open-apis/", timeout=12, session=session), session


def test_returns_token_and_posts_credentials():
    client, session = make_client({"code": 0, "tenant_access_token": "t-xyz", "expire": 7200})

    assert fetch_tenant_access_token(client, "cli_app", "secret") == "t-xyz"

    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == "https://open.feishu.cn/open-apis/auth/v3/tenant_access_token/internal"
    assert kwargs["json"] == {"app_id": "cli_app", "app_secret": "secret"}
    assert kwargs["timeout"] == 12


def test_rejected_exchange_carries_code_and_message():
    client, _ = make_client({"code": 10003, "msg": "invalid param"})
    with pytest.raises(AuthenticationError) as excinfo:
        fetch_tenant_access_token(client, "cli_app", "wrong")
    error = excinfo.value
    assert error.kind is ErrorKind.AUTHENTICATION
    assert error.detail["code"] == 10003
    assert error.detail["msg"] == "invalid param"
    assert "invalid param" in str(error)


def test_http_error_without_json():
    client, _ = make_client(FakeResponse(None, status_code=502))
    with pytest.raises(AuthenticationError) as excinfo:
        fetch_tenant_access_token(client, "cli_app", "secret")
    assert excinfo.value.detail["status"] == 502


def test_missing_token_in_success_response():
    client, _ = make_client({"code": 0, "msg": "ok"})
    with pytest.raises(AuthenticationError):
        fetch_tenant_access_token(client, "cli_app", "secret")


def test_network_failure():
    client, _ = make_client(requests.ConnectionError("connection refused"))
    with pytest.raises(AuthenticationError) as excinfo:
        fetch_tenant_access_token(client, "cli_app", "secret")
    assert excinfo.value.detail["error"] == "ConnectionError"


def test_client_set_token_and_close():
    client, session = make_client({"code": 0, "tenant_access_token": "t"})
    client.set_token("t-1")
    assert session.headers["Authorization"] == "Bearer t-1"
    client.close()
    assert session.closed
