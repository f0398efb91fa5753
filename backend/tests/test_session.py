import httpx
import pytest

from examportal.client.errors import AuthError, TransientNetworkError
from examportal.client.session import SessionContext, login


def login_transport(status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/auth/login"
        if status != 200:
            return httpx.Response(status, json={"detail": "Invalid credentials"})
        return httpx.Response(200, json={
            "user": {"id": "u1", "email": "s@example.com", "full_name": "Sam", "role": "student", "class_name": "10-A"},
            "token": "jwt-token",
        })
    return httpx.MockTransport(handler)


async def test_login_builds_context():
    async with httpx.AsyncClient(transport=login_transport(), base_url="http://test") as http:
        context = await login(http, "s@example.com", "secret")

    assert context.is_active
    assert context.role == "student"
    assert context.class_name == "10-A"
    assert context.auth_headers() == {"Authorization": "Bearer jwt-token"}


async def test_bad_credentials():
    async with httpx.AsyncClient(transport=login_transport(400), base_url="http://test") as http:
        with pytest.raises(AuthError):
            await login(http, "s@example.com", "wrong")


async def test_server_error_is_transient():
    async with httpx.AsyncClient(transport=login_transport(502), base_url="http://test") as http:
        with pytest.raises(TransientNetworkError):
            await login(http, "s@example.com", "secret")


def test_destroyed_context_cannot_authenticate():
    context = SessionContext(token="t", user_id="u1", role="student")
    context.destroy()
    assert not context.is_active
    with pytest.raises(AuthError):
        context.auth_headers()
