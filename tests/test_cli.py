"""CLI tests — click's CliRunner against a mocked API.

Learn: _client() is swapped for one backed by httpx.MockTransport, so
commands run end to end (argument parsing, request building, output)
without a server. Each test records the requests it receives.
"""

import json

import httpx
import pytest
from click.testing import CliRunner

from postboard.cli import main as cli

POST = {
    "id": "11111111-2222-3333-4444-555555555555",
    "title": "Hello",
    "content": "First post",
    "published": True,
    "fileUrl": None,
    "authorId": "aaaaaaaa-0000-0000-0000-000000000000",
    "createdAt": "2026-01-01T00:00:00",
    "updatedAt": "2026-01-01T00:00:00",
    "author": {"id": "aaaaaaaa-0000-0000-0000-000000000000", "email": "a@x.com", "name": "Ann"},
}

AUTH_BODY = {
    "user": {"id": POST["authorId"], "email": "a@x.com", "name": "Ann"},
    "accessToken": "access-123",
    "refreshToken": "refresh-456",
    "tokenType": "bearer",
}


@pytest.fixture()
def api(monkeypatch):
    """Route CLI traffic to a handler; returns (requests, set_handler)."""
    requests: list[httpx.Request] = []
    state = {"handler": lambda request: httpx.Response(500)}

    def transport_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return state["handler"](request)

    def fake_client(api_url, token=None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return httpx.AsyncClient(
            base_url=api_url,
            headers=headers,
            transport=httpx.MockTransport(transport_handler),
        )

    monkeypatch.setattr(cli, "_client", fake_client)
    monkeypatch.delenv("POSTBOARD_TOKEN", raising=False)
    monkeypatch.delenv("POSTBOARD_API_URL", raising=False)
    monkeypatch.delenv("POSTBOARD_REFRESH_TOKEN", raising=False)

    def set_handler(handler):
        state["handler"] = handler

    return requests, set_handler


def test_register(api):
    requests, set_handler = api
    set_handler(lambda r: httpx.Response(201, json=AUTH_BODY))

    result = CliRunner().invoke(
        cli.main,
        ["register", "a@x.com", "--name", "Ann", "--password", "pw123456"],
    )
    assert result.exit_code == 0, result.output
    assert "Registered a@x.com" in result.output
    assert "export POSTBOARD_TOKEN=access-123" in result.output

    sent = json.loads(requests[0].content)
    assert requests[0].url.path == "/api/v1/auth/register"
    assert sent == {"email": "a@x.com", "password": "pw123456", "name": "Ann"}


def test_refresh_rotates_tokens(api):
    requests, set_handler = api
    set_handler(lambda r: httpx.Response(200, json={
        "accessToken": "access-789",
        "refreshToken": "refresh-000",
        "tokenType": "bearer",
    }))

    result = CliRunner().invoke(cli.main, ["refresh", "refresh-456"])
    assert result.exit_code == 0, result.output
    assert "refresh token: refresh-000" in result.output
    assert "export POSTBOARD_TOKEN=access-789" in result.output

    assert requests[0].url.path == "/api/v1/auth/refresh"
    assert "Authorization" not in requests[0].headers
    assert json.loads(requests[0].content) == {"refreshToken": "refresh-456"}


def test_refresh_reads_token_from_env(api, monkeypatch):
    requests, set_handler = api
    set_handler(lambda r: httpx.Response(401, json={"detail": "Invalid or expired refresh token"}))
    monkeypatch.setenv("POSTBOARD_REFRESH_TOKEN", "stale-token")

    result = CliRunner().invoke(cli.main, ["refresh"])
    assert result.exit_code == 1
    assert "Error 401: Invalid or expired refresh token" in result.output
    assert json.loads(requests[0].content) == {"refreshToken": "stale-token"}

def test_login_error_shows_detail(api):
    _, set_handler = api
    set_handler(lambda r: httpx.Response(401, json={"detail": "Invalid credentials"}))

    result = CliRunner().invoke(
        cli.main, ["login", "a@x.com", "--password", "wrong-password"]
    )
    assert result.exit_code == 1
    assert "Error 401: Invalid credentials" in result.output


def test_posts_table(api):
    requests, set_handler = api
    page = {
        "posts": [{**POST, "replyCount": 3}],
        "total": 1,
        "page": 1,
        "limit": 5,
        "totalPages": 1,
    }
    set_handler(lambda r: httpx.Response(200, json=page))

    result = CliRunner().invoke(
        cli.main,
        ["--api-url", "http://api.example", "posts", "--limit", "5", "--search", "Hel"],
    )
    assert result.exit_code == 0, result.output
    assert "Hello" in result.output
    assert "Ann" in result.output
    assert "Page 1 of 1 (1 posts)" in result.output

    url = requests[0].url
    assert url.host == "api.example"
    assert url.params["limit"] == "5"
    assert url.params["search"] == "Hel"


def test_posts_empty(api):
    _, set_handler = api
    set_handler(lambda r: httpx.Response(
        200, json={"posts": [], "total": 0, "page": 1, "limit": 10, "totalPages": 0}
    ))
    result = CliRunner().invoke(cli.main, ["posts"])
    assert result.exit_code == 0
    assert "No posts found." in result.output


def test_show_post_with_replies(api):
    _, set_handler = api
    detail = {
        **POST,
        "replies": [{
            "id": "99999999-0000-0000-0000-000000000000",
            "content": "Nice one",
            "postId": POST["id"],
            "authorId": "bbbbbbbb-0000-0000-0000-000000000000",
            "createdAt": "2026-01-01T00:01:00",
            "author": {"id": "bbbbbbbb-0000-0000-0000-000000000000", "email": "b@x.com", "name": "Bob"},
        }],
    }
    set_handler(lambda r: httpx.Response(200, json=detail))

    result = CliRunner().invoke(cli.main, ["show", POST["id"]])
    assert result.exit_code == 0, result.output
    assert "First post" in result.output
    assert "Replies (1):" in result.output
    assert "Nice one" in result.output


def test_post_sends_bearer_token(api):
    requests, set_handler = api
    set_handler(lambda r: httpx.Response(201, json=POST))

    result = CliRunner().invoke(
        cli.main,
        ["--token", "access-123", "post", "--title", "Hello", "--content", "First post", "--published"],
    )
    assert result.exit_code == 0, result.output
    assert f"Created post {POST['id']}" in result.output

    assert requests[0].headers["Authorization"] == "Bearer access-123"
    assert json.loads(requests[0].content) == {
        "title": "Hello",
        "content": "First post",
        "published": True,
    }


def test_reply_reads_token_from_env(api, monkeypatch):
    requests, set_handler = api
    set_handler(lambda r: httpx.Response(201, json={"id": "reply-1"}))
    monkeypatch.setenv("POSTBOARD_TOKEN", "env-token")

    result = CliRunner().invoke(cli.main, ["reply", POST["id"], "Nice one"])
    assert result.exit_code == 0, result.output
    assert requests[0].url.path == f"/api/v1/posts/{POST['id']}/replies"
    assert requests[0].headers["Authorization"] == "Bearer env-token"


def test_authenticated_command_without_token(api):
    requests, _ = api
    result = CliRunner().invoke(cli.main, ["logout"])
    assert result.exit_code == 1
    assert "--token required" in result.output
    assert requests == []


def test_logout(api):
    _, set_handler = api
    set_handler(lambda r: httpx.Response(200, json={"message": "Logged out successfully"}))
    result = CliRunner().invoke(cli.main, ["--token", "t", "logout"])
    assert result.exit_code == 0
    assert "Logged out successfully" in result.output
