"""Postboard CLI — talk to a running Postboard API from the terminal.

Usage:
    postboard register alice@example.com --name Alice   # Create an account
    postboard login alice@example.com                    # Get a token pair
    postboard refresh <refresh-token>                    # Rotate the token pair
    postboard posts --search fastapi                     # List / search posts
    postboard show <post-id>                             # Post with its replies
    postboard post --title "Hi" --content "First post"   # Create a post
    postboard reply <post-id> "Nice one"                 # Reply to a post
    postboard logout                                     # Revoke the refresh token

Authenticated commands read the access token from --token or the
POSTBOARD_TOKEN env var (login prints an `export` line for it).
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import sys
from typing import Optional

import click
import httpx

from postboard import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"
API_PREFIX = "/api/v1"


def _client(api_url: str, token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Postboard backend."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(
        base_url=api_url.rstrip("/"), headers=headers, timeout=30.0
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _require_token(ctx: click.Context) -> str:
    token = ctx.obj.get("token")
    if not token:
        click.secho(
            "Error: --token required (or set POSTBOARD_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return token


def _check(r: httpx.Response) -> dict:
    """Return the JSON body, or print the API's error detail and exit."""
    if r.is_error:
        try:
            detail = r.json().get("detail", r.text)
        except ValueError:
            detail = r.text
        if isinstance(detail, list):
            # FastAPI validation errors
            detail = "; ".join(d.get("msg", str(d)) for d in detail)
        click.secho(f"Error {r.status_code}: {detail}", fg="red", err=True)
        sys.exit(1)
    return r.json()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _print_tokens(body: dict):
    click.echo(f"  access token:  {body['accessToken']}")
    click.echo(f"  refresh token: {body['refreshToken']}")
    click.echo()
    click.echo(f"export POSTBOARD_TOKEN={body['accessToken']}")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="postboard")
@click.option(
    "--api-url",
    envvar="POSTBOARD_API_URL",
    default=DEFAULT_API_URL,
    show_default=True,
    help="Base URL of the Postboard API (or set POSTBOARD_API_URL)",
)
@click.option("--token", envvar="POSTBOARD_TOKEN", help="Access token (or set POSTBOARD_TOKEN)")
@click.pass_context
def main(ctx: click.Context, api_url: str, token: Optional[str]):
    """Postboard — posts and threaded replies from the command line."""
    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url
    ctx.obj["token"] = token


# ---------------------------------------------------------------------------
# postboard register / login / refresh / logout
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.option("--name", "-n", required=True, help="Display name")
@click.password_option(help="Account password (prompted if omitted)")
@click.pass_context
def register(ctx: click.Context, email: str, name: str, password: str):
    """Create an account and print its first token pair."""
    _run(_register_impl(ctx.obj["api_url"], email, name, password))


async def _register_impl(api_url: str, email: str, name: str, password: str):
    async with _client(api_url) as c:
        r = await c.post(
            f"{API_PREFIX}/auth/register",
            json={"email": email, "password": password, "name": name},
        )
        body = _check(r)

    user = body["user"]
    click.secho(f"Registered {user['email']} ({user['id']})", fg="green", bold=True)
    _print_tokens(body)


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@click.pass_context
def login(ctx: click.Context, email: str, password: str):
    """Log in and print a fresh token pair."""
    _run(_login_impl(ctx.obj["api_url"], email, password))


async def _login_impl(api_url: str, email: str, password: str):
    async with _client(api_url) as c:
        r = await c.post(
            f"{API_PREFIX}/auth/login",
            json={"email": email, "password": password},
        )
        body = _check(r)

    click.secho(f"Logged in as {body['user']['name']}", fg="green", bold=True)
    _print_tokens(body)


@main.command()
@click.argument("refresh_token", envvar="POSTBOARD_REFRESH_TOKEN")
@click.pass_context
def refresh(ctx: click.Context, refresh_token: str):
    """Trade a refresh token for a new pair (the old one stops working)."""
    _run(_refresh_impl(ctx.obj["api_url"], refresh_token))


async def _refresh_impl(api_url: str, refresh_token: str):
    async with _client(api_url) as c:
        r = await c.post(
            f"{API_PREFIX}/auth/refresh",
            json={"refreshToken": refresh_token},
        )
        body = _check(r)

    click.secho("Tokens refreshed", fg="green", bold=True)
    _print_tokens(body)


@main.command()
@click.pass_context
def logout(ctx: click.Context):
    """Revoke the current refresh token."""
    token = _require_token(ctx)
    _run(_logout_impl(ctx.obj["api_url"], token))


async def _logout_impl(api_url: str, token: str):
    async with _client(api_url, token) as c:
        r = await c.post(f"{API_PREFIX}/auth/logout")
        body = _check(r)
    click.secho(body["message"], fg="green")


# ---------------------------------------------------------------------------
# postboard posts / show
# ---------------------------------------------------------------------------


@main.command()
@click.option("--page", "-p", default=1, show_default=True, type=click.IntRange(min=1))
@click.option("--limit", "-l", default=10, show_default=True, type=click.IntRange(1, 100))
@click.option("--search", "-s", help="Only posts whose title or content contains this")
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON response")
@click.pass_context
def posts(ctx: click.Context, page: int, limit: int, search: Optional[str], as_json: bool):
    """List posts, newest first."""
    _run(_posts_impl(ctx.obj["api_url"], page, limit, search, as_json))


async def _posts_impl(
    api_url: str, page: int, limit: int, search: Optional[str], as_json: bool
):
    params: dict = {"page": page, "limit": limit}
    if search:
        params["search"] = search

    async with _client(api_url) as c:
        r = await c.get(f"{API_PREFIX}/posts", params=params)
        body = _check(r)

    if as_json:
        click.echo(_pretty_json(body))
        return

    if not body["posts"]:
        click.echo("No posts found.")
        return

    rows = [
        {
            "id": p["id"][:8],
            "title": p["title"],
            "author": p["author"]["name"],
            "replies": p["replyCount"],
            "published": "yes" if p["published"] else "no",
        }
        for p in body["posts"]
    ]
    _print_table(rows, [
        ("ID", "id", 8),
        ("TITLE", "title", 36),
        ("AUTHOR", "author", 16),
        ("REPLIES", "replies", 7),
        ("PUBLISHED", "published", 9),
    ])
    click.echo()
    click.echo(
        f"Page {body['page']} of {body['totalPages']} ({body['total']} posts)"
    )


@main.command()
@click.argument("post_id")
@click.pass_context
def show(ctx: click.Context, post_id: str):
    """Show a post with its replies."""
    _run(_show_impl(ctx.obj["api_url"], post_id))


async def _show_impl(api_url: str, post_id: str):
    async with _client(api_url) as c:
        r = await c.get(f"{API_PREFIX}/posts/{post_id}")
        post = _check(r)

    click.secho(post["title"], bold=True)
    click.echo(f"by {post['author']['name']} · {post['createdAt']}")
    if post.get("fileUrl"):
        click.echo(f"attachment: {post['fileUrl']}")
    click.echo()
    click.echo(post["content"])
    click.echo()

    replies = post["replies"]
    click.secho(f"Replies ({len(replies)}):", bold=True)
    for reply in replies:
        author = click.style(reply["author"]["name"], fg="cyan")
        click.echo(f"  {reply['id'][:8]}  {author}: {reply['content']}")


# ---------------------------------------------------------------------------
# postboard post / reply
# ---------------------------------------------------------------------------


@main.command()
@click.option("--title", "-t", required=True)
@click.option("--content", "-c", required=True)
@click.option("--published", is_flag=True, help="Mark the post as published")
@click.pass_context
def post(ctx: click.Context, title: str, content: str, published: bool):
    """Create a post as the token's user."""
    token = _require_token(ctx)
    _run(_post_impl(ctx.obj["api_url"], token, title, content, published))


async def _post_impl(api_url: str, token: str, title: str, content: str, published: bool):
    async with _client(api_url, token) as c:
        r = await c.post(
            f"{API_PREFIX}/posts",
            json={"title": title, "content": content, "published": published},
        )
        created = _check(r)

    click.secho(f"Created post {created['id']}", fg="green", bold=True)
    click.echo(f"  title: {created['title']}")


@main.command()
@click.argument("post_id")
@click.argument("content")
@click.pass_context
def reply(ctx: click.Context, post_id: str, content: str):
    """Reply to a post as the token's user."""
    token = _require_token(ctx)
    _run(_reply_impl(ctx.obj["api_url"], token, post_id, content))


async def _reply_impl(api_url: str, token: str, post_id: str, content: str):
    async with _client(api_url, token) as c:
        r = await c.post(
            f"{API_PREFIX}/posts/{post_id}/replies",
            json={"content": content},
        )
        created = _check(r)

    click.secho(f"Replied to {post_id} ({created['id']})", fg="green")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
