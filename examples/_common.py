"""
Shared helpers for Postboard examples.

Handles the health check and account creation so each example can
focus on its specific workflow.
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000/api/v1"


def check_backend() -> None:
    """Verify the backend is reachable and its database is up."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  uvicorn postboard.main:app --reload --port 8000")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  Redis:    {'✓' if health['redis'] == 'ok' else '✗'}")

    if health["database"] != "ok":
        print("\nERROR: Database is not connected. Start it with: docker compose up -d")
        sys.exit(1)


def register_user(name: str) -> dict:
    """Register a fresh user and return {user, accessToken, refreshToken}.

    Uses a unique email per run so examples are idempotent.
    """
    run_id = uuid.uuid4().hex[:8]
    resp = httpx.post(
        f"{BASE}/auth/register",
        json={
            "email": f"{name.lower()}-{run_id}@example.com",
            "name": name,
            "password": "demo-password-123",
        },
        timeout=10,
    )
    if resp.status_code != 201:
        print(f"ERROR: Registration failed: {resp.status_code} {resp.text}")
        sys.exit(1)
    return resp.json()


def client_for(session: dict) -> httpx.Client:
    """An httpx Client that sends the session's access token."""
    return httpx.Client(
        base_url=BASE,
        timeout=10,
        headers={"Authorization": f"Bearer {session['accessToken']}"},
    )
