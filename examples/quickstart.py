#!/usr/bin/env python3
"""
Postboard Quickstart — full lifecycle in one script.

Registers two users → Alice posts → Bob replies → Bob tries to delete
Alice's post (403) → token refresh rotation → logout.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8000
"""

import httpx

from _common import BASE, check_backend, client_for, register_user


def main():
    check_backend()

    # ── Accounts ──────────────────────────────────────────────────
    print("\n1. Registering Alice and Bob...")
    alice = register_user("Alice")
    bob = register_user("Bob")
    print(f"   Alice: {alice['user']['email']}")
    print(f"   Bob:   {bob['user']['email']}")
    as_alice = client_for(alice)
    as_bob = client_for(bob)

    # ── Post ──────────────────────────────────────────────────────
    print("\n2. Alice creates a post...")
    resp = as_alice.post("/posts", json={
        "title": "Hello Postboard",
        "content": "My first post.",
        "published": True,
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    post = resp.json()
    print(f"   Post: {post['title']} ({post['id'][:8]}...)")

    # ── Reply ─────────────────────────────────────────────────────
    print("\n3. Bob replies...")
    resp = as_bob.post(f"/posts/{post['id']}/replies", json={"content": "Welcome!"})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    print(f"   Reply: {resp.json()['content']}")

    resp = as_bob.get(f"/posts/{post['id']}")
    print(f"   Thread now has {len(resp.json()['replies'])} reply(ies)")

    # ── Ownership ─────────────────────────────────────────────────
    print("\n4. Bob tries to delete Alice's post...")
    resp = as_bob.delete(f"/posts/{post['id']}")
    print(f"   → {resp.status_code} {resp.json()['detail']}")

    # ── Listing ───────────────────────────────────────────────────
    print("\n5. Searching posts...")
    resp = httpx.get(f"{BASE}/posts", params={"search": "Postboard", "limit": 5})
    page = resp.json()
    print(f"   {page['total']} match(es), page {page['page']} of {page['totalPages']}")

    # ── Refresh rotation ──────────────────────────────────────────
    print("\n6. Rotating Alice's refresh token...")
    resp = httpx.post(f"{BASE}/auth/refresh", json={"refreshToken": alice["refreshToken"]})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    rotated = resp.json()
    resp = httpx.post(f"{BASE}/auth/refresh", json={"refreshToken": alice["refreshToken"]})
    print(f"   Old token reused → {resp.status_code}")

    # ── Cleanup ───────────────────────────────────────────────────
    print("\n7. Alice deletes her post and logs out...")
    resp = as_alice.delete(f"/posts/{post['id']}")
    print(f"   → {resp.json()['message']}")
    resp = as_alice.post("/auth/logout")
    print(f"   → {resp.json()['message']}")
    resp = httpx.post(f"{BASE}/auth/refresh", json={"refreshToken": rotated["refreshToken"]})
    print(f"   Refresh after logout → {resp.status_code}")

    print("\nDone.")


if __name__ == "__main__":
    main()
