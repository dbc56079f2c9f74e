"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Unlike a router-wide auth dependency, posts mix public reads
with protected writes, so each write route declares
Depends(get_current_user) itself. Health and auth routes are open
(logout and /me authenticate per route).
"""

from fastapi import APIRouter

from postboard.api.auth import router as auth_router
from postboard.api.health import router as health_router
from postboard.api.posts import router as posts_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(posts_router, tags=["posts", "replies"])
