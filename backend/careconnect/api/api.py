"""
API Router Aggregator.

Combines all v1 API routers into a single router for the main app.
"""

from fastapi import APIRouter

from careconnect.api.v1 import auth, users, connections, posts, jobs, upload

api_router = APIRouter()

# Include all v1 routers with their prefixes and tags
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

api_router.include_router(
    users.router,
    prefix="/users",
    tags=["Users"],
)

api_router.include_router(
    connections.router,
    prefix="/connections",
    tags=["Connections"],
)

api_router.include_router(
    posts.router,
    prefix="/posts",
    tags=["Posts"],
)

api_router.include_router(
    jobs.router,
    prefix="/jobs",
    tags=["Jobs"],
)

api_router.include_router(
    upload.router,
    prefix="/upload",
    tags=["Upload"],
)
