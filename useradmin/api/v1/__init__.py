"""API v1 routes."""

from fastapi import APIRouter

from useradmin.api.v1 import auth, health, roles, setup, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(setup.router, prefix="/setup", tags=["setup"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(roles.router, prefix="/roles", tags=["roles"])
