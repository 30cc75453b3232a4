"""API router for v1 endpoints."""

from fastapi import APIRouter

from move_improve.api import decision

router = APIRouter()

# Decision engine routes
router.include_router(decision.router, tags=["decision"])
