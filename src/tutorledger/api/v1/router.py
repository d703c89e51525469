"""Primary API router definition."""

from fastapi import APIRouter

from . import activation_codes, history, students, view_codes

api_router = APIRouter()

api_router.include_router(students.router)
api_router.include_router(history.router)
api_router.include_router(activation_codes.router)
api_router.include_router(view_codes.router)


@api_router.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Basic health probe endpoint."""
    return {"status": "ok"}
