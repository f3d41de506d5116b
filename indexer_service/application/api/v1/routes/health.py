"""Liveness endpoints."""

from fastapi import APIRouter, Response
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["Health"])


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "Server is running!"


@router.get("/health")
async def health() -> Response:
    """Health check endpoint. Responds 200 with an empty body."""
    return Response(status_code=200)
