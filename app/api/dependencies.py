"""
app/api/dependencies.py

Shared FastAPI dependencies for request context and error translation.
"""

from __future__ import annotations

from fastapi import Header, HTTPException, status

from app.scraping.errors import (
    JobStateError,
    RecordNotFoundError,
    ScrapingError,
    ScrapingValidationError,
)

ACTOR_HEADER = "X-Actor-Id"


def get_current_actor(x_actor_id: str | None = Header(default=None, alias=ACTOR_HEADER)) -> str:
    """
    Return the actor id set by the upstream authentication gate.
    """

    actor = (x_actor_id or "").strip()
    if not actor:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )
    return actor


def to_http_exception(exc: ScrapingError) -> HTTPException:
    if isinstance(exc, ScrapingValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, JobStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
