"""
Jokebox Backend — Advanced Joke Route
=======================================

What:  POST /advanced-joke, a create gated by a shared secret.
How:   The `auth-key` header is compared with settings.advanced_joke_auth_key
       in a dependency, so a rejected request never reaches the store.

Status Codes:
    201 created | 401 header missing or wrong | 400 missing fields | 500
"""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from jokebox.config import settings
from jokebox.database import get_db_session
from jokebox.exceptions import UnauthorizedError
from jokebox.routes.jokes import create_and_publish
from jokebox.schemas.joke import ErrorResponse, JokeFields, JokeResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Jokes"])


async def require_auth_key(
    auth_key: Optional[str] = Header(default=None, description="Shared secret"),
) -> None:
    """Rejects the request unless `auth-key` equals the configured secret."""
    expected = settings.advanced_joke_auth_key
    if not expected:
        logger.warning("Advanced joke rejected: ADVANCED_JOKE_AUTH_KEY is not set")
        raise UnauthorizedError()
    if not auth_key:
        logger.warning("Advanced joke rejected: no auth-key header")
        raise UnauthorizedError()
    if not secrets.compare_digest(auth_key.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Advanced joke rejected: auth-key mismatch")
        raise UnauthorizedError()


@router.post(
    "/advanced-joke",
    status_code=201,
    response_model=JokeResponse,
    dependencies=[Depends(require_auth_key)],
    responses={
        400: {"description": "Missing required fields", "model": ErrorResponse},
        401: {"description": "Missing or invalid auth-key header", "model": ErrorResponse},
    },
    summary="Create a joke (requires auth-key header)",
)
async def create_advanced_joke(
    payload: Optional[JokeFields] = None,
    db: AsyncSession = Depends(get_db_session),
) -> JokeResponse:
    return await create_and_publish(db, payload)
