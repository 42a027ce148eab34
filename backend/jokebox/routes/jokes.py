"""
Jokebox Backend — Joke Route Handlers
=======================================

What:  CRUD endpoints under /jokes plus the random pick.
How:   Reads path/query/body, delegates to JokeService, returns JSON.
       New jokes are committed first and then published to /events.

Status Codes:
    GET    /jokes             200 | 500
    GET    /jokes/random/one  200 | 404 (empty store) | 500
    GET    /jokes/{id}        200 | 404 | 500
    POST   /jokes             201 | 400 (missing fields) | 500
    PUT    /jokes/{id}        200 | 500 (including unknown id)
    DELETE /jokes/{id}        204 | 500 (including unknown id)

    PUT and DELETE report an unknown id as a failed write (500), not 404;
    clients of this API already depend on that.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from jokebox.database import get_db_session
from jokebox.exceptions import DatabaseError, NotFoundError
from jokebox.schemas.joke import ErrorResponse, JokeFields, JokeResponse
from jokebox.services.broadcast import broadcast_registry
from jokebox.services.joke_service import joke_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jokes", tags=["Jokes"])


async def create_and_publish(db: AsyncSession, payload: Optional[JokeFields]) -> JokeResponse:
    """
    Insert a joke, commit it, then push it to every live subscriber.

    Committing before publishing means subscribers never see a joke that is
    later rolled back. Shared by POST /jokes and POST /advanced-joke.
    """
    joke = await joke_service.create(db, payload or JokeFields())
    await db.commit()
    delivered = broadcast_registry.publish(joke)
    logger.info("Joke %s published to %d subscriber(s)", joke.id, delivered)
    return joke


@router.get(
    "",
    response_model=List[JokeResponse],
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List jokes, newest first",
)
async def list_jokes(
    name: Optional[str] = Query(
        default=None,
        description="Only jokes whose author contains this text (case-insensitive)",
    ),
    author: Optional[str] = Query(default=None, description="Alias of `name`"),
    db: AsyncSession = Depends(get_db_session),
) -> List[JokeResponse]:
    return await joke_service.list(db, author=name or author)


# Declared before /{joke_id} so "random" is never parsed as an id
@router.get(
    "/random/one",
    response_model=JokeResponse,
    responses={
        404: {"description": "No jokes stored", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get a random joke",
)
async def random_joke(db: AsyncSession = Depends(get_db_session)) -> JokeResponse:
    return await joke_service.pick_random(db)


@router.get(
    "/{joke_id}",
    response_model=JokeResponse,
    responses={
        404: {"description": "Joke not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get a single joke by ID",
)
async def get_joke(joke_id: int, db: AsyncSession = Depends(get_db_session)) -> JokeResponse:
    return await joke_service.get(db, joke_id)


@router.post(
    "",
    status_code=201,
    response_model=JokeResponse,
    responses={
        400: {"description": "Missing required fields", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create a joke",
    description=(
        "Requires setup and punchline (and author, also accepted as `name`, "
        "unless REQUIRE_AUTHOR is disabled). The new joke is pushed to /events."
    ),
)
async def create_joke(
    payload: Optional[JokeFields] = None,
    db: AsyncSession = Depends(get_db_session),
) -> JokeResponse:
    return await create_and_publish(db, payload)


@router.put(
    "/{joke_id}",
    response_model=JokeResponse,
    responses={500: {"description": "Update failed", "model": ErrorResponse}},
    summary="Update some fields of a joke",
)
async def update_joke(
    joke_id: int,
    payload: Optional[JokeFields] = None,
    db: AsyncSession = Depends(get_db_session),
) -> JokeResponse:
    try:
        return await joke_service.update(db, joke_id, payload or JokeFields())
    except NotFoundError as e:
        raise DatabaseError(message="Failed to update joke", context=e.context)


@router.delete(
    "/{joke_id}",
    status_code=204,
    response_class=Response,
    responses={500: {"description": "Delete failed", "model": ErrorResponse}},
    summary="Delete a joke",
)
async def delete_joke(joke_id: int, db: AsyncSession = Depends(get_db_session)) -> Response:
    try:
        await joke_service.delete(db, joke_id)
    except NotFoundError as e:
        raise DatabaseError(message="Failed to delete joke", context=e.context)
    return Response(status_code=204)
