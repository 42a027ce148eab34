"""
Jokebox Backend — Joke Service (Record Store)
===============================================

What:  Create, read, list, update, delete, count and random-pick for jokes.
Why:   Keeps every rule about stored jokes (required fields, timestamp
       handling, not-found semantics) out of the HTTP layer.
How:   Async SQLAlchemy queries against the `jokes` table through the
       session each route receives from get_db_session().
Who:   Called by the joke route handlers.

Design Decision:
    JokeService is stateless apart from its require_author flag. It receives
    the db session for each call, and it never commits: the session dependency
    (or the create route, which must publish only committed jokes) owns the
    transaction. Every write is flushed so ids and constraint errors surface
    inside the service, where they are translated.

Error Translation:
    SQLAlchemyError → DatabaseError (generic message, details logged)
    Missing row     → NotFoundError
    Missing fields  → ValidationError (nothing is added to the session)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jokebox.config import settings
from jokebox.exceptions import DatabaseError, NotFoundError, ValidationError
from jokebox.models.joke import Joke, utcnow
from jokebox.schemas.joke import JokeFields, JokeResponse

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = ("setup", "punchline", "author")

# Largest value an Integer primary key can hold (PostgreSQL int4)
MAX_JOKE_ID = 2_147_483_647


def _escape_like(value: str) -> str:
    """Makes % and _ in a user filter match themselves."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _next_timestamp(previous: datetime) -> datetime:
    """
    Current UTC time, bumped past `previous` if the clock has not moved.

    updated_at must strictly increase on every update, even when two updates
    land within the clock's resolution.
    """
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    now = utcnow()
    if now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


class JokeService:
    """
    Business logic layer for joke storage.

    Responsibilities:
        - create(): validate required fields and insert
        - get() / list() / count(): reads
        - update(): partial update with updated_at refresh
        - delete(): permanent removal
        - pick_random(): uniform random joke
    """

    def __init__(self, require_author: Optional[bool] = None):
        self.require_author = (
            settings.require_author if require_author is None else require_author
        )

    @property
    def required_fields(self) -> List[str]:
        if self.require_author:
            return ["setup", "punchline", "author"]
        return ["setup", "punchline"]

    async def create(self, db: AsyncSession, fields: JokeFields) -> JokeResponse:
        """
        Insert a new joke.

        Every required field must be present and non-blank. All missing
        fields are reported together; no row is written in that case.

        Raises:
            ValidationError: One or more required fields missing (→ 400)
            DatabaseError: Insert failed (→ 500)
        """
        values = fields.present()
        missing = [name for name in self.required_fields if name not in values]
        if missing:
            raise ValidationError(
                message=f"Missing required fields: {', '.join(missing)}",
                missing_fields=missing,
            )

        now = utcnow()
        joke = Joke(
            setup=values["setup"],
            punchline=values["punchline"],
            author=values.get("author"),
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(joke)
            await db.flush()  # Assigns the id without committing
        except SQLAlchemyError as e:
            logger.error("Database error creating joke: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create joke",
                context={"error_type": type(e).__name__},
            )

        logger.info("Joke %s created", joke.id)
        return JokeResponse.model_validate(joke)

    async def _load(self, db: AsyncSession, joke_id: int, for_update: bool = False) -> Joke:
        # Out-of-range ids cannot exist and the driver rejects them as bind values
        if not 0 < joke_id <= MAX_JOKE_ID:
            raise NotFoundError(resource="joke", resource_id=str(joke_id))
        query = select(Joke).where(Joke.id == joke_id)
        if for_update:
            # Ignored by SQLite; row lock on PostgreSQL for read-modify-write
            query = query.with_for_update()
        result = await db.execute(query)
        joke = result.scalar_one_or_none()
        if joke is None:
            raise NotFoundError(resource="joke", resource_id=str(joke_id))
        return joke

    async def get(self, db: AsyncSession, joke_id: int) -> JokeResponse:
        """
        Retrieve a single joke by id.

        Raises:
            NotFoundError: No joke with that id (→ 404)
            DatabaseError: Query execution failed (→ 500)
        """
        try:
            joke = await self._load(db, joke_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching joke %s: %s", joke_id, str(e))
            raise DatabaseError(
                message="Failed to fetch joke",
                context={"joke_id": joke_id},
            )
        return JokeResponse.model_validate(joke)

    async def list(
        self,
        db: AsyncSession,
        author: Optional[str] = None,
    ) -> List[JokeResponse]:
        """
        All jokes, newest first.

        A non-empty `author` keeps only jokes whose author contains it,
        ignoring case ("ali" matches "Alice" and "NATALIA"). The result is
        not paginated.

        Query plan:
            SELECT * FROM jokes [WHERE lower(author) LIKE lower(:pattern)]
            ORDER BY created_at DESC, id DESC
        """
        query = select(Joke)
        if author:
            query = query.where(
                Joke.author.ilike(f"%{_escape_like(author)}%", escape="\\")
            )
        query = query.order_by(Joke.created_at.desc(), Joke.id.desc())

        try:
            result = await db.execute(query)
            jokes = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing jokes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to fetch jokes",
                context={"error_type": type(e).__name__},
            )
        return [JokeResponse.model_validate(joke) for joke in jokes]

    async def update(
        self,
        db: AsyncSession,
        joke_id: int,
        fields: JokeFields,
    ) -> JokeResponse:
        """
        Apply the non-blank fields of `fields` and refresh updated_at.

        Absent or blank fields are left untouched; an empty update still
        moves updated_at forward. Concurrent updates of the same joke are
        last-write-wins.

        Raises:
            NotFoundError: No joke with that id
            DatabaseError: Query or flush failed
        """
        changes: Dict[str, str] = fields.present()
        try:
            joke = await self._load(db, joke_id, for_update=True)
            for name in MUTABLE_FIELDS:
                if name in changes:
                    setattr(joke, name, changes[name])
            joke.updated_at = _next_timestamp(joke.updated_at)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating joke %s: %s", joke_id, str(e))
            raise DatabaseError(
                message="Failed to update joke",
                context={"joke_id": joke_id},
            )

        logger.info("Joke %s updated: %s", joke_id, sorted(changes) or "no fields")
        return JokeResponse.model_validate(joke)

    async def delete(self, db: AsyncSession, joke_id: int) -> None:
        """
        Permanently remove a joke. Deleting twice raises NotFoundError.
        """
        try:
            joke = await self._load(db, joke_id, for_update=True)
            await db.delete(joke)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting joke %s: %s", joke_id, str(e))
            raise DatabaseError(
                message="Failed to delete joke",
                context={"joke_id": joke_id},
            )
        logger.info("Joke %s deleted", joke_id)

    async def count(self, db: AsyncSession) -> int:
        """Total number of stored jokes."""
        try:
            result = await db.execute(select(func.count(Joke.id)))
        except SQLAlchemyError as e:
            logger.error("Database error counting jokes: %s", str(e))
            raise DatabaseError(message="Failed to count jokes")
        return result.scalar() or 0

    async def pick_random(self, db: AsyncSession) -> JokeResponse:
        """
        One joke chosen uniformly at random.

        Uses the database's own random ordering in a single statement, so
        there is no window between counting and fetching in which a
        concurrent delete could leave the chosen offset empty.

        Raises:
            NotFoundError: The store is empty (→ 404)
        """
        try:
            result = await db.execute(
                select(Joke).order_by(func.random()).limit(1)
            )
            joke = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error picking random joke: %s", str(e))
            raise DatabaseError(message="Failed to fetch random joke")

        if joke is None:
            raise NotFoundError(resource="joke", message="No jokes available")
        return JokeResponse.model_validate(joke)


# ── Singleton Instance ────────────────────────────────────────────────────
joke_service = JokeService()
