"""
Jokebox Backend — Joke SQLAlchemy Model
=========================================

What:  ORM model representing the `jokes` table.
Why:   Maps Python objects to database rows for type-safe database operations.
How:   Inherits from SQLAlchemy's DeclarativeBase; Alembic reads this for migrations.
Who:   Used by JokeService for CRUD operations and by Alembic for schema management.

Table Design Rationale:
    - Integer primary key: ids are part of the public URL (/jokes/42) and are
      never reused. SQLite needs AUTOINCREMENT for that guarantee; without it
      the id of the most recently deleted row comes back on the next insert.
    - author nullable: only required when the extended variant is enabled
      (settings.require_author); enforced in the service, not the schema.
    - created_at / updated_at: UTC with timezone, written by the service so
      both carry the exact same instant at creation.

    Index on created_at DESC:
        Listing is always newest-first.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from jokebox.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Joke(Base):
    """
    A stored joke.

    Lifecycle:
        1. Created by JokeService.create (id and both timestamps assigned)
        2. Mutated only by JokeService.update, which refreshes updated_at
        3. Deleted permanently by JokeService.delete (no soft-delete)
    """

    __tablename__ = "jokes"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Store-assigned identifier, never reused",
    )

    setup: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Joke setup line",
    )

    punchline: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Joke punchline",
    )

    author: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        default=None,
        comment="Who submitted the joke; filterable by substring",
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When this joke was created (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When this joke was last modified (UTC)",
    )

    __table_args__ = (
        Index("idx_jokes_created_at", created_at.desc()),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Joke(id={self.id}, author='{self.author}', created_at='{self.created_at}')>"
