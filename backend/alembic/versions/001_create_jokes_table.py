"""Create jokes table

Revision ID: 001
Revises: None
Create Date: 2026-10-16 00:00:00.000000+00:00

What:  Creates the `jokes` table and its newest-first index.
How:   Portable column types so the same revision runs on SQLite and PostgreSQL.
       sqlite_autoincrement keeps SQLite from handing a deleted id back out.

Rollback: downgrade() drops the table (all jokes are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the jokes table. Column docs live in jokebox/models/joke.py."""
    op.create_table(
        "jokes",

        sa.Column(
            "id",
            sa.Integer(),
            autoincrement=True,
            nullable=False,
            comment="Store-assigned identifier, never reused",
        ),

        sa.Column("setup", sa.Text(), nullable=False, comment="Joke setup line"),
        sa.Column("punchline", sa.Text(), nullable=False, comment="Joke punchline"),

        # Only required when REQUIRE_AUTHOR is on; the service enforces it
        sa.Column(
            "author",
            sa.Text(),
            nullable=True,
            comment="Who submitted the joke; filterable by substring",
        ),

        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When this joke was created (UTC)",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When this joke was last modified (UTC)",
        ),

        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    # Listing is always ORDER BY created_at DESC
    op.create_index(
        "idx_jokes_created_at",
        "jokes",
        [sa.text("created_at DESC")],
    )


def downgrade() -> None:
    """Drop the jokes table. Destructive: every stored joke is lost."""
    op.drop_index("idx_jokes_created_at", table_name="jokes")
    op.drop_table("jokes")
