"""create_books

Revision ID: 3f2a9c1d7b45
Revises:
Create Date: 2026-10-19 09:12:41.380215

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7b45"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "books",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("author", sa.String(length=100), nullable=False),
        sa.Column("isbn", sa.String(length=20), nullable=False),
        sa.Column(
            "category",
            sa.Enum(
                "FICTION",
                "NON_FICTION",
                "TECHNICAL",
                "CHILDREN",
                name="bookcategory",
                native_enum=False,
                length=20,
            ),
            nullable=False,
        ),
        sa.Column("price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("published_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cover_image_url", sa.String(length=500), nullable=True),
        sa.Column("stock_quantity", sa.Integer(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index("ix_books_isbn", "books", ["isbn"])
    op.create_index("idx_books_title_author", "books", ["title", "author"])
    op.create_index("idx_books_created", "books", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_books_created", table_name="books")
    op.drop_index("idx_books_title_author", table_name="books")
    op.drop_index("ix_books_isbn", table_name="books")
    op.drop_table("books")
