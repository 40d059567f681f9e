"""create suggestion engine tables

Revision ID: 4f2c9a7d1e03
Revises:
Create Date: 2026-10-16

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4f2c9a7d1e03"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "dictionary_entries",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("normalized_source", sa.String(255), nullable=False),
        sa.Column("source_text", sa.String(255), nullable=False),
        sa.Column("canonical_english", sa.String(255), nullable=False),
        sa.Column("general_form", sa.String(255), nullable=True),
        sa.Column("category", sa.String(50), nullable=False, server_default="other"),
        sa.Column("nutrition_per_100g", sa.JSON(), nullable=True),
        sa.Column("added_by", sa.String(20), nullable=False, server_default="bootstrap"),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index(
        "ix_dictionary_entries_normalized_source",
        "dictionary_entries",
        ["normalized_source"],
        unique=True,
    )
    op.create_index(
        "ix_dictionary_entries_canonical_english", "dictionary_entries", ["canonical_english"]
    )

    op.create_table(
        "learned_cache_entries",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("normalized_source", sa.String(255), nullable=False),
        sa.Column("source_text", sa.String(255), nullable=False),
        sa.Column("canonical_english", sa.String(255), nullable=False),
        sa.Column("general_form", sa.String(255), nullable=True),
        sa.Column("category", sa.String(50), nullable=False, server_default="other"),
        sa.Column("nutrition_per_100g", sa.JSON(), nullable=True),
        sa.Column("added_by", sa.String(20), nullable=False, server_default="ai"),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False, index=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_learned_cache_entries_normalized_source",
        "learned_cache_entries",
        ["normalized_source"],
        unique=True,
    )
    op.create_index(
        "ix_learned_cache_entries_canonical_english",
        "learned_cache_entries",
        ["canonical_english"],
    )

    op.create_table(
        "suggestion_cache_entries",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("cache_key", sa.String(1024), nullable=False),
        sa.Column("suggestions", sa.JSON(), nullable=False),
        sa.Column("request_settings", sa.JSON(), nullable=False),
        sa.Column("ingredients", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )
    op.create_index(
        "ix_suggestion_cache_entries_cache_key",
        "suggestion_cache_entries",
        ["cache_key"],
        unique=True,
    )

    op.create_table(
        "suggestion_ingredient_index",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("ingredient_name", sa.String(255), nullable=False, index=True),
        sa.Column("cache_key", sa.String(1024), nullable=False, index=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.UniqueConstraint("ingredient_name", "cache_key", name="uq_ingredient_cache_key"),
    )

    op.create_table(
        "generation_jobs",
        sa.Column("job_id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False, index=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("request_cache_key", sa.String(1024), nullable=True),
        sa.Column("result", sa.JSON(), nullable=True),
        sa.Column("warning", sa.Text(), nullable=True),
        sa.Column("compatibility_notes", sa.JSON(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )

    op.create_table(
        "rate_limit_counters",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("user_id", sa.String(255), nullable=False, index=True),
        sa.Column("window_start", sa.Date(), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("user_id", "window_start", name="uq_rate_limit_window"),
    )


def downgrade() -> None:
    op.drop_table("rate_limit_counters")
    op.drop_table("generation_jobs")
    op.drop_table("suggestion_ingredient_index")
    op.drop_index("ix_suggestion_cache_entries_cache_key", table_name="suggestion_cache_entries")
    op.drop_table("suggestion_cache_entries")
    op.drop_index(
        "ix_learned_cache_entries_canonical_english", table_name="learned_cache_entries"
    )
    op.drop_index(
        "ix_learned_cache_entries_normalized_source", table_name="learned_cache_entries"
    )
    op.drop_table("learned_cache_entries")
    op.drop_index("ix_dictionary_entries_canonical_english", table_name="dictionary_entries")
    op.drop_index("ix_dictionary_entries_normalized_source", table_name="dictionary_entries")
    op.drop_table("dictionary_entries")
