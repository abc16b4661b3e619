"""Create vocabulary tables

Revision ID: 001
Revises: None
Create Date: 2025-01-15 00:00:00.000000+00:00

What:  Creates `concepts`, `translations` and `learning_progress`.
How:   Unique constraints carry the cross-request invariants:
         lower(concepts.label_en)                one concept per label, any case
         translations(concept_id, language_code) one translation per language
         learning_progress.concept_id            one progress state per concept

Rollback: downgrade() drops all three tables (destructive).
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
    op.create_table(
        "concepts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "label_en",
            sa.String(255),
            nullable=False,
            comment="Canonical English label from the label resolver",
        ),
        sa.Column(
            "native_definition",
            sa.Text(),
            nullable=False,
            comment="Meaning in the learner's native language (defaults to label_en)",
        ),
        sa.Column(
            "image_path",
            sa.String(255),
            nullable=True,
            comment="Relative path of the first photo under the storage root",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("label_en", name="uq_concepts_label_en"),
    )
    op.create_index(
        "uq_concepts_label_en_lower",
        "concepts",
        [sa.text("lower(label_en)")],
        unique=True,
    )
    # Context words: the most recently created concepts
    op.create_index(
        "idx_concepts_created_at",
        "concepts",
        [sa.text("created_at DESC")],
    )

    op.create_table(
        "translations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("concept_id", sa.Integer(), nullable=False),
        sa.Column("language_code", sa.String(10), nullable=False),
        sa.Column("translated_word", sa.String(255), nullable=False),
        sa.Column("example_sentence", sa.Text(), nullable=False),
        sa.Column("emoji", sa.String(32), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["concept_id"], ["concepts.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "concept_id", "language_code", name="uq_translations_concept_language"
        ),
    )

    op.create_table(
        "learning_progress",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("concept_id", sa.Integer(), nullable=False),
        sa.Column(
            "proficiency_level",
            sa.Integer(),
            server_default=sa.text("1"),
            nullable=False,
        ),
        sa.Column(
            "review_count",
            sa.Integer(),
            server_default=sa.text("0"),
            nullable=False,
        ),
        sa.Column("last_reviewed_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("next_review_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["concept_id"], ["concepts.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("concept_id", name="uq_learning_progress_concept_id"),
        sa.CheckConstraint(
            "proficiency_level BETWEEN 1 AND 5", name="ck_learning_progress_level_range"
        ),
    )


def downgrade() -> None:
    op.drop_table("learning_progress")
    op.drop_table("translations")
    op.drop_index("idx_concepts_created_at", table_name="concepts")
    op.drop_index("uq_concepts_label_en_lower", table_name="concepts")
    op.drop_table("concepts")
