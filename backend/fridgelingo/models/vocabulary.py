"""
FridgeLingo Backend — Vocabulary SQLAlchemy Models
===================================================

What:  ORM models for the `concepts`, `translations` and `learning_progress`
       tables.
Who:   Read and written ONLY by VocabularyStore and ProgressTracker; every
       other component works on the pydantic snapshots in
       fridgelingo.schemas.vocabulary.

Table Design:
    concepts            one row per canonical English food label
      └── translations  one row per (concept, language code)
      └── learning_progress  exactly one row per concept (one-to-one)

    Unique constraints carry the cross-request invariants:
        uq_concepts_label_en_lower          → no duplicate concepts, ignoring case
        uq_translations_concept_language    → one translation per language
        uq_learning_progress_concept_id     → one progress state per concept
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fridgelingo.database import Base


def utcnow() -> datetime:
    """Timezone-aware current time; the only clock the models use."""
    return datetime.now(timezone.utc)


class Concept(Base):
    """
    A learnable food item, keyed by its canonical English label.

    Lifecycle:
        1. Created on the first successful label resolution for an unseen label
           (native_definition = label_en until enrichment succeeds)
        2. native_definition overwritten by each successful enrichment
        3. Deleting a concept deletes its translations and progress
    """

    __tablename__ = "concepts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    label_en: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Canonical English label from the label resolver",
    )

    native_definition: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Meaning in the learner's native language (defaults to label_en)",
    )

    image_path: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Relative path of the first photo under the storage root",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    translations: Mapped[List["Translation"]] = relationship(
        back_populates="concept",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    progress: Mapped[Optional["LearningProgress"]] = relationship(
        back_populates="concept",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint("label_en", name="uq_concepts_label_en"),
        # Same key the case-insensitive lookup uses
        Index("uq_concepts_label_en_lower", func.lower(label_en), unique=True),
        # Context words and "recent first" queries
        Index("idx_concepts_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Concept(id={self.id}, label_en='{self.label_en}')>"


class Translation(Base):
    """
    Target-language rendering of a concept, produced by one enrichment call.

    language_code is stored lower-cased so the unique constraint is
    effectively case-insensitive.
    """

    __tablename__ = "translations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    concept_id: Mapped[int] = mapped_column(
        ForeignKey("concepts.id", ondelete="CASCADE"),
        nullable=False,
    )

    language_code: Mapped[str] = mapped_column(String(10), nullable=False)
    translated_word: Mapped[str] = mapped_column(String(255), nullable=False)
    example_sentence: Mapped[str] = mapped_column(Text, nullable=False)
    emoji: Mapped[str] = mapped_column(String(32), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    concept: Mapped["Concept"] = relationship(back_populates="translations", lazy="raise")

    __table_args__ = (
        UniqueConstraint("concept_id", "language_code", name="uq_translations_concept_language"),
    )

    def __repr__(self) -> str:
        return (
            f"<Translation(id={self.id}, concept_id={self.concept_id}, "
            f"language_code='{self.language_code}')>"
        )


class LearningProgress(Base):
    """
    Per-concept learning state.

    proficiency_level: 1..5, +1 per review, capped at 5
    review_count:      monotonically increasing
    next_review_at:    last_reviewed_at + review interval
    Freshness and due-for-review are derived, never stored.
    """

    __tablename__ = "learning_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    concept_id: Mapped[int] = mapped_column(
        ForeignKey("concepts.id", ondelete="CASCADE"),
        nullable=False,
    )

    proficiency_level: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=text("1")
    )
    review_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    last_reviewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    next_review_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    concept: Mapped["Concept"] = relationship(back_populates="progress", lazy="raise")

    __table_args__ = (
        UniqueConstraint("concept_id", name="uq_learning_progress_concept_id"),
        CheckConstraint(
            "proficiency_level BETWEEN 1 AND 5", name="ck_learning_progress_level_range"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<LearningProgress(id={self.id}, concept_id={self.concept_id}, "
            f"level={self.proficiency_level})>"
        )
