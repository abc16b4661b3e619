"""
FridgeLingo Backend — Progress Tracker
=======================================

What:  Owns the per-concept learning state and the freshness model.
How:   `initialize` creates the state once, at first acquisition.
       `review` advances it. `classify` and `is_due` derive decay from the
       clock; nothing derived is ever stored.

Freshness (whole days since the last review):
    days < fresh_max_days     → FRESH
    days < warning_max_days   → WARNING
    otherwise                 → ROTTEN

Every method takes an optional `now` so tests can pin the clock.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fridgelingo.exceptions import DatabaseError, NotFoundError
from fridgelingo.models.vocabulary import LearningProgress, utcnow
from fridgelingo.schemas.fridge import (
    DEFAULT_EMOJI,
    DEFAULT_LANG_CODE,
    MISSING_SENTENCE,
    MISSING_WORD,
    FridgeItem,
)
from fridgelingo.schemas.vocabulary import ConceptView, Freshness, ProgressView, as_utc
from fridgelingo.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)

MAX_PROFICIENCY = 5


def image_url(image_path: Optional[str]) -> Optional[str]:
    """Public URL of a stored image, as served by the images router."""
    if not image_path:
        return None
    return f"/api/images/{image_path}"


class ProgressTracker:
    """
    Args:
        store:                 VocabularyStore, used to materialise concepts for listings
        review_interval_days:  next_review_at = last_reviewed_at + this many days
        fresh_max_days:        first whole day that is no longer FRESH
        warning_max_days:      first whole day that is ROTTEN
    """

    def __init__(
        self,
        store: VocabularyStore,
        review_interval_days: int = 1,
        fresh_max_days: int = 2,
        warning_max_days: int = 4,
    ):
        self.store = store
        self.review_interval = timedelta(days=review_interval_days)
        self.fresh_max_days = fresh_max_days
        self.warning_max_days = warning_max_days

    # ── Commands ──────────────────────────────────────────────────────────

    async def initialize(
        self,
        db: AsyncSession,
        concept_id: int,
        now: Optional[datetime] = None,
    ) -> ProgressView:
        """
        Create the progress state for a concept if it has none.

        Returns the existing state untouched when one is already present,
        including when a concurrent request created it first.
        """
        existing = await self._find(db, concept_id)
        if existing is not None:
            return ProgressView.model_validate(existing)

        now = now or utcnow()
        progress = LearningProgress(
            concept_id=concept_id,
            proficiency_level=1,
            review_count=0,
            last_reviewed_at=now,
            next_review_at=now + self.review_interval,
        )
        try:
            async with db.begin_nested():
                db.add(progress)
                await db.flush()
        except IntegrityError:
            winner = await self._find(db, concept_id)
            if winner is None:
                raise DatabaseError(
                    message="Could not save learning progress. Please try again.",
                    context={"concept_id": concept_id},
                )
            logger.info("Progress for concept %s was created concurrently", concept_id)
            return ProgressView.model_validate(winner)

        logger.info("Initialized progress for concept %s", concept_id)
        return ProgressView.model_validate(progress)

    async def review(
        self,
        db: AsyncSession,
        concept_id: int,
        now: Optional[datetime] = None,
    ) -> ProgressView:
        """
        Record one successful review ("I memorized this").

        Raises:
            NotFoundError: the concept has no progress state
        """
        progress = await self._find(db, concept_id, for_update=True)
        if progress is None:
            raise NotFoundError(resource="word", resource_id=str(concept_id))

        now = now or utcnow()
        progress.review_count += 1
        progress.proficiency_level = min(progress.proficiency_level + 1, MAX_PROFICIENCY)
        progress.last_reviewed_at = now
        progress.next_review_at = now + self.review_interval
        await db.flush()

        logger.info(
            "Reviewed concept %s: level=%d, reviews=%d",
            concept_id,
            progress.proficiency_level,
            progress.review_count,
        )
        return ProgressView.model_validate(progress)

    async def get(self, db: AsyncSession, concept_id: int) -> ProgressView:
        """
        Raises:
            NotFoundError: the concept has no progress state
        """
        progress = await self._find(db, concept_id)
        if progress is None:
            raise NotFoundError(resource="word", resource_id=str(concept_id))
        return ProgressView.model_validate(progress)

    async def _find(
        self,
        db: AsyncSession,
        concept_id: int,
        for_update: bool = False,
    ) -> Optional[LearningProgress]:
        stmt = select(LearningProgress).where(LearningProgress.concept_id == concept_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    # ── Derived state ─────────────────────────────────────────────────────

    @staticmethod
    def days_since(last_reviewed_at: datetime, now: datetime) -> int:
        """Whole days elapsed, never negative."""
        return max((as_utc(now) - as_utc(last_reviewed_at)).days, 0)

    def classify(self, last_reviewed_at: datetime, now: Optional[datetime] = None) -> Freshness:
        days = self.days_since(last_reviewed_at, now or utcnow())
        if days < self.fresh_max_days:
            return Freshness.FRESH
        if days < self.warning_max_days:
            return Freshness.WARNING
        return Freshness.ROTTEN

    @staticmethod
    def is_due(progress: ProgressView, now: Optional[datetime] = None) -> bool:
        return as_utc(now or utcnow()) >= progress.next_review_at

    # ── Listing ───────────────────────────────────────────────────────────

    async def list_fridge(self, db: AsyncSession, now: Optional[datetime] = None) -> List[FridgeItem]:
        """Every tracked word, oldest review first (most rotten at the top)."""
        now = now or utcnow()
        result = await db.execute(
            select(LearningProgress).order_by(
                LearningProgress.last_reviewed_at.asc(),
                LearningProgress.id.asc(),
            )
        )
        progress_rows = [ProgressView.model_validate(p) for p in result.scalars().all()]
        concepts = await self.store.load_concepts(db, [p.concept_id for p in progress_rows])

        items = []
        for progress in progress_rows:
            concept = concepts.get(progress.concept_id)
            if concept is None:
                continue
            items.append(self.to_fridge_item(concept, progress, now))
        return items

    def to_fridge_item(self, concept: ConceptView, progress: ProgressView, now: datetime) -> FridgeItem:
        translation = concept.latest_translation()
        return FridgeItem(
            word_id=concept.id,
            label_en=concept.label_en,
            proficiency_level=progress.proficiency_level,
            review_count=progress.review_count,
            freshness=self.classify(progress.last_reviewed_at, now),
            days_since_review=self.days_since(progress.last_reviewed_at, now),
            is_due=self.is_due(progress, now),
            native_definition=concept.display_text,
            language_code=translation.language_code if translation else DEFAULT_LANG_CODE,
            translated_word=translation.translated_word if translation else MISSING_WORD,
            example_sentence=translation.example_sentence if translation else MISSING_SENTENCE,
            emoji=(translation.emoji or DEFAULT_EMOJI) if translation else DEFAULT_EMOJI,
            image_url=image_url(concept.image_path),
        )
