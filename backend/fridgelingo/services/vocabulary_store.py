"""
FridgeLingo Backend — Vocabulary Store
=======================================

What:  The only write path for concepts and translations, and the only
       place that touches their ORM rows.
How:   Command-style operations that return frozen snapshots
       (ConceptView / TranslationView). Reads are explicit eager queries;
       relationships are declared lazy="raise" so nothing loads behind a
       caller's back.

Concurrency:
    Two photos of the same unseen food can arrive at the same time. Both
    requests miss the lookup and both try to insert; the unique constraint
    on concepts.label_en lets exactly one commit. The loser's INSERT runs in
    a SAVEPOINT, so only the savepoint rolls back; it then re-reads the
    winner's row. The whole lookup-or-insert is retried (tenacity) if that
    re-read still misses, e.g. because the winner has not committed yet.

    Translations follow the same pattern on (concept_id, language_code).
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random,
)

from fridgelingo.exceptions import DatabaseError, NotFoundError, ValidationError
from fridgelingo.models.vocabulary import Concept, Translation
from fridgelingo.schemas.vocabulary import ConceptView, TranslationDraft, TranslationView

logger = logging.getLogger(__name__)


class _InsertRaceLost(Exception):
    """The insert hit the unique constraint but the winner's row is not visible yet."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"lost insert race for '{key}'")


def _concepts_with_translations():
    """SELECT concepts with translations eagerly loaded, refreshing rows already in the session."""
    return (
        select(Concept)
        .options(selectinload(Concept.translations))
        .execution_options(populate_existing=True)
    )


def _to_view(concept: Concept, translations: Optional[Sequence[Translation]] = None) -> ConceptView:
    """Snapshot a concept; `translations` must be passed when they were not eager-loaded."""
    rows = concept.translations if translations is None else translations
    return ConceptView(
        id=concept.id,
        label_en=concept.label_en,
        native_definition=concept.native_definition,
        image_path=concept.image_path,
        created_at=concept.created_at,
        translations=[TranslationView.model_validate(t) for t in rows],
    )


class VocabularyStore:
    """
    Lookup-or-create semantics for concepts and their translations.

    Args:
        retry_attempts: bounded attempts of the optimistic lookup-or-insert loop
    """

    def __init__(self, retry_attempts: int = 3):
        self.retry_attempts = retry_attempts

    # ── Concepts ──────────────────────────────────────────────────────────

    async def get_or_create_concept(
        self,
        db: AsyncSession,
        label: str,
        image_path: Optional[str] = None,
    ) -> Tuple[ConceptView, bool]:
        """
        Return the concept for `label`, creating it if it has never been seen.

        Lookup is case-insensitive; a new concept keeps the casing it was
        resolved with, and its native definition starts as the label.

        Returns:
            (concept snapshot, created) — created is False when the label
            already existed or another request created it first.

        Raises:
            ValidationError: blank label
            DatabaseError: the optimistic loop was exhausted
        """
        label = (label or "").strip()
        if not label:
            raise ValidationError(message="Concept label must not be blank", field="label")

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(_InsertRaceLost),
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_random(min=0, max=0.2),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    result = await self._lookup_or_insert(db, label, image_path)
        except _InsertRaceLost as e:
            logger.error("Could not create or find concept '%s'", e.key)
            raise DatabaseError(
                message="Could not save the detected food. Please try again.",
                context={"label": label, "attempts": self.retry_attempts},
            )
        return result

    async def _lookup_or_insert(
        self,
        db: AsyncSession,
        label: str,
        image_path: Optional[str],
    ) -> Tuple[ConceptView, bool]:
        existing = await self._find_by_label(db, label)
        if existing is not None:
            return _to_view(existing), False

        concept = Concept(label_en=label, native_definition=label, image_path=image_path)
        try:
            async with db.begin_nested():
                db.add(concept)
                await db.flush()
        except IntegrityError:
            logger.info("Concept '%s' was created concurrently; reusing the winner's row", label)
            winner = await self._find_by_label(db, label)
            if winner is None:
                raise _InsertRaceLost(label)
            return _to_view(winner), False

        logger.info("Created concept %s ('%s')", concept.id, label)
        return _to_view(concept, translations=[]), True

    async def _find_by_label(self, db: AsyncSession, label: str) -> Optional[Concept]:
        result = await db.execute(
            _concepts_with_translations()
            .where(func.lower(Concept.label_en) == label.lower())
            .order_by(Concept.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def load_concept(self, db: AsyncSession, concept_id: int) -> ConceptView:
        """
        Load one concept with all its translations.

        Raises:
            NotFoundError: unknown concept id
        """
        result = await db.execute(
            _concepts_with_translations()
            .where(Concept.id == concept_id)
        )
        concept = result.scalar_one_or_none()
        if concept is None:
            raise NotFoundError(resource="word", resource_id=str(concept_id))
        return _to_view(concept)

    async def load_concepts(self, db: AsyncSession, concept_ids: Sequence[int]) -> Dict[int, ConceptView]:
        """Load several concepts with translations, keyed by id. Unknown ids are skipped."""
        if not concept_ids:
            return {}
        result = await db.execute(
            _concepts_with_translations()
            .where(Concept.id.in_(list(concept_ids)))
        )
        return {c.id: _to_view(c) for c in result.scalars().all()}

    async def update_native_definition(self, db: AsyncSession, concept_id: int, definition: str) -> None:
        """Overwrite the canonical native definition (last enrichment wins)."""
        concept = await db.get(Concept, concept_id)
        if concept is None:
            raise NotFoundError(resource="word", resource_id=str(concept_id))
        concept.native_definition = definition
        await db.flush()

    async def recent_labels(self, db: AsyncSession, exclude_id: int, limit: int = 3) -> List[str]:
        """Labels of the most recently created concepts other than `exclude_id`."""
        if limit <= 0:
            return []
        result = await db.execute(
            select(Concept.label_en)
            .where(Concept.id != exclude_id)
            .order_by(Concept.created_at.desc(), Concept.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def random_concepts(self, db: AsyncSession, exclude_id: int, limit: int) -> List[ConceptView]:
        """Up to `limit` random concepts, never including `exclude_id`."""
        result = await db.execute(
            _concepts_with_translations()
            .where(Concept.id != exclude_id)
            .order_by(func.random())
            .limit(limit)
        )
        return [_to_view(c) for c in result.scalars().all()]

    # ── Translations ──────────────────────────────────────────────────────

    async def has_translation(self, db: AsyncSession, concept_id: int, language_code: str) -> bool:
        """True if the concept already has a translation for the language (case-insensitive)."""
        result = await db.execute(
            select(Translation.id)
            .where(
                Translation.concept_id == concept_id,
                func.lower(Translation.language_code) == language_code.lower(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def attach_translation(
        self,
        db: AsyncSession,
        concept_id: int,
        draft: TranslationDraft,
    ) -> Tuple[TranslationView, bool]:
        """
        Persist a translation for a concept.

        Returns:
            (translation snapshot, created). When a concurrent request already
            attached one for the same language, that row is returned with
            created=False and the draft is discarded.
        """
        language_code = draft.language_code.strip().lower()
        translation = Translation(
            concept_id=concept_id,
            language_code=language_code,
            translated_word=draft.translated_word,
            example_sentence=draft.example_sentence,
            emoji=draft.emoji,
        )
        try:
            async with db.begin_nested():
                db.add(translation)
                await db.flush()
        except IntegrityError:
            logger.info(
                "Translation %s/%s was attached concurrently; keeping the existing one",
                concept_id,
                language_code,
            )
            existing = await self._find_translation(db, concept_id, language_code)
            if existing is None:
                raise DatabaseError(
                    message="Could not save the translation. Please try again.",
                    context={"concept_id": concept_id, "language_code": language_code},
                )
            return TranslationView.model_validate(existing), False

        logger.info("Attached %s translation to concept %s", language_code, concept_id)
        return TranslationView.model_validate(translation), True

    async def _find_translation(
        self,
        db: AsyncSession,
        concept_id: int,
        language_code: str,
    ) -> Optional[Translation]:
        result = await db.execute(
            select(Translation)
            .where(
                Translation.concept_id == concept_id,
                func.lower(Translation.language_code) == language_code.lower(),
            )
            .order_by(Translation.created_at.desc(), Translation.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
