"""
FridgeLingo Backend — Acquisition Service (Pipeline Orchestrator)
==================================================================

What:  The five operations the app exposes, composed from the pipeline
       components.
How:   Stateless apart from its collaborators; the db session is passed
       into every call and committed by get_db_session.
Who:   Called by the route handlers.

SubmitImage Flow (POST /api/quiz/generate):
    ┌──────────┐   ┌──────────┐   ┌──────────┐   ┌─────────────┐   ┌──────────┐
    │ Validate │──▶│ Detect   │──▶│ Resolve  │──▶│ Get/Create  │──▶│ Progress │
    │ image    │   │ labels   │   │ one label│   │ concept     │   │ + Enrich │
    └──────────┘   └──────────┘   └──────────┘   └─────────────┘   └──────────┘

    Validation failure      → ValidationError (400)
    Detector failure        → LLMServiceError (503), nothing persisted
    No food resolved        → empty list
    Chooser / enricher down → degraded result (fallback label, no translation)
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fridgelingo.exceptions import (
    DatabaseError,
    FileStorageError,
    FridgeLingoError,
    ValidationError,
)
from fridgelingo.schemas.fridge import EnrichedQuestion, FridgeItem, Quiz, ReviewAck, Stats
from fridgelingo.services.content_enricher import ContentEnricher
from fridgelingo.services.image_store import ImageStore
from fridgelingo.services.label_resolver import LabelResolver
from fridgelingo.services.llm_base import LabelDetector
from fridgelingo.services.progress_tracker import ProgressTracker
from fridgelingo.services.quiz_generator import QuizGenerator
from fridgelingo.services.stats_aggregator import StatsAggregator
from fridgelingo.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)

# Column width of translations.language_code
MAX_LANG_CODE_LENGTH = 10


class AcquisitionService:
    """
    Entry point for every user-facing operation.

    Error Handling Strategy:
        Application exceptions propagate unchanged to the global handlers.
        Anything unexpected becomes DatabaseError so no SQL or driver
        detail reaches the client.
    """

    def __init__(
        self,
        detector: LabelDetector,
        resolver: LabelResolver,
        store: VocabularyStore,
        enricher: ContentEnricher,
        tracker: ProgressTracker,
        quiz_generator: QuizGenerator,
        stats: StatsAggregator,
        images: ImageStore,
        default_target_lang: str = "es",
        default_native_lang: str = "ko",
    ):
        self.detector = detector
        self.resolver = resolver
        self.store = store
        self.enricher = enricher
        self.tracker = tracker
        self.quiz_generator = quiz_generator
        self.stats = stats
        self.images = images
        self.default_target_lang = default_target_lang
        self.default_native_lang = default_native_lang

    async def submit_image(
        self,
        db: AsyncSession,
        filename: Optional[str],
        content: bytes,
        target_lang: Optional[str] = None,
        native_lang: Optional[str] = None,
        content_length: Optional[int] = None,
    ) -> List[EnrichedQuestion]:
        """
        Turn one fridge photo into at most one flashcard.

        Returns:
            One EnrichedQuestion, or an empty list when no food was recognised.

        Raises:
            ValidationError: bad language code, or empty, oversized or
                             non-image upload
            LLMServiceError: the label detector failed
            DatabaseError: persistence failed unexpectedly
        """
        target_lang = self._language_code(target_lang, self.default_target_lang, "targetLang")
        native_lang = self._language_code(native_lang, self.default_native_lang, "nativeLang")

        # ── Step 1: Validate the upload ───────────────────────────────────
        extension, mime_type = self.images.validate(filename, content, content_length)

        # ── Step 2: Detect labels (failure here fails the request) ────────
        raw_labels = await self.detector.detect_labels(content, mime_type)
        logger.info("Detected labels: %s", raw_labels)

        # ── Step 3: Collapse to one food label ────────────────────────────
        label = await self.resolver.resolve(raw_labels)
        if label is None:
            return []

        # ── Step 4: Persist concept, progress and enrichment ──────────────
        image_path = await self._store_image(content, extension)
        created: Optional[bool] = None
        try:
            concept, created = await self.store.get_or_create_concept(db, label, image_path=image_path)
            if not created and image_path:
                # Only the first photo of a concept is kept
                await self.images.cleanup(image_path)

            await self.tracker.initialize(db, concept.id)
            await self.enricher.enrich(db, concept, target_lang, native_lang)
            concept = await self.store.load_concept(db, concept.id)
        except Exception as e:
            if image_path and created is not False:
                await self.images.cleanup(image_path)
            if isinstance(e, FridgeLingoError):
                raise
            logger.error("Unexpected error while acquiring '%s': %s", label, str(e), exc_info=True)
            raise DatabaseError(
                message="An error occurred while saving your food. Please try again.",
                context={"original_error": type(e).__name__},
            )

        return [EnrichedQuestion.from_concept(concept, target_lang)]

    @staticmethod
    def _language_code(value: Optional[str], default: str, field: str) -> str:
        """
        Normalise a language code from the request (lower-case, trimmed).

        Raises:
            ValidationError: blank, or longer than MAX_LANG_CODE_LENGTH
        """
        code = (value or default).strip().lower()
        if not code or len(code) > MAX_LANG_CODE_LENGTH:
            raise ValidationError(
                message=(
                    f"'{field}' must be a language code of 1 to "
                    f"{MAX_LANG_CODE_LENGTH} characters."
                ),
                field=field,
                context={"value": value},
            )
        return code

    async def _store_image(self, content: bytes, extension: str) -> Optional[str]:
        """The image is optional for a concept; a storage failure is logged, not raised."""
        try:
            return await self.images.store(content, extension)
        except FileStorageError as e:
            logger.warning("Continuing without image: %s", e.message)
            return None

    async def list_fridge(self, db: AsyncSession) -> List[FridgeItem]:
        return await self.tracker.list_fridge(db)

    async def review_item(self, db: AsyncSession, word_id: int) -> ReviewAck:
        """
        Raises:
            NotFoundError: unknown word id
        """
        progress = await self.tracker.review(db, word_id)
        return ReviewAck(
            word_id=word_id,
            proficiency_level=progress.proficiency_level,
            review_count=progress.review_count,
        )

    async def get_quiz(self, db: AsyncSession, word_id: int) -> Quiz:
        """
        Raises:
            NotFoundError: unknown word id, or too few words for distractors
        """
        return await self.quiz_generator.generate(db, word_id)

    async def get_stats(self, db: AsyncSession) -> Stats:
        items = await self.tracker.list_fridge(db)
        return self.stats.compute_stats(items)
