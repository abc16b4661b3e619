"""
FridgeLingo Backend — Survival Quiz Generator
==============================================

What:  Builds the four-option multiple-choice quiz that restores a word's
       freshness.
How:   Question = English label. Options = the word's own meaning plus the
       meanings of three random other words, shuffled.

A catalog with fewer than three other words cannot produce a full quiz;
that is reported as NotFoundError rather than a shorter option list.
"""

import logging
import random
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fridgelingo.exceptions import NotFoundError
from fridgelingo.schemas.fridge import Quiz, QuizOption
from fridgelingo.services.progress_tracker import ProgressTracker
from fridgelingo.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)


class QuizGenerator:
    """
    Args:
        store:             source of the target concept and the distractors
        tracker:           confirms the word is actually in the fridge
        distractor_count:  wrong answers per quiz
        rng:               shuffling source; inject a seeded Random in tests
    """

    def __init__(
        self,
        store: VocabularyStore,
        tracker: ProgressTracker,
        distractor_count: int = 3,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.tracker = tracker
        self.distractor_count = distractor_count
        self.rng = rng or random.Random()

    async def generate(self, db: AsyncSession, concept_id: int) -> Quiz:
        """
        Raises:
            NotFoundError: unknown word, or too few other words for distractors
        """
        await self.tracker.get(db, concept_id)
        concept = await self.store.load_concept(db, concept_id)

        distractors = await self.store.random_concepts(
            db, exclude_id=concept.id, limit=self.distractor_count
        )
        if len(distractors) < self.distractor_count:
            logger.info(
                "Quiz for concept %s needs %d distractors, catalog has %d",
                concept_id,
                self.distractor_count,
                len(distractors),
            )
            raise NotFoundError(
                resource="quiz",
                resource_id=str(concept_id),
                message=(
                    f"Not enough words in the fridge for a quiz yet; "
                    f"add at least {self.distractor_count + 1} items."
                ),
                context={"available_distractors": len(distractors)},
            )

        options = [QuizOption(id=concept.id, text=concept.display_text)]
        options.extend(QuizOption(id=d.id, text=d.display_text) for d in distractors)
        self.rng.shuffle(options)

        return Quiz(correct_id=concept.id, question=concept.label_en, options=options)
