"""
FridgeLingo Backend — API Request/Response Schemas
===================================================

What:  Pydantic models defining the contract with the mobile frontend.
Who:   Returned by the route handlers; built by the services.

Field naming follows the frontend: flashcards have a "front" (native
language) and a "back" (target language).
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from fridgelingo.schemas.vocabulary import ConceptView, Freshness

# Placeholders shown when a concept has no translation (failed enrichment)
MISSING_WORD = "???"
MISSING_SENTENCE = "No data"
DEFAULT_EMOJI = "📦"
DEFAULT_LANG_CODE = "en"


class EnrichedQuestion(BaseModel):
    """
    What:  A flashcard produced by POST /api/quiz/generate.
    Front: native definition (or the English label if enrichment never ran).
    Back:  the translation for the requested target language.
    """

    label_en: str = Field(description="Canonical English label (the concept key)")
    front_word: str = Field(description="Meaning in the learner's native language")
    back_word: str = Field(description="Word in the target language")
    back_sentence: str = Field(description="A1-level example sentence in the target language")
    emoji: str = Field(description="Single representative emoji")
    target_lang_code: str = Field(description="Language code of the back side (for TTS)")

    @classmethod
    def from_concept(cls, concept: ConceptView, target_lang: str) -> "EnrichedQuestion":
        translation = concept.translation_for(target_lang)
        if translation is None:
            return cls(
                label_en=concept.label_en,
                front_word=concept.display_text,
                back_word=MISSING_WORD,
                back_sentence=MISSING_SENTENCE,
                emoji=DEFAULT_EMOJI,
                target_lang_code=DEFAULT_LANG_CODE,
            )
        return cls(
            label_en=concept.label_en,
            front_word=concept.display_text,
            back_word=translation.translated_word,
            back_sentence=translation.example_sentence,
            emoji=translation.emoji or DEFAULT_EMOJI,
            target_lang_code=translation.language_code,
        )


class FridgeItem(BaseModel):
    """
    What:  One word in the learner's fridge, as listed by GET /api/fridge/items.
    Order: oldest review first, so rotting words surface at the top.
    """

    word_id: int
    label_en: str
    proficiency_level: int
    review_count: int
    freshness: Freshness
    days_since_review: int
    is_due: bool
    native_definition: str
    language_code: str
    translated_word: str
    example_sentence: str
    emoji: str
    image_url: Optional[str] = None


class ReviewAck(BaseModel):
    """Response of POST /api/fridge/review/{word_id}."""

    message: str = "Reviewed successfully!"
    word_id: int
    proficiency_level: int
    review_count: int


class QuizOption(BaseModel):
    """One answer option. `id` is the concept id it was drawn from."""

    id: int
    text: str


class Quiz(BaseModel):
    """
    What:  A "survival quiz" that restores a word's freshness.
    Shape: question is the English label; exactly one option has
           id == correct_id; option order is random.
    """

    correct_id: int
    question: str
    options: List[QuizOption]


class Stats(BaseModel):
    """Aggregate progress: XP ladder plus freshness bucket counts."""

    current_title: str
    next_title: str
    total_xp: int
    next_level_xp: int
    progress_percentage: float = Field(ge=0.0, le=1.0)
    total_items: int
    fresh_count: int
    warning_count: int
    rotten_count: int
