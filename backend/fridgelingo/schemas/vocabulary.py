"""
FridgeLingo Backend — Domain Snapshots
=======================================

What:  Immutable Pydantic views of persisted vocabulary state.
Why:   The store never hands out ORM rows; components receive frozen
       snapshots and change state only through store/tracker commands.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def as_utc(value: datetime) -> datetime:
    """
    Normalises a timestamp to aware UTC.

    Some backends (SQLite) return naive datetimes for timezone columns;
    those are stored in UTC, so they are tagged rather than converted.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Freshness(str, Enum):
    """Decay classification derived from whole days since the last review."""

    FRESH = "FRESH"
    WARNING = "WARNING"
    ROTTEN = "ROTTEN"


class TranslationView(BaseModel):
    """One target-language rendering of a concept."""

    id: int
    concept_id: int
    language_code: str
    translated_word: str
    example_sentence: str
    emoji: str
    created_at: datetime

    model_config = {"from_attributes": True, "frozen": True}

    @field_validator("created_at")
    @classmethod
    def _normalise_created_at(cls, v: datetime) -> datetime:
        return as_utc(v)


class ConceptView(BaseModel):
    """A concept with its translations fully materialised."""

    id: int
    label_en: str
    native_definition: str
    image_path: Optional[str] = None
    created_at: datetime
    translations: List[TranslationView] = Field(default_factory=list)

    model_config = {"from_attributes": True, "frozen": True}

    @field_validator("created_at")
    @classmethod
    def _normalise_created_at(cls, v: datetime) -> datetime:
        return as_utc(v)

    @property
    def display_text(self) -> str:
        """Native definition if present, else the English label."""
        return self.native_definition or self.label_en

    def translation_for(self, language_code: str) -> Optional[TranslationView]:
        """Most recent translation for a language (case-insensitive)."""
        wanted = language_code.lower()
        matches = [t for t in self.translations if t.language_code.lower() == wanted]
        return max(matches, key=lambda t: (t.created_at, t.id), default=None)

    def latest_translation(self) -> Optional[TranslationView]:
        """Most recently created translation in any language."""
        return max(self.translations, key=lambda t: (t.created_at, t.id), default=None)


class ProgressView(BaseModel):
    """Snapshot of one concept's learning progress."""

    id: int
    concept_id: int
    proficiency_level: int = Field(ge=1, le=5)
    review_count: int = Field(ge=0)
    last_reviewed_at: datetime
    next_review_at: datetime

    model_config = {"from_attributes": True, "frozen": True}

    @field_validator("last_reviewed_at", "next_review_at")
    @classmethod
    def _normalise_timestamps(cls, v: datetime) -> datetime:
        return as_utc(v)


class TranslationDraft(BaseModel):
    """Fields of a translation that does not exist yet."""

    language_code: str = Field(min_length=1, max_length=10)
    translated_word: str
    example_sentence: str
    emoji: str


class EnrichmentResult(BaseModel):
    """Validated and repaired output of one enrichment call."""

    translated_word: str
    native_definition: Optional[str] = None
    example_sentence: str
    emoji: str
