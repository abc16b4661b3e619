"""
FridgeLingo Backend — Content Enricher
=======================================

What:  Fills in a concept's flashcard content for one target language:
       translated word, native-language definition, A1 example sentence
       and an emoji.
How:   1. Skip if the concept already has a translation for the language
       2. Gather a few context words (other recent concepts in the fridge)
       3. One generation call, JSON parsed and repaired field by field
       4. Persist the translation; overwrite the native definition

Failure Policy:
    Provider errors and unreadable answers are logged and absorbed. The
    concept stays usable without a translation, and since has_translation
    is still false the next identical request tries again.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from fridgelingo.exceptions import LLMServiceError, MalformedResponseError
from fridgelingo.schemas.fridge import DEFAULT_EMOJI
from fridgelingo.schemas.vocabulary import ConceptView, EnrichmentResult, TranslationDraft
from fridgelingo.services.llm_base import TextGenerator, parse_json_object, text_field
from fridgelingo.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)

NO_EXAMPLE_SENTENCE = "No example available."

ENRICHMENT_PROMPT = """You are a professional language teacher.
User's Native Language: {native_lang}
Target Language to Learn: {target_lang}
Word to analyze: '{word}'
Context (User's Fridge): [{context}]

Task: Provide the following in JSON format:
1. translatedWord: The word translated into the Target Language. (If Target is same as Word, keep it).
2. nativeDefinition: The meaning of the word in the User's Native Language ({native_lang}).
3. exampleSentence: A simple A1-level sentence in the Target Language ({target_lang}).
   - Try to combine with context items ([{context}]) if natural.
   - MUST NOT be empty.
4. emoji: A single representative emoji.

STRICT JSON OUTPUT: {{ "translatedWord": "...", "nativeDefinition": "...", "exampleSentence": "...", "emoji": "..." }}"""


def build_prompt(word: str, target_lang: str, native_lang: str, context_labels: Sequence[str]) -> str:
    context = ", ".join(context_labels) if context_labels else "None"
    return ENRICHMENT_PROMPT.format(
        native_lang=native_lang,
        target_lang=target_lang,
        word=word,
        context=context,
    )


def repair_payload(payload: Dict[str, Any], label: str) -> EnrichmentResult:
    """
    Turn a parsed model answer into a complete EnrichmentResult.

    Missing or blank fields get fallbacks; the sentence may arrive under
    the alternate key "sentence".
    """
    sentence = text_field(payload, "exampleSentence") or text_field(payload, "sentence")
    return EnrichmentResult(
        translated_word=text_field(payload, "translatedWord") or label,
        native_definition=text_field(payload, "nativeDefinition") or None,
        example_sentence=sentence or NO_EXAMPLE_SENTENCE,
        emoji=text_field(payload, "emoji") or DEFAULT_EMOJI,
    )


class ContentEnricher:
    """
    At most one enrichment call per (concept, target language).

    Args:
        generator:           TextGenerator that answers the enrichment prompt
        store:               VocabularyStore used for the dedup check and writes
        context_word_limit:  how many recent concepts to pass as context
    """

    def __init__(self, generator: TextGenerator, store: VocabularyStore, context_word_limit: int = 3):
        self.generator = generator
        self.store = store
        self.context_word_limit = context_word_limit

    async def enrich(
        self,
        db: AsyncSession,
        concept: ConceptView,
        target_lang: str,
        native_lang: str,
        context_labels: Optional[List[str]] = None,
    ) -> Optional[EnrichmentResult]:
        """
        Enrich `concept` for `target_lang` unless that was already done.

        Returns:
            The persisted result, or None when skipped, when the provider
            failed, or when a concurrent request attached its translation first.
        """
        if await self.store.has_translation(db, concept.id, target_lang):
            logger.debug("Concept %s already has a %s translation", concept.id, target_lang)
            return None

        if context_labels is None:
            context_labels = await self.store.recent_labels(
                db, exclude_id=concept.id, limit=self.context_word_limit
            )
        else:
            context_labels = list(context_labels)[: self.context_word_limit]

        prompt = build_prompt(concept.label_en, target_lang, native_lang, context_labels)
        try:
            raw = await self.generator.generate_text(prompt)
            payload = parse_json_object(raw)
        except LLMServiceError as e:
            logger.warning(
                "Enrichment of '%s' (%s) skipped, provider unavailable: %s",
                concept.label_en,
                target_lang,
                e.message,
            )
            return None
        except MalformedResponseError as e:
            logger.warning(
                "Enrichment of '%s' (%s) skipped, unreadable answer: %s | %s",
                concept.label_en,
                target_lang,
                e.message,
                e.context,
            )
            return None

        result = repair_payload(payload, concept.label_en)

        _, created = await self.store.attach_translation(
            db,
            concept.id,
            TranslationDraft(
                language_code=target_lang,
                translated_word=result.translated_word,
                example_sentence=result.example_sentence,
                emoji=result.emoji,
            ),
        )
        if not created:
            logger.info(
                "Enrichment of '%s' (%s) lost to a concurrent request; keeping its answer",
                concept.label_en,
                target_lang,
            )
            return None
        if result.native_definition:
            await self.store.update_native_definition(db, concept.id, result.native_definition)

        logger.info(
            "Enriched '%s' for %s/%s: %s",
            concept.label_en,
            native_lang,
            target_lang,
            result.translated_word,
        )
        return result
