"""
FridgeLingo Backend — Label Resolver
=====================================

What:  Collapses the detector's noisy label list into at most one specific,
       grocery-style food name.
How:   1. Ask the AI chooser to pick one label (ignoring categories and
          botanical names), or null
       2. If the chooser fails, answers garbage, or says null: take the first
          raw label that is not in the denylist
       3. If everything is denied: no label, and the pipeline stops

    Multiple foods in one photo are intentionally collapsed to one.
"""

import logging
from typing import Iterable, Optional, Sequence

from fridgelingo.exceptions import LLMServiceError, MalformedResponseError
from fridgelingo.services.llm_base import TextGenerator, parse_json_object, text_field

logger = logging.getLogger(__name__)


CHOOSER_PROMPT = """Analyze this list of image labels from an image-labelling API: [{labels}].
Your Goal: Identify the single most specific 'Common Grocery Store Item Name'.

RULES:
1. Ignore generic terms like 'Food', 'Produce', 'Vegetable', 'Ingredient', 'Dish', 'Recipe'.
2. STRICTLY AVOID botanical families or scientific categories.
   - Example: Do NOT use 'Cruciferous vegetables', use 'Cabbage' or 'Broccoli'.
   - Example: Do NOT use 'Citrus', use 'Lemon' or 'Orange'.
   - Example: Do NOT use 'Nightshade', use 'Tomato'.
3. If multiple specific items are listed, pick the most prominent one.
4. If no food is found, return null.

Return ONLY a JSON object: {{ "foodLabel": "Name" }} or {{ "foodLabel": null }}."""


class LabelResolver:
    """
    Picks the canonical label for one photo.

    Args:
        chooser:         TextGenerator used for semantic filtering
        ignored_labels:  denylist for the fallback scan (case-insensitive)
    """

    def __init__(self, chooser: TextGenerator, ignored_labels: Iterable[str]):
        self.chooser = chooser
        self.ignored_labels = frozenset(label.strip().lower() for label in ignored_labels)

    async def resolve(self, raw_labels: Sequence[str]) -> Optional[str]:
        """
        Resolve raw detector labels to one food label.

        Returns:
            The chosen label, or None when no food could be identified.
        """
        labels = [label.strip() for label in raw_labels if label and label.strip()]
        if not labels:
            logger.info("No labels to resolve")
            return None

        chosen = await self._ask_chooser(labels)
        if chosen:
            logger.info("AI chooser picked '%s' from %s", chosen, labels)
            return chosen

        fallback = self.fallback(labels)
        if fallback is None:
            logger.info("No relevant food detected in %s", labels)
        else:
            logger.info("Fallback picked '%s' from %s", fallback, labels)
        return fallback

    def fallback(self, labels: Sequence[str]) -> Optional[str]:
        """First label, in original order, that is not denylisted."""
        for label in labels:
            if label.lower() not in self.ignored_labels:
                return label
        return None

    async def _ask_chooser(self, labels: Sequence[str]) -> Optional[str]:
        """The chooser's pick, or None if it is unavailable or undecided."""
        prompt = CHOOSER_PROMPT.format(labels=", ".join(labels))
        try:
            raw = await self.chooser.generate_text(prompt)
            payload = parse_json_object(raw)
        except LLMServiceError as e:
            logger.warning("Label chooser unavailable, using denylist fallback: %s", e.message)
            return None
        except MalformedResponseError as e:
            logger.warning("Label chooser answered unreadably: %s | %s", e.message, e.context)
            return None

        chosen = text_field(payload, "foodLabel")
        if not chosen or chosen.lower() in {"null", "none"}:
            return None
        return chosen
