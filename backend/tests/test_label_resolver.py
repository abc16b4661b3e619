"""
FridgeLingo Backend — Label Resolver Tests
===========================================

What we test:
    ✅ The AI chooser's pick wins when it answers
    ✅ Chooser offline / null / garbage → first non-denylisted label
    ✅ Everything denylisted → no label
    ✅ Code fences around the chooser's JSON are tolerated
"""

import pytest

from fridgelingo.config import DEFAULT_IGNORED_LABELS
from fridgelingo.exceptions import CircuitBreakerOpenError
from fridgelingo.services.label_resolver import LabelResolver

from conftest import FakeGenerator

DENYLIST = [label.strip() for label in DEFAULT_IGNORED_LABELS.split(",")]


class TestChooser:

    @pytest.mark.asyncio
    async def test_chooser_pick_is_used(self):
        resolver = LabelResolver(FakeGenerator(chooser='{"foodLabel": "Broccoli"}'), DENYLIST)
        assert await resolver.resolve(["Cruciferous vegetables", "Food"]) == "Broccoli"

    @pytest.mark.asyncio
    async def test_fenced_chooser_answer(self):
        chooser = FakeGenerator(chooser='```json\n{"foodLabel": "Lemon"}\n```')
        resolver = LabelResolver(chooser, DENYLIST)
        assert await resolver.resolve(["Citrus", "Lemon"]) == "Lemon"

    @pytest.mark.asyncio
    async def test_prompt_lists_the_raw_labels(self):
        chooser = FakeGenerator(chooser='{"foodLabel": "Tomato"}')
        resolver = LabelResolver(chooser, DENYLIST)
        await resolver.resolve(["Nightshade", "Tomato"])
        (_, prompt), = chooser.prompts
        assert "Nightshade, Tomato" in prompt


class TestFallback:

    @pytest.mark.asyncio
    async def test_cabbage_when_chooser_unavailable(self):
        """Detector says Leaf vegetable, Cabbage, Food; the chooser is down."""
        resolver = LabelResolver(FakeGenerator(chooser=None), ["Leaf vegetable", "Food"])
        assert await resolver.resolve(["Leaf vegetable", "Cabbage", "Food"]) == "Cabbage"

    @pytest.mark.asyncio
    async def test_circuit_open_falls_back(self):
        chooser = FakeGenerator(chooser=CircuitBreakerOpenError(recovery_time=30))
        resolver = LabelResolver(chooser, DENYLIST)
        assert await resolver.resolve(["Food", "Apple"]) == "Apple"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", ['{"foodLabel": null}', '{"foodLabel": "  "}', "not json", "[]"])
    async def test_null_or_unreadable_answer_falls_back(self, answer):
        resolver = LabelResolver(FakeGenerator(chooser=answer), DENYLIST)
        assert await resolver.resolve(["Produce", "Carrot"]) == "Carrot"

    @pytest.mark.asyncio
    async def test_all_denied_returns_none(self):
        resolver = LabelResolver(FakeGenerator(chooser=None), DENYLIST)
        assert await resolver.resolve(["Food", "Red", "Close-up"]) is None

    @pytest.mark.asyncio
    async def test_empty_labels_skip_the_chooser(self):
        chooser = FakeGenerator(chooser='{"foodLabel": "Apple"}')
        resolver = LabelResolver(chooser, DENYLIST)
        assert await resolver.resolve([]) is None
        assert chooser.prompts == []

    def test_denylist_is_case_insensitive(self):
        resolver = LabelResolver(FakeGenerator(), ["Food"])
        assert resolver.fallback(["FOOD", "food", "Kiwi"]) == "Kiwi"

    def test_fallback_keeps_detector_order(self):
        resolver = LabelResolver(FakeGenerator(), ["Food"])
        assert resolver.fallback(["Banana", "Apple"]) == "Banana"
