"""
FridgeLingo Backend — Vocabulary Store Tests
=============================================

What we test:
    ✅ get_or_create is idempotent by label (also case-insensitively)
    ✅ A lost insert race reuses the winner's row instead of duplicating
    ✅ A race that never becomes visible ends in DatabaseError
    ✅ Translations: case-insensitive lookup, concurrent attach keeps one row
    ✅ Recent labels / random concepts exclude the current concept
"""

import pytest
from sqlalchemy import func, select

from fridgelingo.exceptions import DatabaseError, NotFoundError, ValidationError
from fridgelingo.models import Concept, Translation
from fridgelingo.schemas.vocabulary import TranslationDraft


def draft(lang="es", word="manzana"):
    return TranslationDraft(
        language_code=lang,
        translated_word=word,
        example_sentence="Como una manzana.",
        emoji="🍎",
    )


async def concept_count(db) -> int:
    return (await db.execute(select(func.count(Concept.id)))).scalar_one()


class TestGetOrCreate:

    @pytest.mark.asyncio
    async def test_creates_then_reuses(self, db_session, store):
        first, created_first = await store.get_or_create_concept(db_session, "Apple")
        second, created_second = await store.get_or_create_concept(db_session, "Apple")

        assert created_first is True
        assert created_second is False
        assert first.id == second.id
        assert await concept_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_native_definition_defaults_to_label(self, db_session, store):
        concept, _ = await store.get_or_create_concept(db_session, "Pear", image_path="2025/01/01/x.jpg")
        assert concept.native_definition == "Pear"
        assert concept.image_path == "2025/01/01/x.jpg"
        assert concept.translations == []

    @pytest.mark.asyncio
    async def test_lookup_ignores_case(self, db_session, store):
        first, _ = await store.get_or_create_concept(db_session, "Apple")
        second, created = await store.get_or_create_concept(db_session, "apple")
        assert created is False
        assert second.id == first.id

    @pytest.mark.asyncio
    async def test_blank_label_rejected(self, db_session, store):
        with pytest.raises(ValidationError):
            await store.get_or_create_concept(db_session, "   ")

    @pytest.mark.asyncio
    async def test_lost_race_reuses_winner(self, db_session, store, monkeypatch):
        """The lookup misses, the insert collides, the re-read finds the winner."""
        winner, _ = await store.get_or_create_concept(db_session, "Cabbage")

        real_find = store._find_by_label
        calls = {"n": 0}

        async def stale_first_lookup(db, label):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await real_find(db, label)

        monkeypatch.setattr(store, "_find_by_label", stale_first_lookup)

        loser, created = await store.get_or_create_concept(db_session, "Cabbage")

        assert created is False
        assert loser.id == winner.id
        assert await concept_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_lost_race_with_different_casing(self, db_session, store, monkeypatch):
        """"Apple" and "apple" collide on insert; the loser reuses "Apple"."""
        winner, _ = await store.get_or_create_concept(db_session, "Apple")

        real_find = store._find_by_label
        calls = {"n": 0}

        async def stale_first_lookup(db, label):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await real_find(db, label)

        monkeypatch.setattr(store, "_find_by_label", stale_first_lookup)

        loser, created = await store.get_or_create_concept(db_session, "apple")

        assert created is False
        assert loser.id == winner.id
        assert loser.label_en == "Apple"
        assert await concept_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_invisible_winner_exhausts_retries(self, db_session, store, monkeypatch):
        await store.get_or_create_concept(db_session, "Cabbage")

        async def never_found(db, label):
            return None

        monkeypatch.setattr(store, "_find_by_label", never_found)

        with pytest.raises(DatabaseError):
            await store.get_or_create_concept(db_session, "Cabbage")
        assert await concept_count(db_session) == 1


class TestLoad:

    @pytest.mark.asyncio
    async def test_load_includes_translations(self, db_session, store):
        concept, _ = await store.get_or_create_concept(db_session, "Apple")
        await store.attach_translation(db_session, concept.id, draft())

        loaded = await store.load_concept(db_session, concept.id)

        assert [t.translated_word for t in loaded.translations] == ["manzana"]
        assert loaded.translation_for("ES").translated_word == "manzana"

    @pytest.mark.asyncio
    async def test_load_unknown_id(self, db_session, store):
        with pytest.raises(NotFoundError):
            await store.load_concept(db_session, 999)

    @pytest.mark.asyncio
    async def test_update_native_definition(self, db_session, store):
        concept, _ = await store.get_or_create_concept(db_session, "Apple")
        await store.update_native_definition(db_session, concept.id, "사과")
        assert (await store.load_concept(db_session, concept.id)).native_definition == "사과"


class TestTranslations:

    @pytest.mark.asyncio
    async def test_has_translation_is_case_insensitive(self, db_session, store):
        concept, _ = await store.get_or_create_concept(db_session, "Apple")
        assert await store.has_translation(db_session, concept.id, "es") is False

        await store.attach_translation(db_session, concept.id, draft(lang="ES"))

        assert await store.has_translation(db_session, concept.id, "es") is True
        assert await store.has_translation(db_session, concept.id, "Es") is True
        assert await store.has_translation(db_session, concept.id, "fr") is False

    @pytest.mark.asyncio
    async def test_language_code_stored_lowercase(self, db_session, store):
        concept, _ = await store.get_or_create_concept(db_session, "Apple")
        view, created = await store.attach_translation(db_session, concept.id, draft(lang="FR", word="pomme"))
        assert created is True
        assert view.language_code == "fr"

    @pytest.mark.asyncio
    async def test_second_attach_keeps_first_row(self, db_session, store):
        concept, _ = await store.get_or_create_concept(db_session, "Apple")
        first, first_created = await store.attach_translation(db_session, concept.id, draft(word="manzana"))
        second, second_created = await store.attach_translation(db_session, concept.id, draft(word="poma"))

        assert (first_created, second_created) == (True, False)
        assert second.id == first.id
        assert second.translated_word == "manzana"
        count = (await db_session.execute(select(func.count(Translation.id)))).scalar_one()
        assert count == 1


class TestQueries:

    @pytest.mark.asyncio
    async def test_recent_labels_newest_first_excluding_current(self, db_session, store):
        ids = {}
        for label in ["Apple", "Banana", "Carrot", "Daikon", "Egg"]:
            concept, _ = await store.get_or_create_concept(db_session, label)
            ids[label] = concept.id

        labels = await store.recent_labels(db_session, exclude_id=ids["Egg"], limit=3)

        assert labels == ["Daikon", "Carrot", "Banana"]

    @pytest.mark.asyncio
    async def test_random_concepts_exclude_target(self, db_session, store):
        ids = []
        for label in ["Apple", "Banana", "Carrot", "Daikon"]:
            concept, _ = await store.get_or_create_concept(db_session, label)
            ids.append(concept.id)

        picked = await store.random_concepts(db_session, exclude_id=ids[0], limit=3)

        assert len(picked) == 3
        assert ids[0] not in {c.id for c in picked}
        assert len({c.id for c in picked}) == 3
