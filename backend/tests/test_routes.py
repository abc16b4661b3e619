"""
FridgeLingo Backend — HTTP API Tests
=====================================

What:  Exercises the routers through the real app factory with HTTPX.
How:   test_client wires create_app() to the per-test database and the
       scripted AI providers from conftest.

What we test:
    ✅ Photo upload → flashcard JSON
    ✅ Fridge listing, review, quiz and stats endpoints
    ✅ Error envelope for 400 / 404 / 503, with Retry-After on an open circuit
    ✅ Request ID propagation, image serving, health check
"""

import pytest

from fridgelingo.exceptions import CircuitBreakerOpenError, LLMServiceError


async def upload(client, image_bytes, filename="pear.jpg", **form):
    return await client.post(
        "/api/quiz/generate",
        files={"image": (filename, image_bytes, "image/jpeg")},
        data=form,
    )


class TestQuizGenerate:

    @pytest.mark.asyncio
    async def test_returns_one_flashcard(self, test_client, sample_image_bytes):
        response = await upload(test_client, sample_image_bytes, targetLang="fr", nativeLang="ko")

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 1
        assert body[0]["label_en"] == "Pear"
        assert body[0]["back_word"] == "poire"
        assert body[0]["front_word"] == "배"
        assert body[0]["target_lang_code"] == "fr"

    @pytest.mark.asyncio
    async def test_no_food_returns_empty_list(self, test_client, fake_detector, sample_image_bytes):
        fake_detector.labels = []

        response = await upload(test_client, sample_image_bytes)

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_empty_upload_is_400(self, test_client):
        response = await upload(test_client, b"")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "image"
        assert body["request_id"]

    @pytest.mark.asyncio
    async def test_wrong_extension_is_400(self, test_client, sample_image_bytes):
        response = await upload(test_client, sample_image_bytes, filename="pear.gif")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_overlong_language_code_is_400(self, test_client, fake_detector, sample_image_bytes):
        response = await upload(test_client, sample_image_bytes, targetLang="zh-hant-hk-x")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "targetLang"
        assert fake_detector.calls == 0

    @pytest.mark.asyncio
    async def test_detector_failure_is_503(self, test_client, fake_detector, sample_image_bytes):
        fake_detector.error = LLMServiceError(message="vision offline")

        response = await upload(test_client, sample_image_bytes)

        assert response.status_code == 503
        assert response.json()["error"] == "llm_service_error"

        items = await test_client.get("/api/fridge/items")
        assert items.json() == []

    @pytest.mark.asyncio
    async def test_open_circuit_sets_retry_after(self, test_client, fake_detector, sample_image_bytes):
        fake_detector.error = CircuitBreakerOpenError(recovery_time=42)

        response = await upload(test_client, sample_image_bytes)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "42"
        assert response.json()["details"] == {"recovery_time": 42}


class TestFridgeRoutes:

    @pytest.mark.asyncio
    async def test_list_and_review(self, test_client, sample_image_bytes):
        await upload(test_client, sample_image_bytes, targetLang="fr")

        items = (await test_client.get("/api/fridge/items")).json()
        assert len(items) == 1
        assert items[0]["freshness"] == "FRESH"
        assert items[0]["proficiency_level"] == 1

        response = await test_client.post(f"/api/fridge/review/{items[0]['word_id']}")
        assert response.status_code == 200
        assert response.json()["proficiency_level"] == 2
        assert response.json()["review_count"] == 1

        items = (await test_client.get("/api/fridge/items")).json()
        assert items[0]["review_count"] == 1

    @pytest.mark.asyncio
    async def test_review_unknown_word_is_404(self, test_client):
        response = await test_client.post("/api/fridge/review/999")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["details"]["resource"] == "word"

    @pytest.mark.asyncio
    async def test_quiz_with_too_few_words_is_404(self, test_client, sample_image_bytes):
        await upload(test_client, sample_image_bytes)
        word_id = (await test_client.get("/api/fridge/items")).json()[0]["word_id"]

        response = await test_client.get(f"/api/fridge/quiz-by-word/{word_id}")

        assert response.status_code == 404
        assert "Not enough words" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_quiz(self, test_client, fake_detector, fake_generator, sample_image_bytes):
        for label in ["Pear", "Milk", "Egg", "Butter"]:
            fake_detector.labels = [label]
            fake_generator.replies["chooser"] = f'{{"foodLabel": "{label}"}}'
            await upload(test_client, sample_image_bytes)

        items = (await test_client.get("/api/fridge/items")).json()
        word_id = items[0]["word_id"]

        response = await test_client.get(f"/api/fridge/quiz-by-word/{word_id}")

        assert response.status_code == 200
        quiz = response.json()
        assert quiz["correct_id"] == word_id
        assert len(quiz["options"]) == 4

    @pytest.mark.asyncio
    async def test_stats(self, test_client, sample_image_bytes):
        await upload(test_client, sample_image_bytes)

        stats = (await test_client.get("/api/stats")).json()

        assert stats["total_items"] == 1
        assert stats["total_xp"] == 70
        assert stats["current_title"] == "🥚 Dorm Student"
        assert stats["fresh_count"] == 1


class TestInfrastructure:

    @pytest.mark.asyncio
    async def test_stored_image_is_served(self, test_client, sample_image_bytes):
        await upload(test_client, sample_image_bytes)
        image_url = (await test_client.get("/api/fridge/items")).json()[0]["image_url"]

        response = await test_client.get(image_url)

        assert response.status_code == 200
        assert response.content == sample_image_bytes
        assert response.headers["content-type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_unknown_image_is_404(self, test_client):
        response = await test_client.get("/api/images/2025/01/01/nope.jpg")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.get("/api/stats", headers={"X-Request-ID": "fridge-42"})

        assert response.headers["X-Request-ID"] == "fridge-42"

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["gemini"] == "available"
