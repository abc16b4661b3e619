"""
FridgeLingo Backend — Gemini Service Unit Tests (Mocked)
=========================================================

What:  Tests for GeminiService with the Google Generative AI SDK patched out.
How:   Patches the genai module and model to simulate success/failure.

What we test:
    ✅ Circuit breaker state machine
    ✅ detect_labels parses, trims and de-duplicates labels
    ✅ Unreadable label payload → LLMServiceError
    ✅ Open circuit rejects calls without touching the SDK
    ✅ SDK failure → LLMServiceError and a recorded failure
    ❌ Real API calls (use integration tests for that)
"""

import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fridgelingo.exceptions import CircuitBreakerOpenError, LLMServiceError
from fridgelingo.services.gemini_service import CircuitBreaker, GeminiService


class TestCircuitBreaker:
    """Tests for the CircuitBreaker resilience pattern."""

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute() is True

    def test_opens_at_threshold(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        for _ in range(3):
            cb.record_failure()
        assert cb.state == "open"

    def test_open_circuit_rejects_calls(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        cb.record_failure()

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert exc_info.value.recovery_time >= 1
        assert exc_info.value.retry_after == exc_info.value.recovery_time

    def test_success_resets_failure_count(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()
        assert cb.failure_count == 2

        cb.record_success()
        assert cb.failure_count == 0
        assert cb.state == "closed"

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)

        assert cb.can_execute() is True
        assert cb.state == "half_open"

    def test_failure_in_half_open_reopens(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=0)
        for _ in range(3):
            cb.record_failure()
        cb.can_execute()

        cb.record_failure()
        assert cb.state == "open"


def make_service(mock_genai, text=None, error=None):
    mock_model = MagicMock()
    if error is not None:
        mock_model.generate_content_async = AsyncMock(side_effect=error)
    else:
        mock_response = MagicMock()
        mock_response.text = text
        mock_model.generate_content_async = AsyncMock(return_value=mock_response)
    mock_genai.GenerativeModel.return_value = mock_model
    return GeminiService(api_key="test-key", failure_threshold=2, recovery_timeout=60)


class TestGeminiServiceMocked:
    """Tests for GeminiService with mocked Gemini API."""

    @pytest.mark.asyncio
    async def test_detect_labels_success(self):
        with patch("fridgelingo.services.gemini_service.genai") as mock_genai:
            service = make_service(
                mock_genai,
                text='{"labels": ["Food", " Pear ", "pear", "", 7, "Fruit"]}',
            )

            labels = await service.detect_labels(b"\xff\xd8", "image/jpeg")

            assert labels == ["Food", "Pear", "Fruit"]
            contents = service.model.generate_content_async.call_args.args[0]
            assert contents[1] == {"mime_type": "image/jpeg", "data": b"\xff\xd8"}

    @pytest.mark.asyncio
    async def test_detect_labels_accepts_fenced_json(self):
        with patch("fridgelingo.services.gemini_service.genai") as mock_genai:
            service = make_service(mock_genai, text='```json\n{"labels": ["Milk"]}\n```')

            assert await service.detect_labels(b"img", "image/png") == ["Milk"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["not json", '{"labels": "Pear"}', '{"items": []}'])
    async def test_detect_labels_unreadable(self, text):
        with patch("fridgelingo.services.gemini_service.genai") as mock_genai:
            service = make_service(mock_genai, text=text)

            with pytest.raises(LLMServiceError):
                await service.detect_labels(b"img", "image/jpeg")

    @pytest.mark.asyncio
    async def test_generate_text_returns_raw_text(self):
        with patch("fridgelingo.services.gemini_service.genai") as mock_genai:
            service = make_service(mock_genai, text='  {"foodLabel": "Pear"}  ')

            assert await service.generate_text("prompt") == '{"foodLabel": "Pear"}'
            assert service.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_sdk_failure_records_failure(self):
        with patch("fridgelingo.services.gemini_service.genai") as mock_genai:
            service = make_service(mock_genai, error=TimeoutError("deadline exceeded"))

            with pytest.raises(LLMServiceError):
                await service.generate_text("prompt")

            assert service.circuit_breaker.failure_count == 1
            assert service.model.generate_content_async.await_count == 1

    @pytest.mark.asyncio
    async def test_circuit_breaker_open_skips_call(self):
        with patch("fridgelingo.services.gemini_service.genai") as mock_genai:
            service = make_service(mock_genai, text='{"labels": []}')
            for _ in range(service.circuit_breaker.failure_threshold):
                service.circuit_breaker.record_failure()

            with pytest.raises(CircuitBreakerOpenError):
                await service.detect_labels(b"img", "image/jpeg")

            service.model.generate_content_async.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_health_check_returns_bool(self):
        with patch("fridgelingo.services.gemini_service.genai") as mock_genai:
            mock_genai.list_models.return_value = [MagicMock()]
            service = make_service(mock_genai, text="")

            assert await service.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_failure(self):
        with patch("fridgelingo.services.gemini_service.genai") as mock_genai:
            mock_genai.list_models.side_effect = RuntimeError("unauthenticated")
            service = make_service(mock_genai, text="")

            assert await service.health_check() is False
