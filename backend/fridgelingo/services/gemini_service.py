"""
FridgeLingo Backend — Google Gemini Service Implementation
===========================================================

What:  Concrete AI provider backed by Google Gemini. Implements both
       LabelDetector (vision labelling of the fridge photo) and
       TextGenerator (label choosing and flashcard content).
How:   One GenerativeModel instance, one circuit breaker, one attempt per
       call with a request timeout.
Who:   Built once by the container; shared by LabelResolver, ContentEnricher
       and AcquisitionService.

Resilience Strategy:
    1. Per-call timeout (settings.gemini_timeout_seconds)
    2. Circuit breaker: after N consecutive failures, calls are rejected
       instantly until the recovery timeout has elapsed
    3. No automatic retry. A failed call is "feature unavailable for this
       request"; the next identical request is the retry.
"""

import logging
import time
import uuid
from typing import Any, List, Optional

import google.generativeai as genai

from fridgelingo.exceptions import (
    CircuitBreakerOpenError,
    LLMServiceError,
    MalformedResponseError,
)
from fridgelingo.services.llm_base import LabelDetector, TextGenerator, parse_json_object

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern to prevent cascade failures.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Thread Safety:
        Plain counters; safe for a single-process async server.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if circuit is OPEN and recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=max(remaining, 1))

        return True

    def record_success(self) -> None:
        """Record a successful API call. Resets the circuit breaker to CLOSED."""
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        """Record a failed API call. May trigger CLOSED → OPEN transition."""
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

class GeminiService(LabelDetector, TextGenerator):
    """
    Google Gemini implementation of both provider contracts.

    Error Handling Chain:
        circuit open → CircuitBreakerOpenError (no network call)
        SDK/network/timeout error → record failure → LLMServiceError
        unreadable label payload → LLMServiceError (detector only)
    """

    LABEL_PROMPT = """You are an image labelling system for a kitchen app.
List what is visible in this photo as short English labels, the way an
image-labelling API would (for example "Food", "Fruit", "Apple", "Red").

Order the labels from most to least confident and return at most 10.
Return ONLY a JSON object: { "labels": ["Label", "..."] }.
If the photo shows nothing recognisable, return { "labels": [] }."""

    JSON_GENERATION_CONFIG = {"response_mime_type": "application/json"}

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-flash",
        timeout_seconds: int = 30,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
    ):
        if api_key and api_key != "your_gemini_api_key_here":
            genai.configure(api_key=api_key)

        self.model_name = model_name
        self.model = genai.GenerativeModel(model_name)
        self.timeout_seconds = timeout_seconds
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with model=%s, timeout=%ds, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            model_name,
            timeout_seconds,
            failure_threshold,
            recovery_timeout,
        )

    async def generate_text(self, prompt: str) -> str:
        """Single-turn JSON-mode generation; returns the raw model text."""
        return await self._generate(prompt, purpose="generate")

    async def detect_labels(self, image_bytes: bytes, mime_type: str) -> List[str]:
        """
        Label an image with Gemini Vision.

        Returns:
            Non-blank labels, most confident first, duplicates removed.

        Raises:
            LLMServiceError: call failed, or the answer was not a label list.
        """
        raw = await self._generate(
            [self.LABEL_PROMPT, {"mime_type": mime_type, "data": image_bytes}],
            purpose="detect_labels",
        )

        try:
            payload = parse_json_object(raw)
        except MalformedResponseError as e:
            raise LLMServiceError(
                message="Image labelling returned an unreadable response.",
                context=e.context,
            )

        labels = payload.get("labels")
        if not isinstance(labels, list):
            raise LLMServiceError(
                message="Image labelling returned an unreadable response.",
                context={"keys": sorted(payload.keys())},
            )

        seen = set()
        result = []
        for label in labels:
            if not isinstance(label, str) or not label.strip():
                continue
            label = label.strip()
            if label.lower() in seen:
                continue
            seen.add(label.lower())
            result.append(label)
        return result

    async def _generate(self, contents: Any, purpose: str) -> str:
        """
        Makes exactly one Gemini call behind the circuit breaker.

        Raises:
            CircuitBreakerOpenError: circuit is open (no call made)
            LLMServiceError: the call failed or timed out
        """
        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        start_time = time.time()
        try:
            response = await self.model.generate_content_async(
                contents,
                generation_config=self.JSON_GENERATION_CONFIG,
                request_options={"timeout": self.timeout_seconds},
            )
            # .text raises ValueError when the candidate was blocked
            text = response.text.strip() if response.text else ""
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self.circuit_breaker.record_failure()
            logger.warning(
                "[%s] Gemini %s call failed after %.0fms: %s",
                request_id,
                purpose,
                duration_ms,
                str(e),
            )
            raise LLMServiceError(
                message="AI service call failed. Please try again later.",
                retry_after=(
                    self.circuit_breaker.recovery_timeout
                    if self.circuit_breaker.state == CircuitBreaker.OPEN
                    else None
                ),
                context={
                    "request_id": request_id,
                    "purpose": purpose,
                    "error_type": type(e).__name__,
                },
            ) from e

        self.circuit_breaker.record_success()
        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "[%s] Gemini %s completed in %.0fms, %d chars",
            request_id,
            purpose,
            duration_ms,
            len(text),
        )
        logger.debug("[%s] Raw Gemini response: %s", request_id, text)
        return text

    async def health_check(self) -> bool:
        """
        Check if Gemini API is reachable.

        How:     Lists available models (no token cost).
        Returns: True if reachable and authenticated, False otherwise.
        """
        try:
            models = genai.list_models()
            model_names = [m.name for m in models]
            target = f"models/{self.model_name}"
            if target not in model_names:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False
