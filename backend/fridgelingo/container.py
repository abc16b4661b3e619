"""
FridgeLingo Backend — Service Container
========================================

What:  Builds every pipeline component once, at process start, and wires
       them together by constructor injection.
How:   build_container(settings) → ServiceContainer, stored on
       app.state.container by create_app(). Routes reach it through the
       get_container / get_acquisition_service dependencies.

Wiring:
    GeminiService ──┬──▶ LabelResolver (chooser)
                    ├──▶ ContentEnricher (generator)
                    └──▶ AcquisitionService (detector)
    VocabularyStore ──▶ ContentEnricher, ProgressTracker, QuizGenerator
    ProgressTracker ──▶ QuizGenerator, AcquisitionService
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from fridgelingo.config import Settings
from fridgelingo.services.acquisition_service import AcquisitionService
from fridgelingo.services.content_enricher import ContentEnricher
from fridgelingo.services.gemini_service import GeminiService
from fridgelingo.services.image_store import ImageStore
from fridgelingo.services.label_resolver import LabelResolver
from fridgelingo.services.llm_base import LabelDetector, TextGenerator
from fridgelingo.services.progress_tracker import ProgressTracker
from fridgelingo.services.quiz_generator import QuizGenerator
from fridgelingo.services.stats_aggregator import StatsAggregator
from fridgelingo.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Everything a request handler may need, built once."""

    detector: LabelDetector
    generator: TextGenerator
    resolver: LabelResolver
    store: VocabularyStore
    enricher: ContentEnricher
    tracker: ProgressTracker
    quiz_generator: QuizGenerator
    stats: StatsAggregator
    images: ImageStore
    acquisition: AcquisitionService


def build_container(
    settings: Settings,
    detector: Optional[LabelDetector] = None,
    generator: Optional[TextGenerator] = None,
) -> ServiceContainer:
    """
    Assemble the component graph.

    Args:
        settings:   application settings
        detector:   override for the label detector (tests)
        generator:  override for the text generator (tests)

    Both providers default to one shared GeminiService, so label detection,
    label choosing and enrichment share a single circuit breaker.
    """
    if detector is None or generator is None:
        gemini = GeminiService(
            api_key=settings.gemini_api_key,
            model_name=settings.gemini_model,
            timeout_seconds=settings.gemini_timeout_seconds,
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        detector = detector or gemini
        generator = generator or gemini

    store = VocabularyStore(retry_attempts=settings.store_retry_attempts)
    resolver = LabelResolver(chooser=generator, ignored_labels=settings.ignored_labels_set)
    enricher = ContentEnricher(
        generator=generator,
        store=store,
        context_word_limit=settings.context_word_limit,
    )
    tracker = ProgressTracker(
        store=store,
        review_interval_days=settings.review_interval_days,
        fresh_max_days=settings.fresh_max_days,
        warning_max_days=settings.warning_max_days,
    )
    quiz_generator = QuizGenerator(
        store=store,
        tracker=tracker,
        distractor_count=settings.quiz_distractor_count,
    )
    stats = StatsAggregator()
    images = ImageStore(storage_root=settings.storage_root, max_file_size=settings.max_file_size)

    acquisition = AcquisitionService(
        detector=detector,
        resolver=resolver,
        store=store,
        enricher=enricher,
        tracker=tracker,
        quiz_generator=quiz_generator,
        stats=stats,
        images=images,
        default_target_lang=settings.default_target_lang,
        default_native_lang=settings.default_native_lang,
    )

    logger.info("Service container built")
    return ServiceContainer(
        detector=detector,
        generator=generator,
        resolver=resolver,
        store=store,
        enricher=enricher,
        tracker=tracker,
        quiz_generator=quiz_generator,
        stats=stats,
        images=images,
        acquisition=acquisition,
    )


# ── FastAPI dependencies ──────────────────────────────────────────────────

def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_acquisition_service(request: Request) -> AcquisitionService:
    return request.app.state.container.acquisition
