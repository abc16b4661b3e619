"""
FridgeLingo Backend — Fridge Routes
====================================

What:  The learner's word bank: listing, reviews and survival quizzes.
Who:   The fridge tab of the mobile app.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from fridgelingo.container import get_acquisition_service
from fridgelingo.database import get_db_session
from fridgelingo.schemas.common import ErrorResponse
from fridgelingo.schemas.fridge import FridgeItem, Quiz, ReviewAck
from fridgelingo.services.acquisition_service import AcquisitionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/fridge", tags=["Fridge"])


@router.get(
    "/items",
    response_model=List[FridgeItem],
    summary="List every word in the fridge, most rotten first",
)
async def list_items(
    db: AsyncSession = Depends(get_db_session),
    service: AcquisitionService = Depends(get_acquisition_service),
) -> List[FridgeItem]:
    return await service.list_fridge(db)


@router.post(
    "/review/{word_id}",
    response_model=ReviewAck,
    responses={404: {"description": "Unknown word", "model": ErrorResponse}},
    summary="Record a successful review (I memorized this)",
)
async def review_item(
    word_id: int = Path(..., ge=1, description="Concept id"),
    db: AsyncSession = Depends(get_db_session),
    service: AcquisitionService = Depends(get_acquisition_service),
) -> ReviewAck:
    return await service.review_item(db, word_id)


@router.get(
    "/quiz-by-word/{word_id}",
    response_model=Quiz,
    responses={
        404: {
            "description": "Unknown word, or too few words in the fridge for a quiz",
            "model": ErrorResponse,
        },
    },
    summary="Four-option survival quiz for one word",
)
async def quiz_by_word(
    word_id: int = Path(..., ge=1, description="Concept id"),
    db: AsyncSession = Depends(get_db_session),
    service: AcquisitionService = Depends(get_acquisition_service),
) -> Quiz:
    return await service.get_quiz(db, word_id)
