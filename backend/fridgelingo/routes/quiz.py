"""
FridgeLingo Backend — Quiz Generation Route
============================================

What:  POST /api/quiz/generate turns a fridge photo into a flashcard.
How:   Reads the multipart upload and hands everything to
       AcquisitionService.submit_image.
Who:   The camera screen of the mobile app.

Request (multipart/form-data):
    image       the photo (PNG or JPEG)
    targetLang  language being learned, default "es"
    nativeLang  learner's native language, default "ko"

Response:
    200 with a list holding one EnrichedQuestion, or an empty list when no
    food was recognised in the photo.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from fridgelingo.container import get_acquisition_service
from fridgelingo.database import get_db_session
from fridgelingo.schemas.common import ErrorResponse
from fridgelingo.schemas.fridge import EnrichedQuestion
from fridgelingo.services.acquisition_service import AcquisitionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quiz", tags=["Quiz"])


@router.post(
    "/generate",
    response_model=List[EnrichedQuestion],
    responses={
        400: {"description": "Empty, oversized or non-image upload", "model": ErrorResponse},
        503: {"description": "Image labelling unavailable", "model": ErrorResponse},
    },
    summary="Generate a flashcard from a fridge photo",
)
async def generate_quiz(
    image: UploadFile = File(..., description="Photo of one food item (PNG or JPEG)"),
    target_lang: Optional[str] = Form(default=None, alias="targetLang"),
    native_lang: Optional[str] = Form(default=None, alias="nativeLang"),
    db: AsyncSession = Depends(get_db_session),
    service: AcquisitionService = Depends(get_acquisition_service),
) -> List[EnrichedQuestion]:
    """
    Error responses (global handlers):
        400: ValidationError
        503: LLMServiceError / CircuitBreakerOpenError from the detector
        500: DatabaseError
    """
    try:
        content = await image.read()
        logger.info(
            "Received image: filename=%s, size=%d bytes, target=%s, native=%s",
            image.filename or "unknown",
            len(content),
            target_lang,
            native_lang,
        )
        return await service.submit_image(
            db=db,
            filename=image.filename,
            content=content,
            target_lang=target_lang,
            native_lang=native_lang,
            content_length=image.size,
        )
    finally:
        await image.close()
