"""
FridgeLingo Backend — Stats Route
==================================

What:  GET /api/stats, the profile screen's XP bar and freshness counters.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fridgelingo.container import get_acquisition_service
from fridgelingo.database import get_db_session
from fridgelingo.schemas.fridge import Stats
from fridgelingo.services.acquisition_service import AcquisitionService

router = APIRouter(prefix="/api", tags=["Stats"])


@router.get("/stats", response_model=Stats, summary="XP, title and freshness counts")
async def get_stats(
    db: AsyncSession = Depends(get_db_session),
    service: AcquisitionService = Depends(get_acquisition_service),
) -> Stats:
    return await service.get_stats(db)
