"""
FridgeLingo Backend — Image Route
==================================

What:  Serves stored fridge photos referenced by FridgeItem.image_url.
How:   ImageStore.resolve() confines the path to the storage root; anything
       outside it, or missing, is a 404.
"""

import mimetypes

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from fridgelingo.container import ServiceContainer, get_container

router = APIRouter(prefix="/api", tags=["Images"])


@router.get(
    "/images/{image_path:path}",
    summary="Serve a stored photo",
    responses={
        200: {"description": "Image file"},
        404: {"description": "Image not found"},
    },
)
async def serve_image(
    image_path: str,
    container: ServiceContainer = Depends(get_container),
) -> FileResponse:
    full_path = container.images.resolve(image_path)
    media_type, _ = mimetypes.guess_type(full_path.name)
    return FileResponse(
        path=str(full_path),
        media_type=media_type or "application/octet-stream",
        # Stored photos never change (UUID names)
        headers={"Cache-Control": "public, max-age=86400"},
    )
