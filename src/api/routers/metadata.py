"""Metadata preview endpoint."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_current_user_id, get_settings
from core.config import Settings
from schemas.common import ApiResponse
from schemas.metadata import MetadataPreviewResponse, MetadataRequest
from schemas.validators import truncate_description
from services.url_scraper import scrape_metadata

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metadata", tags=["metadata"])


@router.post(
    "",
    response_model=ApiResponse[MetadataPreviewResponse],
    responses={502: {"description": "The page could not be fetched or parsed"}},
)
async def preview_metadata(
    data: MetadataRequest,
    _user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[MetadataPreviewResponse] | JSONResponse:
    """
    Fetch a page and return its title, description, image and site name.

    Used by clients to prefill the bookmark form. Returns 502 if the page
    can't be fetched.
    """
    url = str(data.url)
    page = await scrape_metadata(
        url,
        timeout=settings.metadata_fetch_timeout,
        retries=settings.metadata_fetch_retries,
    )
    if page.error or page.metadata is None:
        logger.warning("Metadata preview failed for %s: %s", url, page.error)
        return JSONResponse(
            status_code=502,
            content={
                "success": False,
                "message": "Failed to fetch metadata",
                "error": page.error,
            },
        )

    meta = page.metadata
    return ApiResponse(
        data=MetadataPreviewResponse(
            url=page.final_url,
            title=meta.title or url,
            description=truncate_description(meta.description),
            image=meta.image,
            site_name=meta.site_name,
        ),
    )
