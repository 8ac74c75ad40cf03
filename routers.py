from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from errors import CountryNotFoundError, SummaryImageNotFoundError, ValidationFailedError
from logger import get_logger
from query import CountryQuery, find_countries
from renderer import SummaryImageCache
from schemas import CountryResponse, ErrorResponse, RefreshResponse, StatusResponse
from service import CountryRefreshService
from store import SnapshotStore

logger = get_logger(__name__)
router = APIRouter()


def get_store(request: Request) -> SnapshotStore:
    return request.app.state.store


def get_refresh_service(request: Request) -> CountryRefreshService:
    return request.app.state.refresh_service


def get_image_cache(request: Request) -> SummaryImageCache:
    return request.app.state.image_cache


def require_name(name: str) -> str:
    if not name.strip():
        raise ValidationFailedError("name is required")
    return name


@router.post(
    "/countries/refresh",
    response_model=RefreshResponse,
    status_code=status.HTTP_200_OK,
    responses={409: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def refresh_countries(service: CountryRefreshService = Depends(get_refresh_service)):
    summary = await service.refresh()
    return RefreshResponse(
        total_countries=summary.total_countries,
        skipped=summary.skipped,
        last_refreshed_at=summary.last_refreshed_at,
        image_rendered=summary.image_rendered,
    )


@router.get("/countries", response_model=List[CountryResponse])
async def list_countries(
    region: Optional[str] = Query(None),
    currency: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="gdp_desc, gdp_asc, population_desc, population_asc, name_asc, name_desc"),
    store: SnapshotStore = Depends(get_store),
):
    query = CountryQuery(region=region, currency=currency, sort=sort)
    countries = await find_countries(store, query)
    return [CountryResponse.model_validate(c) for c in countries]


@router.get(
    "/countries/image",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}, 404: {"model": ErrorResponse}},
)
async def get_summary_image(image_cache: SummaryImageCache = Depends(get_image_cache)):
    image = image_cache.get()
    if image is None:
        logger.info("Summary image requested before any successful refresh")
        raise SummaryImageNotFoundError()
    return Response(content=image.content, media_type=image.media_type)


@router.get("/countries/{name}", response_model=CountryResponse, responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def get_country(name: str = Depends(require_name), store: SnapshotStore = Depends(get_store)):
    country = await store.find_by_name(name)
    if country is None:
        raise CountryNotFoundError(f"No country named '{name}'")
    return CountryResponse.model_validate(country)


@router.delete("/countries/{name}", responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def delete_country(name: str = Depends(require_name), store: SnapshotStore = Depends(get_store)):
    if not await store.delete_by_name(name):
        raise CountryNotFoundError(f"No country named '{name}'")
    return {"message": "Country deleted"}


@router.get("/status", response_model=StatusResponse)
async def get_status(store: SnapshotStore = Depends(get_store)):
    store_status = await store.status()
    return StatusResponse(
        total_countries=store_status.total_countries,
        last_refreshed_at=store_status.last_refreshed_at,
    )
