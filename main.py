import random
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config import CORS_ALLOW_ORIGINS
from errors import CountryCacheError
from gateway import SourceGateway
from logger import get_logger
from middleware import add_request_id_and_process_time
from renderer import SummaryImageCache
from routers import router
from service import CountryRefreshService
from store import SnapshotStore

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CountryCacheError)
    async def country_cache_error_handler(request: Request, exc: CountryCacheError):
        logger.info("%s %s failed: %s", request.method, request.url.path, exc.code)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "code": "validation_error", "details": str(exc.errors())},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error", "code": "internal_error"})


def create_app(
    database_url: Optional[str] = None,
    gateway: Optional[SourceGateway] = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    store = SnapshotStore.from_url(database_url)
    gateway = gateway or SourceGateway()
    image_cache = SummaryImageCache()
    refresh_service = CountryRefreshService(gateway, store, image_cache, rng=rng)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.create_schema()
        yield
        await gateway.aclose()
        await store.dispose()
        logger.info("Application shutdown complete.")

    app = FastAPI(lifespan=lifespan, title="Country Data, Country Currency & Exchange API", version="1.0.0")
    app.state.store = store
    app.state.image_cache = image_cache
    app.state.refresh_service = refresh_service

    app.middleware('http')(add_request_id_and_process_time)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/")
    def root():
        logger.info("Root endpoint called")
        return {"message": "Welcome to FastAPI App for Country Data, Country Currency & Exchange API"}

    app.include_router(router, tags=["Countries"])
    return app


app = create_app()
