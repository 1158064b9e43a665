import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from inventory_admin.api.router import api_router
from inventory_admin.core.config import Settings, get_settings
from inventory_admin.core.database import Database
from inventory_admin.core.exceptions import (
    DuplicateNameError,
    FormValidationError,
    NotFoundError,
    StorageWriteError,
)
from inventory_admin.services.file_store import FileStore
from inventory_admin.utils.urls import MEDIA_URL

logger = logging.getLogger(__name__)

MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s")


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(FormValidationError)
    async def form_validation_error(request: Request, exc: FormValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": "Validation failed", "errors": exc.errors},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_error(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(DuplicateNameError)
    async def duplicate_name_error(request: Request, exc: DuplicateNameError):
        logger.info("%s '%s' уже существует, перенаправление на %s", exc.entity, exc.name, exc.url)
        return RedirectResponse(exc.url, status_code=status.HTTP_303_SEE_OTHER)

    @app.exception_handler(StorageWriteError)
    async def storage_write_error(request: Request, exc: StorageWriteError):
        logger.error("Ошибка записи загрузки: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Failed to store uploaded file"},
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Собирает приложение. Импорт модуля не создаёт каталогов и не читает настройки:
    uvicorn --factory inventory_admin.main:create_app
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    database = Database(settings.database_url)
    file_store = FileStore.from_settings(settings)
    os.makedirs(file_store.upload_dir, exist_ok=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.connect(create_tables=settings.create_tables)
        try:
            yield
        finally:
            await database.close()

    app = FastAPI(
        title="Inventory Admin API",
        description="API для управления товарами и категориями склада",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.file_store = file_store

    @app.middleware("http")
    async def log_mutating_requests(request: Request, call_next):
        if request.method not in MUTATING_METHODS:
            return await call_next(request)

        start_time = time.time()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.3fs)",
            request.method,
            request.url.path,
            response.status_code,
            time.time() - start_time,
        )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)
    app.mount(MEDIA_URL, StaticFiles(directory=file_store.root), name="media")

    @app.get("/")
    def root():
        return {"message": "It works inventory-admin!"}

    return app
