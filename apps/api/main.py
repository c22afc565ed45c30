import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from apps.api.middleware.request_context import RequestContextMiddleware
from apps.api.settings import get_api_settings
from modules.saves.adapters.http.router import router as saves_router
from modules.saves.application.facade import SaveStore, build_save_store

_api_settings = get_api_settings()
logging.basicConfig(level=_api_settings.log_level.upper(), format=_api_settings.log_format)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "save_store", None) is None:
        app.state.save_store = build_save_store()
    yield


def create_app(store: SaveStore | None = None) -> FastAPI:
    """Build the API around an explicitly provided store, or one built from settings at startup."""
    application = FastAPI(lifespan=lifespan)
    application.state.save_store = store
    application.add_middleware(RequestContextMiddleware)

    @application.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    application.include_router(saves_router)
    return application


app = create_app()
