from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from admin_analytics.api.deps import get_dashboard_service, get_record_store
from admin_analytics.api.router import api_router
from admin_analytics.api.routes.health import router as health_router
from admin_analytics.core.config import get_settings
from admin_analytics.core.logging import configure_logging

settings = get_settings()

configure_logging()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    if get_record_store.cache_info().currsize:
        get_record_store().close()
    get_dashboard_service.cache_clear()
    get_record_store.cache_clear()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_prefix)
app.include_router(health_router)
