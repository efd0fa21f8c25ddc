from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import api_router
from app.core.config import Settings, settings
from app.core.credentials import GraphTokenProvider, resolve_credential
from app.services.directory_cache import DirectoryCache, directory_fetch
from app.services.directory_client import DirectoryClient
from app.services.queue_gateway import QueueGateway
from app.services.reference_data import ReferenceDataService
from app.services.submit_coordinator import BulkSubmitCoordinator

logger = logging.getLogger(__name__)


def build_services(application: FastAPI, config: Settings) -> None:
    try:
        credential = resolve_credential(config)
    except Exception:
        logger.exception("Failed to resolve directory credential — managers will be unavailable")
        credential = None
    if credential is None:
        logger.warning("No directory credential configured — managers will be unavailable")

    token_provider = GraphTokenProvider(credential, timeout=config.DIRECTORY_TIMEOUT_SECONDS)
    directory_client = DirectoryClient(
        token_provider,
        group_id=config.MANAGERS_GROUP_ID,
        group_name=config.MANAGERS_GROUP_NAME,
        base_url=config.GRAPH_BASE_URL,
        timeout=config.DIRECTORY_TIMEOUT_SECONDS,
    )
    directory_cache = DirectoryCache(
        directory_fetch(directory_client),
        ttl=config.DIRECTORY_CACHE_TTL_SECONDS,
    )

    queue_gateway = QueueGateway(
        config.AZURE_STORAGE_CONNECTION_STRING,
        config.AZURE_QUEUE_NAME,
        timeout=config.QUEUE_TIMEOUT_SECONDS,
    )
    if not queue_gateway.configured:
        logger.warning("Storage queue settings missing — submissions will be rejected")

    application.state.token_provider = token_provider
    application.state.directory_client = directory_client
    application.state.directory_cache = directory_cache
    application.state.queue_gateway = queue_gateway
    application.state.reference_data = ReferenceDataService(config.DATA_DIR)
    application.state.coordinator = BulkSubmitCoordinator(
        queue_gateway,
        directory_cache,
        batch_size=config.SUBMIT_BATCH_SIZE,
        format_start_date=config.FORMAT_START_DATE,
    )


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    build_services(application, settings)
    yield
    await application.state.queue_gateway.close()
    await application.state.token_provider.close()


app = FastAPI(
    title="Employee Admin Portal API",
    description="Onboarding drafts, offboarding requests and directory lookups",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "Employee Admin Portal API"}
