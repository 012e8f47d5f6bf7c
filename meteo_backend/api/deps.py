"""
FastAPI dependency injection providers.

The state store, ingestion pipeline and persistence gateway are built once
in the application lifespan and kept on ``app.state``; these providers hand
them to route handlers via ``Depends()``.

CHANGELOG:
- 2026-10-16: Initial creation (STORY-012)
"""

from typing import Annotated

from fastapi import Depends, Request

from meteo_backend.config import Settings
from meteo_backend.persistence import PersistenceGateway
from meteo_backend.services.ingestion import IngestionPipeline
from meteo_backend.store import StateStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> StateStore:
    return request.app.state.store


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def get_gateway(request: Request) -> PersistenceGateway:
    return request.app.state.gateway


# Type aliases for route signatures, e.g.
#   async def my_route(store: Store):
Store = Annotated[StateStore, Depends(get_store)]
Pipeline = Annotated[IngestionPipeline, Depends(get_pipeline)]
Gateway = Annotated[PersistenceGateway, Depends(get_gateway)]
AppSettings = Annotated[Settings, Depends(get_settings)]
