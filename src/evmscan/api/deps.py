"""Request dependencies.

Long-lived objects are built once in the application lifespan and kept on
``app.state``; routes pull them from the request.
"""

from typing import Annotated

from fastapi import Depends, Query, Request

from evmscan.core.config import Settings
from evmscan.services.explorer import AbiCache, ExplorerService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_explorer_service(request: Request) -> ExplorerService:
    return request.app.state.explorer


def get_storage_cache(request: Request) -> AbiCache:
    """Cache in front of the relational store served at /api/storage."""
    return request.app.state.storage_cache


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


class Pagination:
    """Page parameters; page_size defaults from settings and is capped."""

    def __init__(self, page: int, page_size: int):
        self.page = page
        self.page_size = page_size


def get_pagination(
    settings: SettingsDep,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int | None = Query(None, ge=1, description="Items per page"),
) -> Pagination:
    size = page_size or settings.default_page_size
    return Pagination(page=page, page_size=min(size, settings.max_page_size))


ExplorerDep = Annotated[ExplorerService, Depends(get_explorer_service)]
StorageCacheDep = Annotated[AbiCache, Depends(get_storage_cache)]
PaginationDep = Annotated[Pagination, Depends(get_pagination)]
