"""Storage API: contract metadata held by the server's relational store.

Response bodies keep the shape existing explorer front ends read:
ABI records as ``{address, abi, name, verified, timestamp}``, contract
sources as ``{address, sourceCode, compiler, optimization, runs,
timestamp}``, metrics as ``{"data": value}`` and failures as
``{"error": message}``.
"""

import logging
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from evmscan.api.deps import StorageCacheDep
from evmscan.core.exceptions import (
    AbiValidationError,
    InvalidAddressError,
    InvalidMetricKeyError,
    MetadataStoreError,
)
from evmscan.infrastructure.storage.schemas import (
    SaveAbiRequest,
    SaveContractSourceRequest,
    SaveMetricRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/storage", tags=["Storage"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/abis/{address}", response_model=None)
async def get_abi(address: str, cache: StorageCacheDep) -> Any:
    """Get the stored ABI record for an address."""
    try:
        record = await cache.store.get(address)
    except InvalidAddressError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except MetadataStoreError as e:
        logger.error(f"Failed to load ABI for {address}: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to load ABI")

    if record is None:
        return _error(status.HTTP_404_NOT_FOUND, "ABI not found")
    return record.model_dump(mode="json", by_alias=True)


@router.post("/abis/{address}", response_model=None)
async def save_abi(address: str, request: SaveAbiRequest, cache: StorageCacheDep) -> Any:
    """Store (or replace) the ABI for an address."""
    try:
        await cache.verify_contract(address, request.abi, request.name)
    except (AbiValidationError, InvalidAddressError) as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except MetadataStoreError as e:
        logger.error(f"Failed to save ABI for {address}: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save ABI")
    return {"success": True}


@router.get("/contracts/verified", response_model=None)
async def list_verified_contracts(cache: StorageCacheDep) -> Any:
    """List every verified contract."""
    try:
        records = await cache.store.list_verified()
    except MetadataStoreError as e:
        logger.error(f"Failed to load verified contracts: {e}")
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to load verified contracts"
        )
    return [record.model_dump(mode="json", by_alias=True) for record in records]


@router.get("/contracts/{address}", response_model=None)
async def get_contract(address: str, cache: StorageCacheDep) -> Any:
    """Get the stored source metadata for a contract."""
    try:
        record = await cache.store.get_source(address)
    except InvalidAddressError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except MetadataStoreError as e:
        logger.error(f"Failed to load contract {address}: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to load contract")

    if record is None:
        return _error(status.HTTP_404_NOT_FOUND, "Contract not found")
    return record.model_dump(mode="json", by_alias=True)


@router.post("/contracts/{address}", response_model=None)
async def save_contract(
    address: str, request: SaveContractSourceRequest, cache: StorageCacheDep
) -> Any:
    """Store (or replace) the source metadata for a contract."""
    try:
        await cache.store.save_source(
            address,
            source_code=request.source_code,
            compiler=request.compiler,
            optimization=request.optimization,
            runs=request.runs,
        )
    except InvalidAddressError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except MetadataStoreError as e:
        logger.error(f"Failed to save contract {address}: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save contract")
    return {"success": True}


@router.get("/metrics/{key}", response_model=None)
async def get_metric(key: str, cache: StorageCacheDep) -> Any:
    """Get a stored metric; ``data`` is null when it was never saved."""
    try:
        data = await cache.store.get_metric(key)
    except InvalidMetricKeyError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except MetadataStoreError as e:
        logger.error(f"Failed to load metric {key}: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to load metric")
    return {"data": data}


@router.post("/metrics/{key}", response_model=None)
async def save_metric(key: str, request: SaveMetricRequest, cache: StorageCacheDep) -> Any:
    """Store any JSON value under a metric key."""
    try:
        await cache.store.save_metric(key, request.data)
    except InvalidMetricKeyError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except MetadataStoreError as e:
        logger.error(f"Failed to save metric {key}: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save metric")
    return {"success": True}


@router.post("/clear", response_model=None)
async def clear_storage(cache: StorageCacheDep) -> Any:
    """Delete every stored ABI, contract source and metric."""
    try:
        await cache.clear()
    except MetadataStoreError as e:
        logger.error(f"Failed to clear database: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to clear database")
    return {"success": True}
