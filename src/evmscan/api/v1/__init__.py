"""API v1 module."""

from fastapi import APIRouter

from evmscan.api.v1.endpoints import addresses, blocks, contracts, transactions

api_router = APIRouter()

# Include routers
api_router.include_router(transactions.router)
api_router.include_router(addresses.router)
api_router.include_router(blocks.router)
api_router.include_router(contracts.router)
