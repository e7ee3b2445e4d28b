from fastapi import APIRouter

from obcflow.api.v1.endpoints import quotes, shipments

api_router = APIRouter()

api_router.include_router(shipments.router, prefix="/shipments", tags=["Shipments"])
api_router.include_router(quotes.router, prefix="/quotes", tags=["Quotes"])
