from fastapi import APIRouter

from app.api.sync import router as sync_router

api_router = APIRouter()

# Sportmonks reconciliation
api_router.include_router(sync_router)
