from fastapi import APIRouter
from election_dashboard.api.endpoints import ai, elections, health

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(health.router)
api_router.include_router(elections.router)
api_router.include_router(ai.router)
