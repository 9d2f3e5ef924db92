from fastapi import APIRouter

from pong_tournament.api.tournaments import router as tournaments_router
from pong_tournament.api.sessions import router as sessions_router

api_router = APIRouter()

api_router.include_router(tournaments_router)
api_router.include_router(sessions_router)
