# ============================================================================
# Main API Router
# ============================================================================
from fastapi import APIRouter

from app.api.v1 import cron, gamification, homework, lex

api_router = APIRouter()

# Session generation, difficulty stepping, session close
api_router.include_router(lex.router)
# Leaderboards, badges, lessons, levels
api_router.include_router(gamification.router)
api_router.include_router(homework.router)
# Daily / weekly maintenance triggers
api_router.include_router(cron.router)
