# ============================================================================
# Main API Router
# ============================================================================
from fastapi import APIRouter

from learnquest.api.v1 import gamification, progress, practice, activity, account

api_router = APIRouter()

# XP, levels, streaks, leaderboard, daily goals
api_router.include_router(gamification.router)
# Enrollments and lesson completion
api_router.include_router(progress.router)
# Practice problem submissions
api_router.include_router(practice.router)
# Activity heatmap
api_router.include_router(activity.router)
# Account removal
api_router.include_router(account.router)
