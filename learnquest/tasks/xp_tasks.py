# ============================================================================
# Scheduled XP Tasks
# ============================================================================
from celery import shared_task
import asyncio
import logging

from learnquest.config import get_settings
from learnquest.core.database import build_engine, build_session_maker
from learnquest.services.gamification.xp_system import XPSystem

logger = logging.getLogger(__name__)

def run_async(coro):
    """Helper to run async functions in Celery tasks"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()

async def _reset(period: str) -> int:
    settings = get_settings()
    # engines are bound to the loop they were created on
    engine = build_engine(settings.DATABASE_URL)
    try:
        async with build_session_maker(engine)() as db:
            xp_system = XPSystem(db, settings=settings)
            if period == "weekly":
                return await xp_system.reset_weekly_xp()
            return await xp_system.reset_monthly_xp()
    finally:
        await engine.dispose()

@shared_task(name="learnquest.tasks.xp_tasks.reset_weekly_xp")
def reset_weekly_xp():
    """Zero weekly XP so the weekly leaderboard starts over"""
    count = run_async(_reset("weekly"))
    logger.info(f"Weekly XP reset for {count} users")
    return count

@shared_task(name="learnquest.tasks.xp_tasks.reset_monthly_xp")
def reset_monthly_xp():
    """Zero monthly XP so the monthly leaderboard starts over"""
    count = run_async(_reset("monthly"))
    logger.info(f"Monthly XP reset for {count} users")
    return count
