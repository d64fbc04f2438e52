# ============================================================================
# Celery Application Configuration
# ============================================================================
from celery import Celery
from celery.schedules import crontab
from learnquest.config import get_settings

settings = get_settings()

celery_app = Celery(
    "learnquest",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "learnquest.tasks.xp_tasks",
    ]
)

# Celery Configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# Beat Schedule (Periodic Tasks)
celery_app.conf.beat_schedule = {
    # Weekly XP leaderboard reset (Monday 00:00 UTC)
    "weekly-xp-reset": {
        "task": "learnquest.tasks.xp_tasks.reset_weekly_xp",
        "schedule": crontab(hour=0, minute=0, day_of_week=1),
    },

    # Monthly XP leaderboard reset (1st of the month, 00:00 UTC)
    "monthly-xp-reset": {
        "task": "learnquest.tasks.xp_tasks.reset_monthly_xp",
        "schedule": crontab(hour=0, minute=0, day_of_month=1),
    },
}
