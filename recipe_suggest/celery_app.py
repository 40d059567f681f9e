"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from recipe_suggest.config import get_settings
from recipe_suggest.logging_config import configure_logging

settings = get_settings()

app = Celery(
    "recipe_suggest",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "recipe_suggest.tasks.generation",
        "recipe_suggest.tasks.translation",
        "recipe_suggest.tasks.maintenance",
    ],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max per task
    task_soft_time_limit=240,  # 4 minutes soft limit
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "recipe_suggest.tasks.generation.generate_suggestion": {
            "queue": settings.generation_queue
        },
    },
    beat_schedule={
        "purge-expired-rows": {
            "task": "recipe_suggest.tasks.maintenance.purge_expired",
            "schedule": crontab(minute=15),
        },
    },
)


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    configure_logging()
