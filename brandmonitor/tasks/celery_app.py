from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init

from brandmonitor.core.config import settings

celery_app = Celery(
    "brandmonitor",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)

# Celery Beat schedule: one measurement pass over all workspaces per day
celery_app.conf.beat_schedule = {
    "daily-measurements": {
        "task": "run_daily_measurements",
        "schedule": crontab(hour=6, minute=0),
    },
}


@worker_process_init.connect
def _init_worker(**kwargs):
    from brandmonitor.core.sentry import init_sentry

    init_sentry()


celery_app.conf.include = [
    "brandmonitor.tasks.measurement_tasks",
]
