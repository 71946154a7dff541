"""
Celery configuration for background tasks
"""
from celery import Celery
import logging

from skuld.core.config import settings

logger = logging.getLogger(__name__)

# Create Celery instance
celery_app = Celery(
    "skuld",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "skuld.modules.documents.tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Europe/Paris",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Result backend settings
    result_expires=3600,  # 1 hour

    # Task routes for different queues
    task_routes={
        "skuld.modules.documents.tasks.*": {"queue": "documents"},
    },

    # Beat schedule for periodic tasks
    beat_schedule={
        "backfill-document-pdfs": {
            "task": "skuld.modules.documents.tasks.backfill_document_pdfs",
            "schedule": 3600.0,  # Run every hour
        },
    }
)

if __name__ == "__main__":
    celery_app.start()
