from datetime import timedelta

from celery import Celery

from matrix_vcon.config import get_settings

settings = get_settings()

celery_app = Celery(
    "matrix_vcon",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["matrix_vcon.tasks.ingest_tasks", "matrix_vcon.tasks.export_tasks"],
)

celery_app.conf.beat_schedule = {
    "export-vcons": {
        "task": "matrix_vcon.tasks.export_tasks.export_vcons",
        "schedule": timedelta(milliseconds=settings.VCON_UPLOAD_PERIOD_MS),
    },
}
