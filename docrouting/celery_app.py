from celery import Celery

from docrouting.config import settings

celery_app = Celery(
    "docrouting",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "docrouting.tasks.events",
        "docrouting.tasks.notifications",
    ],
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_ignore_result=True,
)
