"""Celery configuration for background queue reconciliation."""

import os
from celery import Celery
from celery.signals import worker_ready

# Set the default Django settings module
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "main.settings")

import env_vars  # noqa: E402

app = Celery("movemate")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

# Celery configuration
app.conf.update(
    broker_url=env_vars.CELERY_BROKER_URL,
    result_backend=env_vars.CELERY_RESULT_BACKEND,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

app.conf.beat_schedule = {
    "reconcile-queue-positions": {
        "task": "tickets.reconcile_queue_positions",
        "schedule": env_vars.QUEUE_RECONCILE_INTERVAL,
        # A pass that misses its slot is superseded by the next one
        "options": {"expires": env_vars.QUEUE_RECONCILE_INTERVAL},
    },
}


@worker_ready.connect
def reconcile_on_startup(sender=None, **kwargs):
    """Heal queue history once shortly after a worker comes up."""
    with sender.app.connection() as conn:
        sender.app.send_task(
            "tickets.reconcile_queue_positions", connection=conn, countdown=2
        )
