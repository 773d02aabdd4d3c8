# apps/notifications/tasks.py
"""
Celery tasks for the realtime event bridge.

Tasks:
- process_pending_events: Retry events that were stored but never processed
- cleanup_processed_events: Drop processed events past the retention window

Schedule:
- Configured in settings.CELERY_BEAT_SCHEDULE
"""

import logging
from celery import shared_task

logger = logging.getLogger('apps.notifications.tasks')


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    acks_late=True
)
def process_pending_events(self, older_than_seconds=60):
    """
    Turn unprocessed events older than a minute into notifications.

    This task is idempotent - processed events are skipped under a row lock.
    """
    from apps.notifications.events import RealtimeEventService

    logger.info(f"[TASK_START] process_pending_events older_than_seconds={older_than_seconds}")

    result = RealtimeEventService.process_pending(older_than_seconds=older_than_seconds)

    logger.info(
        f"[TASK_COMPLETE] process_pending_events pending={result['pending']} "
        f"processed={result['processed']} failed={result['failed']}"
    )
    return result


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    acks_late=True
)
def cleanup_processed_events(self, older_than_days=None):
    """Delete processed events older than REALTIME_EVENT_RETENTION_DAYS."""
    from apps.notifications.events import RealtimeEventService

    logger.info("[TASK_START] cleanup_processed_events")

    deleted = RealtimeEventService.cleanup(older_than_days)

    logger.info(f"[TASK_COMPLETE] cleanup_processed_events deleted={deleted}")
    return {'deleted': deleted}
