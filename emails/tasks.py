import logging

from celery import shared_task

from emails import services

logger = logging.getLogger(__name__)


@shared_task
def process_email_queue_task(batch_size=None):
    """Send due emails from the queue."""
    result = services.process_email_queue(batch_size=batch_size)
    logger.info("Email queue processed: %s", result)
    return result


@shared_task
def monitor_email_queue_task():
    """Retry stuck emails and report queue health."""
    report = services.monitor_email_queue()
    return report
