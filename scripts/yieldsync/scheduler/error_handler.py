"""
APScheduler event listener - logs failures and records job run statistics.
"""

import logging

logger = logging.getLogger(__name__)


def make_job_listener(store):
    """Build a listener for EVENT_JOB_EXECUTED | EVENT_JOB_ERROR events.

    Args:
        store: Object with ``record_job_run(name, success, error)``, normally the Database.
    """

    def job_event_listener(event) -> None:
        job_id = event.job_id
        exception = getattr(event, "exception", None)

        if exception is not None:
            traceback_str = str(event.traceback) if event.traceback else ""
            logger.error("Scheduled job '%s' failed: %s\n%s", job_id, exception, traceback_str)
        else:
            logger.debug("Scheduled job '%s' completed", job_id)

        try:
            store.record_job_run(job_id, success=exception is None, error=str(exception) if exception else None)
        except Exception:
            logger.warning("Failed to record run statistics for job '%s'", job_id, exc_info=True)

    return job_event_listener
