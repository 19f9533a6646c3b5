"""RQ queue setup — shared by API (enqueue) and worker (dequeue)."""

import redis
from rq import Queue

from app.settings import settings

_redis_conn: redis.Redis | None = None
_queue: Queue | None = None


def get_redis() -> redis.Redis:
    global _redis_conn
    if _redis_conn is None:
        _redis_conn = redis.from_url(settings.redis_url)
    return _redis_conn


def get_queue() -> Queue:
    global _queue
    if _queue is None:
        _queue = Queue(settings.rq_queue_name, connection=get_redis())
    return _queue


def enqueue_claim_notification(claim_id: int, action: str) -> str:
    """
    Enqueue delivery of a claim notification.
    Returns the job ID for status tracking.
    """
    from app.workers.notifications import deliver_claim_notification  # avoid circular import

    job = get_queue().enqueue(
        deliver_claim_notification,
        args=(claim_id, action),
        job_timeout=60,
        result_ttl=3600,  # keep result for 1 hour
        failure_ttl=86400,  # keep failed job info for 24 hours
    )
    return job.id
