"""
Claim notification sink.

Notifications are fire-and-forget: they are sent only after the owning
transaction has committed, and send_notification() never raises. A failed
notification is logged and dropped; it never undoes a status change.

Backends (NOTIFICATION_BACKEND env var):
  log — write the notification to the application log (default)
  rq  — enqueue an RQ job; the worker delivers it out of band
"""

import abc
import logging

from app.models.claim import Claim

logger = logging.getLogger(__name__)


class Notifier(abc.ABC):
    @abc.abstractmethod
    def notify(self, claim: Claim, action: str) -> None:
        """Tell the claim's lecturer that `action` happened to their claim."""


class LoggingNotifier(Notifier):
    def notify(self, claim: Claim, action: str) -> None:
        lecturer = claim.user.full_name if claim.user is not None else "unknown lecturer"
        logger.info("Notification: Claim %s %s for %s", claim.id, action, lecturer)


class QueueNotifier(Notifier):
    """Hands delivery to the RQ worker (see app.workers.notifications)."""

    def notify(self, claim: Claim, action: str) -> None:
        from app.workers.queue import enqueue_claim_notification  # avoid circular import

        job_id = enqueue_claim_notification(claim.id, action)
        logger.info("Queued notification for claim %s (%s): job %s", claim.id, action, job_id)


def send_notification(notifier: Notifier, claim: Claim, action: str) -> bool:
    """
    Best-effort delivery. Returns True if the notifier accepted it.
    Does not raise: exceptions are caught and logged as warnings.
    """
    try:
        notifier.notify(claim, action)
        return True
    except Exception as exc:
        logger.warning(
            "Failed to send %r notification for claim %s: %s", action, claim.id, exc
        )
        return False


def get_notifier() -> Notifier:
    """Factory — returns the configured notification backend."""
    from app.settings import settings

    if settings.notification_backend == "log":
        return LoggingNotifier()
    elif settings.notification_backend == "rq":
        return QueueNotifier()
    else:
        raise ValueError(
            f"Unknown notification backend: {settings.notification_backend!r}"
        )
