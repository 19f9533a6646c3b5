"""
Status seeder — idempotent upsert of the five Status rows.

Run via:
  python -m app.reference.seed          (directly)
  alembic upgrade head && python -m app.reference.seed   (after migrations)

Safe to run multiple times — merges by primary key, so existing rows are
updated in place rather than duplicated.
"""

import sys
import logging

from app.database import SessionLocal
from app.models.status import Status
from app.reference.constants import STATUSES

logger = logging.getLogger(__name__)


def seed_statuses(session=None) -> int:
    """
    Upsert all status rows from constants.py.
    Returns the number of rows upserted.
    Uses a session if provided (for testability); opens its own otherwise.
    """
    _owns_session = session is None
    if _owns_session:
        session = SessionLocal()

    try:
        for row in STATUSES:
            session.merge(Status(**row))
        session.commit()
        count = len(STATUSES)
        logger.info("Status seed complete: %d rows upserted.", count)
        return count
    except Exception:
        session.rollback()
        raise
    finally:
        if _owns_session:
            session.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    try:
        count = seed_statuses()
        print(f"✓ Statuses seeded: {count} rows")
        sys.exit(0)
    except Exception as e:
        print(f"✗ Status seed failed: {e}", file=sys.stderr)
        sys.exit(1)
