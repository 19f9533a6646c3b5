# Import all models here so Alembic's env.py can discover them via Base.metadata
from app.models.base import Base  # noqa: F401
from app.models.status import Status  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.claim import Claim, ClaimStatusHistory, SupportingDocument  # noqa: F401
