"""Auth schemas — token response, current user."""

from decimal import Decimal

from app.schemas.common import BaseSchema


class TokenResponse(BaseSchema):
    access_token: str
    token_type: str = "bearer"
    role: str
    user_id: int


class UserMeResponse(BaseSchema):
    """Current authenticated user — returned by GET /auth/me."""

    id: int
    email: str
    role: str
    first_name: str
    last_name: str
    hourly_rate: Decimal
    is_active: bool
