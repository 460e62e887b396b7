"""Authentication schemas for JWT tokens and user context."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """Authenticated caller extracted from a validated JWT.

    The same identity is used for store owners (matched against
    stores.user_id) and for customers (matched against orders.customer_id).
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    role: str | None = Field(default=None, description="User's role")


class TokenPayload(BaseModel):
    """Claims of a Supabase-issued JWT that the service relies on."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's UUID")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext."""
        return UserContext(
            user_id=UUID(self.sub),
            email=self.email,
            role=self.role,
        )
