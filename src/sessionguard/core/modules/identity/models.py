"""Identity supplied by the external identity provider."""

from pydantic import BaseModel, Field


class Identity(BaseModel):
    """The authenticated caller, as asserted by the upstream identity gateway."""

    user_id: str = Field(..., min_length=1)
    role: str | None = None

    def is_enforced(self, enforced_roles: list[str]) -> bool:
        """Whether this account is limited to a single active session."""
        return self.role is not None and self.role in enforced_roles
