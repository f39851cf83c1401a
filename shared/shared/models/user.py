from uuid import UUID

from pydantic import BaseModel, ConfigDict

from shared.constants import Role


class CurrentUser(BaseModel):
    """Caller identity from the verified JWT; used by all routers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: UUID
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
