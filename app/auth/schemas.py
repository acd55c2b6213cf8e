from typing import Optional

from pydantic import BaseModel

from app.core.enums import UserRole
from app.placement.entities import Actor


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated caller, read from the access token."""

    id: str
    role: UserRole
    name: Optional[str] = None

    def as_actor(self) -> Actor:
        return Actor(user_id=self.id, role=self.role)
