import uuid
from pydantic import BaseModel, ConfigDict


class UserIdentity(BaseModel):
    """A directory entry as seen by the group budget engine."""

    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    name: str
    email: str
