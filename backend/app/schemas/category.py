import uuid
from pydantic import BaseModel, ConfigDict


class CategoryInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    name: str


class CategoryResponse(CategoryInfo):
    type: str
