from pydantic import BaseModel, Field
from typing import Optional


class PlaceToggleRequest(BaseModel):
    list_id: int
    place_id: int


class CreateListRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, description="清單名稱")
    description: Optional[str] = Field(None, max_length=200)
