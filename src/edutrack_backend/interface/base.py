from datetime import datetime
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from edutrack_backend.settings import settings

T = TypeVar("T")

class CamelModel(BaseModel):
    """Snake case in Python, camelCase on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

class PageQuery(BaseModel):
    page_size: int = Field(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    last_doc: Optional[str] = None

class Page(CamelModel, Generic[T]):
    items: List[T]
    next_cursor: Optional[str] = Field(None, description="Id of the last item; pass as lastDoc for the next page")

class MessageResponse(BaseModel):
    message: str

class BaseEntityGet(CamelModel):
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Update timestamp")
