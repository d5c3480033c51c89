"""
Response envelopes shared by all endpoints.

Success: {"success": true, "message": ..., "data": ...}
Paginated lists add count / total / total_pages / current_page.
"""

import math
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class PageEnvelope(BaseModel, Generic[T]):
    success: bool = True
    count: int
    total: int
    total_pages: int
    current_page: int
    data: List[T]

    @classmethod
    def build(cls, items: List[T], total: int, page: int, limit: int) -> "PageEnvelope[T]":
        return cls(
            count=len(items),
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
            current_page=page,
            data=items,
        )
