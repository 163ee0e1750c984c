"""Paginated collection envelope shared by ticket and user listings."""

import math
from typing import Any, Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

# The backend names the item list after the resource.
ITEM_KEYS = ("items", "tickets", "users")


class Page(BaseModel, Generic[T]):
    items: List[T]
    currentPage: int = 0
    totalItems: int = 0
    totalPages: int = 0
    size: int = 10
    hasNext: bool = False
    hasPrevious: bool = False

    @classmethod
    def empty(cls, size: int) -> "Page[T]":
        return cls(items=[], size=size)

    @classmethod
    def from_list(cls, items: List[Any], page: int, size: int) -> "Page[T]":
        """
        Paginates a bare list locally, for backends that ignore paging params.
        """
        start = page * size
        total_pages = math.ceil(len(items) / size) if size else 0
        return cls(
            items=items[start : start + size],
            currentPage=page,
            totalItems=len(items),
            totalPages=total_pages,
            size=size,
            hasNext=page < total_pages - 1,
            hasPrevious=page > 0,
        )

    @classmethod
    def from_payload(cls, payload: Any, page: int = 0, size: int = 10) -> "Page[T]":
        """
        Builds an envelope from whatever the backend returned: a paginated
        object keyed by `items`, `tickets` or `users`, or a plain array.
        Anything else yields an empty page.
        """
        if isinstance(payload, list):
            return cls.from_list(payload, page, size)
        if isinstance(payload, dict):
            for key in ITEM_KEYS:
                if key in payload:
                    data = {k: v for k, v in payload.items() if k not in ITEM_KEYS}
                    data["items"] = payload[key] or []
                    return cls.model_validate(data)
        return cls.empty(size)
