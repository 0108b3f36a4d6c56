# core/pagination.py
"""Offset pagination shared by the list endpoints."""
import math

from pydantic import BaseModel


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


def offset_for(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit
