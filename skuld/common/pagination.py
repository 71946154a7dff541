"""
Page/per_page query handling shared by list endpoints
"""
import math
from typing import Generic, List, TypeVar

from fastapi import Query
from pydantic import BaseModel

from skuld.core.config import settings

T = TypeVar("T")


class PageParams(BaseModel):
    page: int = 1
    per_page: int = settings.DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def page_params(
    page: int = Query(1, description="Page number, starting at 1"),
    per_page: int = Query(settings.DEFAULT_PAGE_SIZE, description="Items per page"),
) -> PageParams:
    """Normalize pagination: invalid values fall back to the defaults, per_page is capped"""
    if page < 1:
        page = 1
    if per_page < 1:
        per_page = settings.DEFAULT_PAGE_SIZE
    if per_page > settings.MAX_PAGE_SIZE:
        per_page = settings.MAX_PAGE_SIZE
    return PageParams(page=page, per_page=per_page)


class PageMeta(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int


class Page(BaseModel, Generic[T]):
    items: List[T]
    meta: PageMeta


def build_meta(params: PageParams, total: int) -> PageMeta:
    return PageMeta(
        page=params.page,
        per_page=params.per_page,
        total=total,
        total_pages=math.ceil(total / params.per_page) if params.per_page else 0,
    )


def build_page(schema, rows, params: PageParams, total: int) -> Page:
    """Serialize ORM rows into a typed page"""
    return Page[schema](
        items=[schema.model_validate(row) for row in rows],
        meta=build_meta(params, total),
    )
