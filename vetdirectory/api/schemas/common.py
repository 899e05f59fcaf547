from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Wire models use camelCase keys; python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    pages: int


class PageResponse(CamelModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: list[T]
    pagination: Pagination
