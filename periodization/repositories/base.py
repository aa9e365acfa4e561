from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from periodization.schemas.pagination import PaginatedResult, PaginationParams

T = TypeVar("T")
ID = TypeVar("ID")


class Repository(ABC, Generic[T, ID]):
    """Minimal data access contract shared by aggregate repositories."""

    @abstractmethod
    async def get(self, id: ID) -> T | None:
        ...

    @abstractmethod
    async def list(self, filter: dict, pagination: PaginationParams) -> PaginatedResult[T]:
        ...

    @abstractmethod
    async def create(self, entity: T) -> T:
        ...
