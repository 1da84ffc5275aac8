from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, Sequence, TypeVar

from ..core.constants import DEFAULT_PAGE_SIZE

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        object.__setattr__(self, "page", max(int(self.page), 1))
        object.__setattr__(self, "page_size", min(max(int(self.page_size), 1), 100))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class Page(Generic[T]):
    items: Sequence[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1
