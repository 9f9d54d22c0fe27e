"""Category snapshot storage."""

from hazardwatch.storage.category_store import (
    CategoryStore,
    InMemoryCategoryStore,
    RedisCategoryStore,
)

__all__ = ["CategoryStore", "InMemoryCategoryStore", "RedisCategoryStore"]
