"""
Single-value cache with explicit invalidation.
"""
from __future__ import annotations

from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class CachedValue(Generic[T]):
    """
    Holds one lazily loaded value until ``invalidate()`` is called.

    Usage:
        namespaces = CachedValue()
        value = namespaces.get_or_load(fetch_namespaces)
        namespaces.invalidate()     # next get_or_load fetches again
    """

    def __init__(self):
        self._value: Optional[T] = None
        self._loaded = False
        self.generation = 0

    @property
    def is_stale(self) -> bool:
        """True when there is no loaded value."""
        return not self._loaded

    def peek(self) -> Optional[T]:
        return self._value if self._loaded else None

    def set(self, value: T) -> T:
        self._value = value
        self._loaded = True
        return value

    def get_or_load(self, loader: Callable[[], T]) -> T:
        if self._loaded:
            return self._value  # type: ignore[return-value]
        return self.set(loader())

    async def get_or_load_async(self, loader: Callable[[], Awaitable[T]]) -> T:
        if self._loaded:
            return self._value  # type: ignore[return-value]
        generation = self.generation
        value = await loader()
        # Invalidated while loading: hand the value back but do not keep it.
        if generation != self.generation:
            return value
        return self.set(value)

    def invalidate(self) -> None:
        self._value = None
        self._loaded = False
        self.generation += 1
