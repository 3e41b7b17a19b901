"""
Lifecycle - Resource Store

A cancellable, derivable key/value context shared between plugins. Plugins
publish resources during their own initialize step (a server handle, a
connection pool) and later plugins or the caller resolve them by key.

Features:
- Namespaced, optionally typed keys
- Derived stores that read through to their parent
- A cancellation signal fired once teardown has finished

Usage:
    SERVER = ResourceKey("http.server", HTTPServer)

    store = ResourceStore()
    store.set(SERVER, server)
    server = store.resolve(SERVER)
"""

from __future__ import annotations

import asyncio
import weakref
from typing import Any, Dict, Generic, Optional, Type, TypeVar, overload

from lifecycle.errors import ResourceNotFoundError, ResourceTypeError

T = TypeVar("T")

_MISSING = object()


class ResourceKey(Generic[T]):
    """
    Opaque key into a ResourceStore.

    Keys are namespaced to avoid collisions between plugins; two keys are
    equal when their namespace and name match.
    """

    __slots__ = ("name", "namespace", "value_type")

    def __init__(
        self,
        name: str,
        value_type: Optional[Type[T]] = None,
        namespace: str = "lifecycle",
    ):
        self.name = name
        self.namespace = namespace
        self.value_type = value_type

    def __str__(self) -> str:
        return f"{self.namespace}.{self.name}"

    def __repr__(self) -> str:
        return f"ResourceKey({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceKey):
            return NotImplemented
        return (self.namespace, self.name) == (other.namespace, other.name)

    def __hash__(self) -> int:
        return hash((self.namespace, self.name))


class ResourceStore:
    """
    Key/value context derived from a cancellable root.

    Writes go to this store only; reads fall back to the parent chain.
    Cancelling a store cancels every store derived from it. A parent holds
    its children weakly and forgets them once they are cancelled, so a
    long-lived root does not keep finished applications alive.
    """

    def __init__(self, parent: Optional["ResourceStore"] = None):
        self._parent = parent
        self._values: Dict[ResourceKey[Any], Any] = {}
        self._children: "weakref.WeakSet[ResourceStore]" = weakref.WeakSet()
        self._cancelled = asyncio.Event()
        if parent is not None:
            if parent.cancelled:
                self._cancelled.set()
            else:
                parent._children.add(self)

    @property
    def parent(self) -> Optional["ResourceStore"]:
        return self._parent

    def set(self, key: ResourceKey[T], value: T) -> None:
        """Publish a value under ``key``."""
        if key.value_type is not None and not isinstance(value, key.value_type):
            raise ResourceTypeError(key, key.value_type, value)
        self._values[key] = value

    def _lookup(self, key: ResourceKey[Any]) -> Any:
        store: Optional[ResourceStore] = self
        while store is not None:
            if key in store._values:
                return store._values[key]
            store = store._parent
        return _MISSING

    def resolve(self, key: ResourceKey[T]) -> T:
        """Return the value for ``key`` or raise ResourceNotFoundError."""
        value = self._lookup(key)
        if value is _MISSING:
            raise ResourceNotFoundError(key)
        return value

    @overload
    def try_resolve(self, key: ResourceKey[T]) -> Optional[T]: ...

    @overload
    def try_resolve(self, key: ResourceKey[T], default: T) -> T: ...

    def try_resolve(self, key: ResourceKey[T], default: Optional[T] = None) -> Optional[T]:
        """Return the value for ``key``, or ``default`` if nothing was published."""
        value = self._lookup(key)
        return default if value is _MISSING else value

    def is_set(self, key: ResourceKey[Any]) -> bool:
        return self._lookup(key) is not _MISSING

    def __contains__(self, key: ResourceKey[Any]) -> bool:
        return self.is_set(key)

    def derive(self) -> "ResourceStore":
        """Create a child store sharing this store's values and cancellation."""
        return ResourceStore(parent=self)

    # -------------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------------

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Fire the cancellation signal for this store and its descendants."""
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        for child in list(self._children):
            child.cancel()
        if self._parent is not None:
            self._parent._children.discard(self)

    async def wait_cancelled(self) -> None:
        """Block until the store is cancelled."""
        await self._cancelled.wait()


__all__ = ["ResourceKey", "ResourceStore"]
