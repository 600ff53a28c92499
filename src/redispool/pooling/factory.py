"""
Resource factory interface

A factory knows how to create, destroy and optionally validate one
resource. The pool never looks inside the resources it manages.
"""

import inspect
from typing import Any, Awaitable, Callable, Generic, Optional, Protocol, TypeVar, Union, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class ResourceFactory(Protocol[T]):
    """Protocol every pool factory implements"""

    async def create(self) -> T:
        """Create a usable resource; may raise"""
        ...

    async def destroy(self, resource: T) -> None:
        """Irrevocably tear down a resource"""
        ...

    async def validate(self, resource: T) -> bool:
        """Return False if the resource must not be handed out"""
        ...


async def _maybe_await(value: Union[Any, Awaitable[Any]]) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class CallableFactory(Generic[T]):
    """
    Factory built from plain callables

    Each callable may be synchronous or return an awaitable. Without a
    validator every resource is considered valid; without a destroyer
    destroy is a no-op.
    """

    def __init__(
        self,
        create: Callable[[], Union[T, Awaitable[T]]],
        destroy: Optional[Callable[[T], Any]] = None,
        validate: Optional[Callable[[T], Union[bool, Awaitable[bool]]]] = None,
    ):
        self._create = create
        self._destroy = destroy
        self._validate = validate

    async def create(self) -> T:
        return await _maybe_await(self._create())

    async def destroy(self, resource: T) -> None:
        if self._destroy is not None:
            await _maybe_await(self._destroy(resource))

    async def validate(self, resource: T) -> bool:
        if self._validate is None:
            return True
        return bool(await _maybe_await(self._validate(resource)))
