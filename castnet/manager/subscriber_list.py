from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")

Handler = Callable[[T], Awaitable[None] | None]


class SubscriberList(Generic[T]):
    """
    Handlers in registration order.

    Mutations may happen while messages are being dispatched. Every
    add or remove swaps in a new list, and dispatch iterates over
    snapshot(), so a fan-out that is already in progress never sees a
    partially updated list.
    """

    def __init__(self) -> None:
        self._handlers: list[Handler[T]] = []

    def __len__(self):
        return len(self._handlers)

    def __contains__(self, handler: Handler[T]):
        return handler in self._handlers

    def __iter__(self):
        for handler in self.snapshot():
            yield handler

    def add(self, handler: Handler[T]) -> bool:
        if handler in self._handlers:
            return False

        self._handlers = [*self._handlers, handler]
        return True

    def remove(self, handler: Handler[T]) -> bool:
        if handler not in self._handlers:
            return False

        self._handlers = [
            registered for registered in self._handlers
            if registered != handler
        ]
        return True

    def clear(self):
        self._handlers = []

    def snapshot(self) -> tuple[Handler[T], ...]:
        return tuple(self._handlers)
