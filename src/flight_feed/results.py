from __future__ import annotations

from typing import Callable, Generic, TypeVar

V = TypeVar("V")


class CurrentValue(Generic[V]):
    """Holds a value and synchronously notifies subscribers on every update."""

    def __init__(self, value: V):
        self._value = value
        self._subscribers: list[Callable[[V], None]] = []

    @property
    def value(self) -> V:
        return self._value

    @value.setter
    def value(self, new_value: V) -> None:
        self._value = new_value
        for subscriber in list(self._subscribers):
            subscriber(new_value)

    def subscribe(self, subscriber: Callable[[V], None]) -> Callable[[], None]:
        """Register ``subscriber``, call it with the current value, return an unsubscribe."""
        self._subscribers.append(subscriber)
        subscriber(self._value)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
