"""
In-process Event Channel.

A minimal synchronous publish/subscribe primitive.  The auth provider
uses it to announce state changes and ``AuthService`` uses it to hand
classified errors to whichever view is listening.

Callbacks run on the publisher's thread of control, in subscription order.
A failing subscriber is logged and does not prevent the others from
receiving the payload.
"""

from __future__ import annotations

from typing import Callable, Generic, Optional, TypeVar

from authshell.logger import StructuredLogger

T = TypeVar("T")

Listener = Callable[[T], None]


class Subscription:
    """Handle returned by :meth:`EventChannel.subscribe`."""

    def __init__(self, channel: "EventChannel[T]", listener: Listener) -> None:
        self._channel = channel
        self._listener = listener
        self._active: bool = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Stop receiving events.  Safe to call more than once."""
        if self._active:
            self._channel._remove(self._listener)
            self._active = False


class EventChannel(Generic[T]):
    """Broadcast payloads of type ``T`` to every current subscriber.

    Parameters
    ----------
    name:
        Label used in log messages.
    logger:
        Optional structured logger for subscriber failures.
    """

    def __init__(self, name: str, logger: Optional[StructuredLogger] = None) -> None:
        self._name = name
        self._logger = logger
        self._listeners: list[Listener] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    def publish(self, payload: T) -> None:
        # Snapshot so listeners may unsubscribe while being notified.
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception as exc:
                if self._logger is not None:
                    self._logger.warning(
                        "Subscriber of '%s' raised: %s", self._name, exc,
                        exc_info=True,
                        extra={"event": "EVENT_LISTENER_FAILED", "channel": self._name},
                    )

    def _remove(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass
