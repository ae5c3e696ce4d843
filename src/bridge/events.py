"""
Event Subscription Bus

Normalizes backend notifications into one shape: every subscriber receives
an `Event` envelope, callbacks on a channel run in registration order for a
single emission, and each subscription is cancelled through its own
idempotent UnlistenFn.

There is no queueing or replay: a callback registered after an emission
never observes it.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from .schemas import Event

logger = logging.getLogger(__name__)

THEME_CHANGED = "ui.theme.changed"

UnlistenFn = Callable[[], None]
EventCallback = Callable[[Event], None]


def envelope_callback(callback: EventCallback) -> Callable[[Any], None]:
    """
    Wrap an envelope callback so it can receive a bare payload.

    Args:
        callback: Subscriber expecting an Event envelope

    Returns:
        Function taking the raw payload
    """

    def deliver(payload: Any) -> None:
        callback(Event(payload=payload))

    return deliver


def once(unlisten: Callable[[], Any]) -> UnlistenFn:
    """
    Make a cancellation function idempotent.

    Args:
        unlisten: Underlying cancellation, called at most once

    Returns:
        UnlistenFn that is a no-op after the first call
    """
    called = False

    def cancel() -> None:
        nonlocal called
        if called:
            return
        called = True
        unlisten()

    return cancel


class _Subscription:
    __slots__ = ("callback", "active")

    def __init__(self, callback: Callable[[Any], None]):
        self.callback = callback
        self.active = True


class SubscriptionTable:
    """
    Channel-scoped fan-out of callbacks.

    Callbacks receive exactly what is passed to `emit`; wrap them with
    `envelope_callback` to deliver envelopes.

    Attributes:
        on_first_subscriber: Called with a channel when it gains its first
            subscriber
        on_last_unsubscribed: Called with a channel when its last
            subscriber leaves
    """

    def __init__(
        self,
        on_first_subscriber: Optional[Callable[[str], None]] = None,
        on_last_unsubscribed: Optional[Callable[[str], None]] = None,
    ):
        self._channels: Dict[str, List[_Subscription]] = {}
        self.on_first_subscriber = on_first_subscriber
        self.on_last_unsubscribed = on_last_unsubscribed

    def subscribe(
        self, channel: str, callback: Callable[[Any], None]
    ) -> UnlistenFn:
        """
        Register a callback on a channel.

        Args:
            channel: Channel name
            callback: Function invoked with each emitted value

        Returns:
            UnlistenFn detaching this callback only
        """
        subscription = _Subscription(callback)
        subscribers = self._channels.setdefault(channel, [])
        subscribers.append(subscription)
        if len(subscribers) == 1 and self.on_first_subscriber:
            self.on_first_subscriber(channel)

        def unsubscribe() -> None:
            subscription.active = False
            current = self._channels.get(channel)
            if current is None or subscription not in current:
                return
            current.remove(subscription)
            if not current:
                del self._channels[channel]
                if self.on_last_unsubscribed:
                    self.on_last_unsubscribed(channel)

        return once(unsubscribe)

    def emit(self, channel: str, value: Any) -> int:
        """
        Deliver a value to every subscriber of a channel.

        Subscribers are called synchronously in registration order. A
        subscriber removed during delivery is skipped; one that raises is
        logged and does not stop delivery to the others.

        Args:
            channel: Channel name
            value: Value passed to each callback

        Returns:
            Number of callbacks invoked
        """
        delivered = 0
        for subscription in list(self._channels.get(channel, ())):
            if not subscription.active:
                continue
            try:
                subscription.callback(value)
            except Exception:
                logger.exception("Subscriber on '%s' raised", channel)
            delivered += 1
        return delivered

    def subscriber_count(self, channel: str) -> int:
        """Number of live subscribers on a channel."""
        return len(self._channels.get(channel, ()))

    @property
    def channels(self) -> List[str]:
        """Channels that currently have subscribers."""
        return list(self._channels)

    def clear(self) -> None:
        """Drop every subscription without notifying."""
        for subscribers in self._channels.values():
            for subscription in subscribers:
                subscription.active = False
        self._channels.clear()
