"""Progress event stream for presentation layers."""

import logging
from typing import Callable

from flarefix.models import PipelineEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[PipelineEvent], None]


class EventBus:
    """Delivers pipeline events to subscribers, in subscription order."""

    def __init__(self):
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, event: PipelineEvent) -> None:
        """Deliver an event. A failing subscriber does not stop the run."""
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed on %s", event.kind.value)
