"""
In-process publish/subscribe for mutation-completed events.

Upload and delete operations publish an event once the server has accepted
the mutation; the result-list controller and the statistics reader subscribe
independently and re-fetch.
"""

import inspect
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Type, Union

from common.logging_config import get_logger
from vault.models import BatchResult

logger = get_logger(__name__)

Handler = Callable[[Any], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class UploadCompleted:
    """A batch upload finished and the server stored every file."""
    result: BatchResult


@dataclass(frozen=True)
class FilesDeleted:
    """One or more files were deleted on the server."""
    file_ids: tuple[int, ...]

    @property
    def count(self) -> int:
        return len(self.file_ids)


class EventBus:
    """Dispatches events to handlers registered for their exact type."""

    def __init__(self):
        self._handlers: Dict[Type, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: Handler) -> Callable[[], None]:
        """
        Register a handler for an event type.

        Args:
            event_type: Event class to listen for
            handler: Plain function or coroutine function taking the event

        Returns:
            Callable that removes the subscription
        """
        self._handlers[event_type].append(handler)
        logger.debug(f"Subscribed {getattr(handler, '__qualname__', handler)} to {event_type.__name__}")

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    async def publish(self, event: Any) -> List[Exception]:
        """
        Deliver an event to every subscriber in registration order.

        A failing subscriber does not stop delivery to the others. The
        failures are logged and returned so the caller can report them.

        Args:
            event: Event instance

        Returns:
            Exceptions raised by subscribers (empty when all succeeded)
        """
        errors: List[Exception] = []
        handlers = list(self._handlers.get(type(event), []))
        logger.debug(f"Publishing {type(event).__name__} to {len(handlers)} subscriber(s)")

        for handler in handlers:
            try:
                outcome = handler(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(f"Subscriber failed for {type(event).__name__}: {e}")
                errors.append(e)

        return errors
