"""Minimal hook registry standing in for the site generator's lifecycle events."""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger('site_export_pipeline.orchestrator.lifecycle')

PAGE_RENDERED = 'page_rendered'
SITE_ASSEMBLED = 'site_assembled'

EVENTS = (PAGE_RENDERED, SITE_ASSEMBLED)


class LifecycleEvents:
    """
    Named events with ordered subscribers.

    Adapters for a concrete generator call ``emit`` at the matching points of
    its build; standalone runs emit them from the CLI.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable[..., Any]]] = defaultdict(list)

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        """Subscribe handler to event; handlers run in subscription order."""
        if event not in EVENTS:
            raise ValueError(f"Unknown lifecycle event '{event}'. Must be one of: {list(EVENTS)}")
        self._handlers[event].append(handler)

    def emit(self, event: str, *args, **kwargs) -> List[Any]:
        """Call every handler of event and return their results."""
        if event not in EVENTS:
            raise ValueError(f"Unknown lifecycle event '{event}'. Must be one of: {list(EVENTS)}")
        logger.debug(f"Emitting {event} to {len(self._handlers[event])} handler(s)")
        return [handler(*args, **kwargs) for handler in self._handlers[event]]

    def handlers(self, event: str) -> List[Callable[..., Any]]:
        return list(self._handlers.get(event, []))


__all__ = ['LifecycleEvents', 'PAGE_RENDERED', 'SITE_ASSEMBLED', 'EVENTS']
