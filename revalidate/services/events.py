"""Minimal observer registry for navigation and focus signals."""
import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

logger = logging.getLogger(__name__)

TRANSITION_START = "transition_start"
TRANSITION_COMPLETE = "transition_complete"
TRANSITION_ERROR = "transition_error"
FOCUS = "focus"

Handler = Callable[..., Any]
Disposer = Callable[[], None]


class EventBus:
    """Named signals with explicit registration returning a disposer."""
    
    def __init__(self):
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)
        
    def subscribe(self, event: str, handler: Handler) -> Disposer:
        """
        Register ``handler`` for ``event``.
        
        Returns:
            Callable removing the registration; calling it twice is harmless
        """
        self._handlers[event].append(handler)
        
        def dispose():
            handlers = self._handlers.get(event)
            if handlers and handler in handlers:
                handlers.remove(handler)
                
        return dispose
    
    def emit(self, event: str, *args: Any):
        """Call every handler registered for ``event``, in registration order."""
        for handler in list(self._handlers.get(event, ())):
            handler(*args)
            
    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))
