"""Navigation coordinator: vetoes and cancels refreshes while a page transition runs."""
import logging
from typing import Callable, List, Optional

from revalidate.services.events import (
    TRANSITION_COMPLETE,
    TRANSITION_ERROR,
    TRANSITION_START,
    Disposer,
    EventBus,
)

logger = logging.getLogger(__name__)


class NavigationCoordinator:
    """
    Tracks whether the page is transitioning away from its current path.
    
    A transition towards another path sets ``is_transitioning`` and runs the
    preempt hooks synchronously, so a queued refresh never lands mid-transition.
    """
    
    def __init__(self, events: EventBus, current_path: Callable[[], str]):
        self.events = events
        self.current_path = current_path
        self.is_transitioning = False
        self._preempt_hooks: List[Callable[[], None]] = []
        self._disposers: Optional[List[Disposer]] = None
        
    @property
    def mounted(self) -> bool:
        return self._disposers is not None
    
    def mount(self):
        """Subscribe to the lifecycle signals. A second call is a no-op."""
        if self._disposers is not None:
            return
        self._disposers = [
            self.events.subscribe(TRANSITION_START, self._on_start),
            self.events.subscribe(TRANSITION_COMPLETE, self._on_settled),
            self.events.subscribe(TRANSITION_ERROR, self._on_settled),
        ]
        
    def unmount(self):
        """Remove the signal subscriptions and every preempt hook."""
        for dispose in self._disposers or ():
            dispose()
        self._disposers = None
        self._preempt_hooks.clear()
        self.is_transitioning = False
        
    def on_preempt(self, hook: Callable[[], None]) -> Disposer:
        """Register a hook run when a transition to another path starts."""
        self._preempt_hooks.append(hook)
        
        def dispose():
            if hook in self._preempt_hooks:
                self._preempt_hooks.remove(hook)
                
        return dispose
    
    def _on_start(self, target_path: str, *args):
        if target_path == self.current_path():
            return
        logger.debug("Transition to %s started, preempting refresh", target_path)
        self.is_transitioning = True
        for hook in list(self._preempt_hooks):
            hook()
            
    def _on_settled(self, *args):
        self.is_transitioning = False
