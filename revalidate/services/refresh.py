"""Revalidation scheduler: gates, dedupes and executes page refreshes."""
import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol, Tuple, Union

from revalidate.models.schemas import ClockEstimate, FreshnessConfig
from revalidate.services.events import EventBus
from revalidate.services.navigation import NavigationCoordinator
from revalidate.util.timing import now_ms

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class Navigator(Protocol):
    """Navigation API the scheduler refreshes the page through."""
    
    events: EventBus
    
    @property
    def path(self) -> str:
        ...
        
    def replace(self, path: str, *, skip_client_cache: bool = False, scroll: bool = True) -> Awaitable[None]:
        ...
        
    def prefetch(self, path: str, *, skip_client_cache: bool = False) -> Awaitable[None]:
        ...


class Phase(str, Enum):
    """Scheduler state machine states."""
    IDLE = "idle"
    HARD_REFRESHING = "hard_refreshing"
    SOFT_REFRESHING = "soft_refreshing"


@dataclass(frozen=True)
class SchedulerState:
    """Per-instance refresh bookkeeping."""
    attempt: int = 0
    is_hard_refreshing: bool = False
    is_soft_refreshing: bool = False
    dedupe_expiry: float = 0
    
    @property
    def phase(self) -> Phase:
        if self.is_hard_refreshing:
            return Phase.HARD_REFRESHING
        if self.is_soft_refreshing:
            return Phase.SOFT_REFRESHING
        return Phase.IDLE


class Effect(str, Enum):
    """Side effects requested by a state transition."""
    CANCEL_TIMER = "cancel_timer"
    REMOVE_LISTENERS = "remove_listeners"


@dataclass(frozen=True)
class ConfigChanged:
    config: FreshnessConfig


@dataclass(frozen=True)
class PageChanged:
    path: str


@dataclass(frozen=True)
class Unmounted:
    pass


Event = Union[ConfigChanged, PageChanged, Unmounted]


def transition(state: SchedulerState, event: Event) -> Tuple[SchedulerState, List[Effect]]:
    """
    Compute the state after a config, page identity or lifecycle change.
    
    A new page or an unmount starts over from a blank state. New config for
    the same page only reopens the dedupe window: the attempt counter and the
    in-flight flags belong to refreshes that are still running.
    """
    if isinstance(event, Unmounted):
        return SchedulerState(), [Effect.CANCEL_TIMER, Effect.REMOVE_LISTENERS]
    if isinstance(event, PageChanged):
        return SchedulerState(), [Effect.CANCEL_TIMER]
    if isinstance(event, ConfigChanged):
        return replace(state, dedupe_expiry=0), [Effect.CANCEL_TIMER]
    raise TypeError(f"Unknown scheduler event: {event!r}")


class RefreshScheduler:
    """
    Decides whether a refresh request goes through and runs it.
    
    Every gate is checked and every flag is set synchronously inside
    ``refresh``; only the execution itself is deferred, so requests made in
    the same loop iteration always see each other's effects.
    """
    
    def __init__(
        self,
        navigator: Navigator,
        navigation: NavigationCoordinator,
        config: FreshnessConfig,
        clock: Callable[[], ClockEstimate],
        *,
        now: Callable[[], float] = now_ms,
        on_complete: Optional[Callable[[], None]] = None,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self.navigator = navigator
        self.navigation = navigation
        self.config = config
        self.clock = clock
        self.now = now
        self.on_complete = on_complete
        self.max_attempts = max_attempts
        self.state = SchedulerState()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._pending_soft = False
        self._tasks: set = set()
        self._disposed = False
        # Bumped on page change so executions of the previous page leave the new state alone
        self._generation = 0
        self._remove_preempt = navigation.on_preempt(self.cancel_pending)
        
    @property
    def has_pending(self) -> bool:
        return self._timer is not None
    
    def refresh(self, delay: float = 0, soft: bool = False) -> bool:
        """
        Request a refresh of the current page.
        
        Args:
            delay: Milliseconds to wait before executing
            soft: Warm the origin first and keep the client cache
            
        Returns:
            True if a refresh was scheduled, False if a gate rejected it
        """
        if self._disposed:
            return False
        config = self.config
        state = self.state
        if config.deduping_interval is None:
            return False
        if self.navigation.is_transitioning:
            return False
        if state.is_hard_refreshing:
            return False
        if soft and state.is_soft_refreshing:
            return False
        now = self.now()
        if config.revalidate_if_stale and (
            not config.expires or config.expires + self.clock().offset_ms > now
        ):
            return False
        if now < state.dedupe_expiry:
            return False
        
        self.cancel_pending()
        state = self.state
        dedupe_expiry = max(state.dedupe_expiry, now + config.deduping_interval)
        if soft:
            self.state = replace(state, dedupe_expiry=dedupe_expiry, is_soft_refreshing=True)
        else:
            self.state = replace(
                state,
                dedupe_expiry=dedupe_expiry,
                is_hard_refreshing=True,
                is_soft_refreshing=False,
            )
            
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(max(delay, 0) / 1000, self._fire, soft)
        self._pending_soft = soft
        logger.debug(
            "Scheduled %s refresh of %s in %.0fms",
            "soft" if soft else "hard",
            self.navigator.path,
            delay,
        )
        return True
    
    def cancel_pending(self):
        """Drop the queued execution, if any, releasing the flag it holds."""
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        if self._pending_soft:
            self.state = replace(self.state, is_soft_refreshing=False)
        else:
            self.state = replace(self.state, is_hard_refreshing=False)
            
    def dispatch(self, event: Event) -> List[Effect]:
        """Apply a config, page or lifecycle change and carry out its effects."""
        self.state, effects = transition(self.state, event)
        if isinstance(event, ConfigChanged):
            self.config = event.config
        else:
            self._generation += 1
            self._cancel_tasks()
        for effect in effects:
            if effect is Effect.CANCEL_TIMER:
                self.cancel_pending()
            elif effect is Effect.REMOVE_LISTENERS:
                self._dispose()
        return effects
    
    def close(self):
        """Tear down on unmount; nothing runs afterwards."""
        self.dispatch(Unmounted())
        
    def _dispose(self):
        self._disposed = True
        self._remove_preempt()
        self._cancel_tasks()
        
    def _cancel_tasks(self):
        for task in list(self._tasks):
            task.cancel()
            
    def _fire(self, soft: bool):
        self._timer = None
        if self._disposed:
            return
        task = asyncio.get_running_loop().create_task(self._execute(soft, self._generation))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        
    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Refresh of %s failed: %s", self.navigator.path, error)
            
    def _superseded(self, path: str, generation: int) -> bool:
        """Whether the page moved on while an execution was awaiting."""
        return (
            self._disposed
            or generation != self._generation
            or self.navigation.is_transitioning
            or self.navigator.path != path
        )
        
    async def _execute(self, soft: bool, generation: int):
        path = self.navigator.path
        try:
            if soft:
                await self.navigator.prefetch(path, skip_client_cache=True)
                if self._superseded(path, generation):
                    return
                await self.navigator.replace(path, scroll=False)
            elif not self.clock().is_first_measurement:
                await self.navigator.replace(path, skip_client_cache=True, scroll=False)
        finally:
            if generation == self._generation:
                if soft:
                    self.state = replace(self.state, is_soft_refreshing=False)
                else:
                    self.state = replace(self.state, is_hard_refreshing=False)

        if self._superseded(path, generation):
            return
        if self.state.attempt < self.max_attempts:
            self.state = replace(self.state, attempt=self.state.attempt + 1)
        if self.on_complete is not None and not self._disposed:
            self.on_complete()
