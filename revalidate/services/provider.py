"""Per-page revalidation provider wiring the clock, navigation and scheduler together."""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from revalidate.config import Settings, settings as default_settings
from revalidate.models.schemas import ClockEstimate, FreshnessConfig, PageResponse
from revalidate.services.clock import ClockSynchronizer
from revalidate.services.events import FOCUS, EventBus
from revalidate.services.navigation import NavigationCoordinator
from revalidate.services.refresh import ConfigChanged, Navigator, PageChanged, RefreshScheduler
from revalidate.util.timing import now_ms

logger = logging.getLogger(__name__)

Props = Dict[str, Any]


class RevalidatedState:
    """
    Page props that only move forward in generation time.

    Incoming props replace the held ones when they were generated later (or
    carry no generation time). Local edits through ``set`` are stamped with
    the server-corrected current time so older pages cannot overwrite them.
    """

    def __init__(
        self,
        props: Props,
        *,
        clock: Callable[[], ClockEstimate],
        now: Callable[[], float] = now_ms,
    ):
        self.props = props
        self.clock = clock
        self.now = now
        self.time = FreshnessConfig.from_props(props).time

    def accept(self, props: Props) -> bool:
        """Take ``props`` if they are newer than the held ones."""
        time = FreshnessConfig.from_props(props).time
        if time > self.time or not time:
            self.props = props
            self.time = time
            return True
        return False

    def set(self, new_state: Union[Props, Callable[[Props], Props]]):
        """Replace the props locally."""
        if callable(new_state):
            new_state = new_state(self.props)
        self.time = self.now() - self.clock().offset_ms
        self.props = new_state


class RevalidateProvider:
    """
    Keeps one rendered page fresh.

    Runs the three refresh triggers (on mount, on interval, on focus regain)
    against a single ``RefreshScheduler``. ``mount`` must be called from a
    running event loop; after ``unmount`` no refresh executes.
    """

    def __init__(
        self,
        navigator: Navigator,
        props: Optional[Props] = None,
        *,
        signals: Optional[EventBus] = None,
        clock: Optional[ClockSynchronizer] = None,
        config: Settings = default_settings,
        now: Callable[[], float] = now_ms,
    ):
        self.navigator = navigator
        self.props = props or {}
        self.signals = signals or EventBus()
        self.config = config
        self.now = now
        self.freshness = FreshnessConfig.from_props(self.props)

        if clock is None:
            base_url = getattr(navigator, "base_url", config.origin_base_url).rstrip("/")
            clock = ClockSynchronizer(
                base_url + (self.freshness.swr_path or config.swr_path),
                config=config,
                now=now,
            )
        self.clock = clock
        self.state = RevalidatedState(self.props, clock=self._estimate, now=now)
        self.navigation = NavigationCoordinator(navigator.events, lambda: self.navigator.path)
        self.scheduler = RefreshScheduler(
            navigator,
            self.navigation,
            self.freshness,
            self._estimate,
            now=now,
            on_complete=self.revalidate_on_mount,
            max_attempts=config.max_mount_attempts,
        )

        self._path = navigator.path
        self._cdn_propagation = config.cdn_propagation_ms
        self._escalated = False
        self._disposers: List[Callable[[], None]] = []
        self._remove_focus: Optional[Callable[[], None]] = None
        self._interval_task: Optional[asyncio.Task] = None
        self._mounted = False
        self._closed = False

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def times(self) -> Dict[str, Any]:
        """Generation time of the page plus the current clock estimate."""
        estimate = self.clock.estimate
        return {
            "time": self.freshness.time,
            "offset": estimate.offset_ms,
            "latency": estimate.latency_ms,
            "first_load": estimate.is_first_measurement,
        }

    def refresh(self, delay: float = 0, soft: bool = False) -> bool:
        return self.scheduler.refresh(delay=delay, soft=soft)

    def mount(self):
        """Start listening and probing the clock."""
        if self._closed:
            raise RuntimeError("Provider was unmounted")
        if self._mounted:
            return
        self._mounted = True

        self.navigation.mount()
        self._disposers.append(self.clock.on_resolved(self._on_clock_resolved))
        on_page = getattr(self.navigator, "on_page", None)
        if on_page is not None:
            self._disposers.append(on_page(self._on_page))
        self._sync_focus()
        self._restart_interval()
        if self.clock.resolved:
            self.revalidate_on_mount()
        else:
            self.clock.start()

    def unmount(self):
        """Cancel timers, drop listeners and abandon the clock probe."""
        if not self._mounted:
            return
        self._mounted = False
        self._closed = True

        self._stop_interval()
        if self._remove_focus is not None:
            self._remove_focus()
            self._remove_focus = None
        for dispose in self._disposers:
            dispose()
        self._disposers.clear()
        self.clock.cancel()
        self.navigation.unmount()
        self.scheduler.close()

    def update(self, props: Props, path: Optional[str] = None):
        """
        Apply new page props and, optionally, a new page identity.

        Resets the scheduler deterministically before re-evaluating the
        triggers with the new config.
        """
        path = path or self.navigator.path
        if path != self._path:
            self._path = path
            self._escalated = False
            self.scheduler.dispatch(PageChanged(path))

        self.props = props
        self.state.accept(props)
        freshness = FreshnessConfig.from_props(props)
        if freshness != self.freshness:
            self.freshness = freshness
            self.scheduler.dispatch(ConfigChanged(freshness))

        if self._mounted:
            self._sync_focus()
            self._restart_interval()
            self.revalidate_on_mount()

    def backoff_delay(self, attempt: int) -> float:
        """Delay in milliseconds of an on-mount soft refresh for ``attempt``."""
        return (
            (0.5 + attempt) * (self.freshness.deduping_interval or 0)
            + self.clock.estimate.latency_ms
            + self._cdn_propagation
        )

    def revalidate_on_mount(self):
        """
        Evaluate the on-mount trigger.

        The first attempt hard-refreshes at once; the next two soft-refresh
        after a backoff that leaves the origin time to regenerate and the CDN
        time to propagate.
        """
        if not self._mounted:
            return
        freshness = self.freshness
        if not freshness.revalidate_on_mount:
            return
        if not self.config.production_like:
            return
        if freshness.deduping_interval is None:
            return
        attempt = self.scheduler.state.attempt
        if attempt >= self.config.max_mount_attempts:
            return
        estimate = self.clock.estimate
        if estimate.is_first_measurement:
            return

        if attempt == 0:
            self.scheduler.refresh()
            return

        if not freshness.expires:
            return
        if freshness.expires + estimate.offset_ms > self.now():
            return

        ceiling = self.config.cdn_propagation_max_factor * self.config.cdn_propagation_ms
        if attempt == 2 and not self._escalated and self._cdn_propagation < ceiling:
            self._cdn_propagation = min(self._cdn_propagation * 2, ceiling)
            self._escalated = True

        self.scheduler.refresh(delay=self.backoff_delay(attempt), soft=True)

    def _estimate(self) -> ClockEstimate:
        return self.clock.estimate

    def _on_clock_resolved(self, estimate: ClockEstimate):
        self.revalidate_on_mount()

    def _on_page(self, page: PageResponse):
        self.update(page.props, path=page.path)

    def _on_focus(self, *args):
        self.scheduler.refresh()

    def _sync_focus(self):
        if self.freshness.revalidate_on_focus and self._remove_focus is None:
            self._remove_focus = self.signals.subscribe(FOCUS, self._on_focus)
        elif not self.freshness.revalidate_on_focus and self._remove_focus is not None:
            self._remove_focus()
            self._remove_focus = None

    def _restart_interval(self):
        self._stop_interval()
        interval = self.freshness.refresh_interval
        if callable(interval):
            interval = interval(self.props)
        if not interval or interval <= 0:
            return
        self._interval_task = asyncio.get_running_loop().create_task(self._run_interval(interval))

    def _stop_interval(self):
        if self._interval_task is not None:
            self._interval_task.cancel()
            self._interval_task = None

    async def _run_interval(self, interval: float):
        while True:
            await asyncio.sleep(interval / 1000)
            self.scheduler.refresh()
