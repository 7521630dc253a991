"""Client-side polling of a project while its pipeline is running.

Two states: idle (no timer) and polling (one-shot timer armed). Every fetch
decides the next state from the fetched project status: still running arms
the timer again, anything in IDLE_STATUSES disarms it.
"""

import logging
import threading
from typing import Callable, Optional

from client import ApiError
from models import ProjectStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0

# Nothing will change without outside action: done, failed, or not started.
IDLE_STATUSES = frozenset({ProjectStatus.COMPLETED, ProjectStatus.FAILED, ProjectStatus.PENDING})


def should_poll(status) -> bool:
    if status is None:
        return False
    try:
        return ProjectStatus(status) not in IDLE_STATUSES
    except ValueError:
        return False


class ProjectSyncLoop:
    """Re-fetch a project every ``interval`` seconds until it goes idle.

    ``fetch`` returns the latest project aggregate; ``on_update`` receives every
    successful result. Overlapping fetches are allowed: they are read-only.
    """

    def __init__(
        self,
        fetch: Callable[[], object],
        on_update: Optional[Callable[[object], None]] = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        on_error: Optional[Callable[[Exception], None]] = None,
        timer_factory=threading.Timer,
    ):
        self.interval = interval
        self.project = None
        self.fetch_count = 0
        self._fetch = fetch
        self._on_update = on_update
        self._on_error = on_error
        self._timer_factory = timer_factory
        self._timer = None
        self._stopped = False
        self._lock = threading.Lock()
        self._idle = threading.Event()

    @property
    def polling(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        """Fetch once now; polling continues from the result."""
        self._stopped = False
        self._idle.clear()
        self._tick()

    def refresh(self) -> None:
        self._tick()

    def stop(self) -> None:
        """Stop future ticks. A fetch already in flight still reports once."""
        with self._lock:
            self._stopped = True
            self._disarm()
        self._idle.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop is idle or stopped."""
        return self._idle.wait(timeout)

    def _tick(self) -> None:
        try:
            project = self._fetch()
        except ApiError as e:
            if self._on_error is not None:
                self._on_error(e)
            if e.status_code == 404:
                logger.info("Project no longer exists, stopping sync")
                self.stop()
                return
            logger.warning("Project fetch failed: %s", e)
            self._schedule(getattr(self.project, "status", None))
            return
        except Exception as e:
            # Runs on a timer thread: nothing above catches it
            logger.exception("Unexpected error fetching project")
            if self._on_error is not None:
                self._on_error(e)
            self._schedule(getattr(self.project, "status", None))
            return

        self.project = project
        self.fetch_count += 1
        if self._on_update is not None:
            self._on_update(project)
        self._schedule(project.status)

    def _schedule(self, status) -> None:
        with self._lock:
            self._disarm()
            if self._stopped or not should_poll(status):
                self._idle.set()
                return
            self._idle.clear()
            timer = self._timer_factory(self.interval, self._tick)
            timer.daemon = True
            timer.start()
            self._timer = timer

    def _disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
