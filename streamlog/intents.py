"""Signal and timer bridge: OS notifications become sticky intent flags."""

import logging
import signal
import socket

logger = logging.getLogger(__name__)

TERMINATE_SIGNALS = (signal.SIGTERM, signal.SIGINT)
ROTATE_SIGNAL = signal.SIGHUP
TIMER_SIGNAL = signal.SIGALRM


class PendingIntents:
    """Two sticky flags, set asynchronously and consumed at line boundaries.

    Plain attribute stores are atomic under the GIL, so handlers never take a
    lock that the main loop might already hold.
    """

    def __init__(self):
        self._rotate = False
        self._terminate = False

    def request_rotate(self):
        self._rotate = True

    def request_terminate(self):
        self._terminate = True

    @property
    def rotate_requested(self) -> bool:
        return self._rotate

    @property
    def terminate_requested(self) -> bool:
        return self._terminate

    def consume_rotate(self) -> bool:
        """Return True once per rotate request and clear it."""
        if not self._rotate:
            return False
        self._rotate = False
        return True


class SignalBridge:
    """Installs handlers that do nothing but set flags on ``intents``.

    Must be installed from the main thread. ``wakeup_fd`` becomes readable on
    every handled signal so a blocked read can give up and let the controller
    look at the flags.
    """

    def __init__(self, intents: PendingIntents, log_age: int = 0):
        self._intents = intents
        self._log_age = log_age
        self._previous: dict[int, object] = {}
        self._previous_wakeup = -1
        self._rsock = None
        self._wsock = None

    @property
    def wakeup_fd(self) -> int | None:
        return self._rsock.fileno() if self._rsock else None

    def _on_terminate(self, signum, _frame):
        self._intents.request_terminate()

    def _on_rotate(self, signum, _frame):
        self._intents.request_rotate()

    def _set(self, signum, handler):
        self._previous[signum] = signal.signal(signum, handler)

    def install(self):
        self._rsock, self._wsock = socket.socketpair()
        self._rsock.setblocking(False)
        self._wsock.setblocking(False)
        self._previous_wakeup = signal.set_wakeup_fd(self._wsock.fileno(), warn_on_full_buffer=False)

        for signum in TERMINATE_SIGNALS:
            self._set(signum, self._on_terminate)
        self._set(ROTATE_SIGNAL, self._on_rotate)

        # Time based rotation is off when log_age is 0.
        if self._log_age > 0:
            self._set(TIMER_SIGNAL, self._on_rotate)
            signal.setitimer(signal.ITIMER_REAL, self._log_age, self._log_age)
            logger.debug("Rotation timer armed every %ds", self._log_age)

    def uninstall(self):
        if TIMER_SIGNAL in self._previous:
            signal.setitimer(signal.ITIMER_REAL, 0)
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()
        if self._rsock is not None:
            signal.set_wakeup_fd(self._previous_wakeup)
            self._rsock.close()
            self._wsock.close()
            self._rsock = self._wsock = None

    def __enter__(self):
        self.install()
        return self

    def __exit__(self, *exc):
        self.uninstall()
        return False
