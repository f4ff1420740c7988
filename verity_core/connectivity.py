# verity_core/connectivity.py
import threading
from typing import Callable, Optional
from verity_core.logger import get_logger

log = get_logger("Verity.Connectivity")


class ConnectivityMonitor:
    """
    Edge detector between a platform reachability signal and the orchestrator.

    Feed it every connectivity observation via update(); it calls
    ``on_reconnect`` only on a genuine offline → online transition, never on
    repeated "online" polls.
    """

    def __init__(self, on_reconnect: Optional[Callable[[], object]] = None, connected: bool = True):
        self.on_reconnect = on_reconnect
        self._connected = connected
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def update(self, connected: bool) -> bool:
        """Record an observation. Returns True when it fired on_reconnect."""
        with self._lock:
            was_offline = not self._connected
            self._connected = connected
            fire = connected and was_offline

        if not connected and not was_offline:
            log.info("[CONNECTIVITY] offline")
        if fire:
            log.info("[CONNECTIVITY] back online")
            if self.on_reconnect:
                self.on_reconnect()
        return fire
