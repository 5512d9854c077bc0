"""Recording flag shared by the capture callback, the scheduler and the command layer."""

import threading


class RecordingState:
    """Lock-guarded boolean recording flag."""

    def __init__(self):
        self.lock = threading.Lock()
        self._active = False

    @property
    def is_active(self) -> bool:
        with self.lock:
            return self._active

    def activate(self) -> bool:
        """Set the flag. Returns False if it was already set."""
        with self.lock:
            if self._active:
                return False
            self._active = True
            return True

    def deactivate(self) -> bool:
        """Clear the flag. Returns False if it was already clear."""
        with self.lock:
            if not self._active:
                return False
            self._active = False
            return True
