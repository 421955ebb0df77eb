# integral_batch/thread_counter.py
"""
Admission counter bounding how many extra worker threads run at once
"""
import threading


class GateReleaseError(RuntimeError):
    """Raised when a slot is released that was never admitted"""


class ThreadCounter:
    """
    Thread-safe admission gate

    A fresh counter has capacity 0 and denies every request until
    configure() sizes it. Every successful try_admit() must be paired with
    exactly one release().
    """

    def __init__(self, capacity=0):
        self._lock = threading.Lock()
        self._max_counter = 0
        self._counter = 0
        if capacity:
            self.configure(capacity)

    def configure(self, capacity):
        """Set the maximum number of concurrently admitted workers"""
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise ValueError(f"Capacity must be an integer, got {capacity!r}")
        if capacity < 0:
            raise ValueError(f"Capacity must be non-negative, got {capacity}")
        with self._lock:
            self._max_counter = capacity

    def try_admit(self):
        """Take a slot if one is free. Returns True when admitted."""
        with self._lock:
            if self._counter < self._max_counter:
                self._counter += 1
                return True
            return False

    def release(self):
        """Give back a slot taken by a successful try_admit()"""
        with self._lock:
            if self._counter <= 0:
                raise GateReleaseError("release() called without a matching admission")
            self._counter -= 1

    def has_outstanding_work(self):
        """True while any admitted worker has not released its slot"""
        with self._lock:
            return self._counter > 0

    @property
    def capacity(self):
        return self._max_counter

    @property
    def outstanding(self):
        with self._lock:
            return self._counter

    def __repr__(self):
        return f"ThreadCounter(capacity={self.capacity}, outstanding={self.outstanding})"
