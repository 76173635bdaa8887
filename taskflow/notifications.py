import time
from collections import deque
from dataclasses import dataclass

SEVERITIES = ('info', 'success', 'warning', 'error')
DEFAULT_DURATION_MS = 2000


@dataclass(frozen=True)
class Notification:
    message: str
    severity: str
    duration_ms: int
    created_at: float

    def expired(self, now):
        return (now - self.created_at) * 1000 >= self.duration_ms

    def to_dict(self):
        return {'message': self.message, 'severity': self.severity, 'durationMs': self.duration_ms}


class NotificationQueue:
    """Transient toast messages waiting to be shown.

    Producers call ``enqueue``; the notifications endpoint drains
    everything, while ``active`` returns only entries still on screen.
    """

    def __init__(self, clock=time.monotonic, maxlen=50):
        self._clock = clock
        self._items = deque(maxlen=maxlen)

    def enqueue(self, message, severity='info', duration_ms=DEFAULT_DURATION_MS):
        if severity not in SEVERITIES:
            raise ValueError(f'unknown severity: {severity}')
        note = Notification(message, severity, int(duration_ms), self._clock())
        self._items.append(note)
        return note

    def active(self):
        now = self._clock()
        live = [n for n in self._items if not n.expired(now)]
        self._items = deque(live, maxlen=self._items.maxlen)
        return list(live)

    def drain(self):
        items = list(self._items)
        self._items.clear()
        return items

    def __len__(self):
        return len(self._items)
