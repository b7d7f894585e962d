from collections import deque
from typing import Deque, Optional

from .messages import CRITICAL, Event


class PopupQueue:
    """Exactly one visible popup; waiting events split into critical and minor FIFOs."""

    def __init__(self):
        self.current: Optional[Event] = None
        self.critical: Deque[Event] = deque()
        self.minor: Deque[Event] = deque()

    def push(self, event: Event) -> None:
        if self.current is None:
            self.current = event
        elif event.priority == CRITICAL:
            self.critical.append(event)
        else:
            self.minor.append(event)

    def close(self) -> Optional[Event]:
        """Dismiss the visible popup and show the next one, if any."""
        if self.critical:
            self.current = self.critical.popleft()
        elif self.minor:
            self.current = self.minor.popleft()
        else:
            self.current = None
        return self.current

    def purge(self, penalty_key: str) -> None:
        """Drop every waiting or visible event linked to ``penalty_key``."""
        self.critical = deque(e for e in self.critical if e.penalty_key != penalty_key)
        self.minor = deque(e for e in self.minor if e.penalty_key != penalty_key)
        if self.current is not None and self.current.penalty_key == penalty_key:
            self.close()

    def clear(self) -> None:
        self.current = None
        self.critical.clear()
        self.minor.clear()

    def __len__(self):
        return len(self.critical) + len(self.minor) + (1 if self.current is not None else 0)

    def to_dict(self):
        return {
            'current_popup': self.current.to_dict() if self.current else None,
            'critical_queue': [e.to_dict() for e in self.critical],
            'minor_queue': [e.to_dict() for e in self.minor],
        }
