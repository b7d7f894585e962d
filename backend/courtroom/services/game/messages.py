from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional


CRITICAL = 'critical'
HIGH = 'high'
MEDIUM = 'medium'
LOW = 'low'

DISTRACTION_KEY = 'Distraction'
PENALTY_KEY = 'PENALTY'


def message_type_for(is_critical: bool, text: str) -> str:
    if not is_critical:
        return 'distraction'
    return 'urgent' if 'urgent' in text.lower() else 'initial'


def priority_for(is_critical: bool, message_type: str, source: str) -> str:
    if is_critical:
        return CRITICAL if message_type == 'urgent' else HIGH
    if source == 'Boss':
        return MEDIUM
    return LOW


@dataclass(frozen=True)
class Event:
    """A message shown to the player. Type and priority derive from content."""

    id: int
    source: str
    text: str
    is_critical: bool
    penalty_key: Optional[str] = None
    game_time: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def message_type(self) -> str:
        return message_type_for(self.is_critical, self.text)

    @property
    def priority(self) -> str:
        return priority_for(self.is_critical, self.message_type, self.source)

    def to_dict(self):
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        data['message_type'] = self.message_type
        data['priority'] = self.priority
        return data


def categorize(source: str, text: str, is_critical: bool, penalty_key: Optional[str], game_time: int) -> Event:
    """Build an event emitted at elapsed second ``game_time``."""
    return Event(
        id=game_time,
        source=source,
        text=text,
        is_critical=is_critical,
        penalty_key=penalty_key,
        game_time=game_time,
    )
