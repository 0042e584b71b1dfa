# messages.py
# ==============================================================================
# Agent Messages — the message cascade returned for a coordination run, and
# the timeline that replays it one message at a time
# ==============================================================================

import time
from collections import defaultdict
from typing import Callable, Iterator, List, Optional, Tuple

REVEAL_DELAY_SECONDS = 0.6


class Message:
    """A message between two agents, as returned by the model.

    Message Types:
    - 'discovery': an agent announces itself / finds peers
    - 'query' / 'response': data requests and answers
    - 'negotiate': terms being worked out
    - 'confirm': an agreement
    - 'alert': a warning about stock, capacity or routes
    """

    def __init__(self, sender: str, recipient: str, msg_type: str,
                 content: Optional[dict] = None, timestamp_offset_ms: float = 0):
        self.sender = sender
        self.recipient = recipient
        self.msg_type = msg_type
        self.content = content if content is not None else {}
        self.timestamp_offset_ms = timestamp_offset_ms or 0

    @classmethod
    def from_dict(cls, data: dict) -> 'Message':
        """Build from the wire shape: {from, to, type, content, timestamp_offset_ms}."""
        return cls(
            sender=data['from'],
            recipient=data['to'],
            msg_type=data['type'],
            content=data.get('content'),
            timestamp_offset_ms=data.get('timestamp_offset_ms', 0),
        )

    def to_dict(self) -> dict:
        return {
            'from': self.sender,
            'to': self.recipient,
            'type': self.msg_type,
            'content': self.content,
            'timestamp_offset_ms': self.timestamp_offset_ms,
        }

    def to_row(self) -> dict:
        """Column values for the agent_messages table."""
        return {
            'from_agent': self.sender,
            'to_agent': self.recipient,
            'message_type': self.msg_type,
            'content': self.content,
            'timestamp_offset_ms': self.timestamp_offset_ms,
        }

    @property
    def summary(self) -> str:
        if isinstance(self.content, dict):
            return self.content.get('summary', '')
        return str(self.content)

    @property
    def details(self) -> dict:
        if isinstance(self.content, dict):
            return self.content.get('details') or {}
        return {}

    def __repr__(self):
        return f"Message({self.sender}→{self.recipient}: {self.msg_type})"


class MessageTimeline:
    """Replays an already-fetched cascade for display.

    The delay is visual pacing only; every message is in memory up front.
    """

    def __init__(self, messages, delay: float = REVEAL_DELAY_SECONDS):
        self.messages: List[Message] = [
            m if isinstance(m, Message) else Message.from_dict(m) for m in messages
        ]
        self.delay = delay

    def __len__(self):
        return len(self.messages)

    def visible(self, count: int) -> List[Message]:
        return self.messages[:max(0, count)]

    def active_agent(self, count: int) -> Optional[str]:
        """Sender of the message being revealed next, None once all are shown."""
        if 0 <= count < len(self.messages):
            return self.messages[count].sender
        return None

    def reveal(self, sleep: Callable[[float], None] = time.sleep
               ) -> Iterator[Tuple[List[Message], Optional[str]]]:
        """Yield (visible messages, active agent) once per tick.

        The first yield shows nothing with the first sender highlighted;
        the last shows everything with no active agent.
        """
        for count in range(len(self.messages) + 1):
            yield self.visible(count), self.active_agent(count)
            if count < len(self.messages):
                sleep(self.delay)

    def get_stats(self) -> dict:
        type_counts = defaultdict(int)
        for m in self.messages:
            type_counts[m.msg_type] += 1
        return {
            'total_messages': len(self.messages),
            'message_types': dict(type_counts),
            'duration_ms': max((m.timestamp_offset_ms for m in self.messages), default=0),
        }
