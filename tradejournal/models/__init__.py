"""Database models."""

from tradejournal.models.trade import Trade
from tradejournal.models.signal import Signal
from tradejournal.models.learning_event import LearningEvent
from tradejournal.models.agent_memory import AgentMemoryRecord

__all__ = [
    "Trade",
    "Signal",
    "LearningEvent",
    "AgentMemoryRecord",
]
