"""Pydantic schemas for the agent memory replica."""

from pydantic import Field

from tradejournal.schemas.base import CamelModel
from tradejournal.utils.constants import TrendContext


class AgentLesson(CamelModel):
    id: str = Field(min_length=1)
    timestamp: int  # epoch ms
    trend_context: TrendContext
    insight: str


class AgentMemory(CamelModel):
    level: int = Field(default=1, ge=1)
    current_xp: int = Field(default=0, ge=0)
    next_level_xp: int = Field(default=100, ge=1)
    brain_version: str = "v1.0"
    lessons: list[AgentLesson] = Field(default_factory=list)


class MemorySyncRequest(CamelModel):
    memory: AgentMemory


class MemoryEnvelope(CamelModel):
    memory: AgentMemory
    last_synced: int | None = None


class LessonCreate(CamelModel):
    insight: str = Field(min_length=1)
    trend_context: TrendContext = TrendContext.CHOPPY
