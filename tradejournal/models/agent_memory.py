"""AgentMemoryRecord model: the shared replica of the agent's memory."""

from typing import Any

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON


class AgentMemoryRecord(SQLModel, table=True):
    __tablename__ = "agent_memory"

    id: str = Field(default="main", primary_key=True)
    level: int = 1
    current_xp: int = 0
    next_level_xp: int = 100
    brain_version: str = "v1.0"
    lessons: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    last_synced: int | None = None
