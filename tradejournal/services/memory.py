"""Agent memory: level/XP progression, a capped lesson log and the merge law.

The same `MemoryReplica` class backs the shared copy (SQL row) and a local
copy (JSON file); the two converge by exchanging snapshots and merging.
"""

import json
import logging
import os
import threading
import uuid
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from tradejournal.database import session_scope
from tradejournal.models.agent_memory import AgentMemoryRecord
from tradejournal.schemas.memory import AgentLesson, AgentMemory, MemoryEnvelope
from tradejournal.utils.constants import (
    BASE_LEVEL_XP,
    LEVEL_XP_GROWTH,
    MAX_LESSONS,
    MEMORY_ROW_ID,
    TrendContext,
)
from tradejournal.utils.timeutils import now_ms

logger = logging.getLogger(__name__)

ORIGIN_LESSON_ID = "init-1"
ORIGIN_INSIGHT = (
    "Initial Protocol: I must confirm volume displacement before entering any trade to avoid fake-outs."
)


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------

def brain_version(level: int) -> str:
    return f"v{level // 10 + 1}.{level % 10}"


def default_memory(now: int | None = None) -> AgentMemory:
    return AgentMemory(
        level=1,
        current_xp=0,
        next_level_xp=BASE_LEVEL_XP,
        brain_version=brain_version(0),
        lessons=[AgentLesson(
            id=ORIGIN_LESSON_ID,
            timestamp=now if now is not None else now_ms(),
            trend_context=TrendContext.CHOPPY,
            insight=ORIGIN_INSIGHT,
        )],
    )


def _trim(lessons: list[AgentLesson]) -> list[AgentLesson]:
    """Keep the origin lesson plus the newest `MAX_LESSONS - 1`."""
    if len(lessons) <= MAX_LESSONS:
        return lessons
    return [lessons[0]] + lessons[-(MAX_LESSONS - 1):]


def add_experience(memory: AgentMemory, amount: int) -> tuple[AgentMemory, bool]:
    """Grant XP, levelling up as many times as the total allows.

    Returns (new memory, leveled_up). The input is not modified.
    """
    result = memory.model_copy(deep=True)
    result.current_xp += amount
    leveled_up = False
    while result.current_xp >= result.next_level_xp:
        result.current_xp -= result.next_level_xp
        result.level += 1
        result.next_level_xp = int(result.next_level_xp * LEVEL_XP_GROWTH)
        result.brain_version = brain_version(result.level)
        leveled_up = True
    return result, leveled_up


def add_lesson(
    memory: AgentMemory,
    insight: str,
    trend_context: TrendContext | str = TrendContext.CHOPPY,
    now: int | None = None,
) -> AgentMemory:
    result = memory.model_copy(deep=True)
    result.lessons.append(AgentLesson(
        id=str(uuid.uuid4()),
        timestamp=now if now is not None else now_ms(),
        trend_context=TrendContext(trend_context),
        insight=insight,
    ))
    result.lessons = _trim(result.lessons)
    return result


def merge_memory(a: AgentMemory, b: AgentMemory) -> AgentMemory:
    """Combine two replicas.

    The higher level supplies xp, threshold and version; on equal levels
    `a` wins. Lessons are unioned by id (`b` wins collisions), ordered by
    (timestamp, id) and trimmed to the cap.
    """
    winner = b if b.level > a.level else a

    by_id = {lesson.id: lesson for lesson in a.lessons}
    by_id.update({lesson.id: lesson for lesson in b.lessons})
    lessons = sorted(by_id.values(), key=lambda lesson: (lesson.timestamp, lesson.id))

    return AgentMemory(
        level=winner.level,
        current_xp=winner.current_xp,
        next_level_xp=winner.next_level_xp,
        brain_version=winner.brain_version,
        lessons=[lesson.model_copy() for lesson in _trim(lessons)],
    )


# ---------------------------------------------------------------------------
# Storage backends
# ---------------------------------------------------------------------------

class SqlMemoryStore:
    """Shared replica persisted as a single `agent_memory` row."""

    def __init__(self, engine, row_id: str = MEMORY_ROW_ID):
        self._engine = engine
        self._row_id = row_id

    def load(self) -> tuple[AgentMemory | None, int | None]:
        with session_scope(self._engine) as session:
            record = session.get(AgentMemoryRecord, self._row_id)
            if record is None:
                return None, None
            memory = AgentMemory(
                level=record.level,
                current_xp=record.current_xp,
                next_level_xp=record.next_level_xp,
                brain_version=record.brain_version,
                lessons=record.lessons or [],
            )
            return memory, record.last_synced

    def save(self, memory: AgentMemory, last_synced: int | None):
        with session_scope(self._engine) as session:
            record = session.get(AgentMemoryRecord, self._row_id)
            if record is None:
                record = AgentMemoryRecord(id=self._row_id)
            record.level = memory.level
            record.current_xp = memory.current_xp
            record.next_level_xp = memory.next_level_xp
            record.brain_version = memory.brain_version
            record.lessons = [lesson.model_dump(mode="json", by_alias=True) for lesson in memory.lessons]
            record.last_synced = last_synced
            session.add(record)
            session.commit()


class JsonFileMemoryStore:
    """Local replica kept in a JSON file; a corrupt file reads as empty."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> tuple[AgentMemory | None, int | None]:
        if not self.path.exists():
            return None, None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            envelope = MemoryEnvelope.model_validate(raw)
        except (OSError, ValueError, PydanticValidationError) as e:
            logger.error(f"[memory] Corrupt memory file {self.path}, starting fresh: {e}")
            return None, None
        return envelope.memory, envelope.last_synced

    def save(self, memory: AgentMemory, last_synced: int | None):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        envelope = MemoryEnvelope(memory=memory, last_synced=last_synced)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(envelope.to_wire(), indent=2), encoding="utf-8")
        os.replace(tmp, self.path)


# ---------------------------------------------------------------------------
# Replica
# ---------------------------------------------------------------------------

class MemoryReplica:
    """One copy of the agent memory. Every read-merge-write holds the lock."""

    def __init__(self, store):
        self._store = store
        self._lock = threading.Lock()

    def _load(self) -> tuple[AgentMemory, int | None]:
        memory, last_synced = self._store.load()
        if memory is None:
            memory = default_memory()
            self._store.save(memory, last_synced)
        return memory, last_synced

    def get(self) -> AgentMemory:
        with self._lock:
            return self._load()[0]

    def envelope(self) -> MemoryEnvelope:
        with self._lock:
            memory, last_synced = self._load()
            return MemoryEnvelope(memory=memory, last_synced=last_synced)

    def add_experience(self, amount: int) -> tuple[AgentMemory, bool]:
        with self._lock:
            memory, last_synced = self._load()
            memory, leveled_up = add_experience(memory, amount)
            self._store.save(memory, last_synced)
        if leveled_up:
            logger.info(f"[memory] Level up -> {memory.level} ({memory.brain_version})")
        return memory, leveled_up

    def add_lesson(self, insight: str, trend_context: TrendContext | str = TrendContext.CHOPPY) -> AgentMemory:
        with self._lock:
            memory, last_synced = self._load()
            memory = add_lesson(memory, insight, trend_context)
            self._store.save(memory, last_synced)
            return memory

    def accept_sync(self, incoming: AgentMemory) -> AgentMemory:
        """Shared side of a sync: merge(incoming, stored), persisted."""
        with self._lock:
            stored, _ = self._load()
            merged = merge_memory(incoming, stored)
            self._store.save(merged, now_ms())
        logger.info(f"[memory] Accepted sync: level {merged.level}, {len(merged.lessons)} lessons")
        return merged

    def absorb(self, remote: AgentMemory) -> AgentMemory:
        """Caller side of a sync: merge(local, remote), persisted."""
        with self._lock:
            local, _ = self._load()
            merged = merge_memory(local, remote)
            self._store.save(merged, now_ms())
        return merged

    def reset(self) -> AgentMemory:
        with self._lock:
            memory = default_memory()
            self._store.save(memory, None)
        logger.warning("[memory] Memory reset to default")
        return memory
