"""SignalStore: watch-list entries with forward-only status transitions."""

import logging
import threading
import uuid

from sqlmodel import select

from tradejournal.database import session_scope
from tradejournal.errors import NotFound, ValidationError
from tradejournal.models.signal import Signal
from tradejournal.schemas.signal import SignalCreate
from tradejournal.utils.constants import DEFAULT_STRATEGY, SIGNAL_STATUS_RANK, SignalStatus
from tradejournal.utils.timeutils import now_ms

logger = logging.getLogger(__name__)


def check_transition(current: SignalStatus | str, target: SignalStatus | str):
    """Raise ValidationError unless `current -> target` moves forward.

    Re-applying the current status is allowed.
    """
    current, target = SignalStatus(current), SignalStatus(target)
    if current == target:
        return
    if SIGNAL_STATUS_RANK[target] <= SIGNAL_STATUS_RANK[current]:
        raise ValidationError(f"Signal cannot move from {current.value} to {target.value}")


class SignalStore:
    def __init__(self, engine):
        self._engine = engine
        self._write_lock = threading.Lock()

    def create(self, data: SignalCreate) -> tuple[Signal, bool]:
        """Insert a signal; re-submitting an id refreshes its description only.

        Returns (signal, created).
        """
        signal_id = data.id or str(uuid.uuid4())
        now = now_ms()

        with self._write_lock, session_scope(self._engine) as session:
            signal = session.get(Signal, signal_id)
            created = signal is None
            if created:
                signal = Signal(
                    id=signal_id,
                    status=data.status.value,
                    timestamp=data.timestamp or now,
                    pnl=None,
                )

            signal.pair = data.pair
            signal.direction = data.direction.value
            signal.entry_price = data.entry_price
            signal.stop_loss = data.stop_loss
            signal.take_profit = data.take_profit
            signal.strategy = data.strategy or DEFAULT_STRATEGY
            signal.confidence = data.confidence.value
            signal.reasoning = data.reasoning
            if not created and SIGNAL_STATUS_RANK[data.status] > SIGNAL_STATUS_RANK[SignalStatus(signal.status)]:
                signal.status = data.status.value
            signal.updated_at = now

            session.add(signal)
            session.commit()

        logger.info(f"[signal_store] {'Created' if created else 'Refreshed'} {signal.id} {signal.pair} {signal.direction}")
        return signal, created

    def update_status(self, signal_id: str, status: SignalStatus | str, pnl: float | None = None) -> Signal:
        with self._write_lock, session_scope(self._engine) as session:
            signal = session.get(Signal, signal_id)
            if signal is None:
                raise NotFound(f"Signal {signal_id} not found")
            check_transition(signal.status, status)

            signal.status = SignalStatus(status).value
            if pnl is not None:
                signal.pnl = pnl
            signal.updated_at = now_ms()
            session.add(signal)
            session.commit()

        logger.info(f"[signal_store] {signal.id} -> {signal.status}")
        return signal

    def get(self, signal_id: str) -> Signal | None:
        with session_scope(self._engine) as session:
            return session.get(Signal, signal_id)

    def list_recent(self, limit: int = 20) -> list[Signal]:
        stmt = select(Signal).order_by(Signal.timestamp.desc()).limit(limit)
        with session_scope(self._engine) as session:
            return list(session.exec(stmt).all())
