"""TradeStore: durable record of trades, the source of truth for stats and patterns.

Writes are serialized by a store-level lock and committed in one
transaction each, so readers (their own sessions) never observe a trade
half-updated, e.g. with an exit price but still OPEN.
"""

import logging
import threading
import uuid
from datetime import date, datetime, time, timedelta, tzinfo

from sqlmodel import select

from tradejournal.database import session_scope
from tradejournal.errors import NotFound
from tradejournal.models.trade import Trade
from tradejournal.schemas.trade import TradeCreate, TradeUpdate
from tradejournal.services.pnl import compute_pnl, pnl_percent_of, resolve_close
from tradejournal.utils.constants import DEFAULT_STRATEGY, Outcome, TradeSource
from tradejournal.utils.timeutils import now_ms

logger = logging.getLogger(__name__)

# Fields a bare upsert may correct on an existing trade
CORRECTION_FIELDS = ("pair", "direction", "entry_price", "stop_loss", "take_profit", "leverage", "strategy")
_NULLABLE_CORRECTIONS = {"stop_loss", "take_profit"}
_PRICE_FIELDS = ("direction", "entry_price", "leverage")


class TradeStore:
    def __init__(self, engine, tz: tzinfo | None = None):
        self._engine = engine
        self._tz = tz
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def upsert(self, data: TradeCreate, source: TradeSource = TradeSource.MANUAL) -> tuple[Trade, bool]:
        """Insert a new trade or apply open-trade corrections to an existing one.

        Returns (trade, created). An existing trade's outcome, exit and
        closed_at are never touched here; use `close` or `update_fields`.
        On a closed trade whose pnl was derived, a direction, entry or
        leverage correction re-derives pnl and pnl_percent.
        """
        trade_id = data.id or str(uuid.uuid4())

        with self._write_lock, session_scope(self._engine) as session:
            trade = session.get(Trade, trade_id)
            if trade is None:
                trade = self._new_trade(trade_id, data, source)
                session.add(trade)
                session.commit()
                logger.info(f"[trade_store] Inserted {trade.id} {trade.pair} {trade.direction} ({trade.outcome})")
                return trade, True

            corrections = data.model_dump(mode="json", exclude_unset=True, include=set(CORRECTION_FIELDS))
            derived_pnl = self._has_derived_pnl(trade)
            for key, value in corrections.items():
                if value is None and key not in _NULLABLE_CORRECTIONS:
                    continue
                setattr(trade, key, value)
            if derived_pnl and any(k in corrections for k in _PRICE_FIELDS):
                # Outcome is kept; derived pnl follows the corrected prices
                trade.pnl, trade.pnl_percent = compute_pnl(
                    trade.direction, trade.entry_price, trade.exit_price, trade.leverage
                )
            session.add(trade)
            session.commit()
            logger.info(f"[trade_store] Corrected {trade.id}: {sorted(corrections)}")
            return trade, False

    def close(
        self,
        trade_id: str,
        exit_price: float | None = None,
        outcome: Outcome | str | None = None,
        pnl: float | None = None,
        pnl_percent: float | None = None,
        notes: str | None = None,
        checklist_grade: str | None = None,
    ) -> Trade:
        """Close a trade, deriving whatever the caller omitted.

        Closing an already-closed trade re-applies the new values and
        refreshes `closed_at` (last close wins).
        """
        with self._write_lock, session_scope(self._engine) as session:
            trade = session.get(Trade, trade_id)
            if trade is None:
                raise NotFound(f"Trade {trade_id} not found")

            if exit_price is None:
                exit_price = trade.exit_price
            resolved = resolve_close(
                trade.direction,
                trade.entry_price,
                trade.leverage,
                exit_price=exit_price,
                pnl=pnl,
                pnl_percent=pnl_percent,
                outcome=outcome,
            )
            was_open = trade.is_open
            trade.exit_price = resolved.exit_price
            trade.pnl = resolved.pnl
            trade.pnl_percent = resolved.pnl_percent
            trade.outcome = resolved.outcome.value
            if notes is not None:
                trade.notes = notes
            if checklist_grade is not None:
                trade.checklist_grade = checklist_grade
            trade.closed_at = now_ms()

            session.add(trade)
            session.commit()

        action = "Closed" if was_open else "Re-closed"
        logger.info(f"[trade_store] {action} {trade.id}: {trade.outcome} pnl={trade.pnl}")
        return trade

    def update_fields(self, trade_id: str, update: TradeUpdate) -> Trade:
        """Explicit edit path for exit/pnl/outcome/notes/grade.

        A terminal outcome stamps `closed_at`; OPEN re-opens the trade and
        clears it. On a closed trade a new exit price without explicit pnl
        re-derives pnl (and the outcome, unless given). On an open trade a
        bare pnl is a floating mark and the trade stays OPEN.
        """
        changes = update.model_dump(exclude_unset=True)

        with self._write_lock, session_scope(self._engine) as session:
            trade = session.get(Trade, trade_id)
            if trade is None:
                raise NotFound(f"Trade {trade_id} not found")

            outcome = changes.get("outcome")
            closing = outcome is not None and outcome != Outcome.OPEN

            if outcome == Outcome.OPEN:
                trade.outcome = Outcome.OPEN.value
                trade.exit_price = None
                trade.closed_at = None
                if "pnl" in changes:
                    trade.pnl = changes["pnl"] or 0.0
                trade.pnl_percent = changes.get("pnl_percent") or pnl_percent_of(trade.pnl, trade.entry_price)
            elif closing or not trade.is_open:
                self._apply_close_edit(trade, changes, closing)
            else:
                if changes.get("exit_price") is not None:
                    trade.exit_price = changes["exit_price"]
                if changes.get("pnl") is not None:
                    trade.pnl = changes["pnl"]
                    trade.pnl_percent = changes.get("pnl_percent") or pnl_percent_of(trade.pnl, trade.entry_price)
                elif changes.get("pnl_percent") is not None:
                    trade.pnl_percent = changes["pnl_percent"]

            if "notes" in changes:
                trade.notes = changes["notes"]
            if "checklist_grade" in changes:
                trade.checklist_grade = changes["checklist_grade"]

            session.add(trade)
            session.commit()

        logger.info(f"[trade_store] Updated {trade.id}: {sorted(changes)}")
        return trade

    @staticmethod
    def _has_derived_pnl(trade: Trade) -> bool:
        """True when a closed trade's stored pnl matches its own prices (not caller-supplied)."""
        if trade.is_open or trade.exit_price is None:
            return False
        pnl, _ = compute_pnl(trade.direction, trade.entry_price, trade.exit_price, trade.leverage)
        return trade.pnl == pnl

    def _apply_close_edit(self, trade: Trade, changes: dict, closing: bool):
        exit_changed = changes.get("exit_price") is not None
        pnl_changed = changes.get("pnl") is not None

        pnl = changes.get("pnl")
        if pnl is None and not exit_changed:
            pnl = trade.pnl
        pnl_percent = changes.get("pnl_percent")
        if pnl_percent is None and not (pnl_changed or exit_changed):
            pnl_percent = trade.pnl_percent

        if closing:
            outcome = changes["outcome"]
        elif pnl_changed or exit_changed:
            outcome = None
        else:
            outcome = trade.outcome

        resolved = resolve_close(
            trade.direction,
            trade.entry_price,
            trade.leverage,
            exit_price=changes["exit_price"] if exit_changed else trade.exit_price,
            pnl=pnl,
            pnl_percent=pnl_percent,
            outcome=outcome,
        )
        was_open = trade.is_open
        trade.exit_price = resolved.exit_price
        trade.pnl = resolved.pnl
        trade.pnl_percent = resolved.pnl_percent
        trade.outcome = resolved.outcome.value
        if closing or was_open:
            trade.closed_at = now_ms()

    def _new_trade(self, trade_id: str, data: TradeCreate, source: TradeSource) -> Trade:
        now = now_ms()
        outcome = data.outcome
        closing = outcome != Outcome.OPEN and (data.exit_price is not None or outcome is not None)

        trade = Trade(
            id=trade_id,
            pair=data.pair,
            direction=data.direction.value,
            entry_price=data.entry_price,
            exit_price=data.exit_price,
            stop_loss=data.stop_loss,
            take_profit=data.take_profit,
            leverage=data.leverage,
            strategy=data.strategy or DEFAULT_STRATEGY,
            notes=data.notes,
            checklist_grade=data.checklist_grade,
            source=TradeSource(source).value,
            timestamp=data.timestamp or now,
            created_at=now,
        )

        if closing:
            resolved = resolve_close(
                trade.direction,
                trade.entry_price,
                trade.leverage,
                exit_price=data.exit_price,
                pnl=data.pnl,
                pnl_percent=data.pnl_percent,
                outcome=outcome,
            )
            trade.exit_price = resolved.exit_price
            trade.pnl = resolved.pnl
            trade.pnl_percent = resolved.pnl_percent
            trade.outcome = resolved.outcome.value
            trade.closed_at = now
        else:
            # Floating mark for an open position
            trade.outcome = Outcome.OPEN.value
            trade.pnl = data.pnl or 0.0
            trade.pnl_percent = data.pnl_percent if data.pnl_percent is not None else pnl_percent_of(trade.pnl, trade.entry_price)
            trade.closed_at = None
        return trade

    # ------------------------------------------------------------------
    # Queries (lock-free snapshots)
    # ------------------------------------------------------------------

    def get(self, trade_id: str) -> Trade | None:
        with session_scope(self._engine) as session:
            return session.get(Trade, trade_id)

    def require(self, trade_id: str) -> Trade:
        trade = self.get(trade_id)
        if trade is None:
            raise NotFound(f"Trade {trade_id} not found")
        return trade

    def list_trades(self, limit: int = 100, offset: int = 0) -> list[Trade]:
        stmt = select(Trade).order_by(Trade.timestamp.desc()).offset(offset).limit(limit)
        with session_scope(self._engine) as session:
            return list(session.exec(stmt).all())

    def list_by_date(self, day: date) -> list[Trade]:
        """Trades whose timestamp falls on `day` in the configured local zone."""
        start, end = self._day_bounds_ms(day)
        stmt = (
            select(Trade)
            .where(Trade.timestamp >= start, Trade.timestamp < end)
            .order_by(Trade.timestamp.desc())
        )
        with session_scope(self._engine) as session:
            return list(session.exec(stmt).all())

    def list_open(self) -> list[Trade]:
        stmt = select(Trade).where(Trade.outcome == Outcome.OPEN.value).order_by(Trade.timestamp.desc())
        with session_scope(self._engine) as session:
            return list(session.exec(stmt).all())

    def closed_trades(self) -> list[Trade]:
        stmt = select(Trade).where(Trade.outcome != Outcome.OPEN.value).order_by(Trade.closed_at)
        with session_scope(self._engine) as session:
            return list(session.exec(stmt).all())

    def recent_closed(self, limit: int) -> list[Trade]:
        """Most recently closed trades, newest first."""
        stmt = (
            select(Trade)
            .where(Trade.outcome != Outcome.OPEN.value)
            .order_by(Trade.closed_at.desc(), Trade.timestamp.desc())
            .limit(limit)
        )
        with session_scope(self._engine) as session:
            return list(session.exec(stmt).all())

    def _day_bounds_ms(self, day: date) -> tuple[int, int]:
        start = _local_midnight(day, self._tz)
        end = _local_midnight(day + timedelta(days=1), self._tz)
        return int(start.timestamp() * 1000), int(end.timestamp() * 1000)


def _local_midnight(day: date, tz: tzinfo | None) -> datetime:
    if tz is not None:
        return datetime.combine(day, time.min, tzinfo=tz)
    return datetime.combine(day, time.min).astimezone()
