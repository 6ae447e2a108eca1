"""Tests for TradeStore upsert/close semantics and queries."""

from datetime import date

import pytest

from conftest import BASE_TS, HOUR_MS, make_trade
from tradejournal.errors import NotFound
from tradejournal.schemas.trade import TradeUpdate
from tradejournal.utils.constants import TradeSource


def _assert_closed_invariant(trade):
    assert (trade.closed_at is not None) == (trade.outcome != "OPEN")


# ---------------------------------------------------------------------------
# 1. Upsert
# ---------------------------------------------------------------------------

class TestUpsert:
    def test_insert_open_trade(self, trade_store):
        trade, created = trade_store.upsert(make_trade("t1"))
        assert created is True
        assert trade.outcome == "OPEN"
        assert trade.closed_at is None
        assert trade.strategy == "Manual"
        assert trade.source == "manual"

    def test_insert_closed_trade_derives_pnl(self, trade_store):
        trade, _ = trade_store.upsert(make_trade("t1", exit_price=110.0, outcome="WIN"))
        assert trade.outcome == "WIN"
        assert trade.pnl == 10.0
        assert trade.pnl_percent == 10.0
        _assert_closed_invariant(trade)

    def test_resubmission_is_not_a_duplicate(self, trade_store):
        trade_store.upsert(make_trade("t1"))
        trade, created = trade_store.upsert(make_trade("t1", entry_price=101.0, strategy="Breakout"))
        assert created is False
        assert trade.entry_price == 101.0
        assert trade.strategy == "Breakout"
        assert len(trade_store.list_trades()) == 1

    def test_bare_upsert_never_resurrects_closed_trade(self, trade_store):
        trade_store.upsert(make_trade("t1"))
        trade_store.close("t1", exit_price=120.0)

        trade, _ = trade_store.upsert(make_trade("t1", outcome="OPEN", pnl=0.0))
        assert trade.outcome == "WIN"
        assert trade.pnl == 20.0
        assert trade.exit_price == 120.0
        _assert_closed_invariant(trade)

    def test_price_correction_on_closed_trade_rederives_pnl(self, trade_store):
        trade_store.upsert(make_trade("t1"))
        trade_store.close("t1", exit_price=110.0)

        trade, _ = trade_store.upsert(make_trade("t1", direction="SHORT"))
        assert trade.direction == "SHORT"
        assert trade.pnl == -10.0
        assert trade.pnl_percent == -10.0
        assert trade.outcome == "WIN"
        assert trade.exit_price == 110.0
        _assert_closed_invariant(trade)

    def test_correction_keeps_explicit_pnl(self, trade_store):
        trade_store.upsert(make_trade("t1"))
        trade_store.close("t1", exit_price=110.0, pnl=42.0)

        trade, _ = trade_store.upsert(make_trade("t1", entry_price=105.0))
        assert trade.entry_price == 105.0
        assert trade.pnl == 42.0

    def test_webhook_source_recorded(self, trade_store):
        trade, _ = trade_store.upsert(make_trade("w1"), TradeSource.WEBHOOK)
        assert trade.source == "webhook"

    def test_generated_id_when_missing(self, trade_store):
        trade, created = trade_store.upsert(make_trade(None))
        assert created is True
        assert trade.id


# ---------------------------------------------------------------------------
# 2. Close
# ---------------------------------------------------------------------------

class TestClose:
    def test_close_unknown_id(self, trade_store):
        with pytest.raises(NotFound):
            trade_store.close("missing", exit_price=1.0)

    def test_close_derives_outcome_from_sign(self, trade_store):
        trade_store.upsert(make_trade("t1", direction="SHORT"))
        trade = trade_store.close("t1", exit_price=105.0)
        assert trade.outcome == "LOSS"
        assert trade.pnl == -5.0
        _assert_closed_invariant(trade)

    def test_close_with_explicit_values(self, trade_store):
        trade_store.upsert(make_trade("t1"))
        trade = trade_store.close("t1", exit_price=110.0, pnl=42.0, pnl_percent=4.2, notes="tp hit",
                                  checklist_grade="A")
        assert trade.pnl == 42.0
        assert trade.pnl_percent == 4.2
        assert trade.notes == "tp hit"
        assert trade.checklist_grade == "A"

    def test_reclose_last_close_wins(self, trade_store):
        trade_store.upsert(make_trade("t1"))
        first = trade_store.close("t1", exit_price=110.0)
        second = trade_store.close("t1", exit_price=95.0)
        assert second.outcome == "LOSS"
        assert second.pnl == -5.0
        assert second.closed_at >= first.closed_at
        assert len(trade_store.closed_trades()) == 1


# ---------------------------------------------------------------------------
# 3. Explicit field updates
# ---------------------------------------------------------------------------

class TestUpdateFields:
    def test_floating_pnl_keeps_trade_open(self, trade_store):
        trade_store.upsert(make_trade("t1"))
        trade = trade_store.update_fields("t1", TradeUpdate(pnl=7.5))
        assert trade.outcome == "OPEN"
        assert trade.pnl == 7.5
        assert trade.pnl_percent == 7.5
        _assert_closed_invariant(trade)

    def test_terminal_outcome_closes(self, trade_store):
        trade_store.upsert(make_trade("t1"))
        trade = trade_store.update_fields("t1", TradeUpdate(outcome="WIN", exit_price=130.0))
        assert trade.outcome == "WIN"
        assert trade.pnl == 30.0
        _assert_closed_invariant(trade)

    def test_reopen_clears_close(self, trade_store):
        trade_store.upsert(make_trade("t1"))
        trade_store.close("t1", exit_price=110.0)
        trade = trade_store.update_fields("t1", TradeUpdate(outcome="OPEN"))
        assert trade.outcome == "OPEN"
        assert trade.exit_price is None
        _assert_closed_invariant(trade)

    def test_new_exit_on_closed_trade_rederives(self, trade_store):
        trade_store.upsert(make_trade("t1"))
        trade_store.close("t1", exit_price=110.0)
        trade = trade_store.update_fields("t1", TradeUpdate(exit_price=90.0))
        assert trade.pnl == -10.0
        assert trade.outcome == "LOSS"

    def test_notes_only_edit(self, trade_store):
        trade_store.upsert(make_trade("t1"))
        trade_store.close("t1", exit_price=110.0)
        trade = trade_store.update_fields("t1", TradeUpdate(notes="review later"))
        assert trade.notes == "review later"
        assert trade.outcome == "WIN"
        assert trade.pnl == 10.0

    def test_update_unknown_id(self, trade_store):
        with pytest.raises(NotFound):
            trade_store.update_fields("missing", TradeUpdate(notes="x"))


# ---------------------------------------------------------------------------
# 4. Queries
# ---------------------------------------------------------------------------

class TestQueries:
    def test_list_newest_first_with_paging(self, trade_store):
        for i in range(5):
            trade_store.upsert(make_trade(f"t{i}", timestamp=BASE_TS + i * HOUR_MS))
        ids = [t.id for t in trade_store.list_trades(limit=2, offset=1)]
        assert ids == ["t3", "t2"]

    def test_list_by_local_date(self, trade_store):
        trade_store.upsert(make_trade("day1", timestamp=BASE_TS + 23 * HOUR_MS))
        trade_store.upsert(make_trade("day2", timestamp=BASE_TS + 24 * HOUR_MS))
        assert [t.id for t in trade_store.list_by_date(date(2024, 1, 15))] == ["day1"]
        assert [t.id for t in trade_store.list_by_date(date(2024, 1, 16))] == ["day2"]

    def test_list_open(self, trade_store):
        trade_store.upsert(make_trade("open"))
        trade_store.upsert(make_trade("closed"))
        trade_store.close("closed", exit_price=101.0)
        assert [t.id for t in trade_store.list_open()] == ["open"]

    def test_get_and_require(self, trade_store):
        assert trade_store.get("nope") is None
        with pytest.raises(NotFound):
            trade_store.require("nope")
