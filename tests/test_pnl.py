"""Tests for the shared PnL derivation."""

import pytest

from tradejournal.services.pnl import compute_pnl, outcome_from_pnl, pnl_percent_of, resolve_close
from tradejournal.utils.constants import Outcome


class TestComputePnl:
    def test_long_win(self):
        assert compute_pnl("LONG", 100.0, 110.0, 1) == (10.0, 10.0)

    def test_short_profits_when_price_falls(self):
        pnl, pct = compute_pnl("SHORT", 100.0, 90.0, 1)
        assert pnl == 10.0
        assert pct == 10.0

    def test_leverage_scales_pnl(self):
        pnl, pct = compute_pnl("LONG", 200.0, 190.0, 5)
        assert pnl == -50.0
        assert pct == -25.0

    def test_float_noise_is_rounded(self):
        pnl, _ = compute_pnl("LONG", 0.1, 0.3, 1)
        assert pnl == 0.2

    def test_percent_of_zero_entry(self):
        assert pnl_percent_of(10.0, 0.0) == 0.0


@pytest.mark.parametrize("pnl,expected", [
    (5.0, Outcome.WIN),
    (-0.01, Outcome.LOSS),
    (0.0, Outcome.BREAKEVEN),
])
def test_outcome_from_pnl(pnl, expected):
    assert outcome_from_pnl(pnl) == expected


class TestResolveClose:
    def test_derives_everything_from_exit(self):
        resolved = resolve_close("LONG", 100.0, 1, exit_price=110.0)
        assert resolved.pnl == 10.0
        assert resolved.pnl_percent == 10.0
        assert resolved.outcome == Outcome.WIN

    def test_explicit_pnl_wins_over_exit(self):
        resolved = resolve_close("LONG", 100.0, 1, exit_price=110.0, pnl=-3.0)
        assert resolved.pnl == -3.0
        assert resolved.pnl_percent == -3.0
        assert resolved.outcome == Outcome.LOSS

    def test_explicit_outcome_kept(self):
        resolved = resolve_close("LONG", 100.0, 1, exit_price=90.0, outcome="BREAKEVEN")
        assert resolved.outcome == Outcome.BREAKEVEN
        assert resolved.pnl == -10.0

    def test_missing_exit_closes_flat(self):
        resolved = resolve_close("SHORT", 50.0, 3)
        assert resolved.exit_price == 50.0
        assert resolved.pnl == 0.0
        assert resolved.outcome == Outcome.BREAKEVEN

    def test_open_outcome_is_rederived(self):
        resolved = resolve_close("LONG", 100.0, 1, exit_price=105.0, outcome="OPEN")
        assert resolved.outcome == Outcome.WIN

    def test_two_callers_converge(self):
        from_exit = resolve_close("LONG", 100.0, 2, exit_price=104.0)
        from_pnl = resolve_close("LONG", 100.0, 2, exit_price=104.0, pnl=from_exit.pnl)
        assert from_exit == from_pnl
