"""PnL derivation shared by every ingestion path.

Explicit caller values always win; whatever is missing is derived from
entry/exit/leverage/direction with the same formula, so two callers that
supply different subsets of fields store the same numbers.
"""

from dataclasses import dataclass

from tradejournal.utils.constants import Direction, Outcome

_PRECISION = 8


@dataclass(frozen=True)
class ClosedFields:
    exit_price: float
    pnl: float
    pnl_percent: float
    outcome: Outcome


def compute_pnl(direction: str, entry_price: float, exit_price: float, leverage: int = 1) -> tuple[float, float]:
    """Return (pnl, pnl_percent) per unit of position."""
    sign = 1 if Direction(direction) == Direction.LONG else -1
    pnl = (exit_price - entry_price) * sign * (leverage or 1)
    pnl = round(pnl, _PRECISION)
    return pnl, pnl_percent_of(pnl, entry_price)


def pnl_percent_of(pnl: float, entry_price: float) -> float:
    if not entry_price:
        return 0.0
    return round(pnl / entry_price * 100, _PRECISION)


def outcome_from_pnl(pnl: float) -> Outcome:
    if pnl > 0:
        return Outcome.WIN
    if pnl < 0:
        return Outcome.LOSS
    return Outcome.BREAKEVEN


def resolve_close(
    direction: str,
    entry_price: float,
    leverage: int,
    exit_price: float | None = None,
    pnl: float | None = None,
    pnl_percent: float | None = None,
    outcome: Outcome | str | None = None,
) -> ClosedFields:
    """Fill in the closing fields a caller left out.

    A missing exit price means the position was flat-closed at entry.
    """
    if exit_price is None:
        exit_price = entry_price

    if pnl is None:
        pnl, derived_pct = compute_pnl(direction, entry_price, exit_price, leverage)
    else:
        derived_pct = pnl_percent_of(pnl, entry_price)

    if pnl_percent is None:
        pnl_percent = derived_pct

    if outcome is None or Outcome(outcome) == Outcome.OPEN:
        resolved = outcome_from_pnl(pnl)
    else:
        resolved = Outcome(outcome)

    return ClosedFields(
        exit_price=exit_price,
        pnl=pnl,
        pnl_percent=pnl_percent,
        outcome=resolved,
    )
