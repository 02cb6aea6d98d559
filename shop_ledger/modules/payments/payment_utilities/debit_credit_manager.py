"""
payment_utilities/debit_credit_manager.py

Money in / money out for the cash-flow figures.

A movement is a plain row {"kind", "amount", "method"}:

    kind       direction for amount > 0
    sale       in   (received from a customer, payment-only receipts too)
    income     in   (manual income entry)
    purchase   out  (paid to a vendor, deposits too)
    expense    out  (manual expense entry)

A negative amount (refund) runs the other way. Every method counts as cash
on the day of the record; checks are not held back until they clear.

No DB access here; callers pass loaded records in.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ....utils.validators import number_or

__all__ = [
    "INFLOW",
    "OUTFLOW",
    "classify_direction",
    "movements",
    "totals",
    "group_totals",
]

INFLOW = "inflow"
OUTFLOW = "outflow"

_SIGN = {"sale": 1, "income": 1, "purchase": -1, "expense": -1}

Row = Mapping[str, Any]


def classify_direction(row: Row) -> Tuple[str, float]:
    """("inflow" | "outflow" | "none", magnitude >= 0). Unknown kinds and zero amounts are 'none'."""
    sign = _SIGN.get(str(row.get("kind", "")).strip().lower())
    amount = number_or(row.get("amount"))
    if sign is None or amount == 0:
        return "none", 0.0
    return (INFLOW if sign * amount > 0 else OUTFLOW), abs(amount)


def movements(
    sales: Iterable[Any],
    purchases: Iterable[Any],
    incomes: Iterable[Row],
    expenses: Iterable[Row],
    in_window: Callable[[Any], bool],
) -> List[Dict[str, Any]]:
    """
    Rows for everything dated inside the window (in_window(date) is True).
    Sales/purchases contribute what was actually paid on them, not their total.
    """
    rows: List[Dict[str, Any]] = []
    for kind, txns in (("sale", sales), ("purchase", purchases)):
        for t in txns:
            if in_window(t.date):
                rows.append({"kind": kind, "amount": t.amount_paid, "method": t.payment_method})
    for kind, entries in (("income", incomes), ("expense", expenses)):
        for e in entries:
            if in_window(e.get("date")):
                rows.append({"kind": kind, "amount": number_or(e.get("amount")), "method": e.get("paymentMethod")})
    return rows


def _add(bucket: Dict[str, float], row: Row) -> None:
    direction, mag = classify_direction(row)
    if direction == INFLOW:
        bucket["in"] += mag
    elif direction == OUTFLOW:
        bucket["out"] += mag
    bucket["net"] = bucket["in"] - bucket["out"]


def _selected(rows: Iterable[Row], where: Optional[Mapping[str, Any]]) -> Iterable[Row]:
    if not where:
        return rows
    return (r for r in rows if all(r.get(k) == v for k, v in where.items()))


def totals(rows: Iterable[Row], *, where: Optional[Mapping[str, Any]] = None) -> Dict[str, float]:
    """{"in", "out", "net"} over rows matching the optional equality filter."""
    bucket = {"in": 0.0, "out": 0.0, "net": 0.0}
    for r in _selected(rows, where):
        _add(bucket, r)
    return bucket


def group_totals(
    rows: Iterable[Row],
    group_key: str,
    *,
    where: Optional[Mapping[str, Any]] = None,
) -> List[Tuple[object, Dict[str, float]]]:
    """
    [(group_value, {"in", "out", "net"}), ...] sorted by the group's text,
    rows without a value (None) last. Groups with no movement are omitted.
    """
    buckets: Dict[object, Dict[str, float]] = {}
    for r in _selected(rows, where):
        if classify_direction(r)[0] == "none":
            continue
        _add(buckets.setdefault(r.get(group_key), {"in": 0.0, "out": 0.0, "net": 0.0}), r)
    return sorted(buckets.items(), key=lambda kv: (kv[0] is None, str(kv[0])))
