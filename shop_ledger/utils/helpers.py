# utils/helpers.py
from datetime import date, datetime
import logging
from typing import Union, Optional

NumberLike = Union[float, int, str]
DateLike = Union[date, datetime, str]

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def now_iso() -> str:
    """Timestamp in the shape the store keeps on records."""
    return datetime.now().isoformat(timespec="seconds")


def to_date(value: Optional[DateLike]) -> Optional[date]:
    """
    Normalize a record date to a `date`.

    Accepts date, datetime and ISO strings ('2024-01-31' or
    '2024-01-31T10:15:00', with or without a trailing 'Z').
    Returns None for empty/unparseable input; callers decide whether that
    excludes the record.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1]
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        _log.debug("to_date: failed to parse %r", value)
        return None


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    Behavior on parse failure:
      - By default (strict=False, sentinel=None), returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError on parse failures.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"
